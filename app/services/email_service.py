# auth_core/app/services/email_service.py
import emails
from emails.template import JinjaTemplate
from app.core.config import settings
from loguru import logger
from typing import Dict, Any, Optional
import asyncio
import traceback

OTP_PURPOSE_LABELS = {
    "REGISTER": "confirmar seu cadastro",
    "FORGOT_PASSWORD": "redefinir sua senha",
    "LOGIN": "entrar na sua conta",
    "DISABLE_2FA": "desativar a verificação em duas etapas",
}

OTP_HTML_TEMPLATE = """
<html>
<body>
    <p>Olá,</p>
    <p>Use o código abaixo para {{ purpose_label }} em {{ project_name }}:</p>
    <p style="font-size: 28px; font-weight: bold; letter-spacing: 6px;">{{ code }}</p>
    <p>O código expira em {{ expire_minutes }} minutos.</p>
    <p>Se você não fez esta solicitação, por favor ignore este e-mail.</p>
    <p>Atenciosamente,<br>Equipe {{ project_name }}</p>
</body>
</html>
"""


async def send_email_async(
    email_to: str,
    subject_template: str = "",
    html_template: str = "",
    environment: Optional[Dict[str, Any]] = None,
) -> bool:
    """Envia um email de forma assíncrona."""
    message = emails.Message(
        subject=JinjaTemplate(subject_template),
        html=JinjaTemplate(html_template),
        mail_from=(settings.EMAIL_FROM_NAME, settings.EMAIL_FROM),
    )

    smtp_options: Dict[str, Any] = {
        "host": settings.EMAIL_HOST,
        "port": settings.EMAIL_PORT,
        "tls": settings.EMAIL_USE_TLS,
        "ssl": settings.EMAIL_USE_SSL,
    }
    if settings.EMAIL_USERNAME:
        smtp_options["user"] = settings.EMAIL_USERNAME
    if settings.EMAIL_PASSWORD:
        smtp_options["password"] = settings.EMAIL_PASSWORD

    logger.debug(f"Tentando conectar ao SMTP: {smtp_options.get('host')}:{smtp_options.get('port')}")

    try:
        # A biblioteca 'emails' não é nativamente async, rodamos em thread separada
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(
            None,
            lambda: message.send(to=email_to, render=environment or {}, smtp=smtp_options),
        )

        if response:
            logger.info(f"Email enviado para {email_to}. Resposta SMTP (status_code): {response.status_code}")
            return response.status_code in [250, 252] # 250 OK, 252 Cannot VRFY
        logger.warning(f"Falha ao enviar email para {email_to}. A resposta do SMTP foi 'None' ou vazia.")
        return False

    except Exception as e:
        logger.error(f"Erro CRÍTICO ao enviar email para {email_to}: {e}")
        logger.error(f"Traceback completo: {traceback.format_exc()}")
        return False


async def send_otp_email(email_to: str, code: str, purpose: str) -> bool:
    project_name = settings.APP_NAME
    subject = f"{project_name} - Seu código de verificação"
    return await send_email_async(
        email_to=email_to,
        subject_template=subject,
        html_template=OTP_HTML_TEMPLATE,
        environment={
            "project_name": project_name,
            "code": code,
            "purpose_label": OTP_PURPOSE_LABELS.get(purpose, "continuar"),
            "expire_minutes": settings.OTP_EXPIRE_MINUTES,
        },
    )
