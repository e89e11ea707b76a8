# auth_core/app/services/two_factor_service.py
from datetime import datetime
from typing import Optional

import pyotp

from app.core.config import settings


class TwoFactorService:
    """TOTP (RFC 6238): segredo base32, 6 dígitos, passo de 30s."""

    def __init__(self, *, issuer_name: str, digits: int = 6, period: int = 30, valid_window: int = 1):
        # Garante que o nome do issuer não tenha caracteres problemáticos para URI
        self.issuer_name = issuer_name.replace(":", "")
        self.digits = digits
        self.period = period
        self.valid_window = valid_window

    def _totp(self, email: str, secret: str) -> pyotp.TOTP:
        return pyotp.TOTP(
            secret,
            digits=self.digits,
            interval=self.period,
            name=email,
            issuer=self.issuer_name,
        )

    def generate_secret(self, email: str) -> dict[str, str]:
        """
        Gera um novo segredo e a URI 'otpauth://' para apps autenticadores.
        O segredo é gravado no usuário; a URI vira QR Code no cliente.
        """
        secret = pyotp.random_base32()
        uri = self._totp(email, secret).provisioning_uri()
        return {"secret": secret, "uri": uri}

    def verify(
        self, *, token: str, email: str, secret: str, for_time: Optional[datetime | int] = None
    ) -> bool:
        """
        Verifica o código contra o segredo. Aceita o passo anterior e o seguinte
        (janela de +/- 1 * 30s) para absorver diferença de relógio.
        """
        if not secret or not token:
            return False
        totp = self._totp(email, secret)
        return totp.verify(token, for_time=for_time, valid_window=self.valid_window)


two_factor_service = TwoFactorService(
    issuer_name=settings.APP_NAME,
    digits=settings.TOTP_DIGITS,
    period=settings.TOTP_PERIOD,
)
