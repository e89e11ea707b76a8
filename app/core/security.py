# auth_core/app/core/security.py
import base64
import hashlib
import io
import secrets
from passlib.context import CryptContext
import qrcode # type: ignore
from .config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        # Limita o tamanho da senha ANTES de passar para o bcrypt (evita erros > 72 bytes)
        password_bytes = plain_password.encode('utf-8')[:72]
        return pwd_context.verify(password_bytes, hashed_password)
    except ValueError:
        # Hash corrompido ou em formato desconhecido
        return False

def get_password_hash(password: str) -> str:
    password_bytes = password.encode('utf-8')[:72]
    return pwd_context.hash(password_bytes)


def hash_token(token: str) -> str:
    """Hash SHA-256 de um token opaco; só o hash vai para o banco."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def generate_otp() -> str:
    """Código decimal de 6 dígitos, uniformemente aleatório (100000-999999)."""
    return str(100000 + secrets.randbelow(900000))


def strip_prefix(path: str, prefix: str | None = None) -> str:
    """
    Remove o prefixo global (ex: /api/v1) do path da requisição.
    As permissões são gravadas sem o prefixo.
    """
    prefix = settings.PREFIX_URL if prefix is None else prefix
    if prefix and path.startswith(prefix):
        return path[len(prefix):] or "/"
    return path


def generate_qr_code_base64(otp_uri: str) -> str:
    """Gera um QR Code a partir da URI OTP e retorna como imagem base64."""
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=4,
    )
    qr.add_data(otp_uri)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    # Salva a imagem em memória como PNG
    buffered = io.BytesIO()
    img.save(buffered, format="PNG")

    img_str = base64.b64encode(buffered.getvalue()).decode("utf-8")

    # Retorna no formato Data URI
    return f"data:image/png;base64,{img_str}"
