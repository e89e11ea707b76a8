# auth_core/app/schemas/auth.py
from pydantic import EmailStr, Field, field_validator, model_validator
from typing import Optional

from app.core.constants import VerificationCodeType
from app.schemas.base import CamelModel
from app.schemas.user import password_strength_validator

OTP_PATTERN = r"^\d{6}$"


class RegisterRequest(CamelModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=100)
    phone_number: str = Field(..., min_length=10, max_length=15)
    password: str = Field(..., min_length=8, max_length=100)
    confirm_password: str = Field(..., min_length=8, max_length=100)
    code: str = Field(..., pattern=OTP_PATTERN)

    @field_validator('password')
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        return password_strength_validator(v)

    @model_validator(mode="after")
    def passwords_match(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("Error.ConfirmPasswordNotMatch")
        return self


class SendOTPRequest(CamelModel):
    email: EmailStr
    type: VerificationCodeType


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=100)
    # Só exigidos quando o usuário tem 2FA habilitado (exatamente um dos dois)
    totp_code: Optional[str] = Field(None, pattern=OTP_PATTERN)
    code: Optional[str] = Field(None, pattern=OTP_PATTERN)


class ForgotPasswordRequest(CamelModel):
    email: EmailStr
    code: str = Field(..., pattern=OTP_PATTERN)
    new_password: str = Field(..., min_length=8, max_length=100)
    confirm_new_password: str = Field(..., min_length=8, max_length=100)

    @field_validator('new_password')
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        return password_strength_validator(v)

    @model_validator(mode="after")
    def passwords_match(self) -> "ForgotPasswordRequest":
        if self.new_password != self.confirm_new_password:
            raise ValueError("Error.ConfirmPasswordNotMatch")
        return self


# --- 2FA ---

class TwoFactorSetupResponse(CamelModel):
    """Resposta ao habilitar o 2FA: segredo, URI otpauth:// e QR Code."""
    secret: str
    uri: str
    qr_code_base64: str = ""


class DisableTwoFactorRequest(CamelModel):
    totp_code: Optional[str] = Field(None, pattern=OTP_PATTERN)
    code: Optional[str] = Field(None, pattern=OTP_PATTERN)

# --- Fim 2FA ---


class GoogleAuthUrlResponse(CamelModel):
    url: str
