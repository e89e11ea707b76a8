# auth_core/app/schemas/user.py
from pydantic import ConfigDict, Field
from typing import Optional
from datetime import datetime
import re

from app.core.constants import UserStatus
from app.schemas.base import CamelModel

# Função de validação de senha
def password_strength_validator(password: str) -> str:
    if len(password) < 8:
        raise ValueError('Error.InvalidPasswordMinLength')
    if not re.search(r"[a-z]", password):
        raise ValueError('Error.PasswordMissingLowercase')
    if not re.search(r"[A-Z]", password):
        raise ValueError('Error.PasswordMissingUppercase')
    if not re.search(r"[0-9]", password):
        raise ValueError('Error.PasswordMissingDigit')
    if not re.search(r"[\W_]", password): # \W corresponde a não-alfanumérico
        raise ValueError('Error.PasswordMissingSpecialCharacter')
    return password


class UserProfile(CamelModel):
    """Usuário como sai da API: nunca inclui senha nem segredo TOTP."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str
    phone_number: str
    avatar: Optional[str] = None
    status: UserStatus
    role_id: int
    is_two_factor_enabled: bool = Field(default=False)
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user) -> "UserProfile":
        profile = cls.model_validate(user)
        profile.is_two_factor_enabled = bool(user.totp_secret)
        return profile
