# auth_core/app/services/verification_code_service.py
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from app.core.config import settings
from app.core.constants import VerificationCodeType
from app.core.exceptions import InvalidCodeError, CodeExpiredError
from app.core.security import generate_otp
from app.crud import crud_verification_code
from app.models.verification_code import VerificationCode


def utcnow_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class VerificationCodeService:
    """Códigos OTP de 6 dígitos por (email, finalidade), com expiração."""

    def __init__(self, *, ttl: timedelta, clock: Callable[[], datetime] = utcnow_naive):
        self.ttl = ttl
        self.clock = clock

    async def issue(self, db: AsyncSession, *, email: str, purpose: VerificationCodeType) -> str:
        """Gera e grava o código. Um pedido novo sobrescreve o anterior (e a expiração)."""
        code = generate_otp()
        expires_at = self.clock() + self.ttl
        await crud_verification_code.upsert_verification_code(
            db, email=email, code=code, type=purpose, expires_at=expires_at
        )
        logger.info(f"Código OTP ({purpose.value}) emitido para {email}, expira em {expires_at}.")
        return code

    async def validate(
        self, db: AsyncSession, *, email: str, code: str, purpose: VerificationCodeType
    ) -> VerificationCode:
        """
        Exige igualdade exata do código. A expiração é comparada com o relógio
        no momento da validação: no instante exato de expires_at já está expirado.
        """
        db_code = await crud_verification_code.get_verification_code(db, email=email, type=purpose)
        if db_code is None or not secrets.compare_digest(db_code.code, code):
            raise InvalidCodeError()
        if self.clock() >= db_code.expires_at:
            raise CodeExpiredError()
        return db_code

    async def consume(self, db: AsyncSession, *, email: str, code: str, purpose: VerificationCodeType) -> None:
        """Apaga o código depois do uso, para não ser reaproveitado."""
        await crud_verification_code.delete_verification_code(db, email=email, code=code, type=purpose)


verification_code_service = VerificationCodeService(ttl=timedelta(minutes=settings.OTP_EXPIRE_MINUTES))
