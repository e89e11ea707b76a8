# auth_core/app/crud/crud_verification_code.py
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import delete

from app.core.constants import VerificationCodeType
from app.models.verification_code import VerificationCode


async def upsert_verification_code(
    db: AsyncSession, *, email: str, code: str, type: VerificationCodeType, expires_at: datetime
) -> VerificationCode:
    """Se ainda não existe código para (email, type), cria; se existe, sobrescreve código e expiração."""
    stmt = select(VerificationCode).where(VerificationCode.email == email, VerificationCode.type == type)
    result = await db.execute(stmt)
    db_code = result.scalars().first()
    if db_code:
        db_code.code = code
        db_code.expires_at = expires_at
    else:
        db_code = VerificationCode(email=email, code=code, type=type, expires_at=expires_at)
        db.add(db_code)
    await db.flush()
    return db_code


async def get_verification_code(
    db: AsyncSession, *, email: str, type: VerificationCodeType
) -> VerificationCode | None:
    stmt = select(VerificationCode).where(VerificationCode.email == email, VerificationCode.type == type)
    result = await db.execute(stmt)
    return result.scalars().first()


async def delete_verification_code(
    db: AsyncSession, *, email: str, code: str, type: VerificationCodeType
) -> int:
    stmt = delete(VerificationCode).where(
        VerificationCode.email == email,
        VerificationCode.code == code,
        VerificationCode.type == type,
    )
    result = await db.execute(stmt)
    return result.rowcount
