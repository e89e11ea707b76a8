# auth_core/app/crud/crud_refresh_token.py
from datetime import datetime, timezone
from typing import Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import delete, update

from app.core.exceptions import RecordNotFoundError
from app.core.security import hash_token
from app.models.device import Device
from app.models.refresh_token import RefreshToken
from loguru import logger

# Armazenamento de sessões: devices + refresh tokens.
# As funções só fazem flush; o commit é responsabilidade do fluxo que chama.

async def create_device(db: AsyncSession, *, user_id: int, user_agent: str, ip: str) -> Device:
    """Sempre insere um novo device (não há reaproveitamento por user-agent/IP)."""
    db_device = Device(
        user_id=user_id,
        user_agent=user_agent,
        ip=ip,
        is_active=True,
        last_active=datetime.now(timezone.utc).replace(tzinfo=None),
    )
    db.add(db_device)
    await db.flush()
    return db_device


async def update_device(db: AsyncSession, *, device_id: int, **values: Any) -> None:
    """Atualiza campos do device (user_agent, ip, last_active, is_active)."""
    stmt = update(Device).where(Device.id == device_id).values(**values)
    result = await db.execute(stmt)
    if result.rowcount == 0:
        raise RecordNotFoundError(f"Device {device_id} não encontrado")


async def create_refresh_token(
    db: AsyncSession, *, user_id: int, token: str, expires_at: datetime, device_id: int
) -> RefreshToken:
    """Armazena o hash de um novo refresh token, vinculado ao device."""
    db_token = RefreshToken(
        user_id=user_id,
        device_id=device_id,
        token_hash=hash_token(token),
        expires_at=expires_at,
    )
    db.add(db_token)
    await db.flush()
    return db_token


async def find_refresh_token_with_user_and_role(db: AsyncSession, *, token: str) -> RefreshToken | None:
    """Busca o refresh token pelo hash, trazendo usuário e role (joined)."""
    if not token or not token.strip():
        return None
    stmt = select(RefreshToken).where(RefreshToken.token_hash == hash_token(token.strip()))
    result = await db.execute(stmt)
    return result.scalars().first()


async def delete_refresh_token(db: AsyncSession, *, token: str):
    """
    Apaga o refresh token e devolve a linha apagada (id, user_id, device_id, expires_at).
    O DELETE condicional é o que garante uso único: numa corrida, só um dos
    chamadores recebe a linha; o outro recebe RecordNotFoundError.
    """
    stmt = (
        delete(RefreshToken)
        .where(RefreshToken.token_hash == hash_token(token.strip()))
        .returning(
            RefreshToken.id, RefreshToken.user_id, RefreshToken.device_id, RefreshToken.expires_at
        )
    )
    result = await db.execute(stmt)
    row = result.first()
    if row is None:
        raise RecordNotFoundError("Refresh token não encontrado")
    return row


async def delete_all_user_refresh_tokens(db: AsyncSession, *, user_id: int) -> int:
    """Apaga todos os refresh tokens de um usuário (logout de todas as sessões)."""
    stmt = delete(RefreshToken).where(RefreshToken.user_id == user_id)
    result = await db.execute(stmt)
    logger.info(f"Removidos {result.rowcount} refresh token(s) do usuário ID {user_id}")
    return result.rowcount


async def deactivate_user_devices(db: AsyncSession, *, user_id: int) -> int:
    stmt = update(Device).where(Device.user_id == user_id, Device.is_active.is_(True)).values(is_active=False)
    result = await db.execute(stmt)
    return result.rowcount

