# auth_core/app/db/session.py
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
)
from loguru import logger

from app.core.config import settings

# Engine e fábrica de sessões criadas sob demanda (no primeiro uso),
# para que importar o app não abra conexão com o banco.
_async_engine: Optional[AsyncEngine] = None
_AsyncSessionLocal: Optional[async_sessionmaker[AsyncSession]] = None


def get_async_engine() -> AsyncEngine:
    global _async_engine
    if _async_engine is None:
        # O driver async vem na própria URL: "postgresql+asyncpg://...", "sqlite+aiosqlite:///..."
        if not settings.DATABASE_URL:
            raise RuntimeError("DATABASE_URL não definida. Verifique o .env.")
        try:
            _async_engine = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True, echo=False)
        except Exception as e:
            raise RuntimeError(f"Não foi possível criar o engine async: {e}")
        logger.info("Engine do banco criado.")
    return _async_engine


def get_session_local() -> async_sessionmaker[AsyncSession]:
    global _AsyncSessionLocal
    if _AsyncSessionLocal is None:
        _AsyncSessionLocal = async_sessionmaker(
            bind=get_async_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _AsyncSessionLocal


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Uma sessão por requisição. Commit/rollback ficam com os services."""
    SessionLocal = get_session_local()
    async with SessionLocal() as db:
        yield db


async def dispose_engine() -> None:
    global _async_engine, _AsyncSessionLocal
    if _async_engine is not None:
        await _async_engine.dispose()
        _async_engine = None
        _AsyncSessionLocal = None
