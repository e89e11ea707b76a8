"""Fixtures compartilhadas: banco SQLite por teste, app com get_db sobrescrito e envio de email falso."""
import os
from unittest.mock import AsyncMock

# Precisa vir antes de qualquer import do app (Settings é carregado no import)
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ACCESS_TOKEN_SECRET"] = "test-access-secret-0123456789"
os.environ["REFRESH_TOKEN_SECRET"] = "test-refresh-secret-0123456789"
os.environ["SECRET_API_KEY"] = "test-api-key-0123456789"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from app.api.route_registry import api_routes  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.initial_data import create_roles_if_not_exist, seed_permissions  # noqa: E402
from app.db.session import get_db  # noqa: E402
from app.models import device, refresh_token, role, user, verification_code  # noqa: E402,F401
from app.services.auth_service import auth_service  # noqa: E402
from app.services.role_service import role_service  # noqa: E402
from main import app  # noqa: E402


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Um arquivo SQLite novo por teste; cada sessão abre sua própria conexão."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seeded(session_factory):
    """Roles padrão + permissões sincronizadas com as rotas do app."""
    async with session_factory() as session:
        await create_roles_if_not_exist(session)
        await seed_permissions(session, api_routes.routes())
        await session.commit()


@pytest.fixture(autouse=True)
def reset_role_cache():
    # O id da role CLIENT fica em cache no processo; cada teste tem um banco novo
    role_service._client_role_id = None
    yield
    role_service._client_role_id = None


@pytest.fixture
def sent_codes(monkeypatch):
    """Troca o envio de email por um AsyncMock que guarda o último código por (email, finalidade)."""
    codes: dict[tuple[str, str], str] = {}

    async def capture(email_to: str, code: str, purpose: str) -> bool:
        codes[(email_to, purpose)] = code
        return True

    monkeypatch.setattr(auth_service, "email_sender", AsyncMock(side_effect=capture))
    return codes


@pytest_asyncio.fixture
async def client(session_factory, seeded, sent_codes):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()
