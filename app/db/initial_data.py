# auth_core/app/db/initial_data.py
import asyncio
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from app.api.route_registry import RegisteredRoute
from app.core.config import settings
from app.core.constants import HTTPMethod, RoleName
from app.crud.crud_role import role as crud_role
from app.crud.crud_user import user as crud_user
from app.db.base import Base
from app.db.session import get_async_engine, get_session_local, dispose_engine
from app.models.role import Role
from app.services.permission_service import collect_route_permissions, grant_permissions, sync_permissions

# Importar TODOS os modelos para que Base.metadata os conheça
from app.models import device, refresh_token, user, verification_code  # noqa F401

PREDEFINED_ROLES = [
    {"name": RoleName.ADMIN.value, "description": "Administrator role with full access"},
    {"name": RoleName.SELLER.value, "description": "Seller role with product management capabilities"},
    {"name": RoleName.CLIENT.value, "description": "Client role with purchase permissions"},
]

# Módulos (primeiro segmento do path) liberados para qualquer usuário logado
CLIENT_MODULES = ("auth",)
CLIENT_EXTRA_PERMISSIONS = [(HTTPMethod.GET, "/users/me")]


async def create_tables() -> None:
    engine = get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Tabelas criadas (as existentes foram mantidas).")


async def create_roles_if_not_exist(db: AsyncSession) -> int:
    if await crud_role.count(db) > 0:
        logger.warning("Roles já existem. Pulando criação de roles.")
        return 0
    db.add_all([Role(**data) for data in PREDEFINED_ROLES])
    await db.flush()
    return len(PREDEFINED_ROLES)


async def create_admin_user(db: AsyncSession):
    if await crud_user.get_by_email(db, email=settings.ADMIN_EMAIL):
        logger.warning(f"Usuário admin {settings.ADMIN_EMAIL} já existe.")
        return None
    admin_role = await crud_role.get_by_name(db, name=RoleName.ADMIN.value)
    if admin_role is None:
        raise RuntimeError("Role ADMIN não encontrada.")
    return await crud_user.create(
        db,
        email=settings.ADMIN_EMAIL,
        password=settings.ADMIN_PASSWORD,
        name=settings.ADMIN_NAME,
        phone_number=settings.ADMIN_PHONE,
        role_id=admin_role.id,
    )


async def seed_permissions(db: AsyncSession, routes: Iterable[RegisteredRoute]) -> None:
    """Sincroniza permissões com as rotas e libera para CLIENT as rotas de auth e /users/me."""
    routes = list(routes)
    await sync_permissions(db, routes=routes)
    client_permissions = [
        (item.method, item.path)
        for item in collect_route_permissions(routes)
        if item.path.split("/")[1] in CLIENT_MODULES
    ] + CLIENT_EXTRA_PERMISSIONS
    granted = await grant_permissions(db, role_name=RoleName.CLIENT.value, allowed=client_permissions)
    logger.info(f"Role CLIENT recebeu {granted} permissão(ões).")


async def main() -> None:
    # Importado aqui para não carregar o app inteiro só por importar este módulo.
    # O import do main é o que registra as rotas da API.
    from main import api_routes

    await create_tables()
    SessionLocal = get_session_local()
    async with SessionLocal() as db:
        try:
            created_roles = await create_roles_if_not_exist(db)
            admin_user = await create_admin_user(db)
            await seed_permissions(db, api_routes.routes())
            await db.commit()
        except Exception:
            await db.rollback()
            raise
    logger.info(f"{created_roles} role(s) criada(s).")
    logger.info(f"Usuário admin criado: {admin_user.email}" if admin_user else "Nenhum usuário admin criado.")
    await dispose_engine()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except Exception as e:
        logger.exception(f"Ocorreu um erro durante o seed do banco de dados: {e}")
        raise SystemExit(1)
