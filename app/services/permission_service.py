# auth_core/app/services/permission_service.py
from typing import Iterable, NamedTuple

from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from app.api.route_registry import RegisteredRoute
from app.core.config import settings
from app.core.constants import HTTPMethod, RoleName
from app.core.security import strip_prefix
from app.crud.crud_role import role as crud_role, permission as crud_permission


class RoutePermission(NamedTuple):
    path: str
    method: HTTPMethod

    @property
    def key(self) -> str:
        return f"{self.method.value}-{self.path}"


def collect_route_permissions(routes: Iterable[RegisteredRoute], prefix: str | None = None) -> list[RoutePermission]:
    """
    Lista (método, path) de todas as rotas da API, já sem o prefixo global.
    O path é o template da rota (ex: /users/{user_id}), igual ao que o guard compara.
    """
    prefix = settings.PREFIX_URL if prefix is None else prefix
    found: dict[str, RoutePermission] = {}
    for route in routes:
        if not route.path.startswith(prefix):
            continue
        path = strip_prefix(route.path, prefix)
        for method in sorted(route.methods):
            try:
                item = RoutePermission(path=path, method=HTTPMethod(method))
            except ValueError:
                continue
            found[item.key] = item
    return list(found.values())


async def sync_permissions(db: AsyncSession, *, routes: Iterable[RegisteredRoute]) -> dict[str, int]:
    """
    Reconcilia a tabela de permissões com as rotas registradas: cria as que faltam,
    apaga as que não existem mais e dá todas para a role ADMIN. Não faz commit.
    """
    available = {item.key: item for item in collect_route_permissions(routes)}
    in_db = {f"{p.method.value}-{p.path}": p for p in await crud_permission.get_all_active(db)}

    to_delete = [p.id for key, p in in_db.items() if key not in available]
    to_add = [
        {
            "name": f"{item.method.value} {item.path}",
            "description": f"Permission for {item.method.value} {item.path}",
            "path": item.path,
            "method": item.method,
            "module": item.path.split("/")[1] or "root",
        }
        for key, item in available.items()
        if key not in in_db
    ]

    deleted = await crud_permission.delete_many(db, ids=to_delete)
    await crud_permission.create_many(db, items=to_add)
    logger.info(f"Permissões sincronizadas: {len(to_add)} adicionada(s), {deleted} removida(s).")

    admin_role = await crud_role.get_by_name(db, name=RoleName.ADMIN.value)
    if admin_role is None:
        raise RuntimeError("Role ADMIN não encontrada. Rode o seed inicial.")
    # Expira a coleção em cache, pode conter permissões apagadas acima
    await db.refresh(admin_role, attribute_names=["permissions"])
    await crud_role.set_permissions(db, role=admin_role, permissions=await crud_permission.get_all_active(db))
    return {"added": len(to_add), "deleted": deleted}


async def grant_permissions(
    db: AsyncSession, *, role_name: str, allowed: Iterable[tuple[HTTPMethod, str]]
) -> int:
    """Dá a uma role as permissões (método, path) listadas, se existirem. Não faz commit."""
    db_role = await crud_role.get_by_name(db, name=role_name)
    if db_role is None:
        raise RuntimeError(f"Role {role_name} não encontrada.")
    wanted = {(method, path) for method, path in allowed}
    permissions = [p for p in await crud_permission.get_all_active(db) if (p.method, p.path) in wanted]
    await db.refresh(db_role, attribute_names=["permissions"])
    await crud_role.set_permissions(db, role=db_role, permissions=permissions)
    return len(permissions)
