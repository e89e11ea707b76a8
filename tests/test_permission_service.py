from fastapi import APIRouter

from app.api.route_registry import RouteRegistry, api_routes
from app.core.constants import HTTPMethod, RoleName
from app.crud.crud_role import role as crud_role
from app.models.role import Role
from app.services.permission_service import RoutePermission, collect_route_permissions, sync_permissions
from main import app  # noqa: F401 (registra as rotas da API)


def test_registry_joins_include_prefix_and_route_path():
    router = APIRouter()

    @router.post("/{order_id}/cancel", name="orders:cancel")
    async def cancel(order_id: int):
        return {}

    registry = RouteRegistry()
    registry.register(router, prefix="/api/v1/orders")

    registered = registry.get("orders:cancel")
    assert registered.path == "/api/v1/orders/{order_id}/cancel"
    assert registered.methods == frozenset({"POST"})
    assert registry.get("missing") is None
    assert registry.get(None) is None


def test_collects_every_api_route_without_prefix():
    permissions = collect_route_permissions(api_routes.routes())

    assert permissions
    assert RoutePermission(path="/users/me", method=HTTPMethod.GET) in permissions
    assert RoutePermission(path="/auth/login", method=HTTPMethod.POST) in permissions
    assert RoutePermission(path="/mgmt/users/{user_id}/revoke-sessions", method=HTTPMethod.POST) in permissions
    assert all(not p.path.startswith("/api/v1") for p in permissions)


def test_routes_outside_the_prefix_are_ignored():
    router = APIRouter()

    @router.get("/health", name="health")
    async def health():
        return {}

    registry = RouteRegistry()
    registry.register(router)

    assert collect_route_permissions(registry.routes()) == []


async def test_sync_grants_admin_every_route(db):
    db.add(Role(name=RoleName.ADMIN.value, description=""))
    await db.commit()

    result = await sync_permissions(db, routes=api_routes.routes())
    await db.commit()

    assert result["added"] == len(collect_route_permissions(api_routes.routes()))
    assert result["deleted"] == 0
    admin = await crud_role.get_by_name(db, name=RoleName.ADMIN.value)
    await db.refresh(admin, attribute_names=["permissions"])
    assert ("/users/me", HTTPMethod.GET) in {(p.path, p.method) for p in admin.permissions}
