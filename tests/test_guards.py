from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi import APIRouter
from sqlalchemy.exc import OperationalError
from starlette.requests import Request

from app.api.guards import (
    AuthType, AuthenticationGuard, ConditionGuard, DEFAULT_POLICY, ROUTE_POLICIES, RoutePolicy,
    resolve_policy, validate_route_policies,
)
from app.api.route_registry import RouteRegistry, api_routes
from app.core.exceptions import ForbiddenError, UnauthorizedError
from app.schemas.token import AccessTokenClaims
from app.services.token_service import TokenService
from main import app  # noqa: F401 (registra as rotas da API)

API_KEY = "guard-api-key-123"

token_service = TokenService(
    access_secret="guard-access-secret",
    refresh_secret="guard-refresh-secret",
    access_expires=timedelta(minutes=15),
    refresh_expires=timedelta(days=7),
)


items = APIRouter()


@items.get("/{item_id}", name="items:detail")
async def read_item(item_id: int):
    return {"id": item_id}


def make_request(
    headers: dict[str, str] | None = None,
    method: str = "GET",
    path: str = "/api/v1/items/5",
    route_name: str = "items:detail",
) -> Request:
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({
        "type": "http",
        "method": method,
        "path": path,
        "headers": raw_headers,
        "query_string": b"",
        # Rota de router incluído: o path dela é relativo ao prefixo do include
        "route": SimpleNamespace(name=route_name, path="/{item_id}"),
    })


def valid_access_token(**overrides) -> str:
    claims = dict(user_id=1, email="dave@example.com", device_id=3, role_id=7, role_name="CLIENT")
    claims.update(overrides)
    return token_service.sign_access_token(AccessTokenClaims(**claims))


@pytest.fixture
def rbac():
    return SimpleNamespace(authorize=AsyncMock(return_value=True))


@pytest.fixture
def routes():
    registry = RouteRegistry()
    registry.register(items, prefix="/api/v1/items")
    return registry


@pytest.fixture
def guard(rbac, routes):
    return AuthenticationGuard(token_service=token_service, rbac_service=rbac, api_key=API_KEY, routes=routes)


class TestBearerStrategy:

    async def test_valid_token_attaches_claims_and_checks_rbac(self, guard, rbac):
        request = make_request({"Authorization": f"Bearer {valid_access_token()}"})

        assert await guard.can_activate(request, None, DEFAULT_POLICY)
        assert request.state.user.role_id == 7
        rbac.authorize.assert_awaited_once_with(None, role_id=7, path="/api/v1/items/{item_id}", method="GET")

    async def test_unregistered_route_checks_the_concrete_path(self, guard, rbac):
        request = make_request(
            {"Authorization": f"Bearer {valid_access_token()}"}, path="/api/v1/other/9", route_name="other"
        )

        assert await guard.can_activate(request, None, DEFAULT_POLICY)
        rbac.authorize.assert_awaited_once_with(None, role_id=7, path="/api/v1/other/9", method="GET")

    @pytest.mark.parametrize("header", [None, "Token abc", "Bearer ", "Bearer"])
    async def test_missing_or_malformed_header(self, guard, header):
        request = make_request({"Authorization": header} if header is not None else {})

        with pytest.raises(UnauthorizedError) as exc_info:
            await guard.can_activate(request, None, DEFAULT_POLICY)
        assert exc_info.value.message == "Access token is missing or malformed"

    async def test_expired_token(self, guard):
        expired_service = TokenService(
            access_secret="guard-access-secret",
            refresh_secret="guard-refresh-secret",
            access_expires=timedelta(seconds=-5),
            refresh_expires=timedelta(days=7),
        )
        token = expired_service.sign_access_token(
            AccessTokenClaims(user_id=1, email="dave@example.com", device_id=3, role_id=7, role_name="CLIENT")
        )

        with pytest.raises(UnauthorizedError) as exc_info:
            await guard.can_activate(make_request({"Authorization": f"Bearer {token}"}), None, DEFAULT_POLICY)
        assert exc_info.value.message == "Token has expired"

    async def test_rbac_denial_is_forbidden(self, guard, rbac):
        rbac.authorize.return_value = False

        with pytest.raises(ForbiddenError):
            await guard.can_activate(
                make_request({"Authorization": f"Bearer {valid_access_token()}"}), None, DEFAULT_POLICY
            )

    async def test_rbac_storage_error_is_forbidden(self, guard, rbac):
        rbac.authorize.side_effect = OperationalError("SELECT 1", {}, Exception("db down"))

        with pytest.raises(ForbiddenError):
            await guard.can_activate(
                make_request({"Authorization": f"Bearer {valid_access_token()}"}), None, DEFAULT_POLICY
            )

    async def test_any_rbac_lookup_error_is_forbidden(self, guard, rbac):
        rbac.authorize.side_effect = RuntimeError("lookup failed")

        with pytest.raises(ForbiddenError):
            await guard.can_activate(
                make_request({"Authorization": f"Bearer {valid_access_token()}"}), None, DEFAULT_POLICY
            )


class TestCombination:

    async def test_or_with_public_fallback_passes_without_credentials(self, guard, rbac):
        policy = RoutePolicy(auth_types=(AuthType.BEARER, AuthType.NONE), condition=ConditionGuard.OR)

        assert await guard.can_activate(make_request(), None, policy)
        rbac.authorize.assert_not_awaited()

    async def test_or_surfaces_last_error(self, guard):
        policy = RoutePolicy(auth_types=(AuthType.BEARER, AuthType.API_KEY), condition=ConditionGuard.OR)

        with pytest.raises(UnauthorizedError) as exc_info:
            await guard.can_activate(make_request({"X-API-Key": "wrong-key"}), None, policy)
        assert exc_info.value.message == "Invalid API key"

    async def test_or_first_success_short_circuits(self, guard, rbac):
        policy = RoutePolicy(auth_types=(AuthType.API_KEY, AuthType.BEARER), condition=ConditionGuard.OR)

        assert await guard.can_activate(make_request({"X-API-Key": API_KEY}), None, policy)
        rbac.authorize.assert_not_awaited()

    async def test_and_stops_at_first_failure(self, guard, rbac):
        policy = RoutePolicy(auth_types=(AuthType.API_KEY, AuthType.BEARER), condition=ConditionGuard.AND)
        request = make_request({"Authorization": f"Bearer {valid_access_token()}"})

        with pytest.raises(UnauthorizedError):
            await guard.can_activate(request, None, policy)
        rbac.authorize.assert_not_awaited()

    async def test_and_collapses_unexpected_errors_to_unauthorized(self, guard, monkeypatch):
        monkeypatch.setattr(guard, "check_api_key", Mock(side_effect=RuntimeError("boom")))
        policy = RoutePolicy(auth_types=(AuthType.API_KEY,), condition=ConditionGuard.AND)

        with pytest.raises(UnauthorizedError) as exc_info:
            await guard.can_activate(make_request({"X-API-Key": API_KEY}), None, policy)
        assert exc_info.value.message == "Error.Unauthorized"

    async def test_and_requires_every_strategy(self, guard):
        policy = RoutePolicy(auth_types=(AuthType.API_KEY, AuthType.BEARER), condition=ConditionGuard.AND)
        request = make_request({"X-API-Key": API_KEY, "Authorization": f"Bearer {valid_access_token()}"})

        assert await guard.can_activate(request, None, policy)


class TestRoutePolicies:

    def test_unknown_route_gets_default_policy(self):
        assert resolve_policy("something:else") == DEFAULT_POLICY
        assert resolve_policy(None) == DEFAULT_POLICY
        assert DEFAULT_POLICY.auth_types == (AuthType.BEARER,)
        assert DEFAULT_POLICY.condition == ConditionGuard.AND

    def test_public_routes(self):
        assert resolve_policy("auth:login").auth_types == (AuthType.NONE,)
        assert resolve_policy("auth:logout") == DEFAULT_POLICY

    def test_every_policy_names_a_registered_route(self):
        assert validate_route_policies(api_routes.routes()) == set()

    def test_unregistered_policy_names_are_reported(self):
        assert validate_route_policies([]) == set(ROUTE_POLICIES)
