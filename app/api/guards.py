# auth_core/app/api/guards.py
import enum
import secrets
from dataclasses import dataclass
from typing import Iterable, Optional

from fastapi import HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from app.api.route_registry import RegisteredRoute, RouteRegistry, api_routes
from app.core.config import settings
from app.core.exceptions import ForbiddenError, TokenError, UnauthorizedError
from app.services.rbac_service import RBACService, rbac_service
from app.services.token_service import TokenService, token_service


class AuthType(str, enum.Enum):
    BEARER = "Bearer"
    API_KEY = "ApiKey"
    NONE = "None"


class ConditionGuard(str, enum.Enum):
    AND = "and"
    OR = "or"


@dataclass(frozen=True)
class RoutePolicy:
    auth_types: tuple[AuthType, ...] = (AuthType.BEARER,)
    condition: ConditionGuard = ConditionGuard.AND


DEFAULT_POLICY = RoutePolicy()
PUBLIC = RoutePolicy(auth_types=(AuthType.NONE,))
API_KEY_ONLY = RoutePolicy(auth_types=(AuthType.API_KEY,))

# --- Tabela de políticas por rota ---
# Chave = nome da rota (name= no decorator). Rota fora da tabela usa Bearer + AND.
ROUTE_POLICIES: dict[str, RoutePolicy] = {
    "auth:register": PUBLIC,
    "auth:send-otp": PUBLIC,
    "auth:login": PUBLIC,
    "auth:refresh-token": PUBLIC,
    "auth:google-link": PUBLIC,
    "auth:google-callback": PUBLIC,
    "auth:forgot-password": PUBLIC,
    "mgmt:revoke-sessions": API_KEY_ONLY,
    "mgmt:sync-permissions": API_KEY_ONLY,
}
# --- Fim tabela ---


def resolve_policy(route_name: Optional[str]) -> RoutePolicy:
    if route_name is None:
        return DEFAULT_POLICY
    return ROUTE_POLICIES.get(route_name, DEFAULT_POLICY)


def validate_route_policies(routes: Iterable[RegisteredRoute]) -> set[str]:
    """Confere, no startup, se toda entrada da tabela aponta para uma rota registrada."""
    registered = {route.name for route in routes}
    unknown = set(ROUTE_POLICIES) - registered
    for name in sorted(unknown):
        logger.error(f"Política de rota para '{name}', mas nenhuma rota com esse nome está registrada.")
    return unknown


def extract_bearer_token(request: Request) -> Optional[str]:
    authorization = request.headers.get("Authorization")
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class AuthenticationGuard:
    """
    Avalia as estratégias declaradas para a rota, em ordem e uma de cada vez.
    AND: todas precisam passar, a primeira falha interrompe.
    OR: a primeira que passar libera; se todas falharem, sobe o último erro HTTP.
    """

    def __init__(
        self,
        *,
        token_service: TokenService,
        rbac_service: RBACService,
        api_key: str,
        routes: RouteRegistry,
    ):
        self.token_service = token_service
        self.rbac_service = rbac_service
        self.api_key = api_key
        self.routes = routes

    def route_path(self, request: Request) -> str:
        """Template da rota (ex: /api/v1/users/{user_id}), igual ao gravado nas permissões."""
        route = request.scope.get("route")
        registered = self.routes.get(getattr(route, "name", None))
        if registered is not None:
            return registered.path
        return request.scope.get("path") or request.url.path

    # --- Estratégias ---

    async def check_bearer(self, request: Request, db: AsyncSession) -> bool:
        token = extract_bearer_token(request)
        if token is None:
            raise UnauthorizedError("Access token is missing or malformed")

        try:
            payload = self.token_service.verify_access_token(token)
        except TokenError as e:
            logger.warning(f"Access token rejeitado: {e.message}")
            raise UnauthorizedError(e.message)
        request.state.user = payload

        try:
            allowed = await self.rbac_service.authorize(
                db, role_id=payload.role_id, path=self.route_path(request), method=request.method
            )
        except Exception as e:
            # Qualquer falha na consulta de role/permissões nega o acesso
            logger.error(f"Erro ao consultar permissões da role ID {payload.role_id}: {e}")
            raise ForbiddenError()
        if not allowed:
            raise ForbiddenError()
        return True

    def check_api_key(self, request: Request) -> bool:
        provided = request.headers.get("X-API-Key")
        if not provided or not secrets.compare_digest(provided, self.api_key):
            raise UnauthorizedError("Invalid API key")
        return True

    async def _evaluate(self, auth_type: AuthType, request: Request, db: AsyncSession) -> bool:
        if auth_type == AuthType.BEARER:
            return await self.check_bearer(request, db)
        if auth_type == AuthType.API_KEY:
            return self.check_api_key(request)
        if auth_type == AuthType.NONE:
            return True
        raise ValueError(f"Estratégia de autenticação desconhecida: {auth_type}")

    # --- Combinação ---

    async def _handle_or(self, policy: RoutePolicy, request: Request, db: AsyncSession) -> bool:
        last_error: Optional[Exception] = None
        for auth_type in policy.auth_types:
            try:
                if await self._evaluate(auth_type, request, db):
                    return True
            except Exception as e:
                last_error = e
        if isinstance(last_error, HTTPException):
            raise last_error
        raise UnauthorizedError()

    async def _handle_and(self, policy: RoutePolicy, request: Request, db: AsyncSession) -> bool:
        for auth_type in policy.auth_types:
            try:
                ok = await self._evaluate(auth_type, request, db)
            except HTTPException:
                raise
            except Exception as e:
                logger.error(f"Falha inesperada na estratégia {auth_type.value}: {e}")
                raise UnauthorizedError()
            if not ok:
                raise UnauthorizedError()
        return True

    async def can_activate(self, request: Request, db: AsyncSession, policy: RoutePolicy) -> bool:
        if policy.condition == ConditionGuard.AND:
            return await self._handle_and(policy, request, db)
        return await self._handle_or(policy, request, db)


authentication_guard = AuthenticationGuard(
    token_service=token_service,
    rbac_service=rbac_service,
    api_key=settings.SECRET_API_KEY,
    routes=api_routes,
)
