# auth_core/app/api/dependencies.py
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.guards import authentication_guard, resolve_policy
from app.core.exceptions import UnauthorizedError
from app.db.session import get_db
from app.schemas.token import AccessTokenPayload


async def authenticate(request: Request, db: AsyncSession = Depends(get_db)) -> None:
    """
    Dependência global dos routers: aplica a política da rota (Bearer por padrão).
    A rota já foi resolvida pelo router quando as dependências rodam.
    """
    route = request.scope.get("route")
    policy = resolve_policy(getattr(route, "name", None))
    await authentication_guard.can_activate(request, db, policy)


async def get_current_user_claims(request: Request) -> AccessTokenPayload:
    """Claims do access token que o guard Bearer anexou à requisição."""
    claims = getattr(request.state, "user", None)
    if claims is None:
        raise UnauthorizedError()
    return claims


class ClientInfo:
    def __init__(self, user_agent: str, ip: str):
        self.user_agent = user_agent
        self.ip = ip


async def get_client_info(request: Request) -> ClientInfo:
    user_agent = request.headers.get("User-Agent") or "Unknown"
    ip = request.client.host if request.client else "Unknown"
    return ClientInfo(user_agent=user_agent, ip=ip)
