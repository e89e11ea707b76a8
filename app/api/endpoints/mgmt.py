# auth_core/app/api/endpoints/mgmt.py
from typing import Any

from fastapi import APIRouter, Depends, Path, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.route_registry import api_routes
from app.core.exceptions import NotFoundError
from app.crud.crud_user import user as crud_user
from app.db.session import get_db
from app.schemas.response import Envelope, wrap
from app.services.auth_service import auth_service
from app.services.permission_service import sync_permissions

router = APIRouter()

# Endpoints internos, protegidos pela X-API-Key (política ApiKey no guard)


class RevokeSessionsResponse(BaseModel):
    revoked: int


class SyncPermissionsResponse(BaseModel):
    added: int
    deleted: int


@router.post(
    "/users/{user_id}/revoke-sessions",
    name="mgmt:revoke-sessions",
    response_model=Envelope[RevokeSessionsResponse],
)
async def revoke_sessions(
    request: Request,
    user_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Logout global de um usuário: apaga todos os refresh tokens e desativa os devices."""
    if not await crud_user.get(db, id=user_id):
        raise NotFoundError("Error.UserNotFound", "userId")
    revoked = await auth_service.revoke_all_sessions(db, user_id=user_id)
    return wrap(request, {"revoked": revoked})


@router.post(
    "/permissions/sync",
    name="mgmt:sync-permissions",
    response_model=Envelope[SyncPermissionsResponse],
)
async def sync_route_permissions(request: Request, db: AsyncSession = Depends(get_db)) -> Any:
    """Recria a tabela de permissões a partir das rotas registradas e dá todas ao ADMIN."""
    result = await sync_permissions(db, routes=api_routes.routes())
    await db.commit()
    return wrap(request, result)

