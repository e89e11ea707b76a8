# auth_core/app/api/endpoints/users.py
from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_current_user_claims
from app.core.exceptions import NotFoundError
from app.crud.crud_user import user as crud_user
from app.db.session import get_db
from app.schemas.response import Envelope, wrap
from app.schemas.token import AccessTokenPayload
from app.schemas.user import UserProfile

router = APIRouter()


@router.get("/me", name="users:me", response_model=Envelope[UserProfile])
async def read_user_me(
    request: Request,
    db: AsyncSession = Depends(get_db),
    claims: AccessTokenPayload = Depends(get_current_user_claims),
) -> Any:
    """Perfil do usuário dono do access token."""
    db_user = await crud_user.get_active(db, id=claims.user_id)
    if not db_user:
        raise NotFoundError("Error.UserNotFound", "userId")
    return wrap(request, UserProfile.from_user(db_user))
