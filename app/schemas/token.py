# auth_core/app/schemas/token.py
from pydantic import ConfigDict, Field
from app.schemas.base import CamelModel


class AccessTokenClaims(CamelModel):
    user_id: int
    email: str
    device_id: int
    role_id: int
    role_name: str

class AccessTokenPayload(AccessTokenClaims):
    """Claims assinadas de um access token já verificado."""
    model_config = ConfigDict(extra="forbid")

    uuid: str
    iat: int
    exp: int


class RefreshTokenClaims(CamelModel):
    user_id: int
    email: str

class RefreshTokenPayload(RefreshTokenClaims):
    model_config = ConfigDict(extra="forbid")

    uuid: str
    iat: int
    exp: int


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str

class RefreshTokenRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)
