# auth_core/app/services/token_service.py
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Type, TypeVar

from jose import jwt, JWTError, ExpiredSignatureError
from pydantic import BaseModel, ValidationError
from loguru import logger

from app.core.config import settings
from app.core.exceptions import (
    ExpiredTokenError, MalformedTokenError, TokenVerificationFailedError
)
from app.schemas.token import (
    AccessTokenClaims, AccessTokenPayload, RefreshTokenClaims, RefreshTokenPayload
)

PayloadT = TypeVar("PayloadT", bound=BaseModel)


class TokenService:
    """
    Assina e verifica access/refresh tokens (JWT simétrico, HS512 por padrão).

    Access e refresh usam segredos e expirações independentes, então um token
    nunca é aceito no lugar do outro. Cada token recebe um `uuid` aleatório:
    duas emissões com as mesmas claims nunca geram o mesmo token.
    """

    def __init__(
        self,
        *,
        access_secret: str,
        refresh_secret: str,
        access_expires: timedelta,
        refresh_expires: timedelta,
        algorithm: str = "HS512",
    ):
        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.access_expires = access_expires
        self.refresh_expires = refresh_expires
        self.algorithm = algorithm

    # --- Assinatura ---

    def _sign(self, claims: Dict[str, Any], secret: str, expires: timedelta) -> str:
        now = datetime.now(timezone.utc)
        to_encode = {
            **claims,
            "uuid": str(uuid.uuid4()),
            "iat": int(now.timestamp()),
            "exp": int((now + expires).timestamp()),
        }
        return jwt.encode(to_encode, secret, algorithm=self.algorithm)

    def sign_access_token(self, claims: AccessTokenClaims) -> str:
        data = AccessTokenClaims.model_validate(claims.model_dump()).model_dump(by_alias=True)
        return self._sign(data, self.access_secret, self.access_expires)

    def sign_refresh_token(self, claims: RefreshTokenClaims) -> str:
        data = RefreshTokenClaims.model_validate(claims.model_dump()).model_dump(by_alias=True)
        return self._sign(data, self.refresh_secret, self.refresh_expires)

    # --- Verificação ---

    def _verify(self, token: str, secret: str, payload_type: Type[PayloadT]) -> PayloadT:
        try:
            payload = jwt.decode(token, secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise ExpiredTokenError()
        except JWTError as e:
            logger.warning(f"Token com assinatura/estrutura inválida: {e}")
            raise MalformedTokenError()
        except Exception as e:
            logger.error(f"Erro inesperado ao decodificar token: {e}")
            raise TokenVerificationFailedError()

        # Claims com formato errado (ex: refresh token no lugar de access) não passam
        try:
            return payload_type.model_validate(payload)
        except ValidationError:
            raise MalformedTokenError()

    def verify_access_token(self, token: str) -> AccessTokenPayload:
        return self._verify(token, self.access_secret, AccessTokenPayload)

    def verify_refresh_token(self, token: str) -> RefreshTokenPayload:
        return self._verify(token, self.refresh_secret, RefreshTokenPayload)


token_service = TokenService(
    access_secret=settings.ACCESS_TOKEN_SECRET,
    refresh_secret=settings.REFRESH_TOKEN_SECRET,
    access_expires=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    refresh_expires=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    algorithm=settings.ALGORITHM,
)
