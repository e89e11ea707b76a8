# auth_core/app/services/google_service.py
import base64
import json
import uuid
from typing import Any, Dict
from urllib.parse import urlencode

import httpx
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from app.core.config import settings
from app.crud import crud_refresh_token
from app.crud.crud_user import user as crud_user
from app.schemas.token import TokenPair
from app.services.auth_service import AuthService, auth_service
from app.services.role_service import RoleService, role_service

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
GOOGLE_SCOPES = [
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
]


class GoogleOAuthError(Exception):
    """Falha na troca do code ou na leitura do perfil no Google."""


def encode_state(user_agent: str, ip: str) -> str:
    """O state carrega o user-agent/IP do cliente até o callback (base64 de um JSON)."""
    raw = json.dumps({"userAgent": user_agent, "ip": ip})
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


def decode_state(state: str | None) -> Dict[str, str]:
    client_info = {"userAgent": "Unknown", "ip": "Unknown"}
    if not state:
        return client_info
    try:
        parsed = json.loads(base64.urlsafe_b64decode(state.encode("ascii")).decode("utf-8"))
        client_info["userAgent"] = str(parsed.get("userAgent") or "Unknown")
        client_info["ip"] = str(parsed.get("ip") or "Unknown")
    except (ValueError, AttributeError) as e:
        logger.warning(f"State do Google inválido, usando valores padrão: {e}")
    return client_info


class GoogleService:
    """Login social com Google (OAuth2 authorization code)."""

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        auth_service: AuthService,
        role_service: RoleService,
        timeout: float = 10.0,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.auth_service = auth_service
        self.role_service = role_service
        self.timeout = timeout

    def get_authorization_url(self, *, user_agent: str, ip: str) -> Dict[str, str]:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(GOOGLE_SCOPES),
            "access_type": "offline",
            "include_granted_scopes": "true",
            "state": encode_state(user_agent, ip),
        }
        return {"url": f"{GOOGLE_AUTH_URL}?{urlencode(params)}"}

    async def fetch_user_info(self, code: str) -> Dict[str, Any]:
        """Troca o code por um access token do Google e lê o perfil."""
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            token_response = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.redirect_uri,
                    "grant_type": "authorization_code",
                },
            )
            if token_response.status_code != 200:
                logger.error(f"Google recusou o code: {token_response.status_code} {token_response.text}")
                raise GoogleOAuthError("Failed to exchange code with google")
            google_access_token = token_response.json().get("access_token")

            userinfo_response = await client.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {google_access_token}"},
            )
            if userinfo_response.status_code != 200:
                raise GoogleOAuthError("Failed to get user info from google")
            return userinfo_response.json()

    async def callback(self, db: AsyncSession, *, code: str, state: str | None) -> TokenPair:
        client_info = decode_state(state)
        info = await self.fetch_user_info(code)
        email = info.get("email")
        if not email:
            raise GoogleOAuthError("Failed to get user info from google")

        db_user = await crud_user.get_by_email(db, email=email)
        if db_user is None:
            # Email já verificado pelo Google: cria sem OTP, com senha aleatória
            client_role_id = await self.role_service.get_client_role_id(db)
            await crud_user.create(
                db,
                email=email,
                password=str(uuid.uuid4()),
                name=info.get("name") or "",
                phone_number="",
                avatar=info.get("picture") or "",
                role_id=client_role_id,
            )
            db_user = await crud_user.get_by_email(db, email=email)
            logger.info(f"Usuário criado via Google: {email}")

        device = await crud_refresh_token.create_device(
            db, user_id=db_user.id, user_agent=client_info["userAgent"], ip=client_info["ip"]
        )
        tokens = await self.auth_service.generate_token_pair(
            db,
            user_id=db_user.id,
            email=db_user.email,
            device_id=device.id,
            role_id=db_user.role_id,
            role_name=db_user.role.name,
        )
        await db.commit()
        return tokens


google_service = GoogleService(
    client_id=settings.GOOGLE_CLIENT_ID,
    client_secret=settings.GOOGLE_CLIENT_SECRET,
    redirect_uri=settings.GOOGLE_REDIRECT_URI,
    auth_service=auth_service,
    role_service=role_service,
)
