# auth_core/app/api/endpoints/auth.py
from typing import Any, Optional
from urllib.parse import urlencode

import httpx

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from app.api.dependencies import ClientInfo, get_client_info, get_current_user_claims
from app.core.config import settings
from app.db.session import get_db
from app.schemas.auth import (
    DisableTwoFactorRequest, ForgotPasswordRequest, GoogleAuthUrlResponse, LoginRequest,
    RegisterRequest, SendOTPRequest, TwoFactorSetupResponse,
)
from app.schemas.response import Envelope, MessageResponse, wrap
from app.schemas.token import AccessTokenPayload, RefreshTokenRequest, TokenPair
from app.schemas.user import UserProfile
from app.services.auth_service import auth_service
from app.services.google_service import GoogleOAuthError, google_service

router = APIRouter()


# --- Registro / OTP ---

@router.post(
    "/register",
    name="auth:register",
    response_model=Envelope[UserProfile],
    status_code=status.HTTP_201_CREATED,
)
async def register(request: Request, body: RegisterRequest, db: AsyncSession = Depends(get_db)) -> Any:
    """Cria a conta. Exige um código OTP de finalidade REGISTER enviado antes para o email."""
    db_user = await auth_service.register(db, body)
    return wrap(request, UserProfile.from_user(db_user), status.HTTP_201_CREATED)


@router.post("/otp", name="auth:send-otp", response_model=Envelope[MessageResponse])
async def send_otp(request: Request, body: SendOTPRequest, db: AsyncSession = Depends(get_db)) -> Any:
    result = await auth_service.send_otp(db, body)
    return wrap(request, result)


# --- Login / Tokens ---

@router.post("/login", name="auth:login", response_model=Envelope[TokenPair])
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
    client: ClientInfo = Depends(get_client_info),
) -> Any:
    """
    Login com email e senha. Se o usuário tem 2FA, envie também `totpCode`
    (app autenticador) ou `code` (OTP de finalidade LOGIN), nunca os dois.
    """
    tokens = await auth_service.login(db, body, user_agent=client.user_agent, ip=client.ip)
    return wrap(request, tokens)


@router.post("/refresh-token", name="auth:refresh-token", response_model=Envelope[TokenPair])
async def refresh_token(
    request: Request,
    body: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db),
    client: ClientInfo = Depends(get_client_info),
) -> Any:
    """Troca o refresh token por um par novo. O token usado deixa de valer."""
    tokens = await auth_service.refresh_token(
        db, refresh_token=body.refresh_token, user_agent=client.user_agent, ip=client.ip
    )
    return wrap(request, tokens)


@router.post("/logout", name="auth:logout", response_model=Envelope[MessageResponse])
async def logout(request: Request, body: RefreshTokenRequest, db: AsyncSession = Depends(get_db)) -> Any:
    result = await auth_service.logout(db, refresh_token=body.refresh_token)
    return wrap(request, result)


@router.post("/forgot-password", name="auth:forgot-password", response_model=Envelope[MessageResponse])
async def forgot_password(
    request: Request, body: ForgotPasswordRequest, db: AsyncSession = Depends(get_db)
) -> Any:
    result = await auth_service.forgot_password(db, body)
    return wrap(request, result)


# --- Google OAuth2 ---

@router.get("/google-link", name="auth:google-link", response_model=Envelope[GoogleAuthUrlResponse])
async def google_link(request: Request, client: ClientInfo = Depends(get_client_info)) -> Any:
    result = google_service.get_authorization_url(user_agent=client.user_agent, ip=client.ip)
    return wrap(request, result)


@router.get("/google/callback", name="auth:google-callback")
async def google_callback(
    code: str = Query(...),
    state: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> RedirectResponse:
    """Volta do consentimento do Google: redireciona o cliente com os tokens ou com a mensagem de erro."""
    try:
        tokens = await google_service.callback(db, code=code, state=state)
        query = urlencode({"accessToken": tokens.access_token, "refreshToken": tokens.refresh_token})
    except (GoogleOAuthError, HTTPException, httpx.HTTPError) as e:
        await db.rollback()
        message = str(e) if isinstance(e, GoogleOAuthError) else "An error occurred while logging in with Google"
        logger.warning(f"Falha no login com Google: {message}")
        query = urlencode({"errorMessage": message})
    return RedirectResponse(url=f"{settings.GOOGLE_CLIENT_REDIRECT_URI}?{query}")


# --- 2FA ---

@router.post("/2fa/setup", name="auth:2fa-setup", response_model=Envelope[TwoFactorSetupResponse])
async def setup_two_factor(
    request: Request,
    db: AsyncSession = Depends(get_db),
    claims: AccessTokenPayload = Depends(get_current_user_claims),
) -> Any:
    """Gera o segredo TOTP do usuário logado. Devolve a URI otpauth:// e o QR Code."""
    result = await auth_service.setup_two_factor(db, user_id=claims.user_id)
    return wrap(request, result)


@router.post("/2fa/disable", name="auth:2fa-disable", response_model=Envelope[MessageResponse])
async def disable_two_factor(
    request: Request,
    body: DisableTwoFactorRequest,
    db: AsyncSession = Depends(get_db),
    claims: AccessTokenPayload = Depends(get_current_user_claims),
) -> Any:
    result = await auth_service.disable_two_factor(db, user_id=claims.user_id, body=body)
    return wrap(request, result)
