# auth_core/app/services/auth_service.py
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from app.core.constants import VerificationCodeType
from app.core.exceptions import (
    CodeExpiredError, InvalidCodeError, RecordNotFoundError, TokenError,
    EmailAlreadyExistsException, EmailNotExistsException, FailedToSendOTPException,
    InvalidOTPException, InvalidTOTPAndCodeException, InvalidTOTPException,
    OTPExpiredException, PasswordIncorrectException, RefreshTokenRevokedException,
    TOTPAlreadyEnabledException, TOTPNotEnabledException, UnauthorizedError,
)
from app.core.security import verify_password, generate_qr_code_base64
from app.crud import crud_refresh_token
from app.crud.crud_user import user as crud_user
from app.models.user import User
from app.schemas.auth import (
    DisableTwoFactorRequest, ForgotPasswordRequest, LoginRequest, RegisterRequest, SendOTPRequest
)
from app.schemas.token import AccessTokenClaims, RefreshTokenClaims, TokenPair
from app.services.email_service import send_otp_email
from app.services.role_service import RoleService, role_service
from app.services.token_service import TokenService, token_service
from app.services.two_factor_service import TwoFactorService, two_factor_service
from app.services.verification_code_service import (
    VerificationCodeService, verification_code_service
)

EmailSender = Callable[[str, str, str], Awaitable[bool]]


class AuthService:
    """
    Casos de uso da autenticação: registro, OTP, login, refresh, logout,
    esqueci a senha e 2FA. Cada fluxo faz um único commit no final; qualquer
    falha no meio desfaz tudo (rollback).
    """

    def __init__(
        self,
        *,
        token_service: TokenService,
        verification_code_service: VerificationCodeService,
        two_factor_service: TwoFactorService,
        role_service: RoleService,
        email_sender: EmailSender = send_otp_email,
    ):
        self.token_service = token_service
        self.verification_code_service = verification_code_service
        self.two_factor_service = two_factor_service
        self.role_service = role_service
        self.email_sender = email_sender

    async def validate_verification_code(
        self, db: AsyncSession, *, email: str, code: str, purpose: VerificationCodeType
    ) -> None:
        try:
            await self.verification_code_service.validate(db, email=email, code=code, purpose=purpose)
        except InvalidCodeError:
            raise InvalidOTPException()
        except CodeExpiredError:
            raise OTPExpiredException()

    # --- Registro / OTP ---

    async def register(self, db: AsyncSession, body: RegisterRequest) -> User:
        await self.validate_verification_code(
            db, email=body.email, code=body.code, purpose=VerificationCodeType.REGISTER
        )
        client_role_id = await self.role_service.get_client_role_id(db)
        try:
            db_user = await crud_user.create(
                db,
                email=body.email,
                password=body.password,
                name=body.name,
                phone_number=body.phone_number,
                role_id=client_role_id,
            )
            await self.verification_code_service.consume(
                db, email=body.email, code=body.code, purpose=VerificationCodeType.REGISTER
            )
            await db.commit()
        except IntegrityError:
            # Corrida de cadastro com o mesmo email
            await db.rollback()
            raise EmailAlreadyExistsException()
        logger.info(f"Usuário registrado: {db_user.email} (ID {db_user.id})")
        return db_user

    async def send_otp(self, db: AsyncSession, body: SendOTPRequest) -> dict[str, str]:
        db_user = await crud_user.get_by_email(db, email=body.email)
        if body.type == VerificationCodeType.REGISTER and db_user:
            raise EmailAlreadyExistsException()
        if body.type == VerificationCodeType.FORGOT_PASSWORD and not db_user:
            raise EmailNotExistsException()

        code = await self.verification_code_service.issue(db, email=body.email, purpose=body.type)
        await db.commit()

        sent = await self.email_sender(body.email, code, body.type.value)
        if not sent:
            raise FailedToSendOTPException()
        return {"message": "Send OTP successfully"}

    # --- Tokens ---

    async def generate_token_pair(
        self,
        db: AsyncSession,
        *,
        user_id: int,
        email: str,
        device_id: int,
        role_id: int,
        role_name: str,
    ) -> TokenPair:
        """
        Emite access + refresh e grava o refresh com a mesma expiração que está
        assinada nele, vinculado ao device. Não faz commit.
        """
        access_token = self.token_service.sign_access_token(
            AccessTokenClaims(
                user_id=user_id, email=email, device_id=device_id, role_id=role_id, role_name=role_name
            )
        )
        refresh_token = self.token_service.sign_refresh_token(RefreshTokenClaims(user_id=user_id, email=email))

        decoded_refresh = self.token_service.verify_refresh_token(refresh_token)
        expires_at = datetime.fromtimestamp(decoded_refresh.exp, tz=timezone.utc).replace(tzinfo=None)
        await crud_refresh_token.create_refresh_token(
            db, user_id=user_id, token=refresh_token, expires_at=expires_at, device_id=device_id
        )
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    # --- Login ---

    async def _check_second_factor(
        self, db: AsyncSession, *, db_user: User, totp_code: Optional[str], code: Optional[str],
        purpose: VerificationCodeType,
    ) -> None:
        """Com 2FA habilitado exige exatamente um entre totpCode e código OTP."""
        if bool(totp_code) == bool(code):
            raise InvalidTOTPAndCodeException()
        if totp_code:
            is_valid = self.two_factor_service.verify(
                token=totp_code, email=db_user.email, secret=db_user.totp_secret
            )
            if not is_valid:
                logger.warning(f"Código TOTP inválido para {db_user.email}.")
                raise InvalidTOTPException()
        else:
            await self.validate_verification_code(db, email=db_user.email, code=code, purpose=purpose)

    async def login(self, db: AsyncSession, body: LoginRequest, *, user_agent: str, ip: str) -> TokenPair:
        db_user = await crud_user.get_by_email(db, email=body.email)
        if not db_user:
            raise EmailNotExistsException()

        if not verify_password(body.password, db_user.hashed_password):
            logger.warning(f"Senha incorreta no login para {body.email}.")
            raise PasswordIncorrectException()

        if db_user.totp_secret:
            await self._check_second_factor(
                db, db_user=db_user, totp_code=body.totp_code, code=body.code,
                purpose=VerificationCodeType.LOGIN,
            )

        device = await crud_refresh_token.create_device(db, user_id=db_user.id, user_agent=user_agent, ip=ip)
        tokens = await self.generate_token_pair(
            db,
            user_id=db_user.id,
            email=db_user.email,
            device_id=device.id,
            role_id=db_user.role_id,
            role_name=db_user.role.name,
        )
        await db.commit()
        logger.info(f"Login bem-sucedido para {db_user.email} (device ID {device.id}).")
        return tokens

    # --- Refresh / Logout ---

    async def refresh_token(self, db: AsyncSession, *, refresh_token: str, user_agent: str, ip: str) -> TokenPair:
        """
        Rotação: o token antigo é apagado com um DELETE condicional antes de
        emitir o novo par. Se duas requisições chegam com o mesmo token, só uma
        consegue apagar a linha; a outra recebe RefreshTokenRevoked.
        """
        try:
            payload = self.token_service.verify_refresh_token(refresh_token)

            db_token = await crud_refresh_token.find_refresh_token_with_user_and_role(db, token=refresh_token)
            if db_token is None:
                raise RefreshTokenRevokedException()
            if db_token.user_id != payload.user_id or db_token.user.deleted_at is not None:
                raise UnauthorizedError()

            device_id = db_token.device_id
            db_user = db_token.user

            await crud_refresh_token.delete_refresh_token(db, token=refresh_token)
            await crud_refresh_token.update_device(
                db,
                device_id=device_id,
                user_agent=user_agent,
                ip=ip,
                last_active=datetime.now(timezone.utc).replace(tzinfo=None),
            )
            tokens = await self.generate_token_pair(
                db,
                user_id=db_user.id,
                email=db_user.email,
                device_id=device_id,
                role_id=db_user.role_id,
                role_name=db_user.role.name,
            )
            await db.commit()
            logger.info(f"Refresh token rotacionado para usuário ID {db_user.id} (device ID {device_id}).")
            return tokens
        except HTTPException:
            await db.rollback()
            raise
        except RecordNotFoundError:
            await db.rollback()
            logger.warning("Refresh token já consumido por outra requisição (reuso).")
            raise RefreshTokenRevokedException()
        except TokenError as e:
            await db.rollback()
            raise UnauthorizedError(e.message)
        except Exception as e:
            await db.rollback()
            logger.error(f"Erro inesperado no refresh token: {e}")
            raise UnauthorizedError()

    async def logout(self, db: AsyncSession, *, refresh_token: str) -> dict[str, str]:
        try:
            self.token_service.verify_refresh_token(refresh_token)

            deleted = await crud_refresh_token.delete_refresh_token(db, token=refresh_token)
            await crud_refresh_token.update_device(db, device_id=deleted.device_id, is_active=False)
            await db.commit()
            logger.info(f"Logout do usuário ID {deleted.user_id} (device ID {deleted.device_id}).")
            return {"message": "Logout successfully"}
        except HTTPException:
            await db.rollback()
            raise
        except RecordNotFoundError:
            await db.rollback()
            raise RefreshTokenRevokedException()
        except TokenError as e:
            await db.rollback()
            raise UnauthorizedError(e.message)
        except Exception as e:
            await db.rollback()
            logger.error(f"Erro inesperado no logout: {e}")
            raise UnauthorizedError()

    async def revoke_all_sessions(self, db: AsyncSession, *, user_id: int) -> int:
        """Logout global: apaga todos os refresh tokens e desativa os devices."""
        count = await crud_refresh_token.delete_all_user_refresh_tokens(db, user_id=user_id)
        await crud_refresh_token.deactivate_user_devices(db, user_id=user_id)
        await db.commit()
        return count

    # --- Esqueci a senha ---

    async def forgot_password(self, db: AsyncSession, body: ForgotPasswordRequest) -> dict[str, str]:
        db_user = await crud_user.get_by_email(db, email=body.email)
        if not db_user:
            raise EmailNotExistsException()

        await self.validate_verification_code(
            db, email=body.email, code=body.code, purpose=VerificationCodeType.FORGOT_PASSWORD
        )

        await crud_user.update_password(db, user=db_user, new_password=body.new_password)
        await self.verification_code_service.consume(
            db, email=body.email, code=body.code, purpose=VerificationCodeType.FORGOT_PASSWORD
        )
        # Senha nova derruba as sessões abertas
        revoked_count = await crud_refresh_token.delete_all_user_refresh_tokens(db, user_id=db_user.id)
        await db.commit()
        logger.info(f"Senha redefinida para {db_user.email}; {revoked_count} sessão(ões) revogada(s).")
        return {"message": "Change password successfully"}

    # --- 2FA ---

    async def setup_two_factor(self, db: AsyncSession, *, user_id: int) -> dict[str, str]:
        db_user = await crud_user.get_active(db, id=user_id)
        if not db_user:
            raise EmailNotExistsException()
        if db_user.totp_secret:
            raise TOTPAlreadyEnabledException()

        generated = self.two_factor_service.generate_secret(db_user.email)
        await crud_user.set_totp_secret(db, user=db_user, secret=generated["secret"])
        await db.commit()

        try:
            qr_code_base64 = generate_qr_code_base64(generated["uri"])
        except Exception as e:
            logger.error(f"Erro ao gerar QR code para {db_user.email}: {e}")
            # Ainda retorna a URI, o frontend pode gerar o QR code se preferir
            qr_code_base64 = ""
        return {**generated, "qr_code_base64": qr_code_base64}

    async def disable_two_factor(
        self, db: AsyncSession, *, user_id: int, body: DisableTwoFactorRequest
    ) -> dict[str, str]:
        db_user = await crud_user.get_active(db, id=user_id)
        if not db_user:
            raise EmailNotExistsException()
        if not db_user.totp_secret:
            raise TOTPNotEnabledException()

        await self._check_second_factor(
            db, db_user=db_user, totp_code=body.totp_code, code=body.code,
            purpose=VerificationCodeType.DISABLE_2FA,
        )
        await crud_user.set_totp_secret(db, user=db_user, secret=None)
        if body.code:
            await self.verification_code_service.consume(
                db, email=db_user.email, code=body.code, purpose=VerificationCodeType.DISABLE_2FA
            )
        await db.commit()
        return {"message": "Disable 2FA successfully"}


auth_service = AuthService(
    token_service=token_service,
    verification_code_service=verification_code_service,
    two_factor_service=two_factor_service,
    role_service=role_service,
)
