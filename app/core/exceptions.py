# auth_core/app/core/exceptions.py
from fastapi import HTTPException, status


# --- Falhas de componente (não são HTTP) ---

class TokenError(Exception):
    """Falha ao verificar um access/refresh token."""
    def __init__(self, message: str = "Token verification failed"):
        self.message = message
        super().__init__(self.message)

class ExpiredTokenError(TokenError):
    def __init__(self, message: str = "Token has expired"):
        super().__init__(message)

class MalformedTokenError(TokenError):
    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)

class TokenVerificationFailedError(TokenError):
    pass


class VerificationCodeError(Exception):
    """Falha ao validar um código OTP enviado por email."""

class InvalidCodeError(VerificationCodeError):
    pass

class CodeExpiredError(VerificationCodeError):
    pass

# --- Fim falhas de componente ---


# --- Erros HTTP tipados ---
# O detail é sempre uma lista de {message, path} para o cliente marcar o campo.

def error_detail(message: str, *paths: str) -> list[dict[str, str]]:
    return [{"message": message, "path": path} for path in paths]


class AppHTTPException(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, *paths: str, headers: dict[str, str] | None = None):
        self.message = message
        super().__init__(
            status_code=self.status_code,
            detail=error_detail(message, *(paths or ("",))),
            headers=headers,
        )

class UnauthorizedError(AppHTTPException):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Error.Unauthorized", *paths: str):
        super().__init__(message, *paths, headers={"WWW-Authenticate": "Bearer"})

class ForbiddenError(AppHTTPException):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Error.Forbidden", *paths: str):
        super().__init__(message, *paths)

class NotFoundError(AppHTTPException):
    status_code = status.HTTP_404_NOT_FOUND

class ConflictError(AppHTTPException):
    status_code = status.HTTP_409_CONFLICT

class UnprocessableEntityError(AppHTTPException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

class InternalError(AppHTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Error.InternalServerError", *paths: str):
        super().__init__(message, *paths)


# --- Falhas de negócio da autenticação ---

class InvalidOTPException(UnprocessableEntityError):
    def __init__(self):
        super().__init__("Error.InvalidOTP", "code")

class OTPExpiredException(UnprocessableEntityError):
    def __init__(self):
        super().__init__("Error.InvalidOTPExpired", "code")

class EmailAlreadyExistsException(ConflictError):
    def __init__(self):
        super().__init__("Error.EmailAlreadyExists", "email")

class EmailNotExistsException(UnprocessableEntityError):
    def __init__(self):
        super().__init__("Error.EmailNotExists", "email")

class PasswordIncorrectException(UnprocessableEntityError):
    def __init__(self):
        super().__init__("Error.PasswordIncorrect", "password")

class FailedToSendOTPException(UnprocessableEntityError):
    def __init__(self):
        super().__init__("Error.FailedToSendOTP", "email")

class RefreshTokenRevokedException(UnauthorizedError):
    def __init__(self):
        super().__init__("Error.RefreshTokenRevoked", "refreshToken")

class InvalidTOTPAndCodeException(UnprocessableEntityError):
    def __init__(self):
        super().__init__("Error.InvalidTOTPAndCode", "totpCode", "code")

class InvalidTOTPException(UnprocessableEntityError):
    def __init__(self):
        super().__init__("Error.InvalidTOTP", "totpCode")

class TOTPAlreadyEnabledException(ConflictError):
    def __init__(self):
        super().__init__("Error.TOTPAlreadyEnabled", "totpCode")

class TOTPNotEnabledException(UnprocessableEntityError):
    def __init__(self):
        super().__init__("Error.TOTPNotEnabled", "totpCode")


# --- Falhas da camada de persistência ---

class RecordNotFoundError(LookupError):
    """O registro pedido não existe (ou já foi apagado)."""
