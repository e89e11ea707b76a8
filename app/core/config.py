# auth_core/app/core/config.py
import logging
from pydantic_settings import BaseSettings
from pydantic import Field
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE_PATH = BASE_DIR / ".env"

class Settings(BaseSettings):

    # Core
    DATABASE_URL: str
    APP_NAME: str = "Auth Core"
    PREFIX_URL: str = "/api/v1"

    # Access / Refresh Token (segredos independentes)
    ACCESS_TOKEN_SECRET: str = Field(..., min_length=10)
    REFRESH_TOKEN_SECRET: str = Field(..., min_length=10)
    ALGORITHM: str = "HS512"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # --- OTP (código por email) e TOTP (app autenticador) ---
    OTP_EXPIRE_MINUTES: int = 5
    TOTP_DIGITS: int = 6
    TOTP_PERIOD: int = 30
    # --- Fim OTP/TOTP ---

    # Chave de API Interna (estratégia ApiKey do guard)
    SECRET_API_KEY: str = Field(..., min_length=10)

    # Admin inicial (usado pelo script de seed)
    ADMIN_EMAIL: str = "admin@example.com"
    ADMIN_PASSWORD: str = "Admin@12345"
    ADMIN_NAME: str = "Administrator"
    ADMIN_PHONE: str = "0000000000"

    # --- Configurações SMTP ---
    EMAIL_HOST: str = "localhost"
    EMAIL_PORT: int = 587
    EMAIL_USE_TLS: bool = True
    EMAIL_USE_SSL: bool = False
    EMAIL_USERNAME: str | None = None
    EMAIL_PASSWORD: str | None = None
    EMAIL_FROM: str = "no-reply@example.com"
    EMAIL_FROM_NAME: str | None = "Auth Core"
    # --- Fim SMTP ---

    # --- Google OAuth2 ---
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""
    GOOGLE_REDIRECT_URI: str = "http://localhost:8000/api/v1/auth/google/callback"
    GOOGLE_CLIENT_REDIRECT_URI: str = "http://localhost:3000/oauth-google-callback"
    # --- Fim Google ---

    # Rate limit (slowapi) e CORS
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "10/minute"
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    class Config:
        case_sensitive = True
        env_file = ENV_FILE_PATH
        env_file_encoding = 'utf-8'

try:
    settings = Settings()
except Exception as e:
    logging.error(f"FATAL: Erro ao carregar 'settings' a partir do .env em {ENV_FILE_PATH}: {e}")
    raise e
