from pydantic import AnyHttpUrl, PostgresDsn, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List
import secrets
import logging



class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    PROJECT_NAME: str = "Echoes API"
    APP_NAME: str = PROJECT_NAME
    ENVIRONMENT: str = "development"

    DB_USER: Optional[str] = None
    DB_PASSWORD: Optional[str] = None
    DB_HOST: Optional[str] = None
    DB_PORT: Optional[int] = None
    DB_NAME: Optional[str] = None
    DATABASE_URL: Optional[PostgresDsn] = None

    # OpenAI-compatible model gateway
    AI_GATEWAY_BASE_URL: AnyHttpUrl = "https://ai.gateway.lovable.dev/v1"
    AI_GATEWAY_API_KEY: Optional[str] = None
    AI_MODEL: str = "google/gemini-2.5-flash"
    AI_REQUEST_TIMEOUT_SECONDS: float = 60.0

    # Bearer tokens are issued by the identity provider; we only verify them
    SECRET_KEY: str = secrets.token_urlsafe(32)
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: Optional[str] = None

    CORS_ORIGINS: List[str] = []
    CORS_ALLOW_CREDENTIALS: bool = True
    TRUSTED_HOSTS: List[str] = ["*"]

    DB_CONNECT_RETRIES: int = 3
    DB_CONNECT_BACKOFF_SECONDS: int = 2

    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    MAX_UPLOAD_SIZE_BYTES: int = 10 * 1024 * 1024  # 10 MB
    MESSAGE_INSERT_BATCH_SIZE: int = 100

    @model_validator(mode="before")
    @classmethod
    def assemble_database_url(cls, values):
        if values.get("DATABASE_URL"):
            url = str(values.get("DATABASE_URL"))
            # asyncpg driver is required by the async engine
            if url.startswith("postgresql://") and "asyncpg" not in url:
                values["DATABASE_URL"] = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        else:
            user = values.get("DB_USER")
            password = values.get("DB_PASSWORD")
            host = values.get("DB_HOST")
            port = values.get("DB_PORT")
            db = values.get("DB_NAME")
            if not all([user, host, port, db]):
                raise ValueError("Either DATABASE_URL or DB_USER/DB_HOST/DB_PORT/DB_NAME must be set")

            values["DATABASE_URL"] = (
                f"postgresql+asyncpg://{user}:{password or ''}@{host}:{port}/{db}"
            )

        return values

settings = Settings()



def setup_logging():
    """Configure global logging level and format based on settings."""
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Suppress noisy loggers from dependencies
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
