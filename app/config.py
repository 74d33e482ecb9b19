import os
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    ENV: str = os.getenv("ENV", "development")  # development, dev-server, production
    DEBUG: bool = ENV in ["development", "dev-server"]

    # Database settings
    POSTGRES_HOST: str = os.getenv("POSTGRES_HOST", "localhost")
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "agencyadmin")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "agencypass")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "agency_db")
    POSTGRES_PORT: int = int(os.getenv("POSTGRES_PORT", "5432"))
    DATABASE_URL: str = os.getenv("DATABASE_URL", f"postgresql://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_HOST}:{POSTGRES_PORT}/{POSTGRES_DB}")

    # Database connection pool settings
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "10"))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "20"))
    DB_POOL_TIMEOUT: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    DB_POOL_RECYCLE: int = int(os.getenv("DB_POOL_RECYCLE", "3600"))

    # Auth settings
    SECRET_KEY: str = os.getenv("SECRET_KEY", "supersecretkey")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))
    TOKEN_CACHE_TTL_SECONDS: int = int(os.getenv("TOKEN_CACHE_TTL_SECONDS", "300"))
    TOKEN_CACHE_MAX_SIZE: int = int(os.getenv("TOKEN_CACHE_MAX_SIZE", "1024"))

    # Membership / verification lifecycle
    INVITATION_EXPIRY_DAYS: int = int(os.getenv("INVITATION_EXPIRY_DAYS", "7"))
    VERIFICATION_RENEWAL_WINDOW_DAYS: int = int(os.getenv("VERIFICATION_RENEWAL_WINDOW_DAYS", "7"))
    DEFAULT_VERIFICATION_DURATION_DAYS: int = int(os.getenv("DEFAULT_VERIFICATION_DURATION_DAYS", "30"))
    DEFAULT_COMMISSION_RATE: float = float(os.getenv("DEFAULT_COMMISSION_RATE", "0.15"))
    DEFAULT_INVITATION_COMMISSION: float = float(os.getenv("DEFAULT_INVITATION_COMMISSION", "0.1"))

    # Pagination
    DEFAULT_PAGE_SIZE: int = int(os.getenv("DEFAULT_PAGE_SIZE", "20"))
    MAX_PAGE_SIZE: int = int(os.getenv("MAX_PAGE_SIZE", "100"))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # API specific settings
    API_PREFIX: str = "/api"
    APP_NAME: str = "Agency Membership API"
    APP_VERSION: str = "1.0.0"

    class Config:
        case_sensitive = True
        env_file = None

settings = Settings()
