from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql+asyncpg://postgres:postgres@db:5432/storefront"

    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Docker lo Redis URL
    REDIS_URL: str = "redis://redis:6379/0"
    CELERY_BROKER_URL: str = "redis://redis:6379/0"
    CELERY_TASK_ALWAYS_EAGER: bool = False
    PRODUCTS_CACHE_TTL: int = 600

    AUTH_RATE_LIMIT_TIMES: int = 200
    AUTH_RATE_LIMIT_SECONDS: int = 15 * 60

    CATALOG_WRITE_REQUIRES_ADMIN: bool = True

    CLOUDINARY_CLOUD_NAME: Optional[str] = None
    CLOUDINARY_API_KEY: Optional[str] = None
    CLOUDINARY_API_SECRET: Optional[str] = None
    CLOUDINARY_FOLDER: str = "shopping"

    SEED_USER_PASSWORD: str = "password123"

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]


settings = Settings()
