"""
config.py — Jataayu Global Configuration
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List


class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    APP_NAME: str = "Jataayu"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # API Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]
    ALLOWED_HOSTS: List[str] = ["backend.zpsanglijataayu.in"]

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./jataayu.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # Auth
    JWT_SECRET_KEY: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRY_MINUTES: int = 60 * 24
    PASSWORD_HASH_ITERATIONS: int = 100_000
    PASSWORD_MIN_LENGTH: int = 6

    # Object storage
    STORAGE_BACKEND: str = "local"          # local | cloudinary
    UPLOAD_DIR: str = "uploads"
    UPLOAD_URL_PREFIX: str = "/uploads"
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""
    MAX_UPLOAD_SIZE_MB: int = 10
    MAX_EVENT_IMAGES: int = 5
    MAX_EVENT_REPORTS: int = 5

    # Notifications
    NOTIFICATION_FANOUT_CONCURRENCY: int = 10
    NOTIFICATION_PAGE_SIZE: int = 10

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "jataayu.log"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
