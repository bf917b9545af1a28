"""
Application configuration and settings management
"""
import os
from typing import Optional
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Temanly Payments"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"
    LOG_FILE: Optional[str] = "logs/app.log"

    # Database
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "sqlite:///./temanly.db"
    ).replace("postgres://", "postgresql://", 1)

    # Midtrans Payment Gateway
    # The server key signs every notification; the app refuses to start without it
    MIDTRANS_SERVER_KEY: Optional[str] = None
    MIDTRANS_IS_PRODUCTION: bool = False
    MIDTRANS_TIMEOUT: float = 10.0

    # WhatsApp gateway used for payment notifications
    WHATSAPP_API_URL: Optional[str] = None
    WHATSAPP_API_KEY: Optional[str] = None

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore"
    }


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance with placeholder filtering"""
    s = Settings()
    # Filter out common placeholders from environment
    placeholders = ["XXXX", "your-", "replace-"]

    def is_placeholder(val: Optional[str]) -> bool:
        if not val: return True
        return any(p in val for p in placeholders) or any(p in val.lower() for p in placeholders)

    # A placeholder server key must fail closed just like a missing one
    if is_placeholder(s.MIDTRANS_SERVER_KEY):
        s.MIDTRANS_SERVER_KEY = None
    if is_placeholder(s.WHATSAPP_API_KEY):
        s.WHATSAPP_API_KEY = None

    return s


# Global settings instance
settings = get_settings()
