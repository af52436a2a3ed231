# elitetime/core/config.py
import os
from pydantic_settings import BaseSettings
from pydantic import validator
from typing import List, Optional

from elitetime.core.env_crypto import load_encrypted_env


class Settings(BaseSettings):
    """Application settings loaded from .env (and .env.enc when present)"""

    # === Database ===
    DATABASE_URL: str = "sqlite+aiosqlite:///./elitetime.db"
    DATABASE_TEST_URL: Optional[str] = None

    @validator("DATABASE_URL")
    def validate_database_url(cls, v):
        """Ensure database URL is safe for current environment"""
        env = os.getenv("ENVIRONMENT", "development").lower()
        if env == "production" and "localhost" in v:
            raise ValueError("Production environment cannot use localhost database!")
        return v

    # === API ===
    PROJECT_NAME: str = "Elite Time"
    API_PREFIX: str = "/api"

    # === Session cookie ===
    SESSION_COOKIE_NAME: str = "elitetime_session"
    SESSION_MAX_AGE_SECONDS: int = 60 * 60 * 24
    COOKIE_SECURE: bool = False
    COOKIE_SAMESITE: str = "lax"   # 'lax' | 'strict' | 'none'
    COOKIE_DOMAIN: Optional[str] = None

    # === Security ===
    MASTER_KEY: Optional[str] = None
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # === Rate limiting ===
    RATE_LIMIT_MAX_REQUESTS: int = 100
    RATE_LIMIT_WINDOW_SECONDS: float = 60
    RATE_LIMIT_SWEEP_SECONDS: float = 300
    LOGIN_RATE_LIMIT_MAX_REQUESTS: int = 10
    LOGIN_RATE_LIMIT_WINDOW_SECONDS: float = 15 * 60

    # === LDAP ===
    LDAP_URL: Optional[str] = None
    LDAP_BIND_DN: Optional[str] = None
    LDAP_PWD: Optional[str] = None
    LDAP_BASE_DN: Optional[str] = None
    LDAP_EMAIL_DOMAIN: str = "elitetime.local"

    # === Realtime ===
    SOCKET_PORT: int = 4000

    # === System ===
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    TIMEZONE: str = "Africa/Casablanca"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


# Secrets from .env.enc are merged before the settings are read
load_encrypted_env()

# Create a global settings instance
settings = Settings()
