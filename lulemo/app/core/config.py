# lulemo/app/core/config.py
"""
Application configuration using pydantic-settings.

Security considerations:
- ACCESS_TOKEN_SECRET must be set via env in production (a warning is logged otherwise)
- CORS_ORIGINS parsed from comma-separated env var, never defaults to "*"
- Database URLs normalized for async drivers automatically
- Security policy switches (refresh rotation, code supersede) are explicit flags
"""
from functools import lru_cache
from typing import List, Set

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_ACCESS_TOKEN_SECRET = "dev-access-token-secret"


class Settings(BaseSettings):
    """
    Strictly typed application settings.

    Priority for loading:
    1. Environment variables (highest priority)
    2. .env file (via pydantic-settings)
    3. Default values (lowest priority, dev-safe only)
    """

    # ─────────────────────────────────────────────────────────────
    # Application metadata
    # ─────────────────────────────────────────────────────────────
    PROJECT_NAME: str = "Lulemo"
    PROJECT_VERSION: str = "1.6.0"
    API_STR: str = "/api"

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # ─────────────────────────────────────────────────────────────
    # Access / refresh tokens
    # ACCESS_TOKEN_SECRET MUST be set in production via environment variable
    # ─────────────────────────────────────────────────────────────
    ACCESS_TOKEN_SECRET: str = DEV_ACCESS_TOKEN_SECRET
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 14

    # When enabled, every refresh revokes the presented session and hands out
    # a new refresh token. Off by default: refresh tokens are multi-use.
    REFRESH_TOKEN_ROTATION: bool = False

    # ─────────────────────────────────────────────────────────────
    # Passwords
    # ─────────────────────────────────────────────────────────────
    PASSWORD_ITERATIONS: int = 120_000
    PASSWORD_MIN_LENGTH: int = 8

    # ─────────────────────────────────────────────────────────────
    # Email verification codes
    # DEV_BYPASS_EMAIL returns the code in the response instead of mailing it
    # ─────────────────────────────────────────────────────────────
    EMAIL_CODE_EXPIRE_MINUTES: int = 10
    DEV_BYPASS_EMAIL: bool = False
    RESEND_API_URL: str = "https://api.resend.com/emails"
    RESEND_API_KEY: str = ""
    RESEND_FROM: str = ""

    # When enabled, issuing a new code consumes older outstanding codes for
    # the same (email, purpose). Off by default: each code lives until expiry.
    EMAIL_CODE_SUPERSEDE: bool = False

    # ─────────────────────────────────────────────────────────────
    # Roles
    # Comma-separated list of emails that register as admin
    # ─────────────────────────────────────────────────────────────
    ADMIN_EMAILS: str = ""

    @property
    def admin_emails(self) -> Set[str]:
        return {
            email.strip().lower()
            for email in self.ADMIN_EMAILS.split(",")
            if email.strip()
        }

    # ─────────────────────────────────────────────────────────────
    # Database Configuration
    # Priority: DATABASE_URL env var → SQLite fallback for local dev
    # ─────────────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./lulemo.db"

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """
        Normalize database URLs for async SQLAlchemy compatibility.

        Conversions:
        - postgres://     → postgresql+asyncpg://
        - postgresql://   → postgresql+asyncpg://
        - sqlite:///      → sqlite+aiosqlite:///
        """
        if v is None:
            return "sqlite+aiosqlite:///./lulemo.db"

        url = v.strip()

        if url.startswith("postgres://"):
            return url.replace("postgres://", "postgresql+asyncpg://", 1)

        if url.startswith("postgresql://") and "+asyncpg" not in url:
            return url.replace("postgresql://", "postgresql+asyncpg://", 1)

        if url.startswith("sqlite:///") and "+aiosqlite" not in url:
            return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)

        return url

    # MUST be False in production to prevent SQL query exposure
    DATABASE_ECHO: bool = False

    # ─────────────────────────────────────────────────────────────
    # CORS Configuration
    # Empty string → empty list (NOT "*")
    # ─────────────────────────────────────────────────────────────
    CORS_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173,capacitor://localhost"

    @property
    def BACKEND_CORS_ORIGINS(self) -> List[str]:
        if not self.CORS_ORIGINS or not self.CORS_ORIGINS.strip():
            return []

        return [
            origin.strip()
            for origin in self.CORS_ORIGINS.split(",")
            if origin.strip()
        ]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT.lower() == "production"

    @property
    def uses_dev_secret(self) -> bool:
        return self.ACCESS_TOKEN_SECRET == DEV_ACCESS_TOKEN_SECRET


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance.

    Settings are loaded once so every request sees the same configuration.
    """
    return Settings()


settings = get_settings()
