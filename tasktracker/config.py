"""
Application configuration.

Loads settings from environment variables with sensible defaults.
`get_settings()` is called once when the app is built; everything
downstream receives the Settings instance explicitly.
"""

from __future__ import annotations

from functools import lru_cache

from email_validator import EmailNotValidError, validate_email
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ACCESS_SECRET = "dev-access-secret-change-in-production-0001"
DEFAULT_REFRESH_SECRET = "dev-refresh-secret-change-in-production-0002"


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================

    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # ==========================================================================
    # API Server
    # ==========================================================================

    api_host: str = "0.0.0.0"
    api_port: int = 5000

    # ==========================================================================
    # Database
    # ==========================================================================

    # Empty means in-memory; "mongodb://..." selects MongoDB
    database_url: str = ""
    database_name: str = "task-manager"

    # ==========================================================================
    # Authentication
    # ==========================================================================

    jwt_access_secret: str = DEFAULT_ACCESS_SECRET
    jwt_refresh_secret: str = DEFAULT_REFRESH_SECRET
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "task-manager-api"
    jwt_audience: str = "task-manager-client"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7

    refresh_cookie_name: str = "refreshToken"
    password_hash_iterations: int = 100_000

    # Bootstrap admin (created at startup if missing)
    admin_email: str = ""
    admin_password: str = ""
    admin_name: str = "Administrator"

    # ==========================================================================
    # Optional Services
    # ==========================================================================

    sentry_dsn: str = ""

    # ==========================================================================
    # Checks
    # ==========================================================================

    @field_validator("admin_email")
    @classmethod
    def _check_admin_email(cls, value: str) -> str:
        # Must also pass the EmailStr check on login
        value = value.strip().lower()
        if not value:
            return value
        try:
            validate_email(value, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValueError(f"ADMIN_EMAIL is not a valid e-mail address: {e}")
        return value

    @model_validator(mode="after")
    def _check_secrets(self) -> Settings:
        if self.jwt_access_secret == self.jwt_refresh_secret:
            raise ValueError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ")
        if self.is_production and (
            self.jwt_access_secret == DEFAULT_ACCESS_SECRET
            or self.jwt_refresh_secret == DEFAULT_REFRESH_SECRET
        ):
            raise ValueError("JWT secrets must be configured in production")
        return self

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cookie_secure(self) -> bool:
        return self.is_production

    @property
    def use_mongo(self) -> bool:
        return self.database_url.startswith("mongodb")

    @property
    def refresh_cookie_max_age(self) -> int:
        """Refresh cookie lifetime in seconds."""
        return self.refresh_token_expire_days * 24 * 60 * 60


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
