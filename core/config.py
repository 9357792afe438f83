"""
Centralized configuration management.
All environment variables and settings are defined here.
"""
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = Field(default="Goldman Bank Dashboard", alias="APP_NAME")
    bank_name: str = Field(default="Goldman Bank", alias="BANK_NAME")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000)
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    display_timezone: str = Field(default="UTC", alias="DISPLAY_TIMEZONE")

    # MongoDB
    mongodb_uri: str = Field(default="mongodb://localhost:27017", alias="MONGODB_URI")
    mongodb_database: str = Field(default="goldman_bank", alias="MONGODB_DATABASE")
    mongodb_timeout_ms: int = Field(default=5000, alias="MONGODB_TIMEOUT_MS")
    transactions_collection: str = Field(default="histories", alias="TRANSACTIONS_COLLECTION")
    profiles_collection: str = Field(default="kycs", alias="PROFILES_COLLECTION")
    withdrawals_collection: str = Field(default="withdrawals", alias="WITHDRAWALS_COLLECTION")

    # Pagination
    default_page_size: int = Field(default=50, alias="DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(default=200, alias="MAX_PAGE_SIZE")

    # Identity provider
    auth_enabled: bool = Field(default=True, alias="AUTH_ENABLED")
    auth_jwks_url: Optional[str] = Field(default=None, alias="AUTH_JWKS_URL")
    auth_jwt_secret: Optional[str] = Field(default=None, alias="AUTH_JWT_SECRET")
    auth_session_cookie: str = Field(default="__session", alias="AUTH_SESSION_COOKIE")
    auth_authorized_parties: List[str] = Field(default_factory=list, alias="AUTH_AUTHORIZED_PARTIES")
    auth_leeway_seconds: int = Field(default=5, alias="AUTH_LEEWAY_SECONDS")
    auth_dev_user_id: str = Field(default="dev_user", alias="AUTH_DEV_USER_ID")
    sign_in_url: str = Field(default="/sign-in", alias="SIGN_IN_URL")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v_upper

    @field_validator("port")
    @classmethod
    def validate_port(cls, v):
        """Validate port is in valid range."""
        if not (1 <= v <= 65535):
            raise ValueError("Port must be between 1 and 65535")
        return v

    @field_validator("default_page_size", "max_page_size")
    @classmethod
    def validate_page_size(cls, v):
        """Validate page sizes are positive."""
        if v < 1:
            raise ValueError("Page size must be at least 1")
        return v

    @field_validator("display_timezone")
    @classmethod
    def validate_timezone(cls, v):
        """Validate display timezone is a known IANA zone."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"
        populate_by_name = True

    @property
    def tz(self) -> ZoneInfo:
        """Timezone used when rendering dates."""
        return ZoneInfo(self.display_timezone)

    @property
    def auth_configured(self) -> bool:
        """Whether a token verification key source is available."""
        return bool(self.auth_jwks_url or self.auth_jwt_secret)


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings singleton (useful for testing)."""
    global _settings
    _settings = None
