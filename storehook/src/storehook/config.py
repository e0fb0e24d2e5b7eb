"""Configuration management for storehook."""

from functools import lru_cache
from typing import Optional
from urllib.parse import quote_plus

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class DatabaseSettings(BaseSettings):
    """Database configuration."""

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    name: str = Field(default="storehook", description="Database name")
    user: str = Field(default="storehook", description="Database user")
    password: str = Field(default="", description="Database password")

    # Full DSN, takes precedence over the individual fields when set
    dsn: Optional[str] = Field(
        default=None, description="Full database URL (e.g. sqlite+aiosqlite://)"
    )

    # Connection pool settings
    pool_size: int = Field(default=20, description="Connection pool size")
    max_overflow: int = Field(default=0, description="Maximum overflow connections")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")

    @property
    def url(self) -> str:
        """Get the database URL."""
        if self.dsn:
            return self.dsn
        encoded_user = quote_plus(self.user)
        encoded_password = quote_plus(self.password) if self.password else ""
        return f"postgresql+asyncpg://{encoded_user}:{encoded_password}@{self.host}:{self.port}/{self.name}"

    class Config:
        env_prefix = "DB_"


class PlatformSettings(BaseSettings):
    """E-commerce platform configuration (REST API and webhooks)."""

    base_url: str = Field(
        default="https://api.salla.dev/admin/v2",
        description="Platform REST API base URL",
    )
    access_token: str = Field(default="", description="Bearer token for the REST API")
    request_timeout: int = Field(
        default=30, description="REST API request timeout in seconds"
    )

    # Inbound webhooks
    webhook_secret: str = Field(
        default="", description="Shared secret used to sign webhook deliveries"
    )
    signature_header: str = Field(
        default="X-Salla-Signature", description="Header carrying the signature"
    )
    allow_unsigned: bool = Field(
        default=False,
        description="Accept deliveries without verification when no secret is set",
    )
    default_currency: str = Field(
        default="SAR", description="Currency used when a payload omits one"
    )

    # Enrichment
    enrichment_enabled: bool = Field(
        default=True, description="Fetch missing details from the REST API"
    )
    enrichment_timeout: float = Field(
        default=10.0, description="Upper bound for an enrichment lookup in seconds"
    )

    # Webhook registration
    webhook_url: str = Field(
        default="", description="Public URL the platform should deliver to"
    )
    webhook_version: int = Field(default=2, description="Webhook payload version")

    @field_validator("default_currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Currency codes are three uppercase letters."""
        v = v.strip().upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError("default_currency must be a 3-letter ISO code")
        return v

    class Config:
        env_prefix = "PLATFORM_"


class AppSettings(BaseSettings):
    """Application configuration."""

    title: str = Field(default="storehook", description="Application title")
    description: str = Field(
        default="Webhook ingestion and customer reconciliation service",
        description="Application description",
    )
    version: str = Field(default="0.1.0", description="Application version")

    # Environment
    environment: str = Field(
        default="development",
        description="Application environment (development, staging, production)",
    )

    # Server settings
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    reload: bool = Field(default=False, description="Auto-reload on changes")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")

    class Config:
        env_prefix = "APP_"


class Settings:
    """Main settings class combining all configurations."""

    def __init__(self) -> None:
        self.app = AppSettings()
        self.database = DatabaseSettings()
        self.platform = PlatformSettings()


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
