"""Configuration management for VouchLedger.

This module uses Pydantic Settings to load and validate configuration from
environment variables and .env files. Configuration is loaded once at startup
and is immutable during runtime.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings.

    Settings are loaded from environment variables and .env files.
    All configuration values are validated at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="VOUCHLEDGER_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    app_name: str = "VouchLedger"
    app_version: str = "0.1.0"
    environment: Literal["development", "production", "testing"] = "development"
    debug: bool = False
    external_url: str = "http://localhost:8000"

    # Database Settings
    database_url: str = "sqlite+aiosqlite:///./vl_data/vouchledger.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 3600
    db_echo: bool = False

    # Logging Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Invite Settings
    invite_expire_days: int = Field(
        default=30,
        ge=0,
        description="Default invite lifetime in days when none is given (0 = never expires)",
    )
    invite_max_expire_days: int = Field(
        default=365,
        ge=1,
        le=36500,
        description="Longest lifetime in days an invite may be created with",
    )
    invite_code_bytes: int = Field(
        default=16,
        ge=16,
        description="Random bytes per invite code; the code is their hex encoding",
    )
    invites_required: bool = Field(
        default=True,
        description="Whether signup requires an invite code (elevated creators are exempt)",
    )

    # Identity Settings
    system_identity_name: str = Field(
        default="Invitations-bot",
        description="Reserved account name used to author protected records",
    )
    elevated_roles: list[str] = Field(default=["sysop", "bureaucrat"])

    # Attestation Settings
    invalid_attestation_type_policy: Literal["reject", "default"] = Field(
        default="reject",
        description=(
            "What to do with an attestation type outside the subject's allowed set: "
            "'reject' raises, 'default' substitutes the entity kind's default type"
        ),
    )

    @field_validator("elevated_roles", mode="before")
    @classmethod
    def parse_elevated_roles(cls, v: str | list[str]) -> list[str]:
        """Parse elevated roles from comma-separated string or list."""
        if isinstance(v, str):
            return [role.strip() for role in v.split(",") if role.strip()]
        return v

    @field_validator("system_identity_name")
    @classmethod
    def validate_system_identity_name(cls, v: str) -> str:
        """Reject a blank reserved name."""
        if not v.strip():
            raise ValueError("system_identity_name must not be blank")
        return v.strip()

    @model_validator(mode="after")
    def validate_invite_expiry(self) -> "Settings":
        """The default lifetime must itself be allowed."""
        if self.invite_expire_days > self.invite_max_expire_days:
            raise ValueError("invite_expire_days must not exceed invite_max_expire_days")
        return self

    @model_validator(mode="after")
    def validate_external_url(self) -> "Settings":
        """Strip trailing slashes so invite links are joined cleanly."""
        self.external_url = self.external_url.rstrip("/")
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"

    @property
    def database_url_sync(self) -> str:
        """Get synchronous database URL for migrations."""
        url = self.database_url
        if url.startswith("sqlite+aiosqlite"):
            return url.replace("sqlite+aiosqlite", "sqlite")
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql")
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Cached application settings instance.
    """
    return Settings()
