"""
Configuration for the agentflow core.
"""

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    PRETTY = "pretty"


class AdminAPISettings(BaseSettings):
    """Orchestrator Admin API connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="ADMIN_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: Optional[str] = Field(default=None, description="Admin API base URL")
    key: Optional[str] = Field(default=None, description="Shared HMAC signing key")

    # Timeouts
    timeout_seconds: float = Field(default=10.0, gt=0, description="Default request timeout")
    bulk_timeout_seconds: float = Field(default=30.0, gt=0, description="Bulk request timeout")

    # Verification
    signature_tolerance_seconds: int = Field(
        default=300, ge=1, description="Accepted clock skew when verifying signatures"
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.key)


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    service_name: str = Field(default="agentflow", description="Service name")
    environment: str = Field(default="development", description="Deployment environment")
    log_level: str = Field(default="INFO", description="Log level")
    log_format: LogFormat = Field(default=LogFormat.PRETTY, description="Log output format")

    admin_api: AdminAPISettings = Field(default_factory=AdminAPISettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings."""
    return Settings()
