"""Service configuration using pydantic-settings.

This module defines the SyncSettings class that reads configuration from
environment variables with the TASKSYNC_ prefix. The webhook secret and
GitHub token must be set for the service to start.
"""

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SyncSettings(BaseSettings):
    """Webhook synchronization service configuration.

    All environment variables are prefixed with TASKSYNC_
    (e.g., TASKSYNC_GITHUB_WEBHOOK_SECRET).

    Required fields:
    - github_webhook_secret: Shared secret for HMAC signature verification
    - github_token: GitHub API token used for outbound issue updates

    When database_url is not set the service runs on the in-memory store,
    which is intended for local development only.
    """

    model_config = SettingsConfigDict(
        env_prefix="TASKSYNC_",
        case_sensitive=False,
    )

    # -------------------------------------------------------------------------
    # GitHub Configuration
    # -------------------------------------------------------------------------
    # Shared secret configured on the GitHub App webhook
    github_webhook_secret: str

    # Token for outbound issue/PR updates
    github_token: str

    # Base URL for GitHub API (supports GitHub Enterprise)
    github_base_url: str = "https://api.github.com"

    # -------------------------------------------------------------------------
    # Synchronization
    # -------------------------------------------------------------------------
    # Internal user that authors and owns tasks created from external issues
    system_user_id: int = 1

    # Upper bound for a single outbound notification
    notify_timeout_seconds: float = 30.0

    # -------------------------------------------------------------------------
    # Database Configuration
    # -------------------------------------------------------------------------
    database_url: Optional[str] = None
    db_min_pool_size: int = 2
    db_max_pool_size: int = 10

    # -------------------------------------------------------------------------
    # Server Configuration
    # -------------------------------------------------------------------------
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("github_webhook_secret")
    @classmethod
    def validate_webhook_secret(cls, v: str) -> str:
        """Validate that webhook secret is not empty."""
        if not v or not v.strip():
            raise ValueError("github_webhook_secret cannot be empty")
        return v

    @field_validator("github_token")
    @classmethod
    def validate_github_token(cls, v: str) -> str:
        """Validate that GitHub token is not empty."""
        if not v or not v.strip():
            raise ValueError("github_token cannot be empty")
        return v

    @field_validator("github_base_url")
    @classmethod
    def validate_github_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("github_base_url must start with http:// or https://")
        return v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate the database URL format when one is configured."""
        if v is None or not v.strip():
            return None
        if not v.startswith(("postgresql://", "postgres://")):
            raise ValueError(
                "database_url must start with postgresql:// or postgres://"
            )
        return v

    @field_validator("system_user_id")
    @classmethod
    def validate_system_user_id(cls, v: int) -> int:
        if v < 1:
            raise ValueError("system_user_id must be at least 1")
        return v

    @field_validator("notify_timeout_seconds")
    @classmethod
    def validate_notify_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("notify_timeout_seconds must be positive")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate that port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"invalid log_level: {v}")
        return level


def get_settings() -> SyncSettings:
    """Create and return a SyncSettings instance.

    Returns:
        SyncSettings: Configured settings instance.

    Raises:
        pydantic.ValidationError: If required fields are missing or invalid.
    """
    return SyncSettings()
