"""
Admit configuration management.

Loads configuration from environment variables or .env file.
"""

from datetime import timedelta
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AdmitConfig(BaseSettings):
    """
    Admit configuration settings.

    Can be loaded from:
    1. Environment variables (ADMIT_SUPABASE_URL, ADMIT_SUPABASE_KEY, etc.)
    2. .env file in project root
    3. Direct instantiation with kwargs

    Example:
        ```python
        # From environment
        config = AdmitConfig()

        # Direct instantiation
        config = AdmitConfig(
            supabase_url="https://xxx.supabase.co",
            supabase_key="your-key",
            invitation_ttl_days=14,
        )
        ```
    """

    model_config = SettingsConfigDict(
        env_prefix="ADMIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Supabase connection
    supabase_url: str = Field(
        ...,
        description="Supabase project URL (e.g., https://xxx.supabase.co)",
    )

    supabase_key: str = Field(
        ...,
        description="Supabase service role key (invitations bypass row level security)",
    )

    # Database schema
    db_schema: str = Field(
        default="public",
        description="PostgreSQL schema where the invitation tables live",
    )

    # Invitation policy
    invitation_ttl_days: int = Field(
        default=7,
        ge=1,
        le=30,
        description="Days until a newly issued invitation expires",
    )

    allow_test_domains: bool = Field(
        default=False,
        description="Accept invitee addresses on the reserved .test TLD (development only)",
    )

    # Datastore round-trips
    request_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Upper bound for a single datastore round-trip",
    )

    sweep_interval_seconds: int = Field(
        default=3600,
        ge=1,
        description="Interval between periodic expiration sweeps",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Log level for the admit logger",
    )

    debug: bool = Field(
        default=False,
        description="Enable debug logging",
    )

    @field_validator("supabase_url")
    @classmethod
    def validate_supabase_url(cls, v: str) -> str:
        """Ensure Supabase URL is valid."""
        if not v.startswith("https://"):
            raise ValueError("supabase_url must start with https://")
        return v.rstrip("/")

    @field_validator("supabase_key")
    @classmethod
    def validate_supabase_key(cls, v: str) -> str:
        """Ensure Supabase key is not empty."""
        if not v or len(v) < 10:
            raise ValueError("supabase_key appears invalid (too short)")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def invitation_ttl(self) -> timedelta:
        """Lifetime of a newly issued invitation."""
        return timedelta(days=self.invitation_ttl_days)


def load_config(**kwargs) -> AdmitConfig:
    """
    Load Admit configuration.

    Priority order:
    1. Keyword arguments
    2. Environment variables (ADMIT_*)
    3. .env file

    Args:
        **kwargs: Override configuration values

    Returns:
        AdmitConfig instance

    Raises:
        ValidationError: If required fields are missing or invalid

    Example:
        ```python
        config = load_config(debug=True)
        ```
    """
    return AdmitConfig(**kwargs)
