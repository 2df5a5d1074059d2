"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: Optional[str] = Field(
        None,
        description="Supabase project URL (required by the validation endpoint)"
    )
    supabase_key: Optional[str] = Field(
        None,
        description="Supabase anon/public key"
    )
    serial_usage_table: str = Field(
        default="serial_number_usage",
        description="Table/view with one row per serial consumed by a delivery challan"
    )

    # ===================
    # SERIAL VALIDATION
    # ===================
    serial_validation_url: str = Field(
        default="http://localhost:8000/api/serial-numbers/validate",
        description="Validation oracle endpoint used by the serial workflow"
    )
    serial_validation_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=60,
        description="HTTP timeout for one validation round-trip"
    )
    serial_validation_debounce_ms: int = Field(
        default=500,
        ge=50,
        le=5000,
        description="Quiet period after the last edit before validating"
    )
    auto_assign_on_input: bool = Field(
        default=True,
        description="Auto-assign serials to destinations after every text edit"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def supabase_configured(self) -> bool:
        """Check if Supabase credentials are present."""
        return bool(self.supabase_url and self.supabase_key)

    @property
    def debounce_seconds(self) -> float:
        """Debounce quiet period in seconds (for loop.call_later)."""
        return self.serial_validation_debounce_ms / 1000


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
