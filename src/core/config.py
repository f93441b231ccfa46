"""Application configuration management using Pydantic Settings."""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Required settings will raise validation errors if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="freshjuice-backend", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=5000, description="Server port")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins",
    )

    # Supabase
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Supabase secret key for backend operations")
    supabase_jwt_secret: str = Field(..., description="Supabase project JWT secret for token verification")

    # Authorization
    admin_role: str = Field(default="admin", description="Value of the app_metadata.role claim granting admin access")

    # Checkout
    delivery_fee: Decimal = Field(default=Decimal("20"), ge=0, description="Flat delivery fee added to every order")
    order_id_prefix: str = Field(default="OJ-", description="Prefix of human-readable order identifiers")

    # Loyalty
    loyalty_cas_retries: int = Field(
        default=3,
        ge=1,
        description="Attempts for a compare-and-swap balance update before reporting a conflict",
    )

    # Requests
    max_request_body_size: int = Field(default=64 * 1024, description="Maximum request body size in bytes")

    @field_validator("order_id_prefix")
    @classmethod
    def validate_order_id_prefix(cls, value: str) -> str:
        """Reject prefixes that would collide with the 6-digit suffix."""
        if not value or any(ch.isdigit() for ch in value):
            raise ValueError("order_id_prefix must be non-empty and contain no digits")
        return value

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings: Application settings instance.

    Note:
        Settings are cached using lru_cache for performance.
        Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
