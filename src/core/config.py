"""Application configuration management using Pydantic Settings."""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field
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
    app_name: str = Field(default="kinsa-storefront-backend", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins",
    )

    # Supabase
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Supabase secret key for backend operations")
    supabase_signing_key_jwk: str = Field(..., description="Supabase signing key JWK (JSON string) for JWT token verification")
    supabase_jwt_audience: str = Field(default="authenticated", description="Expected audience claim on Supabase JWTs")

    # Razorpay
    razorpay_key_id: str = Field(default="", description="Razorpay key id (public, sent to the checkout UI)")
    razorpay_key_secret: str = Field(default="", description="Razorpay key secret (server only, signs callbacks)")
    razorpay_timeout_seconds: float = Field(default=10.0, description="Timeout for Razorpay API calls")
    razorpay_checkout_name: str = Field(default="KINSA Global", description="Merchant name shown in the checkout UI")
    razorpay_checkout_description: str = Field(
        default="Payment for agricultural products",
        description="Description shown in the checkout UI",
    )
    razorpay_theme_color: str = Field(default="#3B82F6", description="Checkout UI theme color")

    # Checkout
    default_currency: str = Field(default="INR", description="Currency for gateway orders")
    estimated_shipping_cost: Decimal = Field(
        default=Decimal("120000"),
        ge=0,
        description="Flat shipping estimate added to every order (major currency units)",
    )

    # Pending order expiry
    pending_order_ttl_hours: int = Field(default=72, ge=1, description="Hours before an unpaid pending order is cancelled")
    pending_order_sweep_enabled: bool = Field(default=True, description="Run the pending order sweep in the background")
    pending_order_sweep_interval_seconds: int = Field(default=3600, ge=60, description="Seconds between pending order sweeps")

    # Countries reference data
    countries_api_url: str = Field(
        default="https://restcountries.com/v3.1/all?fields=name,cca2,flag,region,subregion,capital,population,currencies",
        description="REST Countries endpoint for shipping destinations",
    )
    countries_cache_ttl_seconds: int = Field(default=86400, description="Countries cache TTL (24 hours)")
    countries_timeout_seconds: float = Field(default=5.0, description="Timeout for the countries API")

    # Email (Resend)
    resend_api_key: str = Field(default="", description="Resend API key for sending emails")
    email_from_address: str = Field(
        default="KINSA Global <noreply@kinsa-global.com>",
        description="From address for transactional emails",
    )

    # Frontend
    frontend_url: str = Field(
        default="http://localhost:5173",
        description="Frontend application URL for email links and redirects",
    )

    # Requests
    max_request_body_size: int = Field(default=1_048_576, description="Maximum request body size in bytes")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_razorpay_configured(self) -> bool:
        """Check if both Razorpay credentials are present."""
        return bool(self.razorpay_key_id and self.razorpay_key_secret)

    @property
    def is_razorpay_test_mode(self) -> bool:
        """Check if using Razorpay test keys."""
        return self.razorpay_key_id.startswith("rzp_test_")


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
