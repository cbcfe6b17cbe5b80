"""
Configuration Settings.

Application configuration loaded from environment variables and an optional
.env file through pydantic-settings.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "your-secret-key-here"


class Settings(BaseSettings):
    """Runtime settings for the FarmMarket API."""

    environment: str = Field(
        default="development", alias="ENVIRONMENT", description="development, production or test"
    )
    host: str = Field(default="0.0.0.0", alias="HOST", description="Bind address for the API server")
    port: int = Field(default=8000, alias="PORT", description="Port for the API server")

    # Database
    database_url: str = Field(
        default="sqlite:///./farmmarket.db", alias="DATABASE_URL", description="SQLAlchemy database URL"
    )

    # Auth
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET, alias="JWT_SECRET", description="Secret used to sign JWTs")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM", description="JWT signing algorithm")
    token_expire_days: int = Field(default=7, alias="TOKEN_EXPIRE_DAYS", description="Session token lifetime in days")

    # Stripe
    stripe_secret_key: Optional[str] = Field(
        default=None, alias="STRIPE_SECRET_KEY", description="Stripe secret API key"
    )
    stripe_webhook_secret: Optional[str] = Field(
        default=None, alias="STRIPE_WEBHOOK_SECRET", description="Signing secret for the Stripe webhook endpoint"
    )

    app_url: str = Field(
        default="http://localhost:3000", alias="APP_URL", description="Public storefront URL used in redirects"
    )
    internal_api_secret: Optional[str] = Field(
        default=None, alias="INTERNAL_API_SECRET", description="Shared secret guarding internal endpoints (seed)"
    )
    cors_origins: str = Field(
        default="http://localhost,http://localhost:3000",
        alias="CORS_ORIGINS",
        description="Comma separated list of allowed CORS origins",
    )

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Root log level")
    log_format: str = Field(default="detailed", alias="LOG_FORMAT", description="simple, detailed or json")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


settings = Settings()
