"""Application configuration."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings are loaded in this priority order (highest to lowest):
    1. Environment variables
    2. .env file (for local development)
    3. Default values
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Application
    # =========================================================================
    app_name: str = "Campaign Tally API"
    debug: bool = False

    # =========================================================================
    # CORS
    # =========================================================================
    cors_origins: list[str] = ["http://localhost:3000"]

    # =========================================================================
    # API Settings
    # =========================================================================
    api_v1_prefix: str = "/api/v1"

    # =========================================================================
    # Chain gateway
    # =========================================================================
    chain_gateway_url: str = Field(
        default="http://localhost:8545/gateway",
        description="Base URL of the chain-access gateway",
    )
    chain_gateway_api_key: str | None = Field(
        default=None,
        description="Bearer token for the chain-access gateway (optional)",
    )
    request_timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")

    # =========================================================================
    # Participation fetch
    # =========================================================================
    fetch_max_attempts: int = Field(
        default=3, ge=1, description="Attempts for a participation batch fetch"
    )
    fetch_retry_delay: float = Field(
        default=1.0, ge=0, description="Fixed delay between batch attempts (seconds)"
    )

    # =========================================================================
    # Fees
    # =========================================================================
    platform_fee_percent: float = Field(
        default=15.0, ge=0, le=100, description="Platform fee taken from every pool"
    )


settings = Settings()
