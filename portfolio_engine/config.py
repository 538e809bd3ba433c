# portfolio_engine/config.py
"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables with validation:
- ENVIRONMENT: Runtime mode (development, test, production)
- QUOTE_PROVIDER: Which provider serves quotes and history (yahoo, fmp)
- FMP_API_KEY: Financial Modeling Prep key (required when QUOTE_PROVIDER=fmp)
- QUOTE_*: Batching and caching behaviour of the quote fetcher

Configuration is validated on application startup. Invalid configuration
will raise a ValueError with a descriptive message.

Usage:
    from portfolio_engine.config import settings

    fetcher = QuoteFetcher(
        source=provider,
        cache=cache,
        batch_size=settings.quote_batch_size,
    )
"""
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Single .env in the project root (parent of the package directory)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables:
        - ENVIRONMENT: Runtime environment (development, test, production)
        - APP_NAME: Application name (default: "Portfolio Engine")
        - LOG_LEVEL: Logging level (default: "INFO")
        - LOG_FORMAT: "text" or "json" (default: "text")

    Quote fetching (optional, with defaults):
        - QUOTE_BATCH_SIZE: Symbols per provider request (default: 10)
        - QUOTE_BATCH_DELAY_MS: Pause between batches (default: 100)
        - QUOTE_CACHE_TTL_SECONDS: Staleness horizon (default: 600)
    """

    environment: Literal["development", "test", "production"] = Field(
        default="development",
        description="Runtime environment (development, test, production)"
    )

    app_name: str = "Portfolio Engine"
    debug: bool = False

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: Literal["text", "json"] = Field(
        default="text",
        description="Log output format (text for humans, json for aggregators)"
    )

    # =========================================================================
    # MARKET DATA PROVIDERS
    # =========================================================================
    quote_provider: Literal["yahoo", "fmp"] = Field(
        default="yahoo",
        description="Provider used for current quotes and price history"
    )
    fmp_api_key: str | None = Field(
        default=None,
        description="Financial Modeling Prep API key"
    )
    fmp_base_url: str = Field(
        default="https://financialmodelingprep.com/stable",
        description="Financial Modeling Prep API base URL"
    )

    # =========================================================================
    # QUOTE FETCHER
    # =========================================================================
    quote_batch_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Number of symbols per batch quote request"
    )
    quote_batch_delay_ms: int = Field(
        default=100,
        ge=0,
        le=10_000,
        description="Delay between consecutive batch requests in milliseconds"
    )
    quote_cache_ttl_seconds: int = Field(
        default=600,
        ge=0,
        description="Seconds a cached quote is considered fresh"
    )

    # =========================================================================
    # HISTORY & EXPOSURE
    # =========================================================================
    history_window_days: int = Field(
        default=90,
        ge=1,
        le=3650,
        description="Default history window length in days"
    )
    top_exposures_limit: int = Field(
        default=20,
        ge=1,
        le=500,
        description="Number of symbol-level exposures returned"
    )

    # =========================================================================
    # EXTERNAL CALLS
    # =========================================================================
    external_call_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Timeout applied to every external provider call"
    )
    max_workers: int = Field(
        default=4,
        ge=1,
        le=32,
        description="Provider calls allowed to run at once, per call kind"
    )
    max_abandoned_calls: int = Field(
        default=32,
        ge=0,
        le=256,
        description="Timed-out provider calls allowed to still be running before new calls fail fast"
    )

    # =========================================================================
    # CORS
    # =========================================================================
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"],
        description="Allowed CORS origins"
    )
    cors_allow_credentials: bool = Field(
        default=True,
        description="Allow credentials in CORS requests"
    )
    cors_allow_methods: list[str] = Field(
        default=["*"],
        description="Allowed HTTP methods for CORS"
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        description="Allowed HTTP headers for CORS"
    )

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE) if _ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_provider_config(self) -> "Settings":
        """
        Validate market data provider configuration.

        Rules:
        - test: anything goes (providers are mocked)
        - otherwise: QUOTE_PROVIDER=fmp requires FMP_API_KEY
        """
        if self.environment == "test":
            return self

        if self.quote_provider == "fmp" and not self.fmp_api_key:
            raise ValueError(
                "FMP_API_KEY is required when QUOTE_PROVIDER=fmp. "
                "Set FMP_API_KEY or switch QUOTE_PROVIDER to 'yahoo'."
            )

        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_test(self) -> bool:
        """Check if running in test environment."""
        return self.environment == "test"

    @property
    def is_fmp_configured(self) -> bool:
        """Check if the FMP API key is available."""
        return bool(self.fmp_api_key)

    @property
    def quote_batch_delay_seconds(self) -> float:
        return self.quote_batch_delay_ms / 1000.0


# Create single instance
settings = Settings()
