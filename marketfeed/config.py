"""Configuration management using pydantic-settings."""
import logging
import sys

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional
import structlog

from marketfeed.models.feed import ParseFailurePolicy


class InventorySettings(BaseSettings):
    """Commerce backend configuration for live stock and price lookups.

    All settings prefixed with INVENTORY_ (e.g., INVENTORY_SITE_ID=...)
    """

    base_url: str = Field(
        default="https://www.wixapis.com",
        description="Commerce backend API base URL"
    )
    access_token: Optional[str] = Field(
        default=None,
        description="Bearer token for the commerce backend"
    )
    site_id: Optional[str] = Field(
        default=None,
        description="Site identifier sent with every request"
    )
    timeout: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Request timeout in seconds"
    )
    batch_size: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Maximum number of SKUs per product query"
    )

    model_config = SettingsConfigDict(
        env_prefix="INVENTORY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class FeedSettings(BaseSettings):
    """Feed generation behaviour.

    All settings prefixed with FEED_ (e.g., FEED_DIMENSION_PARSE_FAILURE=pass_through)
    """

    dimension_parse_failure: ParseFailurePolicy = Field(
        default=ParseFailurePolicy.OMIT,
        description="omit: drop unparseable dimensions; pass_through: keep the raw cell"
    )
    full_feed_uses_inventory: bool = Field(
        default=True,
        description="Overlay live availability onto the full offers feed"
    )

    model_config = SettingsConfigDict(
        env_prefix="FEED_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Google Sheets Configuration
    spreadsheet_id: str = ""
    import_sheet_name: str = "Import"
    control_sheet_name: str = "Feed Control List"
    delivery_sheet_name: str = "Delivery"
    google_credentials_path: str = "/app/credentials/google-credentials.json"
    google_service_account_key: Optional[str] = Field(
        default=None,
        description="Inline service account JSON; takes precedence over the credentials file"
    )

    # Feed cache
    cache_ttl_seconds: int = Field(
        default=7200,
        ge=0,
        description="Freshness window for the cached offers feed"
    )
    stock_cache_ttl_seconds: int = Field(
        default=300,
        ge=0,
        description="Freshness window for the cached stock feed"
    )

    log_level: str = "INFO"
    environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instances
settings = Settings()
inventory_settings = InventorySettings()
feed_settings = FeedSettings()


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structlog for JSON logging."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


# Initialize logging on module import (after settings are loaded)
configure_logging(settings.log_level)
