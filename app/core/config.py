"""
Application Configuration Module

Centralizes all configuration using environment variables with Pydantic Settings.
Supports two storage modes:
    - DEVELOPMENT: JSON documents under the local data directory
    - PRODUCTION / STAGING: JSON documents in Redis

The ENV_MODE variable controls which storage adapter is instantiated
throughout the application, so the same request handlers run unchanged
against local files while developing and against Redis once deployed.

Usage:
    from app.core.config import get_settings

    settings = get_settings()
    if settings.is_development:
        # File-backed documents
    else:
        # Redis-backed documents

Version: 1.0.0
"""

import logging
import sys
from datetime import datetime
from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentMode(str, Enum):
    """
    Application environment modes.

    Attributes:
        DEVELOPMENT: Local work with file-backed storage
        PRODUCTION: Live environment backed by Redis
        STAGING: Pre-production, Redis-backed
    """
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    STAGING = "staging"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.

    Attributes:
        env_mode: Current environment (development/production/staging)
        debug: Enable verbose logging and error details

        # Storage
        data_directory: Folder holding the JSON documents in development
        redis_url: Redis connection string (storage and Celery broker)

        # Pricing
        combo_discount_amount: Flat discount for a FAT + FIT order
        line_promo_discount_percent: Daily sauce promotion on FAT menus

        # Coupons
        coupon_limit: Global issuance cap
        coupon_discount_percent: Discount granted by every coupon
        coupon_code_prefix: Prefix of generated coupon codes
        coupon_expires_at: Fixed expiration date for all coupons
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================

    env_mode: EnvironmentMode = Field(
        default=EnvironmentMode.DEVELOPMENT,
        description="Application environment mode"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )

    # ==========================================================================
    # APPLICATION
    # ==========================================================================

    app_name: str = Field(
        default="Santo Dilema Storefront",
        description="Application display name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8001,
        description="API server port"
    )
    allowed_origins: str = Field(
        default="*",
        description="Comma-separated list of CORS origins"
    )

    # ==========================================================================
    # STORAGE
    # ==========================================================================

    data_directory: str = Field(
        default="data",
        description="Directory for JSON documents and exports"
    )
    storage_lock_timeout: int = Field(
        default=30,
        description="Seconds to wait for a document file lock"
    )

    # ==========================================================================
    # REDIS / CELERY
    # ==========================================================================

    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL"
    )
    redis_key_prefix: str = Field(
        default="storefront:",
        description="Prefix for every document key stored in Redis"
    )
    redis_max_retries: int = Field(
        default=10,
        description="Optimistic transaction retries before giving up"
    )

    # ==========================================================================
    # EXCEL EXPORT
    # ==========================================================================

    excel_filename: str = Field(
        default="orders.xlsx",
        description="Excel export filename"
    )
    excel_lock_timeout: int = Field(
        default=30,
        description="Seconds to wait for the workbook lock"
    )
    export_orders: bool = Field(
        default=True,
        description="Queue an Excel export task for every confirmed order"
    )

    # ==========================================================================
    # PRICING
    # ==========================================================================

    currency: str = Field(
        default="PEN",
        description="Currency of every amount"
    )
    combo_discount_amount: float = Field(
        default=5.00,
        ge=0,
        description="Flat discount when FAT and FIT items are ordered together"
    )
    line_promo_enabled: bool = Field(
        default=True,
        description="Apply the daily sauce promotion to FAT menus"
    )
    line_promo_discount_percent: float = Field(
        default=30.0,
        ge=0,
        le=100,
        description="Per-line discount for menus with only promo sauces"
    )

    # ==========================================================================
    # COUPONS
    # ==========================================================================

    coupon_limit: int = Field(
        default=13,
        ge=0,
        description="Maximum number of coupons ever issued"
    )
    coupon_discount_percent: float = Field(
        default=13.0,
        gt=0,
        le=100,
        description="Discount percent granted by an issued coupon"
    )
    coupon_code_prefix: str = Field(
        default="SANTO13",
        description="Prefix of generated coupon codes"
    )
    coupon_expires_at: datetime = Field(
        default=datetime.fromisoformat("2026-02-28T23:59:59-05:00"),
        description="Fixed expiration date stamped on every coupon"
    )

    # ==========================================================================
    # BUSINESS HOURS
    # ==========================================================================

    business_timezone: str = Field(
        default="America/Lima",
        description="IANA time zone of the kitchen"
    )
    open_weekdays: str = Field(
        default="3,4,5,6",
        description="Comma-separated weekdays (Monday=0) the kitchen opens"
    )
    opening_hour: int = Field(default=18, ge=0, le=23)
    closing_hour: int = Field(default=23, ge=1, le=24)
    enforce_business_hours: bool = Field(
        default=False,
        description="Reject order confirmation while the kitchen is closed"
    )

    # ==========================================================================
    # VALIDATORS
    # ==========================================================================

    @field_validator("env_mode", mode="before")
    @classmethod
    def validate_env_mode(cls, v: str) -> EnvironmentMode:
        """Convert string to EnvironmentMode enum."""
        if isinstance(v, EnvironmentMode):
            return v
        try:
            return EnvironmentMode(v.lower())
        except ValueError:
            valid = [e.value for e in EnvironmentMode]
            raise ValueError(f"Invalid env_mode. Must be one of: {valid}")

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env_mode == EnvironmentMode.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env_mode == EnvironmentMode.PRODUCTION

    @property
    def is_staging(self) -> bool:
        """Check if running in staging mode."""
        return self.env_mode == EnvironmentMode.STAGING

    @property
    def use_redis_storage(self) -> bool:
        """Check if documents should be stored in Redis."""
        return self.env_mode in (EnvironmentMode.PRODUCTION, EnvironmentMode.STAGING)

    @property
    def allowed_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def open_weekdays_list(self) -> list[int]:
        """Get opening weekdays as integers (Monday=0)."""
        return [int(d.strip()) for d in self.open_weekdays.split(",") if d.strip()]

    # ==========================================================================
    # VALIDATION METHODS
    # ==========================================================================

    def validate_production_config(self) -> list[str]:
        """
        Validate that all required production settings are configured.

        Returns:
            List of missing configuration keys (empty if all present)
        """
        missing = []

        if self.use_redis_storage:
            if not self.redis_url or "localhost" in self.redis_url:
                missing.append("REDIS_URL")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are loaded only once and stay
    consistent across the application lifecycle.

    Returns:
        Settings: Configured application settings

    Example:
        >>> settings = get_settings()
        >>> print(settings.env_mode)
        EnvironmentMode.DEVELOPMENT
    """
    return Settings()


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure application-wide logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured root logger
    """
    settings = get_settings()

    if settings.debug:
        level = logging.DEBUG

    log_format = "%(asctime)s │ %(levelname)-8s │ %(name)-25s │ %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("filelock").setLevel(logging.WARNING)

    return logging.getLogger("app")


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
