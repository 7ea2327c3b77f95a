"""Application configuration using pydantic-settings."""

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

UNAVAILABLE_PRICE_POLICIES = ("zero", "carry_forward")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = "sqlite:///./portfolio.db"

    # Currency normalization
    HOME_CURRENCY: str = "INR"
    QUOTE_BASE_CURRENCY: str = "USD"
    EXCHANGE_RATE_API_URL: str = "https://open.er-api.com/v6/latest"

    # Reconciliation
    REFERENCE_TIMEZONE: str = "UTC"
    QUOTE_FETCH_WORKERS: int = 8
    RECONCILE_TIMEOUT_SECONDS: float = 30.0
    TOTALS_RETENTION_DAYS: int = 30
    UNAVAILABLE_PRICE_POLICY: str = "zero"

    @field_validator("HOME_CURRENCY", "QUOTE_BASE_CURRENCY", mode="before")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        """Currency codes are stored as three-letter uppercase ISO codes."""
        v = str(v).strip().upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError(f"Currency must be a 3-letter ISO code, got {v!r}")
        return v

    @field_validator("REFERENCE_TIMEZONE")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Reject time zone names the tz database does not know."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown REFERENCE_TIMEZONE {v!r}")
        return v

    @field_validator("UNAVAILABLE_PRICE_POLICY", mode="before")
    @classmethod
    def validate_price_policy(cls, v: str) -> str:
        v = str(v).strip().lower()
        if v not in UNAVAILABLE_PRICE_POLICIES:
            raise ValueError(
                f"UNAVAILABLE_PRICE_POLICY must be one of {UNAVAILABLE_PRICE_POLICIES}, got {v!r}"
            )
        return v

    @field_validator("QUOTE_FETCH_WORKERS")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError("QUOTE_FETCH_WORKERS must be at least 1")
        return v

    @field_validator("TOTALS_RETENTION_DAYS")
    @classmethod
    def validate_retention(cls, v: int) -> int:
        if v < 0:
            raise ValueError("TOTALS_RETENTION_DAYS must be >= 0 (0 disables purging)")
        return v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize LOG_LEVEL to an uppercase Python logging level."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {valid}, got {v!r}")
        return v.upper()

    # App settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"


settings = Settings()
