"""
Configuration Management for PotLedger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Money precision and the settlement tolerance are read from one place so the
calculator, the settlement generator and the validator can never disagree
about what "zero" means.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Settlement engine configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    currency_minor_digits: int = Field(
        default=2,
        ge=0,
        le=4,
        description="Number of decimal places in the currency's minor unit"
    )
    settlement_epsilon: Decimal = Field(
        default=Decimal("0.005"),
        ge=0,
        description="Balances within this distance of zero count as settled"
    )
    strict_split_validation: bool = Field(
        default=True,
        description="Reject custom splits that don't add up to the expense total"
    )

    @field_validator('settlement_epsilon')
    @classmethod
    def epsilon_below_one_unit(cls, v: Decimal) -> Decimal:
        """An epsilon of a whole currency unit would hide real debts."""
        if v >= 1:
            raise ValueError(f"settlement_epsilon must be below 1, got {v}")
        return v

    @property
    def minor_unit(self) -> Decimal:
        """Smallest representable amount, e.g. Decimal('0.01')."""
        return Decimal(1).scaleb(-self.currency_minor_digits)


class LoggingSettings(BaseSettings):
    """Structured logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    level: str = Field(
        default="INFO",
        description="Standard library log level name"
    )
    json_output: bool = Field(
        default=True,
        alias="LOG_JSON",
        description="Render log lines as JSON (False renders for consoles)"
    )

    @field_validator('level')
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def logging(self) -> LoggingSettings:
        return LoggingSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.ledger
        results["ledger"] = True
    except ValueError as e:
        results["ledger"] = False
        results["ledger_error"] = str(e)

    try:
        _ = settings.logging
        results["logging"] = True
    except ValueError as e:
        results["logging"] = False
        results["logging_error"] = str(e)

    return results
