"""Application configuration module.

Reads settings from environment variables (after loading an optional ``.env``
file) with defaults suitable for a single-office deployment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from dotenv import load_dotenv

from core.constants import DatabaseDefaults, PricingDefaults, ReportDefaults
from core.exceptions import ConfigurationError


def _get_bool(name: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _get_int(name: str, default: int) -> int:
    """Get integer from environment variable."""
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None


def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None


def _get_decimal(name: str, default: Decimal) -> Decimal:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return Decimal(value)
    except InvalidOperation:
        raise ConfigurationError(f"{name} must be a decimal amount, got {value!r}") from None


def _get_str(name: str, default: str = "") -> str:
    """Get string from environment variable."""
    return os.getenv(name, default)


@dataclass(frozen=True)
class Config:
    environment: str
    debug: bool
    database_path: str
    db_pool_size: int
    db_busy_timeout: int
    store_timeout_seconds: float
    ticket_price: Decimal
    log_level: str
    log_folder: str
    strict_transitions: bool
    top_issuers_limit: int

    @property
    def log_file(self) -> str:
        return os.path.join(self.log_folder, "ledger.log")


def load_config(env_file: str | None = None) -> Config:
    """Load application configuration from environment variables.

    Args:
        env_file: Optional explicit ``.env`` path; defaults to discovery

    Returns:
        Config: Application configuration with validated values

    Raises:
        ConfigurationError: If a value cannot be parsed or is out of bounds
    """
    load_dotenv(env_file)

    config = Config(
        environment=_get_str("ENVIRONMENT", "development"),
        debug=_get_bool("DEBUG", False),
        database_path=_get_str("DATABASE_PATH", "data/lottery_ledger.sqlite"),
        db_pool_size=_get_int("DB_POOL_SIZE", DatabaseDefaults.POOL_SIZE),
        db_busy_timeout=_get_int("DB_BUSY_TIMEOUT", DatabaseDefaults.BUSY_TIMEOUT),
        store_timeout_seconds=_get_float("STORE_TIMEOUT_SECONDS", DatabaseDefaults.STORE_TIMEOUT),
        ticket_price=_get_decimal("TICKET_PRICE", PricingDefaults.TICKET_PRICE),
        log_level=_get_str("LOG_LEVEL", "INFO"),
        log_folder=_get_str("LOG_FOLDER", "logs"),
        strict_transitions=_get_bool("STRICT_TRANSITIONS", False),
        top_issuers_limit=_get_int("TOP_ISSUERS_LIMIT", ReportDefaults.TOP_ISSUERS_LIMIT),
    )

    if config.db_pool_size < 2:
        # Search issues two queries at once
        raise ConfigurationError("DB_POOL_SIZE must be at least 2")
    if config.store_timeout_seconds <= 0:
        raise ConfigurationError("STORE_TIMEOUT_SECONDS must be positive")
    if config.ticket_price < 0:
        raise ConfigurationError("TICKET_PRICE must not be negative")

    return config
