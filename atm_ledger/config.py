"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class LedgerConfig(BaseSettings):
    """ATM ledger configuration"""

    model_config = SettingsConfigDict(env_prefix="ATM_")

    # Account seed
    initial_balance: str = "1000.00"  # Decimal string, never float
    initial_pin: str = "1015"

    # History configuration
    history_capacity: int = 10
    history_file: Optional[str] = None  # e.g. transaction_history.csv; None disables the CSV log
    csv_delimiter: str = Field(",", min_length=1, max_length=1)

    # PIN rules
    pin_min_length: int = 4
    enforce_pin_format: bool = True  # Reject malformed new PINs inside change_pin
    hash_pin: bool = False  # Store a salted scrypt hash instead of the PIN itself
    max_pin_attempts: int = 3

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text


def get_config() -> LedgerConfig:
    """Get configuration instance"""
    return LedgerConfig()
