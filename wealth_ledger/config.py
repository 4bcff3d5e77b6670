"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class WealthLedgerConfig(BaseSettings):
    """Wealth ledger configuration"""

    # Storage configuration
    storage_url: str = "sqlite:///wealth_ledger.db"  # memory:// for a throwaway store
    assets_key: str = "wealth-management-assets"
    yield_records_key: str = "wealth-management-yields"

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    # Calculation configuration
    value_precision: int = 10  # Decimal places kept on computed values

    # Interchange configuration
    backup_format_version: str = "1.0"

    class Config:
        env_prefix = "WEALTH_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = WealthLedgerConfig()


def get_config() -> WealthLedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> WealthLedgerConfig:
    """Reload configuration from environment"""
    global config
    config = WealthLedgerConfig()
    return config
