"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class EngineConfig(BaseSettings):
    """Debt engine configuration"""

    # Compliance
    legal_ceiling_percent: str = "15"   # Personal loans, percent per year

    # Allocation / accrual behaviour
    default_allocation_strategy: str = "interest_first"  # interest_first, principal_first, fifo
    apply_grace_days: bool = False      # Shift accrual start by the policy's grace days

    # Display
    currency: str = "THB"              # Quote display currency: THB, USD, EUR, JPY

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    class Config:
        env_prefix = "DEBT_ENGINE_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = EngineConfig()


def get_config() -> EngineConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> EngineConfig:
    """Reload configuration from environment"""
    global config
    config = EngineConfig()
    return config
