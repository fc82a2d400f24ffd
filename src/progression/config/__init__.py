"""Configuration package for the progression engine."""

from progression.config.app_config import (
    ApiConfig,
    AppConfig,
    ClientConfig,
    DatabaseConfig,
    PolicyConfig,
    clear_config_cache,
    load_app_config,
)

__all__ = [
    "ApiConfig",
    "AppConfig",
    "ClientConfig",
    "DatabaseConfig",
    "PolicyConfig",
    "clear_config_cache",
    "load_app_config",
]
