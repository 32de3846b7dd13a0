"""Configuration loading and validation."""

from .models import (
    # Enums
    LookupMode,
    JitterMode,
    # Config models
    AppConfig,
    ScrapingConfig,
    LookupConfig,
    PlaywrightConfig,
    LoggingConfig,
)
from .loader import ConfigError, apply_env_overrides, load_app_config, validate_app_config_file

__all__ = [
    # Enums
    "LookupMode",
    "JitterMode",
    # Config models
    "AppConfig",
    "ScrapingConfig",
    "LookupConfig",
    "PlaywrightConfig",
    "LoggingConfig",
    # Loaders
    "ConfigError",
    "apply_env_overrides",
    "load_app_config",
    "validate_app_config_file",
]
