"""Configuration management"""

from .loader import (
    Config,
    ServerConfig,
    TelemetryConfig,
    LoggingConfig,
    load_config,
    save_config,
    get_config_path,
)

__all__ = [
    "Config",
    "ServerConfig",
    "TelemetryConfig",
    "LoggingConfig",
    "load_config",
    "save_config",
    "get_config_path",
]
