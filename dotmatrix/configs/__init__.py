"""Striker configuration loading and validation."""

from dotmatrix.configs.loader import (
    ConfigError,
    DestinationConfig,
    KernelConfig,
    LoggingConfig,
    StrikerConfig,
    load_config,
)

__all__ = [
    "ConfigError",
    "DestinationConfig",
    "KernelConfig",
    "LoggingConfig",
    "StrikerConfig",
    "load_config",
]
