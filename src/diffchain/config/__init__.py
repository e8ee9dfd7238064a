"""Configuration loading, schema, and defaults."""

from diffchain.config.loader import ConfigError, load_config
from diffchain.config.schema import DiffchainConfig

__all__ = [
    "ConfigError",
    "DiffchainConfig",
    "load_config",
]
