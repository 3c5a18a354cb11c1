"""Configuration management module for the node conformance harness."""

from config.models import (
    HarnessConfig,
    CoinConfig,
    RPCConfig,
    RetryConfig,
    LoggingConfig,
)
from config.loader import ConfigurationManager

__all__ = [
    "HarnessConfig",
    "CoinConfig",
    "RPCConfig",
    "RetryConfig",
    "LoggingConfig",
    "ConfigurationManager",
]
