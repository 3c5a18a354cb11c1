"""Core module for the node conformance harness."""

from core.exceptions import (
    HarnessError,
    ConfigurationError,
    FixtureError,
    FixtureNotFoundError,
    FixtureMalformedError,
    AmountDecodeError,
    AddressDerivationError,
    AdapterError,
    BlockNotFoundError,
    AmountError,
    PackError,
    RPCError,
    NodeConnectionError,
    NodeResponseError,
)
from core.logging import configure_logging, get_logger, LogContext

__all__ = [
    # Errors
    "HarnessError",
    "ConfigurationError",
    "FixtureError",
    "FixtureNotFoundError",
    "FixtureMalformedError",
    "AmountDecodeError",
    "AddressDerivationError",
    "AdapterError",
    "BlockNotFoundError",
    "AmountError",
    "PackError",
    "RPCError",
    "NodeConnectionError",
    "NodeResponseError",
    # Logging
    "configure_logging",
    "get_logger",
    "LogContext",
]
