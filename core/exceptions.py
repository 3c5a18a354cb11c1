"""Custom exceptions for the node conformance harness.

Provides a hierarchy of exceptions for the error categories the harness
distinguishes: configuration problems (reported per item), fixture problems
(fatal to the run) and adapter failures (fatal to a single check).
"""

from typing import Any, Optional


class HarnessError(Exception):
    """Base exception for all conformance harness errors."""

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# ==================== Configuration Errors ====================

class ConfigurationError(HarnessError):
    """Raised when the harness configuration is unusable."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(
            message=f"Configuration error: {message}",
            details={"config_key": config_key} if config_key else {}
        )
        self.config_key = config_key


# ==================== Fixture Errors ====================

class FixtureError(HarnessError):
    """Base exception for fixture loading errors.

    No check can run without fixtures, so these abort the whole run.
    """
    pass


class FixtureNotFoundError(FixtureError):
    """Raised when the fixture document for a coin cannot be read."""

    def __init__(self, coin: str, path: str, original_error: Optional[Exception] = None):
        super().__init__(
            message=f"Fixture for {coin} not found at {path}",
            details={
                "coin": coin,
                "path": path,
                "original_error": str(original_error) if original_error else None,
            }
        )
        self.coin = coin
        self.path = path


class FixtureMalformedError(FixtureError):
    """Raised when the fixture document cannot be decoded."""

    def __init__(self, coin: str, path: str, reason: str):
        super().__init__(
            message=f"Fixture for {coin} at {path} is malformed: {reason}",
            details={
                "coin": coin,
                "path": path,
                "reason": reason[:500],
            }
        )
        self.coin = coin
        self.path = path
        self.reason = reason


class AmountDecodeError(FixtureError):
    """Raised when a fixture output amount cannot be converted."""

    def __init__(self, txid: str, output_index: int, value: Any, reason: str):
        super().__init__(
            message=f"Cannot decode amount {value!r} of {txid}:{output_index}: {reason}",
            details={
                "txid": txid,
                "output_index": output_index,
                "value": str(value)[:100],
                "reason": reason,
            }
        )
        self.txid = txid
        self.output_index = output_index


class AddressDerivationError(FixtureError):
    """Raised when output addresses cannot be derived by a pack/unpack round trip."""

    def __init__(self, txid: str, reason: str):
        super().__init__(
            message=f"Cannot derive addresses of {txid}: {reason}",
            details={"txid": txid, "reason": reason}
        )
        self.txid = txid
        self.reason = reason


# ==================== Adapter Errors ====================

class AdapterError(HarnessError):
    """Base exception for failures of the adapter under test."""
    pass


class BlockNotFoundError(AdapterError):
    """Raised by adapters when a requested block does not exist.

    Requesting the successor of the best block must produce this error.
    """

    def __init__(self, block_hash: str = "", height: Optional[int] = None):
        target = block_hash or f"height {height}"
        super().__init__(
            message=f"Block not found: {target}",
            details={"hash": block_hash, "height": height}
        )
        self.block_hash = block_hash
        self.height = height


class AmountError(AdapterError):
    """Raised when an amount cannot be converted between encodings."""

    def __init__(self, value: Any, reason: str):
        super().__init__(
            message=f"Invalid amount {value!r}: {reason}",
            details={"value": str(value)[:100], "reason": reason}
        )
        self.value = value
        self.reason = reason


class PackError(AdapterError):
    """Raised when a transaction cannot be packed or unpacked."""

    def __init__(self, operation: str, reason: str, txid: Optional[str] = None):
        super().__init__(
            message=f"Failed to {operation} transaction{f' {txid}' if txid else ''}: {reason}",
            details={"operation": operation, "reason": reason, "txid": txid}
        )
        self.operation = operation
        self.reason = reason


class RPCError(AdapterError):
    """Raised when the node answers a call with a JSON-RPC error object."""

    def __init__(self, method: str, code: Optional[int], error_message: str):
        super().__init__(
            message=f"RPC {method} failed ({code}): {error_message}",
            details={
                "method": method,
                "code": code,
                "error_message": error_message[:500],
            }
        )
        self.method = method
        self.code = code
        self.error_message = error_message


class NodeConnectionError(AdapterError):
    """Raised when the node cannot be reached after all retries."""

    def __init__(
        self,
        url: str,
        message: str,
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message=f"Connection to {url} failed: {message}",
            details={
                "url": url,
                "original_error": str(original_error) if original_error else None,
            }
        )
        self.url = url
        self.original_error = original_error


class NodeResponseError(AdapterError):
    """Raised when the node returns a response the adapter cannot use.

    Covers bodies that are not JSON-RPC and results whose shape does not
    match the called method.
    """

    def __init__(
        self,
        method: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        reason: Optional[str] = None
    ):
        message = f"Invalid response to {method}"
        if status_code:
            message += f" (HTTP {status_code})"
        if reason:
            message += f": {reason}"

        super().__init__(
            message=message,
            details={
                "method": method,
                "status_code": status_code,
                "response_body": response_body[:500] if response_body else None,
                "reason": reason,
            }
        )
        self.method = method
        self.status_code = status_code
