"""Synchronous JSON-RPC client for bitcoind-compatible nodes."""

import itertools
import logging
import time
from decimal import Decimal
from typing import Any, Callable, Optional

import requests

from config.models import RPCConfig, RetryConfig
from core.exceptions import NodeConnectionError, NodeResponseError, RPCError


logger = logging.getLogger(__name__)


class JsonRpcClient:
    """Minimal JSON-RPC 1.0 client over HTTP.

    Transport failures (connection errors, timeouts, HTTP 5xx without a
    JSON-RPC body) are retried with exponential backoff. Error objects
    returned by the node are raised as :class:`RPCError` immediately,
    since repeating the call cannot change the answer.
    """

    def __init__(
        self,
        config: RPCConfig,
        retry_config: Optional[RetryConfig] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the client.

        Args:
            config: Node connection settings.
            retry_config: Retry configuration (uses defaults if not provided).
            session: Optional pre-built requests session.
            sleep: Function used to wait between attempts.
        """
        self.config = config
        self.retry_config = retry_config or RetryConfig()
        self.session = session or requests.Session()
        if config.user or config.password:
            self.session.auth = (config.user, config.password)
        self._sleep = sleep
        self._ids = itertools.count(1)

    @property
    def url(self) -> str:
        return self.config.url

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "JsonRpcClient":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def call(self, method: str, *params: Any) -> Any:
        """Call ``method`` with positional ``params`` and return its result.

        Floats in the response are decoded as :class:`~decimal.Decimal`.

        Raises:
            RPCError: If the node answers with an error object.
            NodeResponseError: If the response is not JSON-RPC.
            NodeConnectionError: If the node is unreachable after all attempts.
        """
        payload = {
            "jsonrpc": "1.0",
            "id": next(self._ids),
            "method": method,
            "params": list(params),
        }
        max_attempts = self.retry_config.rpc_max_attempts
        last_error: Optional[Exception] = None

        for attempt in range(max_attempts):
            log_extra = {
                "method": method,
                "attempt": attempt + 1,
                "max_attempts": max_attempts,
            }
            try:
                response = self.session.post(
                    self.url,
                    json=payload,
                    timeout=self.config.timeout_seconds,
                )
            except (requests.ConnectionError, requests.Timeout) as e:
                last_error = e
                logger.warning(
                    f"Network error calling {method}: {e} (attempt {attempt + 1})",
                    extra={**log_extra, "error_type": "network"}
                )
            else:
                body = self._decode(method, response)
                if body is None:
                    last_error = NodeResponseError(method, response.status_code, response.text)
                    logger.warning(
                        f"Server error {response.status_code} calling {method} (attempt {attempt + 1})",
                        extra={**log_extra, "error_type": "server"}
                    )
                else:
                    error = body.get("error")
                    if error:
                        raise RPCError(method, error.get("code"), str(error.get("message", "")))
                    return body.get("result")

            if attempt < max_attempts - 1:
                backoff = self.retry_config.rpc_backoff_seconds * (2 ** attempt)
                logger.info(
                    f"Retrying {method} in {backoff} seconds",
                    extra={**log_extra, "backoff_seconds": backoff}
                )
                self._sleep(backoff)

        if isinstance(last_error, NodeResponseError):
            raise last_error
        raise NodeConnectionError(
            self.url,
            f"{method} failed after {max_attempts} attempts",
            original_error=last_error,
        )

    @staticmethod
    def _decode(method: str, response: requests.Response) -> Optional[dict[str, Any]]:
        """Decode a JSON-RPC body, or return None for a retryable server error.

        bitcoind answers RPC errors with HTTP 404/500 and a JSON body,
        so the body is inspected before the status code.
        """
        try:
            body = response.json(parse_float=Decimal)
        except ValueError:
            if response.status_code >= 500:
                return None
            raise NodeResponseError(method, response.status_code, response.text)

        if not isinstance(body, dict) or ("result" not in body and "error" not in body):
            raise NodeResponseError(method, response.status_code, response.text)
        return body
