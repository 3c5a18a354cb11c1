"""Logging setup for harness runs.

Every record carries the run and the coin it belongs to. Both are held in
context variables set by :class:`LogContext`, so checks log through plain
module loggers and still end up tagged with their run.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any, Optional

from pythonjsonlogger import jsonlogger


_run_id_context: ContextVar[Optional[str]] = ContextVar("run_id", default=None)
_coin_context: ContextVar[Optional[str]] = ContextVar("coin", default=None)

CORRELATION_FIELDS = ("run_id", "coin")
UNSET = "N/A"


def get_run_id() -> Optional[str]:
    return _run_id_context.get()


def get_coin() -> Optional[str]:
    return _coin_context.get()


def correlation(record: logging.LogRecord) -> dict[str, str]:
    """The correlation fields of ``record`` that are actually set."""
    fields = {}
    for key in CORRELATION_FIELDS:
        value = getattr(record, key, None)
        if value and value != UNSET:
            fields[key] = value
    return fields


class CorrelationFilter(logging.Filter):
    """Tags records with the active run and coin.

    A value passed through ``extra`` is kept when no context is active.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = get_run_id() or getattr(record, "run_id", None) or UNSET
        record.coin = get_coin() or getattr(record, "coin", None) or UNSET
        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """One JSON object per record, with level, logger and service names."""

    def __init__(self, *args: Any, service_name: str = "node-conformance", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.service_name = service_name

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any]
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["time"] = log_record.pop("asctime", None) or self.formatTime(record)
        log_record["level"] = log_record.pop("levelname", record.levelname)
        log_record["logger"] = log_record.pop("name", record.name)
        log_record["service"] = self.service_name

        # Unset fields are dropped rather than written as placeholders
        for key in CORRELATION_FIELDS:
            log_record.pop(key, None)
        log_record.update(correlation(record))

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


class TextFormatter(logging.Formatter):
    """Plain text, with ``[run_id=... coin=...]`` ahead of the message inside a run."""

    def format(self, record: logging.LogRecord) -> str:
        fields = correlation(record)
        if not fields:
            return super().format(record)

        tag = " ".join(f"{key}={value}" for key, value in fields.items())
        msg = record.msg
        record.msg = f"[{tag}] {msg}"
        try:
            return super().format(record)
        finally:
            record.msg = msg


def configure_logging(
    level: str = "INFO",
    fmt: str = "json",
    service_name: str = "node-conformance"
) -> logging.Logger:
    """Install a single stderr handler on the root logger.

    Args:
        level: Level name, case-insensitive. Unknown names fall back to INFO.
        fmt: ``"json"`` for machine-readable records, anything else for text.
        service_name: Value of the ``service`` field in JSON records.

    Returns:
        The root logger.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)

    # Reports go to stdout, so logs go to stderr
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.addFilter(CorrelationFilter())

    if fmt == "json":
        formatter: logging.Formatter = CustomJsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            service_name=service_name
        )
    else:
        formatter = TextFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # JSON-RPC transport chatter
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LogContext:
    """Tags all records logged inside the block with ``run_id`` and ``coin``.

    Fields left as None keep the value of any enclosing context.
    """

    def __init__(self, run_id: Optional[str] = None, coin: Optional[str] = None):
        self.run_id = run_id
        self.coin = coin
        self._tokens: list[tuple[ContextVar, Any]] = []

    def __enter__(self) -> "LogContext":
        for var, value in ((_run_id_context, self.run_id), (_coin_context, self.coin)):
            if value:
                self._tokens.append((var, var.set(value)))
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)
