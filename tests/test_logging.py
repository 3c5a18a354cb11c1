"""
Unit tests for structured logging.

Tests for correlation fields, JSON and text formatting.
"""

import json
import logging
from io import StringIO

import pytest

from core.logging import (
    CorrelationFilter,
    CustomJsonFormatter,
    LogContext,
    TextFormatter,
    configure_logging,
    get_coin,
    get_run_id,
)


def make_logger(formatter):
    """Create a logger writing through ``formatter`` to a StringIO."""
    logger = logging.getLogger(f"test_logging_{type(formatter).__name__}")
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(CorrelationFilter())
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger, stream


@pytest.fixture
def json_logger():
    return make_logger(CustomJsonFormatter("%(asctime)s %(name)s %(levelname)s %(message)s"))


@pytest.fixture
def text_logger():
    return make_logger(TextFormatter("%(levelname)s - %(message)s"))


class TestLogContext:

    def test_sets_and_restores_fields(self):
        assert get_run_id() is None
        with LogContext(run_id="run-1", coin="bitcoin"):
            assert get_run_id() == "run-1"
            assert get_coin() == "bitcoin"
        assert get_run_id() is None
        assert get_coin() is None

    def test_nested_contexts(self):
        with LogContext(run_id="outer", coin="bitcoin"):
            with LogContext(coin="litecoin"):
                assert get_run_id() == "outer"
                assert get_coin() == "litecoin"
            assert get_coin() == "bitcoin"


class TestJsonFormatter:

    def test_standard_fields(self, json_logger):
        logger, stream = json_logger

        logger.info("checking", extra={"check": "GetBlock"})

        record = json.loads(stream.getvalue())
        assert record["message"] == "checking"
        assert record["level"] == "INFO"
        assert record["service"] == "node-conformance"
        assert record["check"] == "GetBlock"
        assert "time" in record

    def test_correlation_fields_from_context(self, json_logger):
        logger, stream = json_logger

        with LogContext(run_id="run-7", coin="bitcoin"):
            logger.warning("mismatch")

        record = json.loads(stream.getvalue())
        assert record["run_id"] == "run-7"
        assert record["coin"] == "bitcoin"

    def test_correlation_fields_omitted_outside_context(self, json_logger):
        logger, stream = json_logger

        logger.info("no context")

        record = json.loads(stream.getvalue())
        assert "run_id" not in record
        assert "coin" not in record

    def test_extra_fields_used_outside_context(self, json_logger):
        logger, stream = json_logger

        logger.info("tagged", extra={"coin": "litecoin"})

        record = json.loads(stream.getvalue())
        assert record["coin"] == "litecoin"
        assert "run_id" not in record
        assert record["logger"] == logger.name

    def test_exception_included(self, json_logger):
        logger, stream = json_logger

        try:
            raise RuntimeError("boom")
        except RuntimeError:
            logger.exception("failed")

        record = json.loads(stream.getvalue())
        assert "RuntimeError: boom" in record["exception"]


class TestTextFormatter:

    def test_prefix_inside_context(self, text_logger):
        logger, stream = text_logger

        with LogContext(run_id="run-7", coin="bitcoin"):
            logger.info("checking")

        assert stream.getvalue().strip() == "INFO - [run_id=run-7 coin=bitcoin] checking"

    def test_no_prefix_outside_context(self, text_logger):
        logger, stream = text_logger

        logger.info("checking")

        assert stream.getvalue().strip() == "INFO - checking"


@pytest.mark.parametrize("fmt,formatter_class", [("json", CustomJsonFormatter), ("text", TextFormatter)])
def test_configure_logging(fmt, formatter_class):
    """Test that the root logger gets a single handler of the chosen format."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        configure_logging(level="debug", fmt=fmt)

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, formatter_class)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
