"""Tests for the observability module (structured logging)."""

import io
import json
import logging
import sys
from datetime import datetime

import pytest

from i2c_sensors.observability import logging as log_module
from i2c_sensors.observability.logging import (
    ROOT_LOGGER_NAME,
    JSONFormatter,
    LogContext,
    StructuredFormatter,
    StructuredLogger,
    _format_value,
    _log_context,
    configure_logging,
    get_logger,
    reset_logging,
)


def _record(msg: str = "Test message", **structured) -> logging.LogRecord:
    record = logging.LogRecord(
        name="i2c_sensors.test",
        level=logging.WARNING,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    if structured:
        record.structured_data = structured
    return record


# =============================================================================
# Formatter Tests
# =============================================================================


class TestStructuredFormatter:
    """Tests for StructuredFormatter."""

    def test_format_with_structured_data(self):
        """Verifies structured fields are appended as key=value pairs.

        Assertion Strategy:
        Validates output by confirming:
        - Message and level appear in the base line.
        - ' | ' separates base from structured data.
        - Each field appears as key=value.
        """
        formatter = StructuredFormatter()

        output = formatter.format(_record("Using default i2c address", i2c_addr="0x5c"))

        assert "WARNING" in output
        assert output.endswith("Using default i2c address | i2c_addr=0x5c")

    def test_format_without_structured_data(self):
        """Verifies records without structured data format normally."""
        output = StructuredFormatter().format(_record())

        assert output.endswith("Test message")
        assert " | " not in output

    def test_include_structured_false(self):
        """Verifies structured data can be suppressed."""
        formatter = StructuredFormatter(include_structured=False)

        output = formatter.format(_record(addr="0x5c"))

        assert "addr" not in output

    def test_custom_format_string(self):
        """Verifies a custom fmt replaces the default layout."""
        formatter = StructuredFormatter(fmt="%(levelname)s:%(message)s")

        assert formatter.format(_record(bus="bus1")) == "WARNING:Test message | bus=bus1"


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_json_with_structured_data(self):
        """Verifies structured fields are top-level JSON keys.

        Business context:
        Log aggregation queries addresses and bus names directly, so they
        must not be buried inside the message text.
        """
        output = JSONFormatter().format(_record("Reading", resource="barometer"))

        data = json.loads(output)
        assert data["message"] == "Reading"
        assert data["level"] == "WARNING"
        assert data["logger"] == "i2c_sensors.test"
        assert data["resource"] == "barometer"

    def test_json_timestamp_is_iso(self):
        """Verifies timestamp parses as an ISO 8601 datetime with timezone."""
        data = json.loads(JSONFormatter().format(_record()))

        assert datetime.fromisoformat(data["timestamp"]).tzinfo is not None

    def test_json_with_exception(self):
        """Verifies exception text is included when exc_info is set."""
        try:
            raise OSError("bus fault")
        except OSError:
            record = _record()
            record.exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(record))

        assert "OSError: bus fault" in data["exception"]

    def test_json_non_serializable_value(self):
        """Verifies unknown types fall back to str()."""
        data = json.loads(JSONFormatter().format(_record(raw=b"\x01\x02")))

        assert data["raw"] == str(b"\x01\x02")


class TestFormatValue:
    """Tests for _format_value helper."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, "null"),
            ("bus1", "bus1"),
            ("bus 1", '"bus 1"'),
            (92, "92"),
            (b"\x01\xff", "01ff"),
            (bytearray(b"\x5c"), "5c"),
            ({"a": 1}, '{"a": 1}'),
            ([1, 2], "[1, 2]"),
        ],
    )
    def test_values(self, value, expected):
        """Verifies each value type renders as documented."""
        assert _format_value(value) == expected


# =============================================================================
# Context Tests
# =============================================================================


class TestLogContext:
    """Tests for LogContext context manager."""

    def test_context_sets_and_restores(self):
        """Verifies context values are visible inside and removed after."""
        with LogContext(resource="barometer"):
            assert _log_context.get() == {"resource": "barometer"}

        assert _log_context.get() == {}

    def test_nested_contexts_merge(self):
        """Verifies inner contexts add to and override outer ones."""
        with LogContext(resource="barometer", addr="0x5c"):
            with LogContext(addr="0x5d"):
                assert _log_context.get() == {"resource": "barometer", "addr": "0x5d"}
            assert _log_context.get()["addr"] == "0x5c"

    def test_exit_without_enter(self):
        """Verifies __exit__ without __enter__ is harmless."""
        LogContext(a=1).__exit__(None, None, None)

        assert _log_context.get() == {}


# =============================================================================
# Logger Tests
# =============================================================================


class TestStructuredLogger:
    """Tests for StructuredLogger."""

    @pytest.fixture
    def logger_and_stream(self):
        """Create an isolated StructuredLogger writing to a StringIO.

        Yields:
            Tuple of (StructuredLogger, StringIO).
        """
        stream = io.StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(StructuredFormatter(fmt="%(levelname)s %(message)s"))

        logger = StructuredLogger("test_logger")
        logger.setLevel(logging.DEBUG)
        logger.addHandler(handler)
        logger.propagate = False

        yield logger, stream

        logger.handlers.clear()

    def test_structured_kwargs(self, logger_and_stream):
        """Verifies keyword arguments become structured data."""
        logger, stream = logger_and_stream

        logger.debug("Opening i2c handle", bus=1, addr="0x5c")

        assert stream.getvalue().strip() == "DEBUG Opening i2c handle | bus=1 addr=0x5c"

    def test_context_included(self, logger_and_stream):
        """Verifies active LogContext fields are attached."""
        logger, stream = logger_and_stream

        with LogContext(resource="barometer"):
            logger.info("Ready")

        assert "resource=barometer" in stream.getvalue()

    def test_kwargs_override_context(self, logger_and_stream):
        """Verifies an explicit kwarg wins over the context value."""
        logger, stream = logger_and_stream

        with LogContext(addr="0x5c"):
            logger.info("Ready", addr="0x5d")

        assert "addr=0x5d" in stream.getvalue()
        assert "addr=0x5c" not in stream.getvalue()

    def test_args_formatting(self, logger_and_stream):
        """Verifies %-style args still work alongside kwargs."""
        logger, stream = logger_and_stream

        logger.warning("Read %d of %d bytes", 3, 8, addr="0x5c")

        assert "Read 3 of 8 bytes | addr=0x5c" in stream.getvalue()

    def test_exc_info_not_structured(self, logger_and_stream):
        """Verifies standard logging kwargs are not treated as fields."""
        logger, stream = logger_and_stream

        try:
            raise OSError("nak")
        except OSError:
            logger.error("Transfer failed", exc_info=True, extra={"x": 1})

        output = stream.getvalue()
        assert "exc_info=" not in output
        assert "OSError: nak" in output

    def test_disabled_level_skipped(self, logger_and_stream):
        """Verifies messages below the logger level are dropped."""
        logger, stream = logger_and_stream
        logger.setLevel(logging.WARNING)

        logger.info("hidden", addr="0x5c")

        assert stream.getvalue() == ""


# =============================================================================
# Configuration Tests
# =============================================================================


class TestConfigureLogging:
    """Tests for configure_logging, reset_logging and get_logger."""

    def test_configure_text(self):
        """Verifies text output on the given stream at the given level."""
        stream = io.StringIO()
        configure_logging(level="debug", stream=stream, force=True)

        get_logger("i2c_sensors.test").debug("Hello", addr="0x5c")

        assert "Hello | addr=0x5c" in stream.getvalue()
        assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.DEBUG

    def test_configure_json(self):
        """Verifies json_format selects JSONFormatter."""
        stream = io.StringIO()
        configure_logging(json_format=True, stream=stream, force=True)

        get_logger("i2c_sensors.test").info("Hello", bus="bus1")

        data = json.loads(stream.getvalue().strip())
        assert data["bus"] == "bus1"

    def test_idempotent_without_force(self):
        """Verifies a second call without force keeps the first handler."""
        first = io.StringIO()
        second = io.StringIO()
        configure_logging(stream=first, force=True)
        configure_logging(stream=second)

        get_logger("i2c_sensors.test").warning("once")

        assert "once" in first.getvalue()
        assert second.getvalue() == ""
        assert len(logging.getLogger(ROOT_LOGGER_NAME).handlers) == 1

    def test_does_not_propagate(self):
        """Verifies package logs do not reach the root logger."""
        configure_logging(stream=io.StringIO(), force=True)

        assert logging.getLogger(ROOT_LOGGER_NAME).propagate is False

    def test_reset(self):
        """Verifies reset_logging removes handlers and clears the flag."""
        configure_logging(stream=io.StringIO(), force=True)

        reset_logging()

        assert logging.getLogger(ROOT_LOGGER_NAME).handlers == []
        assert log_module._configured is False

    def test_get_logger_type(self):
        """Verifies get_logger returns a StructuredLogger and configures defaults."""
        reset_logging()

        logger = get_logger("i2c_sensors.test.get_logger_type")

        assert isinstance(logger, StructuredLogger)
        assert log_module._configured is True
