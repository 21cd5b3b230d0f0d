"""Structured logging for i2c-sensors.

Builds on Python's standard logging module with:
- Keyword arguments on log calls captured as structured data
- Human-readable ``key=value`` output or one JSON object per line
- Context scoping (e.g. resource name, bus address) via LogContext

All package loggers live under the ``i2c_sensors`` logger, which owns its
own handler and does not propagate to the root logger.

Hardware values such as addresses and register contents should be passed
as keyword arguments rather than formatted into the message, so they stay
queryable in JSON output:

    logger.warning("Using default i2c address", i2c_addr="0x5c")

Example:
    logger = get_logger(__name__)

    with LogContext(resource="barometer"):
        logger.info("Sensor ready", bus="bus1", addr="0x5c")

    # Production: JSON lines on stderr
    configure_logging(level="DEBUG", json_format=True, force=True)
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import threading
from collections.abc import MutableMapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, cast

__all__ = [
    "ROOT_LOGGER_NAME",
    "StructuredLogger",
    "StructuredFormatter",
    "JSONFormatter",
    "LogContext",
    "configure_logging",
    "reset_logging",
    "get_logger",
]

#: Name of the package logger that carries the handler.
ROOT_LOGGER_NAME = "i2c_sensors"

_log_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "log_context", default={}
)


# =============================================================================
# Structured Logger
# =============================================================================


class StructuredLogger(logging.Logger):
    """Logger whose level methods accept structured keyword arguments.

    Any keyword argument not understood by ``logging.Logger`` is collected
    into ``record.structured_data``, merged on top of the active LogContext.

    Usage:
        logger = StructuredLogger("i2c_sensors.sensors.lps25h")
        logger.debug("Trigger write failed", addr="0x5c", error="EIO")
    """

    def debug(self, msg: object, *args: Any, **kwargs: Any) -> None:
        """Log debug message with optional structured data kwargs."""
        self._log_at(logging.DEBUG, msg, args, kwargs)

    def info(self, msg: object, *args: Any, **kwargs: Any) -> None:
        """Log info message with optional structured data kwargs."""
        self._log_at(logging.INFO, msg, args, kwargs)

    def warning(self, msg: object, *args: Any, **kwargs: Any) -> None:
        """Log warning message with optional structured data kwargs."""
        self._log_at(logging.WARNING, msg, args, kwargs)

    def error(self, msg: object, *args: Any, **kwargs: Any) -> None:
        """Log error message with optional structured data kwargs."""
        self._log_at(logging.ERROR, msg, args, kwargs)

    def critical(self, msg: object, *args: Any, **kwargs: Any) -> None:
        """Log critical message with optional structured data kwargs."""
        self._log_at(logging.CRITICAL, msg, args, kwargs)

    def _log_at(
        self,
        level: int,
        msg: object,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> None:
        """Split standard logging kwargs from structured data and emit.

        Args:
            level: Numeric log level.
            msg: Log message, may contain % placeholders.
            args: Arguments for % formatting.
            kwargs: Mix of standard options (exc_info, stack_info,
                stacklevel, extra) and structured fields.
        """
        if not self.isEnabledFor(level):
            return
        exc_info = kwargs.pop("exc_info", None)
        stack_info = kwargs.pop("stack_info", False)
        stacklevel = kwargs.pop("stacklevel", 1)
        extra = kwargs.pop("extra", None)
        self._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=extra,
            stack_info=stack_info,
            stacklevel=stacklevel + 2,
            **kwargs,
        )

    def _log(
        self,
        level: int,
        msg: object,
        args: tuple[Any, ...] | MutableMapping[str, Any] | None = None,
        exc_info: Any = None,
        extra: dict[str, Any] | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **kwargs: Any,
    ) -> None:
        """Attach merged context and kwargs as ``structured_data``.

        Merge order is LogContext values first, then explicit kwargs, so a
        call can override ambient context for a single message.

        Args:
            level: Numeric log level.
            msg: Log message.
            args: Arguments for % formatting.
            exc_info: Exception info, True, or None.
            extra: Extra attributes for the LogRecord. The
                'structured_data' key is added or overwritten.
            stack_info: Include a stack trace.
            stacklevel: Frames to skip for caller attribution.
            **kwargs: Structured fields (addr, bus, resource, ...).
        """
        structured_data = {**_log_context.get(), **kwargs}

        extra = dict(extra) if extra else {}
        extra["structured_data"] = structured_data

        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=extra,
            stack_info=stack_info,
            stacklevel=stacklevel + 1,
        )


# =============================================================================
# Formatters
# =============================================================================


class StructuredFormatter(logging.Formatter):
    """Human-readable formatter with structured data.

    Format: timestamp - name - level - message | key=value key=value
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        include_structured: bool = True,
    ) -> None:
        """Initialize the formatter.

        Args:
            fmt: Format string. Defaults to
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'.
            datefmt: Date format for %(asctime)s.
            include_structured: Append ' | key=value ...' when the record
                carries structured data.
        """
        if fmt is None:
            fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        super().__init__(fmt, datefmt)
        self.include_structured = include_structured

    def format(self, record: logging.LogRecord) -> str:
        """Format the record and append structured key=value pairs.

        Args:
            record: Record to format. Records without a structured_data
                attribute (e.g. from plain loggers) format normally.

        Returns:
            Formatted line, e.g.
            '... - WARNING - Using default i2c address | i2c_addr=0x5c'.
        """
        base = super().format(record)

        if not self.include_structured:
            return base

        structured = getattr(record, "structured_data", {})
        if not structured:
            return base

        pairs = " ".join(f"{k}={_format_value(v)}" for k, v in structured.items())
        return f"{base} | {pairs}"


class JSONFormatter(logging.Formatter):
    """JSON formatter producing one object per line.

    Keys: timestamp (ISO 8601, UTC), level, logger, message, optional
    exception, plus every structured field at top level.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Serialize the record as a single JSON line.

        Args:
            record: Record to format.

        Returns:
            JSON string without a trailing newline. Values that are not
            JSON-serializable (bytes, enums) fall back to str().
        """
        log_dict: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        log_dict.update(getattr(record, "structured_data", {}))

        if record.exc_info:
            log_dict["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_dict, default=str)


def _format_value(value: Any) -> str:
    """Format one structured value for key=value output.

    Rules:
    - None -> 'null'
    - str -> as-is, quoted if it contains a space
    - bytes -> lowercase hex ('0102ff')
    - dict/list -> JSON
    - anything else -> str()

    Example:
        >>> _format_value(b"\\x01\\xff")
        '01ff'
        >>> _format_value("bus 1")
        '"bus 1"'
    """
    if value is None:
        return "null"
    if isinstance(value, str):
        if " " in value:
            return f'"{value}"'
        return value
    if isinstance(value, bytes | bytearray):
        return bytes(value).hex()
    if isinstance(value, dict | list):
        return json.dumps(value, default=str)
    return str(value)


# =============================================================================
# Context Management
# =============================================================================


@dataclass
class LogContext:
    """Context manager adding key-value pairs to every log call in scope.

    Backed by contextvars, so nested contexts merge and each thread sees
    only its own context.

    Usage:
        with LogContext(resource="barometer"):
            logger.info("Reading")          # resource=barometer
            with LogContext(addr="0x5c"):
                logger.info("Opening")      # resource=barometer addr=0x5c
    """

    _kwargs: dict[str, Any] = field(default_factory=dict, init=False, repr=True)
    _token: contextvars.Token[dict[str, Any]] | None = field(
        default=None, init=False, repr=False
    )

    def __init__(self, **kwargs: Any) -> None:
        """Store the fields to inject while the context is active."""
        self._kwargs = kwargs
        self._token = None

    def __enter__(self) -> LogContext:
        """Merge this context's fields over the current ones."""
        current = _log_context.get()
        self._token = _log_context.set({**current, **self._kwargs})
        return self

    def __exit__(self, *args: Any) -> None:
        """Restore the context that was active before entering."""
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


# =============================================================================
# Configuration
# =============================================================================

_configured = False
_config_lock = threading.Lock()


def configure_logging(
    level: int | str = logging.INFO,
    json_format: bool = False,
    stream: Any = None,
    include_structured: bool = True,
    force: bool = False,
) -> None:
    """Configure the ``i2c_sensors`` logger hierarchy.

    Idempotent unless ``force`` is set. Safe to call from several threads.

    Args:
        level: Minimum level, as int or name ('DEBUG', 'INFO', ...).
        json_format: Use JSONFormatter instead of StructuredFormatter.
        stream: Output stream. Defaults to sys.stderr.
        include_structured: Append structured data in text mode.
        force: Drop existing handlers and reconfigure.

    Example:
        >>> import io
        >>> buffer = io.StringIO()
        >>> configure_logging(level="DEBUG", stream=buffer, force=True)
    """
    with _config_lock:
        if force:
            _reset_logging_impl()
        _configure_logging_impl(level, json_format, stream, include_structured)


def _configure_logging_impl(
    level: int | str = logging.INFO,
    json_format: bool = False,
    stream: Any = None,
    include_structured: bool = True,
) -> None:
    """Internal implementation of configure_logging (lock held)."""
    global _configured

    if _configured:
        return

    logging.setLoggerClass(StructuredLogger)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)

    formatter: logging.Formatter
    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = StructuredFormatter(include_structured=include_structured)
    handler.setFormatter(formatter)

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level.upper() if isinstance(level, str) else level)
    root.addHandler(handler)
    root.propagate = False

    _configured = True


def _reset_logging_impl() -> None:
    """Internal implementation of reset_logging (lock held)."""
    global _configured

    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    _configured = False


def reset_logging() -> None:
    """Remove package handlers and mark logging unconfigured (for tests)."""
    with _config_lock:
        _reset_logging_impl()


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger, configuring defaults on first use.

    Args:
        name: Logger name, normally ``__name__``. Names outside the
            ``i2c_sensors`` hierarchy still work but will not use the
            package handler.

    Returns:
        StructuredLogger accepting keyword fields:
        ``logger.info("Sensor ready", addr="0x5c")``.
    """
    if not _configured:
        with _config_lock:
            if not _configured:  # pragma: no branch
                _configure_logging_impl()

    logger = logging.getLogger(name)

    # setLoggerClass() guarantees the concrete type for loggers created
    # after configuration.
    return cast(StructuredLogger, logger)
