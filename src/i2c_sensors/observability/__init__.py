"""Observability module for i2c-sensors.

Provides structured logging for drivers, bus providers and host glue.

Example:
    from i2c_sensors.observability import get_logger, LogContext

    logger = get_logger(__name__)

    logger.info("Board created")

    with LogContext(resource="barometer"):
        logger.debug("Opening handle", addr="0x5c")
"""

from i2c_sensors.observability.logging import (
    JSONFormatter,
    LogContext,
    StructuredFormatter,
    StructuredLogger,
    configure_logging,
    get_logger,
    reset_logging,
)

__all__ = [
    "JSONFormatter",
    "LogContext",
    "StructuredFormatter",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
    "reset_logging",
]
