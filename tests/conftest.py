"""Pytest configuration and fixtures for i2c-sensors tests.

Provides fixtures shared across test modules. Hardware is never required:
drivers are exercised against recording stubs or the digital twin board,
and smbus2 is replaced with mocks in the Linux provider tests.
"""

from collections.abc import Iterator

import pytest

from i2c_sensors.observability import reset_logging


@pytest.fixture(autouse=True)
def _reset_package_logging() -> Iterator[None]:
    """Restore default package logging after every test.

    Business context:
    CLI tests call configure_logging(force=True) with their own streams.
    Without a reset, later tests would write to a closed StringIO or
    inherit a JSON formatter they did not ask for.

    Yields:
        None. Cleanup runs after the test.
    """
    yield
    reset_logging()
