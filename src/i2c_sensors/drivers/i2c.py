"""I2C bus protocols consumed by sensor drivers.

Sensor drivers never talk to ``/dev/i2c-N`` directly. They receive a board
from the host, ask it for a named bus, and open a short-lived handle on that
bus for each transaction. These protocols describe that contract so real
hardware (drivers.linux), the digital twin (drivers.twin) and test stubs are
interchangeable.

Protocols:
    I2CHandle: Exclusive, addressed access to the bus for one transaction
    I2C: A bus that hands out handles for device addresses
    Board: Anything the host can resolve as a named dependency
    LocalBoard: A board that owns addressed local buses

Contract:
    - A handle must be closed on every exit path, success or failure, so
      other devices on the shared bus can be addressed.
    - Handles are never held across driver calls.
    - Implementations signal I/O failures with OSError (or a subclass), as
      the Linux i2c-dev interface does. Drivers wrap these into
      i2c_sensors.errors.BusIOError.

Example:
    class StubHandle:
        def write(self, data: bytes) -> None: ...
        def read(self, count: int) -> bytes:
            return bytes(range(1, count + 1))
        def close(self) -> None: ...

    class StubBus:
        def open_handle(self, address: int) -> StubHandle:
            return StubHandle()

    class StubBoard:
        name = "local"
        def i2c_by_name(self, name: str) -> StubBus | None:
            return StubBus() if name == "bus1" else None

Testing:
    See tests/sensors/test_lps25h.py for recording stubs that verify
    transaction ordering and close-on-failure.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

__all__ = [
    "I2CHandle",
    "I2C",
    "Board",
    "LocalBoard",
]


@runtime_checkable
class I2CHandle(Protocol):  # pragma: no cover
    """Scoped lease on the bus for a single device address.

    Obtained from I2C.open_handle(). Valid until close() is called.
    """

    def write(self, data: bytes) -> None:
        """Write a raw byte sequence to the addressed device.

        The first byte is usually a register sub-address; any following
        bytes are written to consecutive registers.

        Args:
            data: Bytes to transmit. Must not be empty.

        Raises:
            OSError: If the device NAKs or the adapter reports an error.
        """
        ...

    def read(self, count: int) -> bytes:
        """Read a fixed-length block from the addressed device.

        Reads from the device's current register pointer, which is
        normally set by a preceding write().

        Args:
            count: Number of bytes to request.

        Returns:
            The bytes returned by the device. Callers must check the
            length; a misbehaving device or adapter may return fewer.

        Raises:
            OSError: If the transfer fails.
        """
        ...

    def close(self) -> None:
        """Release the bus for other addressed devices.

        Raises:
            OSError: If releasing the underlying adapter fails.
        """
        ...


@runtime_checkable
class I2C(Protocol):  # pragma: no cover
    """A shared two-wire bus that multiplexes addressed devices."""

    def open_handle(self, address: int) -> I2CHandle:
        """Open a handle addressed to one device.

        Args:
            address: 7-bit device address (e.g. 0x5c).

        Returns:
            An open I2CHandle. The caller owns it and must close it.

        Raises:
            OSError: If the adapter cannot be opened or the address
                cannot be selected.
        """
        ...


@runtime_checkable
class Board(Protocol):  # pragma: no cover
    """A board the host can resolve by name.

    Attributes:
        name: Dependency name the board was registered under.
    """

    name: str


@runtime_checkable
class LocalBoard(Board, Protocol):  # pragma: no cover
    """A board with addressed local buses attached to it."""

    def i2c_by_name(self, name: str) -> I2C | None:
        """Look up an I2C bus by its configured name.

        Args:
            name: Bus name from the component configuration
                (e.g. "bus1").

        Returns:
            The bus, or None if the board has no bus by that name.
        """
        ...
