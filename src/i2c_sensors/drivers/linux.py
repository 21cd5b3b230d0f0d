"""Linux i2c-dev bus provider.

Implements the I2C protocols over ``/dev/i2c-N`` using smbus2. Each handle
opens its own SMBus file descriptor and closes it on close(), so no file
descriptor outlives a single transaction.

Raw transfers use ``i2c_rdwr`` with ``i2c_msg`` rather than the SMBus
block commands, because the sensor protocol writes a bare register byte and
then reads a block from the device's current pointer.

Example:
    from i2c_sensors.drivers.linux import LinuxBoard

    board = LinuxBoard("local", buses={"bus1": 1})
    bus = board.i2c_by_name("bus1")
    handle = bus.open_handle(0x5c)
    try:
        handle.write(b"\\x0f")
        who_am_i = handle.read(1)
    finally:
        handle.close()
"""

from __future__ import annotations

from collections.abc import Mapping

from smbus2 import SMBus, i2c_msg

from i2c_sensors.observability import get_logger

logger = get_logger(__name__)

__all__ = [
    "LinuxI2CHandle",
    "LinuxI2CBus",
    "LinuxBoard",
]


class LinuxI2CHandle:
    """Open SMBus connection addressed to one device."""

    def __init__(self, bus_number: int, address: int) -> None:
        """Open ``/dev/i2c-<bus_number>``.

        Args:
            bus_number: Linux adapter number.
            address: 7-bit device address used for every transfer.

        Raises:
            OSError: If the device node cannot be opened
                (missing adapter, permissions).
        """
        self._bus_number = bus_number
        self._address = address
        self._smbus: SMBus | None = SMBus(bus_number)

    def _require_open(self) -> SMBus:
        if self._smbus is None:
            raise OSError(f"i2c handle for 0x{self._address:02x} is closed")
        return self._smbus

    def write(self, data: bytes) -> None:
        """Write raw bytes in a single I2C write message."""
        smbus = self._require_open()
        smbus.i2c_rdwr(i2c_msg.write(self._address, bytes(data)))

    def read(self, count: int) -> bytes:
        """Read ``count`` bytes in a single I2C read message."""
        smbus = self._require_open()
        msg = i2c_msg.read(self._address, count)
        smbus.i2c_rdwr(msg)
        return bytes(msg)

    def close(self) -> None:
        """Close the file descriptor. Safe to call more than once."""
        if self._smbus is not None:
            smbus, self._smbus = self._smbus, None
            smbus.close()


class LinuxI2CBus:
    """One Linux i2c adapter, shared by every device on it.

    Attributes:
        name: Configured bus name (e.g. "bus1").
        bus_number: Adapter number N in ``/dev/i2c-N``.
    """

    def __init__(self, name: str, bus_number: int) -> None:
        """Record the adapter; nothing is opened until open_handle()."""
        self.name = name
        self.bus_number = bus_number

    def open_handle(self, address: int) -> LinuxI2CHandle:
        """Open a handle on this adapter for ``address``."""
        logger.debug(
            "Opening i2c handle", bus=self.bus_number, addr=f"0x{address:02x}"
        )
        return LinuxI2CHandle(self.bus_number, address)

    def __repr__(self) -> str:
        return f"LinuxI2CBus(name={self.name!r}, bus_number={self.bus_number})"


class LinuxBoard:
    """Board backed by the host's Linux i2c adapters.

    Bus names are mapped to adapter numbers by configuration. A purely
    numeric name with no explicit mapping ("1") is taken as the adapter
    number itself, matching how Raspberry Pi boards name their buses.

    Attributes:
        name: Board dependency name.
    """

    def __init__(self, name: str, buses: Mapping[str, int] | None = None) -> None:
        """Initialize with the bus name to adapter number mapping.

        Args:
            name: Name under which the host resolves this board.
            buses: Mapping such as {"bus1": 1}. Defaults to empty.
        """
        self.name = name
        self._buses = {
            bus_name: LinuxI2CBus(bus_name, int(number))
            for bus_name, number in (buses or {}).items()
        }

    def i2c_by_name(self, name: str) -> LinuxI2CBus | None:
        """Return the named bus, or None if the board does not know it."""
        bus = self._buses.get(name)
        if bus is None and name.isdigit():
            bus = LinuxI2CBus(name, int(name))
            self._buses[name] = bus
        return bus

    def bus_names(self) -> list[str]:
        """List configured bus names."""
        return sorted(self._buses)
