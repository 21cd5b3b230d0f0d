"""Digital twin I2C board for development without hardware.

Simulates a board with one or more I2C buses and an LPS25H-style register
file per device address. Every transaction is recorded so callers can
inspect exactly what a driver did, and faults can be injected per bus to
exercise error paths.

Register model:
- The first byte of a write sets the register pointer (sub-address).
- Remaining bytes of the write are stored starting at the pointer.
- Reads return bytes starting at the pointer.
- Bit 7 of the sub-address enables pointer auto-increment, as on the
  LPS25H. Without it, every byte comes from the same register.

Example:
    from i2c_sensors.drivers.twin import DigitalTwinBoard

    board = DigitalTwinBoard("local", bus_names=["bus1"])
    bus = board.i2c_by_name("bus1")
    handle = bus.open_handle(0x5c)
    handle.write(bytes([0x0F]))
    assert handle.read(1) == bytes([0xBD])  # WHO_AM_I
    handle.close()

    bus.fail_open = True  # next open_handle() raises OSError
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass, field

from i2c_sensors.observability import get_logger

logger = get_logger(__name__)

__all__ = [
    "Transaction",
    "DigitalTwinI2CHandle",
    "DigitalTwinI2CBus",
    "DigitalTwinBoard",
    "LPS25H_POWER_ON_REGISTERS",
]

_AUTO_INCREMENT = 0x80
_REGISTER_MASK = 0x7F

#: Register contents after power-on (LPS25H datasheet, register map).
LPS25H_POWER_ON_REGISTERS: dict[int, int] = {
    0x08: 0x00,  # REF_P_XL
    0x09: 0x00,  # REF_P_L
    0x0A: 0x00,  # REF_P_H
    0x0F: 0xBD,  # WHO_AM_I
    0x10: 0x0F,  # RES_CONF
    0x20: 0x00,  # CTRL_REG1
    0x21: 0x00,  # CTRL_REG2
    0x22: 0x00,  # CTRL_REG3
    0x23: 0x00,  # CTRL_REG4
}


@dataclass
class Transaction:
    """One recorded bus operation.

    Attributes:
        op: "open", "write", "read" or "close".
        address: Device address the handle was opened for.
        data: Bytes written or returned by a read; empty otherwise.
    """

    op: str
    address: int
    data: bytes = b""


@dataclass
class _Device:
    registers: dict[int, int] = field(default_factory=dict)
    pointer: int = 0
    auto_increment: bool = False

    def read(self, count: int) -> bytes:
        out = bytearray()
        pointer = self.pointer
        for _ in range(count):
            out.append(self.registers.get(pointer, 0x00))
            if self.auto_increment:
                pointer = (pointer + 1) & _REGISTER_MASK
        self.pointer = pointer
        return bytes(out)

    def write(self, data: bytes) -> None:
        sub_address = data[0]
        self.pointer = sub_address & _REGISTER_MASK
        self.auto_increment = bool(sub_address & _AUTO_INCREMENT)
        for value in data[1:]:
            self.registers[self.pointer] = value
            if self.auto_increment:
                self.pointer = (self.pointer + 1) & _REGISTER_MASK


class DigitalTwinI2CHandle:
    """Simulated handle. Delegates to its bus so state is shared."""

    def __init__(self, bus: DigitalTwinI2CBus, address: int) -> None:
        self._bus = bus
        self._address = address
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    def write(self, data: bytes) -> None:
        """Write to the simulated device. See module docstring."""
        self._bus._write(self._address, bytes(data), closed=self._closed)

    def read(self, count: int) -> bytes:
        """Read from the simulated device. See module docstring."""
        return self._bus._read(self._address, count, closed=self._closed)

    def close(self) -> None:
        """Release the simulated bus."""
        if not self._closed:
            self._closed = True
            self._bus._record(Transaction("close", self._address))


class DigitalTwinI2CBus:
    """Simulated I2C bus with per-address register files.

    Devices answer only at addresses added via add_device(); opening a
    handle for any other address raises OSError, like a NAK on real
    hardware.

    Fault injection attributes (all reset manually by the caller):
        fail_open: open_handle() raises OSError.
        fail_write: write() raises OSError.
        fail_read: read() raises OSError.
        short_read: Number of bytes to drop from every read (0 = none).

    Thread Safety:
        Register state and the transaction log are guarded by an internal
        lock. Ordering between concurrent callers is whatever the callers'
        own locking produces.
    """

    def __init__(self, name: str) -> None:
        """Create an empty bus named ``name``."""
        self.name = name
        self._devices: dict[int, _Device] = {}
        self._transactions: list[Transaction] = []
        self._lock = threading.Lock()

        self.fail_open = False
        self.fail_write = False
        self.fail_read = False
        self.short_read = 0

    def add_device(
        self,
        address: int,
        registers: dict[int, int] | None = None,
    ) -> None:
        """Attach a simulated device.

        Args:
            address: 7-bit device address.
            registers: Initial register contents. Defaults to the LPS25H
                power-on values.
        """
        initial = LPS25H_POWER_ON_REGISTERS if registers is None else registers
        with self._lock:
            self._devices[address] = _Device(registers=dict(initial))

    def set_registers(self, address: int, values: dict[int, int]) -> None:
        """Overwrite registers of an attached device (e.g. output registers)."""
        with self._lock:
            self._devices[address].registers.update(values)

    def open_handle(self, address: int) -> DigitalTwinI2CHandle:
        """Open a simulated handle.

        Raises:
            OSError: If fail_open is set or no device is attached at
                ``address``.
        """
        if self.fail_open:
            raise OSError(f"simulated open failure on {self.name}")
        if address not in self._devices:
            raise OSError(f"no device at 0x{address:02x} on {self.name}")
        self._record(Transaction("open", address))
        return DigitalTwinI2CHandle(self, address)

    @property
    def transactions(self) -> list[Transaction]:
        """Copy of the transaction log, oldest first."""
        with self._lock:
            return list(self._transactions)

    def ops(self) -> list[str]:
        """Operation names from the transaction log, oldest first."""
        return [t.op for t in self.transactions]

    def clear_transactions(self) -> None:
        """Empty the transaction log."""
        with self._lock:
            self._transactions.clear()

    def _record(self, transaction: Transaction) -> None:
        with self._lock:
            self._transactions.append(transaction)

    def _write(self, address: int, data: bytes, closed: bool) -> None:
        if closed:
            raise OSError("write on closed handle")
        if self.fail_write:
            raise OSError(f"simulated write failure at 0x{address:02x}")
        if not data:
            raise OSError("empty write")
        with self._lock:
            self._devices[address].write(data)
            self._transactions.append(Transaction("write", address, data))

    def _read(self, address: int, count: int, closed: bool) -> bytes:
        if closed:
            raise OSError("read on closed handle")
        if self.fail_read:
            raise OSError(f"simulated read failure at 0x{address:02x}")
        with self._lock:
            data = self._devices[address].read(count)
            if self.short_read:
                data = data[: max(0, count - self.short_read)]
            self._transactions.append(Transaction("read", address, data))
        return data


class DigitalTwinBoard:
    """Simulated local board exposing named DigitalTwinI2CBus instances.

    Attributes:
        name: Board dependency name.
    """

    def __init__(
        self,
        name: str,
        bus_names: Iterable[str] = (),
        devices: Iterable[int] = (),
    ) -> None:
        """Create the board and its buses.

        Args:
            name: Name under which the host resolves this board.
            bus_names: Names of the buses to create.
            devices: Addresses to attach an LPS25H twin to on every bus.
        """
        self.name = name
        self._buses: dict[str, DigitalTwinI2CBus] = {}
        for bus_name in bus_names:
            bus = DigitalTwinI2CBus(bus_name)
            for address in devices:
                bus.add_device(address)
            self._buses[bus_name] = bus
        logger.debug(
            "Digital twin board created", board=name, buses=sorted(self._buses)
        )

    def i2c_by_name(self, name: str) -> DigitalTwinI2CBus | None:
        """Return the named bus, or None if the board does not have it."""
        return self._buses.get(name)

    def bus_names(self) -> list[str]:
        """List bus names."""
        return sorted(self._buses)
