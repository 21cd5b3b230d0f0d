"""Unit tests for the Linux i2c-dev bus provider.

smbus2's SMBus and i2c_msg are replaced with mocks so the tests run on
machines without /dev/i2c-N.

Example:
    Run all Linux provider tests::

        pdm run pytest tests/drivers/test_linux_bus.py -v
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from i2c_sensors.drivers import linux
from i2c_sensors.drivers.i2c import I2C, I2CHandle, LocalBoard
from i2c_sensors.drivers.linux import LinuxBoard, LinuxI2CBus, LinuxI2CHandle

# =============================================================================
# Mock Classes for Testing
# =============================================================================


class MockReadMsg:
    """Stand-in for an i2c_msg read message; iterates over ``payload``."""

    def __init__(self, address: int, length: int, payload: bytes) -> None:
        self.addr = address
        self.len = length
        self.payload = payload

    def __iter__(self):
        return iter(self.payload)


@pytest.fixture
def smbus(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Patch SMBus in the linux module and return the class mock.

    The instance every SMBus(n) call returns is ``smbus.return_value``.
    """
    smbus_cls = MagicMock(name="SMBus")
    monkeypatch.setattr(linux, "SMBus", smbus_cls)
    return smbus_cls


@pytest.fixture
def msg(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Patch i2c_msg so reads return bytes 0x01..0x08."""
    i2c_msg = MagicMock(name="i2c_msg")
    i2c_msg.read.side_effect = lambda addr, length: MockReadMsg(
        addr, length, bytes(range(1, length + 1))
    )
    monkeypatch.setattr(linux, "i2c_msg", i2c_msg)
    return i2c_msg


# =============================================================================
# Handle Tests
# =============================================================================


class TestLinuxI2CHandle:
    """Test suite for LinuxI2CHandle."""

    def test_opens_adapter(self, smbus: MagicMock, msg: MagicMock) -> None:
        """Verifies the handle opens /dev/i2c-<bus_number>."""
        LinuxI2CHandle(1, 0x5C)

        smbus.assert_called_once_with(1)

    def test_open_failure_propagates(self, smbus: MagicMock) -> None:
        """Verifies a missing adapter surfaces as OSError.

        Business context:
        The sensor driver converts OSError from open_handle() into
        BusIOError; the provider must not swallow or rewrap it.
        """
        smbus.side_effect = FileNotFoundError("/dev/i2c-9")

        with pytest.raises(OSError):
            LinuxI2CHandle(9, 0x5C)

    def test_write_uses_single_write_message(
        self, smbus: MagicMock, msg: MagicMock
    ) -> None:
        """Verifies write() sends one raw write message to the address."""
        handle = LinuxI2CHandle(1, 0x5C)

        handle.write(bytes([0x5C]))

        msg.write.assert_called_once_with(0x5C, bytes([0x5C]))
        smbus.return_value.i2c_rdwr.assert_called_once_with(msg.write.return_value)

    def test_read_returns_bytes(self, smbus: MagicMock, msg: MagicMock) -> None:
        """Verifies read() returns the message payload as bytes."""
        handle = LinuxI2CHandle(1, 0x5C)

        data = handle.read(8)

        assert data == bytes(range(1, 9))
        assert isinstance(data, bytes)
        msg.read.assert_called_once_with(0x5C, 8)

    def test_transfer_error_propagates(self, smbus: MagicMock, msg: MagicMock) -> None:
        """Verifies a NAK from the kernel surfaces as OSError."""
        smbus.return_value.i2c_rdwr.side_effect = OSError(121, "Remote I/O error")
        handle = LinuxI2CHandle(1, 0x5C)

        with pytest.raises(OSError):
            handle.read(8)

    def test_close_is_idempotent(self, smbus: MagicMock, msg: MagicMock) -> None:
        """Verifies the SMBus is closed exactly once."""
        handle = LinuxI2CHandle(1, 0x5C)

        handle.close()
        handle.close()

        smbus.return_value.close.assert_called_once()

    def test_io_after_close_raises(self, smbus: MagicMock, msg: MagicMock) -> None:
        """Verifies I/O on a closed handle raises OSError without a transfer."""
        handle = LinuxI2CHandle(1, 0x5C)
        handle.close()

        with pytest.raises(OSError, match="closed"):
            handle.read(1)
        smbus.return_value.i2c_rdwr.assert_not_called()


# =============================================================================
# Bus and Board Tests
# =============================================================================


class TestLinuxI2CBus:
    """Test suite for LinuxI2CBus."""

    def test_nothing_opened_until_handle(self, smbus: MagicMock) -> None:
        """Verifies constructing the bus does not touch the adapter."""
        LinuxI2CBus("bus1", 1)

        smbus.assert_not_called()

    def test_open_handle(self, smbus: MagicMock, msg: MagicMock) -> None:
        """Verifies open_handle() returns a handle satisfying I2CHandle."""
        bus = LinuxI2CBus("bus1", 1)

        handle = bus.open_handle(0x5C)

        assert isinstance(bus, I2C)
        assert isinstance(handle, I2CHandle)
        smbus.assert_called_once_with(1)

    def test_repr(self) -> None:
        """Verifies repr shows name and adapter number."""
        assert repr(LinuxI2CBus("bus1", 1)) == "LinuxI2CBus(name='bus1', bus_number=1)"


class TestLinuxBoard:
    """Test suite for LinuxBoard."""

    def test_is_local_board(self) -> None:
        """Verifies LinuxBoard satisfies the LocalBoard protocol."""
        assert isinstance(LinuxBoard("local"), LocalBoard)

    def test_named_bus(self) -> None:
        """Verifies configured names map to adapter numbers."""
        board = LinuxBoard("local", buses={"bus1": 1})

        bus = board.i2c_by_name("bus1")

        assert bus is not None
        assert bus.bus_number == 1

    def test_numeric_name_is_adapter_number(self) -> None:
        """Verifies an unmapped numeric name selects that adapter."""
        board = LinuxBoard("local")

        bus = board.i2c_by_name("3")

        assert bus is not None
        assert bus.bus_number == 3
        assert board.bus_names() == ["3"]

    def test_unknown_name_is_none(self) -> None:
        """Verifies an unmapped non-numeric name is not found."""
        assert LinuxBoard("local", buses={"bus1": 1}).i2c_by_name("bus2") is None
