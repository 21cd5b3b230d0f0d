"""STMicroelectronics LPS25H barometric pressure/temperature sensor driver.

Talks to the LPS25H over an I2C bus obtained from a local board (see
i2c_sensors.drivers.i2c). Every operation is one short bus transaction:
open a handle, write, read, close. The handle is never kept between calls.

Hardware: LPS25H (Raspberry Pi Sense HAT and breakouts)
- Default 7-bit address 0x5c (SA0 low), 0x5d with SA0 high
- Datasheet: https://www.st.com/resource/en/datasheet/lps25h.pdf
- Sense HAT pinout: https://pinout.xyz/pinout/sense_hat

Register Protocol:
    Readings write one trigger byte and read back an 8-byte block that is
    returned verbatim under the "id" key. Decoding pressure and
    temperature (PRESS_OUT_*, TEMP_OUT_*, little-endian, with auto-increment
    sub-addressing) is not implemented yet; the register constants below
    are kept for that work.

Configuration:
    {
        "board": "local",      # required, board dependency name
        "i2c_bus": "bus1",     # required, bus name on that board
        "i2c_addr": 0          # optional, 0 = default address 0x5c
    }

Example:
    from i2c_sensors.drivers import DigitalTwinBoard
    from i2c_sensors.sensors.lps25h import LPS25H, Config

    board = DigitalTwinBoard("local", bus_names=["bus1"], devices=[0x5c])
    config = Config.from_attributes({"board": "local", "i2c_bus": "bus1"})
    config.validate("components.barometer")

    sensor = LPS25H.construct({"local": board}, config)
    print(sensor.readings()["id"].hex())
    sensor.close()
"""

from __future__ import annotations

import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from i2c_sensors.drivers.i2c import I2C, I2CHandle, LocalBoard
from i2c_sensors.errors import (
    BusIOError,
    BusNotFoundError,
    DependencyNotFoundError,
    InitializationError,
    InvalidFieldError,
    MissingFieldError,
    ResourceClosedError,
    ShortReadError,
    UnsupportedBoardError,
)
from i2c_sensors.observability import StructuredLogger, get_logger
from i2c_sensors.resource import (
    SENSOR_API,
    AlwaysRebuild,
    Dependencies,
    LifecycleState,
    Model,
    Registration,
    Registry,
)

logger = get_logger(__name__)

__all__ = [
    "MODEL",
    "DEFAULT_I2C_ADDR",
    "READ_LENGTH",
    "Config",
    "LPS25H",
    "register",
]

MODEL = Model("viamlabs", "i2c", "lps25h")

# =============================================================================
# Constants
# =============================================================================

DEFAULT_I2C_ADDR = 0x5C
MAX_I2C_ADDR = 0x7F

#: Bytes requested from the device on every reading.
READ_LENGTH = 8

# TODO: confirm the LPS25H soft-reset register (CTRL_REG2 SWRESET is a
# candidate); reset() writes nothing until then.
RESET_REG = 0xE0
MEASUREMENTS_REG = 0x5C

# Register map (datasheet section 7), not yet used by readings().
WHO_AM_I = 0x0F
CTRL_REG1 = 0x20
CTRL_REG2 = 0x21
PRESS_OUT_XL = 0x28
PRESS_OUT_L = 0x29
PRESS_OUT_H = 0x2A
TEMP_OUT_L = 0x2B
TEMP_OUT_H = 0x2C


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True)
class Config:
    """Validated LPS25H component attributes.

    Attributes:
        board: Name of the board dependency that owns the bus.
        i2c_bus: Name of the bus on that board.
        i2c_addr: 7-bit device address; 0 means DEFAULT_I2C_ADDR.
    """

    board: str = ""
    i2c_bus: str = ""
    i2c_addr: int = 0

    @classmethod
    def from_attributes(cls, attributes: Mapping[str, Any], path: str = "") -> Config:
        """Parse raw attributes from the host configuration.

        Only types and ranges are checked here. Required fields are
        checked by validate() so that both steps report the config path.

        Args:
            attributes: Mapping with ``board``, ``i2c_bus`` and optional
                ``i2c_addr``. Unknown keys are ignored.
            path: Config path used in error messages.

        Returns:
            Parsed Config. Missing strings become "" and a missing or
            null address becomes 0.

        Raises:
            InvalidFieldError: If ``attributes`` is not a mapping, a name
                is not a string, or the address is not an integer in
                0..0x7F.

        Example:
            >>> Config.from_attributes({"board": "local", "i2c_bus": "bus1"})
            Config(board='local', i2c_bus='bus1', i2c_addr=0)
        """
        if not isinstance(attributes, Mapping):
            raise InvalidFieldError(path, "attributes", "expected a mapping")

        board = attributes.get("board")
        if board is None:
            board = ""
        if not isinstance(board, str):
            raise InvalidFieldError(path, "board", "expected a string")

        i2c_bus = attributes.get("i2c_bus")
        if i2c_bus is None:
            i2c_bus = ""
        if not isinstance(i2c_bus, str):
            raise InvalidFieldError(path, "i2c_bus", "expected a string")

        i2c_addr = attributes.get("i2c_addr")
        if i2c_addr is None:
            i2c_addr = 0
        if isinstance(i2c_addr, bool) or not isinstance(i2c_addr, int):
            raise InvalidFieldError(path, "i2c_addr", "expected an integer")
        if not 0 <= i2c_addr <= MAX_I2C_ADDR:
            raise InvalidFieldError(
                path, "i2c_addr", f"must be between 0 and 0x{MAX_I2C_ADDR:02x}"
            )

        return cls(board=board, i2c_bus=i2c_bus, i2c_addr=i2c_addr)

    def validate(self, path: str) -> list[str]:
        """Check required fields and return dependency names.

        Pure function of the config: no bus or board is touched.

        Args:
            path: Config path of the component, used in error messages.

        Returns:
            ``[self.board]``. The bus is looked up through the board, so
            it is not a dependency of its own.

        Raises:
            MissingFieldError: "board" if the board name is empty, else
                "i2c bus" if the bus name is empty.
        """
        if not self.board:
            raise MissingFieldError(path, "board")
        if not self.i2c_bus:
            raise MissingFieldError(path, "i2c bus")
        return [self.board]


# =============================================================================
# Driver
# =============================================================================


class LPS25H(AlwaysRebuild):
    """LPS25H sensor component.

    Construct with LPS25H.construct(), which resolves the bus and resets
    the device before returning. A constructed driver is READY; close()
    moves it to CLOSED. Read failures never change the state.

    Thread Safety:
        One instance lock serializes readings(), reset(), reconfigure()
        and close(), so at most one bus transaction is in flight per
        driver. Other devices on the same bus are not affected between
        transactions.
    """

    def __init__(
        self,
        name: str,
        bus: I2C,
        address: int,
        log: StructuredLogger | None = None,
    ) -> None:
        """Create an unreset driver around an already resolved bus.

        Most callers want construct(). This constructor performs no I/O
        and leaves the driver UNINITIALIZED.

        Args:
            name: Component name assigned by the host.
            bus: Bus the device is attached to. Not owned by the driver.
            address: 7-bit device address.
            log: Logger for this instance. Defaults to the module logger.
        """
        self.name = name
        self._bus = bus
        self._address = address
        self._logger = log or logger

        self._lock = threading.Lock()
        self._state = LifecycleState.UNINITIALIZED

        self.calibration: dict[str, int] = {}
        # None until a temperature has actually been read.
        self.last_temperature: float | None = None

    @classmethod
    def construct(
        cls,
        dependencies: Dependencies,
        config: Config,
        log: StructuredLogger | None = None,
        name: str = MODEL.name,
    ) -> LPS25H:
        """Resolve dependencies, reset the device and return a READY driver.

        All configuration and dependency errors are raised before the bus
        is touched, so they can be told apart from communication errors.

        Args:
            dependencies: Resolved dependencies keyed by name; must
                contain ``config.board``.
            config: Validated configuration.
            log: Logger for the instance. Defaults to the module logger.
            name: Component name assigned by the host.

        Returns:
            READY driver.

        Raises:
            DependencyNotFoundError: Board missing from dependencies.
            UnsupportedBoardError: Board has no addressed local buses.
            BusNotFoundError: Board does not know ``config.i2c_bus``.
            InitializationError: The reset transaction failed. The
                BusIOError is chained as __cause__.

        Example:
            >>> sensor = LPS25H.construct({"local": board}, config)
            >>> sensor.address
            92
        """
        log = log or logger

        board = dependencies.get(config.board)
        if board is None:
            raise DependencyNotFoundError(config.board)
        if not isinstance(board, LocalBoard):
            raise UnsupportedBoardError(config.board)

        bus = board.i2c_by_name(config.i2c_bus)
        if bus is None:
            raise BusNotFoundError(config.board, config.i2c_bus)

        address = config.i2c_addr
        if address == 0:
            address = DEFAULT_I2C_ADDR
            log.warning("Using default i2c address", i2c_addr=f"0x{address:02x}")

        sensor = cls(name, bus, address, log)
        try:
            sensor.reset()
        except BusIOError as e:
            raise InitializationError(f"lps25h init: reset failed: {e}") from e

        sensor._state = LifecycleState.READY
        log.info(
            "LPS25H ready",
            resource=name,
            board=config.board,
            bus=config.i2c_bus,
            addr=f"0x{address:02x}",
        )
        return sensor

    @property
    def address(self) -> int:
        """Resolved 7-bit device address."""
        return self._address

    @property
    def state(self) -> LifecycleState:
        """Current lifecycle state."""
        return self._state

    @contextmanager
    def _transaction(self) -> Iterator[I2CHandle]:
        """Open a handle for one transaction and always close it.

        A close failure is raised as BusIOError only when the body
        succeeded; otherwise it is logged and the body's exception wins.

        Raises:
            BusIOError: If the handle cannot be opened or closed.
        """
        try:
            handle = self._bus.open_handle(self._address)
        except OSError as e:
            self._logger.error(
                "Can't open lps25h i2c handle", addr=f"0x{self._address:02x}", error=str(e)
            )
            raise BusIOError(f"failed to open i2c handle: {e}", self._address) from e

        try:
            yield handle
        except BaseException:
            try:
                handle.close()
            except OSError as close_error:
                self._logger.warning(
                    "Failed to close i2c handle after error", error=str(close_error)
                )
            raise

        try:
            handle.close()
        except OSError as e:
            raise BusIOError(f"failed to close i2c handle: {e}", self._address) from e

    def reset(self) -> None:
        """Soft-reset the device.

        Opens and closes a handle even though no reset register is written
        yet, so bus acquisition failures are still reported.

        Raises:
            ResourceClosedError: If the driver has been closed.
            BusIOError: If the handle cannot be opened or closed.
        """
        with self._lock:
            self._require_open()
            with self._transaction():
                # Placeholder until RESET_REG is confirmed for this part.
                self._logger.debug("Reset sequence", addr=f"0x{self._address:02x}")

    def readings(self, extra: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Take one reading from the device.

        Writes the measurement trigger byte, then reads READ_LENGTH bytes.
        A failed trigger write is logged at debug level and ignored; the
        read is still attempted against whatever the device has ready.

        Args:
            extra: Host-supplied options. Currently unused.

        Returns:
            ``{"id": <8 raw bytes>}``.

        Raises:
            ResourceClosedError: If the driver has been closed.
            BusIOError: If the handle cannot be opened, read or closed.
            ShortReadError: If the device returns other than 8 bytes.
        """
        with self._lock:
            self._require_open()
            with self._transaction() as handle:
                try:
                    handle.write(bytes([MEASUREMENTS_REG]))
                except OSError as e:
                    self._logger.debug("Failed to request measurement", error=str(e))

                try:
                    buffer = bytes(handle.read(READ_LENGTH))
                except OSError as e:
                    raise BusIOError(f"i2c read failed: {e}", self._address) from e

                if len(buffer) != READ_LENGTH:
                    raise ShortReadError(READ_LENGTH, len(buffer))

        return {"id": buffer}

    def reconfigure(self, dependencies: Dependencies, config: Config) -> None:
        """Accept a new configuration without changing anything.

        LPS25H is AlwaysRebuild: hosts close and reconstruct it when its
        configuration changes. This only synchronizes with in-flight
        operations.

        Raises:
            ResourceClosedError: If the driver has been closed.
        """
        with self._lock:
            self._require_open()

    def close(self) -> None:
        """Mark the driver CLOSED. Idempotent.

        No hardware resource is held between transactions, so nothing is
        released beyond waiting for any in-flight operation.
        """
        with self._lock:
            if self._state is LifecycleState.CLOSED:
                return
            self._state = LifecycleState.CLOSED
        self._logger.debug("LPS25H closed", resource=self.name)

    def _require_open(self) -> None:
        if self._state is LifecycleState.CLOSED:
            raise ResourceClosedError(f"sensor '{self.name}' is closed")

    def __repr__(self) -> str:
        return (
            f"LPS25H(name={self.name!r}, addr=0x{self._address:02x}, "
            f"state={self._state.value})"
        )


# =============================================================================
# Registration
# =============================================================================


def register(registry: Registry) -> None:
    """Register the LPS25H model with ``registry``.

    Called once by the host during startup.
    """
    registry.register(
        MODEL,
        Registration(
            api=SENSOR_API,
            constructor=LPS25H.construct,
            config_parser=Config.from_attributes,
        ),
    )
