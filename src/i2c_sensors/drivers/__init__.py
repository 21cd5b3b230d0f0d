"""Bus providers for i2c-sensors.

Supports two modes:
- HARDWARE: Linux i2c adapters via smbus2 (drivers.linux)
- DIGITAL_TWIN: Simulated boards and register files (drivers.twin)

Use drivers.config to build boards for either mode:
    from i2c_sensors.drivers import BoardConfig, BoardFactory, DriverMode

    factory = BoardFactory(DriverMode.DIGITAL_TWIN)
    board = factory.create_board(BoardConfig("local", {"bus1": 1}))

The Linux provider is not imported here so that hosts running only the
digital twin never load smbus2.
"""

from i2c_sensors.drivers.config import (
    DEFAULT_TWIN_DEVICES,
    BoardConfig,
    BoardFactory,
    DriverMode,
)
from i2c_sensors.drivers.i2c import I2C, Board, I2CHandle, LocalBoard
from i2c_sensors.drivers.twin import (
    DigitalTwinBoard,
    DigitalTwinI2CBus,
    DigitalTwinI2CHandle,
    Transaction,
)

__all__ = [
    # Protocols
    "I2C",
    "I2CHandle",
    "Board",
    "LocalBoard",
    # Configuration
    "DEFAULT_TWIN_DEVICES",
    "BoardConfig",
    "BoardFactory",
    "DriverMode",
    # Digital twin
    "DigitalTwinBoard",
    "DigitalTwinI2CBus",
    "DigitalTwinI2CHandle",
    "Transaction",
]
