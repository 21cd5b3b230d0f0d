"""Board configuration and factory.

Supports switching between real Linux i2c adapters and digital twin boards
for testing and development without physical hardware. Hosts describe their
boards with BoardConfig and let BoardFactory build the matching provider.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from i2c_sensors.drivers.i2c import LocalBoard
from i2c_sensors.drivers.twin import DigitalTwinBoard
from i2c_sensors.errors import InvalidFieldError, MissingFieldError
from i2c_sensors.observability import get_logger

logger = get_logger(__name__)

#: Device addresses the digital twin populates on each bus by default
#: (LPS25H with SA0 low and high).
DEFAULT_TWIN_DEVICES = (0x5C, 0x5D)


class DriverMode(Enum):
    """Driver mode selection."""

    HARDWARE = "hardware"  # /dev/i2c-N through smbus2
    DIGITAL_TWIN = "digital_twin"  # Simulated register files


@dataclass(frozen=True)
class BoardConfig:
    """Declarative description of one board.

    Attributes:
        name: Dependency name components use in their ``board`` attribute.
        buses: Bus name to Linux adapter number, e.g. {"bus1": 1}. In
            digital twin mode only the names matter.
    """

    name: str
    buses: Mapping[str, int] = field(default_factory=dict)

    @classmethod
    def from_attributes(
        cls, attributes: Mapping[str, Any], path: str = "boards"
    ) -> BoardConfig:
        """Parse a raw board mapping such as one entry of a JSON config.

        Args:
            attributes: Mapping with ``name`` and optional ``buses``.
            path: Config path used in error messages.

        Returns:
            Parsed BoardConfig.

        Raises:
            MissingFieldError: If ``name`` is absent or empty.
            InvalidFieldError: If ``attributes`` is not a mapping, ``name``
                is not a string, or ``buses`` is not a mapping of names to
                non-negative integers.

        Example:
            >>> BoardConfig.from_attributes({"name": "local", "buses": {"bus1": 1}})
            BoardConfig(name='local', buses={'bus1': 1})
        """
        if not isinstance(attributes, Mapping):
            raise InvalidFieldError(path, "attributes", "expected a mapping")

        name = attributes.get("name")
        if name is None or name == "":
            raise MissingFieldError(path, "name")
        if not isinstance(name, str):
            raise InvalidFieldError(path, "name", "expected a string")

        raw_buses = attributes.get("buses")
        if raw_buses is None:
            raw_buses = {}
        if not isinstance(raw_buses, Mapping):
            raise InvalidFieldError(path, "buses", "expected a mapping")

        buses: dict[str, int] = {}
        for bus_name, number in raw_buses.items():
            if isinstance(number, bool) or not isinstance(number, int) or number < 0:
                raise InvalidFieldError(
                    path, "buses", f"bus '{bus_name}' needs a non-negative adapter number"
                )
            buses[str(bus_name)] = number
        return cls(name=name, buses=buses)


class BoardFactory:
    """Factory for creating boards based on the driver mode.

    Thread Safety:
        Stateless apart from its configuration; safe to share.
    """

    def __init__(
        self,
        mode: DriverMode = DriverMode.DIGITAL_TWIN,
        twin_devices: tuple[int, ...] = DEFAULT_TWIN_DEVICES,
    ) -> None:
        """Initialize the factory.

        Args:
            mode: HARDWARE for real adapters, DIGITAL_TWIN for simulation.
            twin_devices: Addresses simulated on every twin bus.
        """
        self.mode = mode
        self.twin_devices = twin_devices

    def create_board(self, config: BoardConfig) -> LocalBoard:
        """Create a board for ``config`` in the configured mode.

        Returns:
            LinuxBoard in HARDWARE mode, DigitalTwinBoard otherwise.
            Both satisfy the LocalBoard protocol.
        """
        logger.info(
            "Creating board",
            board=config.name,
            mode=self.mode.value,
            buses=sorted(config.buses),
        )
        if self.mode == DriverMode.HARDWARE:
            # smbus2 needs fcntl; keep the import out of twin-only hosts.
            from i2c_sensors.drivers.linux import LinuxBoard

            return LinuxBoard(config.name, buses=config.buses)
        return DigitalTwinBoard(
            config.name, bus_names=config.buses, devices=self.twin_devices
        )

    def create_boards(self, configs: list[BoardConfig]) -> dict[str, LocalBoard]:
        """Create every board, keyed by name, ready to use as dependencies."""
        return {config.name: self.create_board(config) for config in configs}
