"""Sensor components for i2c-sensors.

Each sensor module defines its model triple, a Config dataclass with
``validate(path)``, the driver class, and a ``register(registry)`` function.

- lps25h: STMicroelectronics LPS25H pressure/temperature sensor

Example:
    from i2c_sensors.resource import Registry
    from i2c_sensors.sensors import register_all

    registry = Registry()
    register_all(registry)
"""

from i2c_sensors.resource import Registry
from i2c_sensors.sensors import lps25h
from i2c_sensors.sensors.lps25h import LPS25H

__all__ = [
    "LPS25H",
    "lps25h",
    "register_all",
]


def register_all(registry: Registry) -> None:
    """Register every sensor model shipped with the package."""
    lps25h.register(registry)
