"""Exception hierarchy for i2c-sensors.

Every error raised by the package derives from SensorError so hosts can
catch the whole family in one place. The subclasses separate three phases
of a component's life:

- Configuration: ConfigValidationError and its subclasses. Raised before
  any dependency is resolved or any bus is touched.
- Construction: DependencyNotFoundError, UnsupportedBoardError,
  BusNotFoundError, InitializationError. The component is never returned.
- Operation: BusIOError, ShortReadError, ResourceClosedError. Reported to
  the caller of a single operation; the driver stays usable.

Example:
    from i2c_sensors.errors import MissingFieldError, SensorError

    try:
        deps = config.validate("components.barometer")
    except MissingFieldError as e:
        print(f"missing {e.field}")
    except SensorError:
        raise
"""

from __future__ import annotations

__all__ = [
    "SensorError",
    "ConfigValidationError",
    "MissingFieldError",
    "InvalidFieldError",
    "DependencyError",
    "DependencyNotFoundError",
    "UnsupportedBoardError",
    "BusNotFoundError",
    "InitializationError",
    "BusIOError",
    "ShortReadError",
    "ResourceClosedError",
    "ModelNotRegisteredError",
]


class SensorError(Exception):
    """Base exception for all i2c-sensors operations."""

    pass


# =============================================================================
# Configuration
# =============================================================================


class ConfigValidationError(SensorError):
    """Raised when a component configuration is incomplete or malformed.

    Attributes:
        path: Location of the offending configuration in the host's
            config tree (e.g. "components.barometer").
    """

    def __init__(self, path: str, message: str) -> None:
        """Initialize with the config path and a description of the problem.

        Args:
            path: Config path the error refers to. May be empty when the
                caller has no tree position to report.
            message: Human-readable description, without the path prefix.
        """
        self.path = path
        prefix = f"{path}: " if path else ""
        super().__init__(f"{prefix}{message}")


class MissingFieldError(ConfigValidationError):
    """Raised when a required configuration field is empty or absent.

    Attributes:
        path: Config path of the component.
        field: Name of the missing field as reported to users
            (e.g. "board", "i2c bus").

    Example:
        >>> err = MissingFieldError("components.baro", "board")
        >>> str(err)
        'components.baro: "board" is required'
    """

    def __init__(self, path: str, field: str) -> None:
        """Store the missing field name and build the message."""
        self.field = field
        super().__init__(path, f'"{field}" is required')


class InvalidFieldError(ConfigValidationError):
    """Raised when a configuration field has the wrong type or range.

    Attributes:
        path: Config path of the component.
        field: Attribute key that failed (e.g. "i2c_addr").
        reason: Why the value was rejected.
    """

    def __init__(self, path: str, field: str, reason: str) -> None:
        """Store the field and reason and build the message."""
        self.field = field
        self.reason = reason
        super().__init__(path, f'"{field}" is invalid: {reason}')


# =============================================================================
# Construction
# =============================================================================


class DependencyError(SensorError):
    """Base class for dependency resolution failures during construction."""

    pass


class DependencyNotFoundError(DependencyError):
    """Raised when a named dependency is missing from the resolved set.

    Attributes:
        name: Dependency name that was looked up.
    """

    def __init__(self, name: str) -> None:
        """Initialize with the dependency name that wasn't found."""
        self.name = name
        super().__init__(f"dependency '{name}' not found")


class UnsupportedBoardError(DependencyError):
    """Raised when a board does not expose addressed local buses.

    Attributes:
        name: Board name from the configuration.
    """

    def __init__(self, name: str) -> None:
        """Initialize with the board name that lacks local bus access."""
        self.name = name
        super().__init__(f"board '{name}' is not local")


class BusNotFoundError(DependencyError):
    """Raised when a board does not know the configured bus name.

    Attributes:
        board: Board that was asked.
        name: Bus name that was not found.
    """

    def __init__(self, board: str, name: str) -> None:
        """Initialize with the board and the unknown bus name."""
        self.board = board
        self.name = name
        super().__init__(f"failed to find i2c bus '{name}' on board '{board}'")


class InitializationError(SensorError):
    """Raised when the device reset fails while constructing a driver.

    The original BusIOError is chained as ``__cause__``.
    """

    pass


# =============================================================================
# Operation
# =============================================================================


class BusIOError(SensorError):
    """Raised when opening, writing, reading or closing a bus handle fails.

    Attributes:
        address: Device address of the failed transaction.
    """

    def __init__(self, message: str, address: int | None = None) -> None:
        """Initialize with a description and the device address."""
        self.address = address
        if address is not None:
            message = f"{message} (addr=0x{address:02x})"
        super().__init__(message)


class ShortReadError(SensorError):
    """Raised when the device returns a block of unexpected length.

    Attributes:
        expected: Number of bytes requested.
        received: Number of bytes actually returned.
    """

    def __init__(self, expected: int, received: int) -> None:
        """Initialize with requested and received byte counts."""
        self.expected = expected
        self.received = received
        super().__init__(
            f"i2c read did not get {expected} bytes (got {received})"
        )


class ResourceClosedError(SensorError):
    """Raised when an operation is attempted on a closed resource."""

    pass


class ModelNotRegisteredError(SensorError):
    """Raised when a host asks for a model missing from the registry.

    Attributes:
        model: String form of the requested model triple.
    """

    def __init__(self, model: str) -> None:
        """Initialize with the model that has no registration."""
        self.model = model
        super().__init__(f"model '{model}' is not registered")
