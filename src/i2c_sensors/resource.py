"""Component model, registration and lifecycle primitives.

Hosts find drivers through an explicit Registry that maps a model triple
(namespace, family, name) to a Registration. Nothing is registered at
import time: each driver module exposes a ``register(registry)`` function
and the host calls it once during startup.

Key Components:
- Model: (namespace, family, name) identifier, e.g. viamlabs:i2c:lps25h
- ComponentConfig: Name, model and raw attributes of one component
- Registration: Constructor and config parser for a model
- Registry: Ordinary mapping from Model to Registration
- LifecycleState: UNINITIALIZED -> READY -> CLOSED
- AlwaysRebuild: Marker telling the host to rebuild on config change

Example:
    from i2c_sensors.resource import Registry
    from i2c_sensors.sensors import lps25h

    registry = Registry()
    lps25h.register(registry)
    registration = registry.lookup(lps25h.MODEL)
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from i2c_sensors.errors import ModelNotRegisteredError
from i2c_sensors.observability import StructuredLogger, get_logger

logger = get_logger(__name__)

__all__ = [
    "SENSOR_API",
    "Model",
    "ComponentConfig",
    "Dependencies",
    "Resource",
    "Registration",
    "Registry",
    "LifecycleState",
    "AlwaysRebuild",
]

#: API name for sensor components.
SENSOR_API = "sensor"

#: Resolved dependencies handed to a constructor, keyed by name.
Dependencies = Mapping[str, Any]


@dataclass(frozen=True)
class Model:
    """Stable identifier of a component model.

    Attributes:
        namespace: Organisation namespace (e.g. "viamlabs").
        family: Model family (e.g. "i2c").
        name: Model name (e.g. "lps25h").
    """

    namespace: str
    family: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}:{self.family}:{self.name}"

    @classmethod
    def parse(cls, value: str) -> Model:
        """Parse the ``namespace:family:name`` string form.

        Raises:
            ValueError: If ``value`` does not have exactly three non-empty
                parts.

        Example:
            >>> Model.parse("viamlabs:i2c:lps25h").name
            'lps25h'
        """
        parts = value.split(":")
        if len(parts) != 3 or not all(parts):
            raise ValueError(f"model must be namespace:family:name, got {value!r}")
        return cls(*parts)


@dataclass(frozen=True)
class ComponentConfig:
    """Raw configuration of one component as supplied by the host.

    Attributes:
        name: Component name, unique within the host.
        model: Model to instantiate.
        attributes: Model-specific attributes, parsed by the
            registration's config parser.
    """

    name: str
    model: Model
    attributes: Mapping[str, Any] = field(default_factory=dict)


class LifecycleState(Enum):
    """Lifecycle of a hosted component."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSED = "closed"


class AlwaysRebuild:
    """Marker mixin: configuration changes require full reconstruction.

    Hosts check ``isinstance(resource, AlwaysRebuild)`` and close and
    rebuild such resources instead of reconfiguring them in place.
    """

    always_rebuild = True


@runtime_checkable
class Resource(Protocol):  # pragma: no cover
    """What a host needs from every component it manages."""

    name: str

    @property
    def state(self) -> LifecycleState:
        """Current lifecycle state."""
        ...

    def reconfigure(self, dependencies: Dependencies, config: Any) -> None:
        """Apply a new validated configuration in place."""
        ...

    def close(self) -> None:
        """Release the component. Idempotent."""
        ...


class _Validatable(Protocol):  # pragma: no cover
    def validate(self, path: str) -> list[str]: ...


#: Builds a resource from resolved dependencies, parsed config, a logger
#: and the component name.
Constructor = Callable[[Dependencies, Any, StructuredLogger, str], Resource]

#: Parses raw attributes into a config object exposing validate(path).
ConfigParser = Callable[[Mapping[str, Any], str], _Validatable]


@dataclass(frozen=True)
class Registration:
    """How to build one model.

    Attributes:
        api: API the model implements (e.g. "sensor").
        constructor: Factory called after validation and dependency
            resolution.
        config_parser: Turns raw attributes into a config object with a
            ``validate(path) -> list[str]`` method.
    """

    api: str
    constructor: Constructor
    config_parser: ConfigParser


class Registry:
    """Model registry owned by the host-integration layer.

    Thread Safety:
        Not thread-safe. Register everything during startup before
        components are built.
    """

    def __init__(self) -> None:
        self._registrations: dict[Model, Registration] = {}

    def register(self, model: Model, registration: Registration) -> None:
        """Register ``model``. Re-registering replaces the old entry.

        Args:
            model: Model triple.
            registration: Constructor and config parser.
        """
        if model in self._registrations:
            logger.warning("Replacing model registration", model=str(model))
        self._registrations[model] = registration
        logger.debug("Model registered", model=str(model), api=registration.api)

    def lookup(self, model: Model) -> Registration:
        """Return the registration for ``model``.

        Raises:
            ModelNotRegisteredError: If the model was never registered.
        """
        try:
            return self._registrations[model]
        except KeyError:
            raise ModelNotRegisteredError(str(model)) from None

    def models(self, api: str | None = None) -> list[Model]:
        """List registered models, optionally only those for ``api``."""
        return sorted(
            (
                model
                for model, registration in self._registrations.items()
                if api is None or registration.api == api
            ),
            key=str,
        )

    def __contains__(self, model: object) -> bool:
        return model in self._registrations

    def __iter__(self) -> Iterator[Model]:
        return iter(self.models())

    def __len__(self) -> int:
        return len(self._registrations)
