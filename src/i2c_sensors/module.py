"""In-process host for i2c-sensors components.

Module plays the part of the orchestration runtime for one process: it
knows which models it serves, builds components from their configuration,
rebuilds them when the configuration changes, and closes them on shutdown.

Build sequence for one component:
    1. Look up the model's Registration (ModelNotRegisteredError)
    2. Parse raw attributes with the registration's config parser
    3. config.validate(path) -> dependency names (MissingFieldError, ...)
    4. Check every named dependency is available (DependencyNotFoundError)
    5. Call the constructor with the resolved dependencies

Steps 1-4 never touch hardware, so a bad configuration is always reported
before any bus transaction.

Example:
    from i2c_sensors.module import Module
    from i2c_sensors.resource import ComponentConfig, Registry, SENSOR_API
    from i2c_sensors.sensors import lps25h

    registry = Registry()
    lps25h.register(registry)

    with Module(registry) as module:
        module.add_model_from_registry(SENSOR_API, lps25h.MODEL)
        sensor = module.add_resource(
            ComponentConfig("barometer", lps25h.MODEL,
                            {"board": "local", "i2c_bus": "bus1"}),
            dependencies={"local": board},
        )
        print(sensor.readings())
"""

from __future__ import annotations

import threading
from types import TracebackType

from i2c_sensors.errors import (
    DependencyNotFoundError,
    ModelNotRegisteredError,
    SensorError,
)
from i2c_sensors.observability import LogContext, get_logger
from i2c_sensors.resource import (
    AlwaysRebuild,
    ComponentConfig,
    Dependencies,
    Model,
    Registration,
    Registry,
    Resource,
)

logger = get_logger(__name__)

__all__ = ["Module"]


class Module:
    """Owns the components built from one set of models.

    Thread Safety:
        Adding, rebuilding, removing and closing components is serialized
        by a module lock. Calls on the components themselves are not, each
        component guards its own state.
    """

    def __init__(self, registry: Registry) -> None:
        """Create an empty module backed by ``registry``."""
        self._registry = registry
        self._models: dict[Model, Registration] = {}
        self._resources: dict[str, Resource] = {}
        self._configs: dict[str, ComponentConfig] = {}
        self._lock = threading.Lock()

    def add_model_from_registry(self, api: str, model: Model) -> None:
        """Serve ``model`` from this module.

        Raises:
            ModelNotRegisteredError: If ``model`` is not in the registry
                or is registered under a different API.
        """
        registration = self._registry.lookup(model)
        if registration.api != api:
            raise ModelNotRegisteredError(f"{api}/{model}")
        self._models[model] = registration
        logger.info("Model added", api=api, model=str(model))

    @property
    def models(self) -> list[Model]:
        """Models served by this module."""
        return sorted(self._models, key=str)

    def validate_config(self, config: ComponentConfig) -> list[str]:
        """Parse and validate ``config`` without building anything.

        Returns:
            Dependency names the component needs.

        Raises:
            ModelNotRegisteredError: Model not served by this module.
            ConfigValidationError: Attributes are missing or malformed.
        """
        registration = self._registration_for(config.model)
        path = self._path(config)
        parsed = registration.config_parser(config.attributes, path)
        return parsed.validate(path)

    def add_resource(
        self, config: ComponentConfig, dependencies: Dependencies
    ) -> Resource:
        """Build a component and start managing it.

        Args:
            config: Component name, model and raw attributes.
            dependencies: Everything the host can resolve, keyed by name.
                Only the names returned by validation are passed on.

        Returns:
            The constructed component.

        Raises:
            ValueError: A component with this name already exists.
            SensorError: Any validation, dependency or construction error.
                Nothing is registered when construction fails.
        """
        with self._lock:
            if config.name in self._resources:
                raise ValueError(f"resource '{config.name}' already exists")
            resource = self._build(config, dependencies)
            self._resources[config.name] = resource
            self._configs[config.name] = config
            return resource

    def reconfigure_resource(
        self, config: ComponentConfig, dependencies: Dependencies
    ) -> Resource:
        """Apply a changed configuration to an existing component.

        AlwaysRebuild components are closed and built again from the new
        configuration. Others are validated and reconfigured in place.

        Returns:
            The component now registered under ``config.name``.

        Raises:
            KeyError: No component with this name.
            SensorError: The new configuration failed. A rebuilt
                component that fails construction is removed.
        """
        with self._lock:
            current = self._resources[config.name]

            if isinstance(current, AlwaysRebuild) or config.model != self._configs[
                config.name
            ].model:
                with LogContext(resource=config.name):
                    logger.info("Rebuilding resource", model=str(config.model))
                current.close()
                del self._resources[config.name]
                del self._configs[config.name]
                resource = self._build(config, dependencies)
            else:
                registration = self._registration_for(config.model)
                path = self._path(config)
                parsed = registration.config_parser(config.attributes, path)
                names = parsed.validate(path)
                current.reconfigure(self._resolve(names, dependencies), parsed)
                resource = current

            self._resources[config.name] = resource
            self._configs[config.name] = config
            return resource

    def get_resource(self, name: str) -> Resource:
        """Return the component called ``name``.

        Raises:
            KeyError: No component with this name.
        """
        return self._resources[name]

    @property
    def resource_names(self) -> list[str]:
        """Names of managed components."""
        return sorted(self._resources)

    def remove_resource(self, name: str) -> None:
        """Close and forget the component called ``name``.

        Raises:
            KeyError: No component with this name.
        """
        with self._lock:
            resource = self._resources.pop(name)
            self._configs.pop(name, None)
        resource.close()

    def close(self) -> None:
        """Close every component. Errors are logged and the first re-raised
        after all components have been given a chance to close."""
        with self._lock:
            resources = list(self._resources.items())
            self._resources.clear()
            self._configs.clear()

        first_error: SensorError | None = None
        for name, resource in resources:
            try:
                resource.close()
            except SensorError as e:
                logger.error("Failed to close resource", resource=name, error=str(e))
                first_error = first_error or e
        if first_error is not None:
            raise first_error

    def __enter__(self) -> Module:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    # -------------------------------------------------------------------------

    def _registration_for(self, model: Model) -> Registration:
        try:
            return self._models[model]
        except KeyError:
            raise ModelNotRegisteredError(str(model)) from None

    @staticmethod
    def _path(config: ComponentConfig) -> str:
        return f"components.{config.name}"

    @staticmethod
    def _resolve(names: list[str], dependencies: Dependencies) -> dict[str, object]:
        resolved: dict[str, object] = {}
        for name in names:
            if name not in dependencies:
                raise DependencyNotFoundError(name)
            resolved[name] = dependencies[name]
        return resolved

    def _build(self, config: ComponentConfig, dependencies: Dependencies) -> Resource:
        """Parse, validate, resolve and construct (module lock held)."""
        registration = self._registration_for(config.model)
        path = self._path(config)

        with LogContext(resource=config.name):
            parsed = registration.config_parser(config.attributes, path)
            names = parsed.validate(path)
            resolved = self._resolve(names, dependencies)
            resource = registration.constructor(
                resolved,
                parsed,
                get_logger(f"i2c_sensors.resources.{config.name}"),
                config.name,
            )
            logger.info("Resource added", model=str(config.model))
        return resource
