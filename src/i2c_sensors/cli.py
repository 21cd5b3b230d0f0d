"""CLI entry point for i2c-sensors.

Provides the ``i2c-sensors`` console script with subcommands:

- ``models``: List the models this build can serve
- ``read``: Build the components in a config file and print readings

Usage::

    # Simulated boards, one reading per component
    i2c-sensors read --config sensors.json

    # Real /dev/i2c-N adapters, 10 readings one second apart, debug logs
    i2c-sensors --mode hardware --log-level debug read --config sensors.json \\
        --count 10 --interval 1.0

Config file::

    {
      "boards": [{"name": "local", "buses": {"bus1": 1}}],
      "components": [
        {"name": "barometer", "model": "viamlabs:i2c:lps25h",
         "attributes": {"board": "local", "i2c_bus": "bus1"}}
      ]
    }

Readings are printed to stdout as one JSON object per line, with raw byte
values hex-encoded. Logs go to stderr.
"""

from __future__ import annotations

import argparse
import json
import sys
import time
from collections.abc import Sequence
from pathlib import Path
from typing import Any, TextIO

from i2c_sensors.drivers.config import BoardConfig, BoardFactory, DriverMode
from i2c_sensors.errors import SensorError
from i2c_sensors.module import Module
from i2c_sensors.observability import configure_logging, get_logger
from i2c_sensors.resource import SENSOR_API, ComponentConfig, Model, Registry
from i2c_sensors.sensors import register_all

logger = get_logger(__name__)

PROG_NAME = "i2c-sensors"


def build_registry() -> Registry:
    """Create the registry and register every shipped model.

    This is the single place models are registered in a process.
    """
    registry = Registry()
    register_all(registry)
    return registry


def load_config(path: Path) -> tuple[list[BoardConfig], list[ComponentConfig]]:
    """Load boards and components from a JSON config file.

    Args:
        path: JSON file with ``boards`` and ``components`` lists.

    Returns:
        Parsed board and component configurations.

    Raises:
        OSError: File cannot be read.
        ValueError: File is not valid JSON, is not shaped as described
            above, or a component entry lacks a name or has a malformed
            model string.
        ConfigValidationError: A board entry is malformed.
    """
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("config must be a JSON object")

    boards = [
        BoardConfig.from_attributes(entry, path=f"boards[{i}]")
        for i, entry in enumerate(_section(raw, "boards"))
    ]

    components = []
    for i, entry in enumerate(_section(raw, "components")):
        where = f"components[{i}]"
        if not isinstance(entry, dict):
            raise ValueError(f"{where}: expected an object")
        name = entry.get("name")
        if not name or not isinstance(name, str):
            raise ValueError(f"{where}: name is required")
        model = entry.get("model", "")
        if not isinstance(model, str):
            raise ValueError(f"{where}: model must be a string")
        components.append(
            ComponentConfig(
                name=name,
                model=Model.parse(model),
                attributes=entry.get("attributes", {}),
            )
        )
    return boards, components


def _section(raw: dict[str, Any], key: str) -> list[Any]:
    entries = raw.get(key)
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise ValueError(f"{key}: expected a list")
    return entries


def _jsonable(value: Any) -> Any:
    if isinstance(value, bytes | bytearray):
        return bytes(value).hex()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    return value


def run_read(
    config_path: Path,
    mode: DriverMode,
    count: int = 1,
    interval: float = 0.0,
    out: TextIO | None = None,
) -> int:
    """Build every configured component and print its readings.

    Args:
        config_path: JSON config file (see module docstring).
        mode: Board provider to use.
        count: Readings per component.
        interval: Seconds to sleep between rounds.
        out: Stream for reading output. Defaults to sys.stdout.

    Returns:
        0 if every component was built and every reading succeeded,
        1 otherwise. Per-reading failures are logged and do not stop the
        remaining readings.
    """
    out = out or sys.stdout
    boards, components = load_config(config_path)

    registry = build_registry()
    dependencies = BoardFactory(mode).create_boards(boards)

    exit_code = 0
    with Module(registry) as module:
        for model in registry.models(SENSOR_API):
            module.add_model_from_registry(SENSOR_API, model)

        for component in components:
            module.add_resource(component, dependencies)

        for round_index in range(count):
            if round_index and interval > 0:
                time.sleep(interval)
            for name in module.resource_names:
                sensor = module.get_resource(name)
                try:
                    values = sensor.readings()
                except SensorError as e:
                    logger.error("Reading failed", resource=name, error=str(e))
                    exit_code = 1
                    continue
                out.write(json.dumps({"resource": name, **_jsonable(values)}) + "\n")
                out.flush()

    return exit_code


def run_models(out: TextIO | None = None) -> int:
    """Print the registered models, one per line."""
    out = out or sys.stdout
    for model in build_registry().models():
        out.write(f"{model}\n")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG_NAME,
        description="I2C sensor components (LPS25H pressure/temperature)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["critical", "error", "warning", "info", "debug"],
        default="info",
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs as JSON lines",
    )
    parser.add_argument(
        "--mode",
        type=str,
        choices=[m.value for m in DriverMode],
        default=DriverMode.DIGITAL_TWIN.value,
        help=(
            "Board mode: 'hardware' for /dev/i2c-N adapters, "
            "'digital_twin' for simulation (default)"
        ),
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("models", help="List registered models")

    read_parser = subparsers.add_parser("read", help="Print sensor readings")
    read_parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="JSON file describing boards and components",
    )
    read_parser.add_argument(
        "--count",
        type=int,
        default=1,
        help="Readings per component (default: 1)",
    )
    read_parser.add_argument(
        "--interval",
        type=float,
        default=0.0,
        help="Seconds between reading rounds (default: 0)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Main CLI entry point for i2c-sensors.

    Args:
        argv: Arguments without the program name. Defaults to sys.argv.

    Returns:
        Exit code: 0 on success, 1 on any configuration, construction or
        reading failure, 2 on a config file that cannot be loaded.

    Raises:
        SystemExit: On --help or argument parsing errors.
    """
    args = _build_parser().parse_args(argv)

    configure_logging(level=args.log_level.upper(), json_format=args.json_logs, force=True)

    if args.command == "models":
        return run_models()

    if args.count < 1:
        logger.error("--count must be at least 1", count=args.count)
        return 2

    try:
        return run_read(
            args.config,
            DriverMode(args.mode),
            count=args.count,
            interval=args.interval,
        )
    except SensorError as e:
        logger.error("Startup failed", error=str(e), error_type=type(e).__name__)
        return 1
    except (OSError, ValueError) as e:
        logger.error("Cannot load config", path=str(args.config), error=str(e))
        return 2


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
