#
# src/shardrun/runners/factory.py
#
"""
Builds the runner and chooser registries and selects implementations from them.
"""
from collections.abc import Callable

import structlog

from shardrun.chooser import Chooser, random_chooser, simple_chooser
from shardrun.config.models import RunnerConfig
from shardrun.exceptions import ConfigurationError
from shardrun.registry import PluginRegistry
from shardrun.runners.processes import ProcessesRunner, process_isolation_available
from shardrun.runners.protocols import Runner
from shardrun.runners.sequential import SequentialRunner
from shardrun.telemetry import StructLogger

log: StructLogger = structlog.get_logger("runners.factory")

RunnerFactory = Callable[[], Runner]
ChooserFactory = Callable[[RunnerConfig], Chooser]


def build_runner_registry() -> PluginRegistry[RunnerFactory]:
    """Registers the built-in runners available on this host."""
    registry: PluginRegistry[RunnerFactory] = PluginRegistry("runner")
    registry.register("sequential", 0, SequentialRunner)
    if process_isolation_available():
        registry.register("processes", 100, ProcessesRunner)
    else:
        log.debug("Process isolation unavailable; 'processes' runner not registered")
    return registry


def build_chooser_registry() -> PluginRegistry[ChooserFactory]:
    registry: PluginRegistry[ChooserFactory] = PluginRegistry("chooser")
    registry.register("simple", 0, simple_chooser)
    registry.register("random", -1, random_chooser)
    return registry


def get_runner(
    runner_name: str | None = None,
    registry: PluginRegistry[RunnerFactory] | None = None,
) -> tuple[str, Runner]:
    """
    Factory function to get a Runner instance.

    Without a name, the highest-priority registered runner is used.
    """
    registry = registry if registry is not None else build_runner_registry()
    name, runner_factory = registry.choose(runner_name.lower() if runner_name else None)
    log.debug("Instantiating runner", runner=name)
    try:
        return name, runner_factory()
    except Exception as e:
        log.error("Failed to instantiate runner", runner=name, error=str(e))
        raise ConfigurationError(f"Failed to initialize runner '{name}': {e}") from e


def get_chooser(
    config: RunnerConfig,
    chooser_name: str | None = None,
    registry: PluginRegistry[ChooserFactory] | None = None,
) -> tuple[str, Chooser]:
    registry = registry if registry is not None else build_chooser_registry()
    name, chooser_factory = registry.choose(chooser_name.lower() if chooser_name else None)
    log.debug("Instantiating chooser", chooser=name)
    return name, chooser_factory(config)

# 🔼⚙️
