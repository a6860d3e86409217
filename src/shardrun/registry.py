# src/shardrun/registry.py
#
"""
Named, prioritised plugin registries.

Registries are plain objects filled explicitly before any lookup; nothing is
registered as a side effect of importing a module.
"""

from typing import Generic, TypeVar

import structlog
from attrs import define

from shardrun.exceptions import ConfigurationError
from shardrun.telemetry import StructLogger

log: StructLogger = structlog.get_logger("registry")

T = TypeVar("T")


@define(frozen=True, slots=True)
class PluginEntry(Generic[T]):
    name: str
    priority: int
    impl: T


class PluginRegistry(Generic[T]):
    """Maps names to implementations, each with an integer priority."""

    def __init__(self, kind: str):
        self.kind = kind
        self._entries: dict[str, PluginEntry[T]] = {}

    def register(self, name: str, priority: int, impl: T) -> None:
        if name in self._entries:
            log.debug("Replacing registered plugin", kind=self.kind, name=name)
        self._entries[name] = PluginEntry(name, priority, impl)
        log.debug("Registered plugin", kind=self.kind, name=name, priority=priority)

    def names(self) -> list[str]:
        """Registered names, highest priority first."""
        ordered = sorted(self._entries.values(), key=lambda entry: -entry.priority)
        return [entry.name for entry in ordered]

    def get(self, name: str) -> T:
        entry = self._entries.get(name)
        if entry is None:
            raise ConfigurationError(
                f"Unsupported {self.kind}: '{name}'. Available {self.kind}s: {self.names()}"
            )
        return entry.impl

    def choose(self, name: str | None = None) -> tuple[str, T]:
        """
        Returns the named implementation, or the highest-priority one when
        ``name`` is None. Ties go to the earliest registration.
        """
        if name is not None:
            return name, self.get(name)
        if not self._entries:
            raise ConfigurationError(f"No {self.kind} registered")
        best = max(self._entries.values(), key=lambda entry: entry.priority)
        return best.name, best.impl

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)


# 🔼⚙️
