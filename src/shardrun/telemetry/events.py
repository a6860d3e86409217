# src/shardrun/telemetry/events.py

"""
Events emitted while tests run, and the loggers that consume them.

Runners only talk to the ``TestLogger`` protocol. Rendering reports is left to
whoever implements it; the loggers here route events to structlog or keep
them in memory.
"""

from enum import Enum
from typing import Protocol, TypeAlias, runtime_checkable

import structlog
from attrs import define, field

from shardrun.results import (
    Result,
    SourceLocation,
    describe_result,
    is_failing,
    result_name,
)
from shardrun.telemetry import StructLogger
from shardrun.tree import TestPath

log: StructLogger = structlog.get_logger("telemetry.events")


class TestEventKind(Enum):
    __test__ = False

    START = "start"
    RESULT = "result"
    END = "end"
    LOG = "log"


@define(frozen=True, slots=True)
class TestEvent:
    """An event concerning one test. ``result`` is set for RESULT, ``message`` for LOG."""
    __test__ = False

    path: TestPath
    kind: TestEventKind
    result: Result | None = field(default=None)
    message: str | None = field(default=None)
    level: str = field(default="info")


@define(frozen=True, slots=True)
class GlobalEvent:
    """A run-level message, not tied to any test."""
    level: str
    message: str


LogEvent: TypeAlias = TestEvent | GlobalEvent


@runtime_checkable
class TestLogger(Protocol):
    """Receives every event produced by a run."""

    def report(self, event: LogEvent) -> None:
        ...

    def source_location(self) -> SourceLocation | None:
        """Location to attach to Failure and Error results, if the logger tracks one."""
        ...


class StructlogTestLogger:
    """Routes test events to structlog."""

    __test__ = False

    def __init__(self, logger_name: str = "run"):
        self._log: StructLogger = structlog.get_logger(logger_name)

    def report(self, event: LogEvent) -> None:
        if isinstance(event, GlobalEvent):
            getattr(self._log, event.level, self._log.info)(event.message)
            return

        test_log = self._log.bind(test=str(event.path))
        match event.kind:
            case TestEventKind.START:
                test_log.debug("Test started")
            case TestEventKind.END:
                test_log.debug("Test finished")
            case TestEventKind.LOG:
                getattr(test_log, event.level, test_log.info)(event.message)
            case TestEventKind.RESULT if event.result is not None:
                name = result_name(event.result)
                emit = test_log.warning if is_failing(event.result) else test_log.info
                emit(
                    "Test result",
                    result=name,
                    detail=describe_result(event.result),
                    emoji_key=name,
                )

    def source_location(self) -> SourceLocation | None:
        return None


class CollectingTestLogger:
    """Keeps every event in memory, optionally passing it on to another logger."""

    __test__ = False

    def __init__(self, delegate: TestLogger | None = None):
        self.events: list[LogEvent] = []
        self._delegate = delegate

    def report(self, event: LogEvent) -> None:
        self.events.append(event)
        if self._delegate is not None:
            self._delegate.report(event)

    def source_location(self) -> SourceLocation | None:
        if self._delegate is not None:
            return self._delegate.source_location()
        return None

    def events_for(self, path: TestPath) -> list[TestEvent]:
        return [event for event in self.events if isinstance(event, TestEvent) and event.path == path]

    @property
    def global_events(self) -> list[GlobalEvent]:
        return [event for event in self.events if isinstance(event, GlobalEvent)]


# 🔼⚙️
