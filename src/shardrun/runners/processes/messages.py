# src/shardrun/runners/processes/messages.py

"""
Messages exchanged between the master and its workers.
"""

from attrs import define, field

from shardrun.results import ResultFull
from shardrun.telemetry.events import LogEvent
from shardrun.tree import TestPath


# --- Master -> Worker ---
@define(frozen=True, slots=True)
class RunTest:
    path: TestPath


@define(frozen=True, slots=True)
class Stop:
    pass


# --- Worker -> Master ---
@define(frozen=True, slots=True)
class Ready:
    shard_id: str


@define(frozen=True, slots=True)
class ForwardedEvent:
    """A logger event raised inside the worker."""
    event: LogEvent


@define(frozen=True, slots=True)
class TestDone:
    """Combined result of one test and the results it superseded."""
    __test__ = False

    path: TestPath
    result: ResultFull
    others: list[ResultFull] = field(factory=list)


# 🔼⚙️
