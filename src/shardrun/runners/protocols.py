#
# src/shardrun/runners/protocols.py
#
"""
Defines the protocol every runner implements.
"""
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from shardrun.chooser import Chooser
from shardrun.config.models import RunnerConfig
from shardrun.results import ResultList
from shardrun.telemetry.events import TestLogger
from shardrun.tree import ScheduledTest


@runtime_checkable
class Runner(Protocol):
    """
    Protocol for a strategy that executes test cases and collects results.
    """
    def run(
        self,
        config: RunnerConfig,
        logger: TestLogger,
        chooser: Chooser,
        tests: Sequence[ScheduledTest],
    ) -> ResultList:
        """
        Runs every test in ``tests``.

        Args:
            config: Run configuration.
            logger: Receives per-test and run-level events.
            chooser: Picks the order in which tests are handed out.
            tests: Flattened test cases.

        Returns:
            One combined result per test plus any superseded results, in
            completion order.
        """
        ...

# 🔼⚙️
