#
# src/shardrun/runners/sequential.py
#
"""
The simplest runner: one test after the other, in this process, no threads.
"""
from collections.abc import Sequence

import structlog

from shardrun.chooser import Chooser
from shardrun.config.models import RunnerConfig
from shardrun.context import SharedState
from shardrun.results import ResultList
from shardrun.runners.base import run_one_test
from shardrun.runners.protocols import Runner
from shardrun.state import RunnerState
from shardrun.telemetry import StructLogger
from shardrun.telemetry.events import TestLogger
from shardrun.tree import ScheduledTest

log: StructLogger = structlog.get_logger("runners.sequential")


class SequentialRunner(Runner):
    """Implements the Runner protocol without any concurrency."""

    def run(
        self,
        config: RunnerConfig,
        logger: TestLogger,
        chooser: Chooser,
        tests: Sequence[ScheduledTest],
    ) -> ResultList:
        state = RunnerState(chooser, tests)
        shared = SharedState()
        log.info("Running tests sequentially", count=len(tests))

        while (test := state.next_test_case()) is not None:
            state.add_test_result(run_one_test(config, logger, test, shared))

        log.info("Sequential run finished", results=len(state.results))
        return state.get_results()

# 🔼⚙️
