# src/shardrun/state.py
#
"""
Scheduling state of a run: what is pending, what is running and what has
completed, in completion order.
"""

import structlog
from attrs import field, mutable

from shardrun.chooser import Chooser
from shardrun.results import ResultFull, ResultList
from shardrun.telemetry import StructLogger
from shardrun.tree import ScheduledTest, TestPath

log: StructLogger = structlog.get_logger("state")


@mutable(slots=True)
class RunnerState:
    """
    Tracks the test cases of one run.

    Mutable because runners update it on every dispatch and completion.
    """

    chooser: Chooser = field()
    pending: list[ScheduledTest] = field(converter=list)
    running: dict[TestPath, ScheduledTest] = field(factory=dict, init=False)
    results: ResultList = field(factory=list, init=False)

    def __attrs_post_init__(self):
        log.debug("Initialized runner state", planned=len(self.pending))

    @property
    def is_done(self) -> bool:
        return not self.pending and not self.running

    @property
    def pending_count(self) -> int:
        return len(self.pending)

    @property
    def running_count(self) -> int:
        return len(self.running)

    def next_test_case(self) -> ScheduledTest | None:
        """
        Asks the chooser for the next test and marks it running.

        Returns None when nothing is pending or the chooser postpones.
        """
        if not self.pending:
            return None

        chosen = self.chooser.choose(self.pending, self.running, self.results)
        if chosen is None:
            if not self.running:
                # Postponing with nothing in flight would stall the run.
                chosen = self.pending[0]
            else:
                return None

        self.pending.remove(chosen)
        self.running[chosen.path] = chosen
        log.debug("Test case scheduled", test=str(chosen.path), pending=len(self.pending))
        return chosen

    def add_test_result(self, outcome: tuple[ResultFull, list[ResultFull]]) -> None:
        """Records the combined result of a test and the results it superseded."""
        worst, others = outcome
        self.running.pop(worst.path, None)
        self.results.append(worst)
        self.results.extend(others)

    def add_result_full(self, result_full: ResultFull) -> None:
        """Records a result produced outside the test, e.g. by a dead worker."""
        self.add_test_result((result_full, []))

    def get_results(self) -> ResultList:
        return list(self.results)


# 🔼⚙️
