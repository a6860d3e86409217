# src/shardrun/runtime/orchestrator.py

"""
High-level coordinator of one test run: filtering, runner and chooser
selection, execution and summary.
"""

from collections.abc import Iterable

import structlog
from attrs import define, field

from shardrun.config.models import RunnerConfig
from shardrun.registry import PluginRegistry
from shardrun.results import ResultList, ResultSummary
from shardrun.runners.factory import (
    ChooserFactory,
    RunnerFactory,
    build_chooser_registry,
    build_runner_registry,
    get_chooser,
    get_runner,
)
from shardrun.telemetry import StructLogger
from shardrun.telemetry.events import StructlogTestLogger, TestLogger
from shardrun.tree import Test, test_case_list, test_filter

log: StructLogger = structlog.get_logger("runtime.orchestrator")


@define(frozen=True, slots=True)
class RunReport:
    """Everything a front end needs after a run."""
    runner: str
    results: ResultList
    summary: ResultSummary
    process_errors: list[str] = field(factory=list)

    @property
    def test_count(self) -> int:
        """Number of distinct tests, not counting superseded non-fatal results."""
        return len({result_full.path for result_full in self.results})

    @property
    def was_successful(self) -> bool:
        return self.summary.was_successful and not self.process_errors

    @property
    def exit_code(self) -> int:
        return 0 if self.was_successful else 1


class SuiteOrchestrator:
    """Runs a test tree with the runner selected from the registries."""

    def __init__(
        self,
        config: RunnerConfig,
        logger: TestLogger | None = None,
        runners: PluginRegistry[RunnerFactory] | None = None,
        choosers: PluginRegistry[ChooserFactory] | None = None,
    ):
        self.config = config
        self.logger = logger if logger is not None else StructlogTestLogger()
        self.runners = runners if runners is not None else build_runner_registry()
        self.choosers = choosers if choosers is not None else build_chooser_registry()

    def select(self, test: Test, only: Iterable[str] = (), skip_unselected: bool = False) -> Test | None:
        only = list(only)
        if not only:
            return test
        filtered = test_filter(only, test, skip_unselected=skip_unselected)
        if filtered is None:
            log.warning("No test matches the selection", only=only)
        return filtered

    def run(self, test: Test, only: Iterable[str] = (), skip_unselected: bool = False) -> RunReport:
        """Main execution method: filter, run and summarise."""
        selected = self.select(test, only, skip_unselected)
        tests = test_case_list(selected) if selected is not None else []

        runner_name, runner = get_runner(self.config.runner, self.runners)
        _, chooser = get_chooser(self.config, self.config.chooser, self.choosers)
        log.info("Starting run", runner=runner_name, tests=len(tests))

        results = runner.run(self.config, self.logger, chooser, tests)
        summary = ResultSummary.from_results(results)
        process_errors = list(getattr(runner, "process_errors", []))

        log_func = log.info if summary.was_successful and not process_errors else log.warning
        log_func(
            "Run complete",
            runner=runner_name,
            total=summary.total,
            failures=summary.failures,
            errors=summary.errors,
            skips=summary.skips,
            todos=summary.todos,
            timeouts=summary.timeouts,
        )
        return RunReport(runner_name, results, summary, process_errors)


# 🔼⚙️
