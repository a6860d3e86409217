# src/shardrun/runners/base.py

"""
Running a single test case, shared by every runner.
"""

import structlog

from shardrun.config.models import RunnerConfig
from shardrun.context import TEST_ERRORS, SharedState, TestContext, result_of_failure, with_context
from shardrun.results import ResultFull, Success, worst_result_full
from shardrun.telemetry import StructLogger
from shardrun.telemetry.events import TestEvent, TestEventKind, TestLogger
from shardrun.tree import ScheduledTest

log: StructLogger = structlog.get_logger("runners.base")

TestOutcome = tuple[ResultFull, list[ResultFull]]


def run_one_test(
    config: RunnerConfig,
    logger: TestLogger,
    test: ScheduledTest,
    shared: SharedState | None = None,
) -> TestOutcome:
    """
    Runs ``test`` in a fresh context and combines its result with the
    non-fatal failures it recorded.

    Returns:
        The most severe result, and the other results to report separately.
    """
    path = test.path
    logger.report(TestEvent(path, TestEventKind.START))

    non_fatal: list[ResultFull] = []

    def _body(ctxt: TestContext) -> ResultFull:
        try:
            test.func(ctxt)
        except TEST_ERRORS as e:
            return result_of_failure(ctxt, e)
        return ResultFull(path, Success())

    try:
        main = with_context(config, logger, shared if shared is not None else SharedState(), non_fatal, path, _body)
    except TEST_ERRORS as e:
        # Only a failing teardown gets here; the body's own errors are results.
        log.debug("Teardown failed after test body", test=str(path), error=str(e))
        ctxt = TestContext(config=config, logger=logger, shared=SharedState(), path=path)
        main = result_of_failure(ctxt, e)

    if isinstance(main.result, Success) and non_fatal:
        worst, others = worst_result_full(non_fatal[0], non_fatal[1:])
    elif non_fatal:
        worst, others = worst_result_full(main, non_fatal)
    else:
        worst, others = main, []

    logger.report(TestEvent(path, TestEventKind.RESULT, result=worst.result))
    logger.report(TestEvent(path, TestEventKind.END))
    return worst, others


# 🔼⚙️
