# tests/unit/test_run_one_test.py

"""Unit tests for running a single test case and combining its results."""

import sys

import pytest

from shardrun import signals
from shardrun.context import SharedState, non_fatal
from shardrun.results import Error, Failure, Skip, Success
from shardrun.runners.base import run_one_test
from shardrun.telemetry.events import TestEventKind
from shardrun.tree import Label, ScheduledTest, TestPath

PATH = TestPath((Label("one"),))


def scheduled(func) -> ScheduledTest:
    return ScheduledTest(PATH, func)


class TestRunOneTest:
    """Tests for run_one_test."""

    def test_success_reports_start_result_end(self, config, collecting_logger):
        worst, others = run_one_test(config, collecting_logger, scheduled(lambda c: None))
        assert worst.result == Success()
        assert others == []
        kinds = [e.kind for e in collecting_logger.events_for(PATH)]
        assert kinds == [TestEventKind.START, TestEventKind.RESULT, TestEventKind.END]

    def test_failure_is_reported(self, config, collecting_logger):
        worst, _ = run_one_test(config, collecting_logger, scheduled(lambda c: signals.fail("bad")))
        assert isinstance(worst.result, Failure)
        result_event = collecting_logger.events_for(PATH)[1]
        assert result_event.result == worst.result

    def test_non_fatal_replaces_success(self, config, collecting_logger):
        def body(c):
            non_fatal(c, lambda _: signals.fail("first"))
            non_fatal(c, lambda _: signals.fail("second"))

        worst, others = run_one_test(config, collecting_logger, scheduled(body))
        assert worst.result.message == "first"
        assert [o.result.message for o in others] == ["second"]

    def test_main_failure_combined_with_non_fatal(self, config, collecting_logger):
        def body(c):
            non_fatal(c, lambda _: signals.fail("soft"))
            raise RuntimeError("hard")

        worst, others = run_one_test(config, collecting_logger, scheduled(body))
        assert isinstance(worst.result, Error)
        assert [o.result.message for o in others] == ["soft"]

    def test_main_wins_tie_with_non_fatal(self, config, collecting_logger):
        def body(c):
            non_fatal(c, lambda _: signals.fail("soft"))
            signals.fail("main")

        worst, others = run_one_test(config, collecting_logger, scheduled(body))
        assert worst.result.message == "main"
        assert others[0].result.message == "soft"

    def test_skip_with_non_fatal_failure(self, config, collecting_logger):
        def body(c):
            non_fatal(c, lambda _: signals.fail("soft"))
            signals.skip("later")

        worst, others = run_one_test(config, collecting_logger, scheduled(body))
        assert isinstance(worst.result, Failure)
        assert others[0].result == Skip("later")

    def test_failing_teardown_becomes_error(self, config, collecting_logger):
        def cleanup(_):
            raise OSError("cleanup failed")

        def body(c):
            c.add_teardown(cleanup)

        worst, _ = run_one_test(config, collecting_logger, scheduled(body))
        assert isinstance(worst.result, Error)
        assert "cleanup failed" in worst.result.message

    def test_shared_state_is_passed_to_context(self, config, collecting_logger):
        shared = SharedState()

        def body(c):
            c.shared["seen"] = True

        run_one_test(config, collecting_logger, scheduled(body), shared)
        assert shared == {"seen": True}

    def test_sys_exit_becomes_error(self, config, collecting_logger):
        def body(c):
            sys.exit(3)

        worst, _ = run_one_test(config, collecting_logger, scheduled(body))
        assert isinstance(worst.result, Error)
        assert worst.result.message == "SystemExit: 3"
        kinds = [e.kind for e in collecting_logger.events_for(PATH)]
        assert kinds == [TestEventKind.START, TestEventKind.RESULT, TestEventKind.END]

    def test_sys_exit_in_teardown_becomes_error(self, config, collecting_logger):
        def body(c):
            c.add_teardown(lambda _: sys.exit("cleanup exit"))

        worst, _ = run_one_test(config, collecting_logger, scheduled(body))
        assert isinstance(worst.result, Error)
        assert "cleanup exit" in worst.result.message

    def test_keyboard_interrupt_stops_the_run(self, config, collecting_logger):
        def body(c):
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            run_one_test(config, collecting_logger, scheduled(body))
