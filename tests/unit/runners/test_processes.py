# tests/unit/runners/test_processes.py

"""Tests for the process-parallel runner and its worker loop."""

import os
from collections import Counter
from multiprocessing.connection import Connection

import attrs
import pytest
import structlog

import sample_suites
from shardrun import tree as tt
from shardrun.exceptions import ChannelClosedError
from shardrun.results import Error, Failure, Success, Timeout
from shardrun.runners.processes import ProcessesRunner
from shardrun.runners.processes.channel import FramedChannel
from shardrun.runners.processes.messages import ForwardedEvent, Ready, RunTest, Stop, TestDone
from shardrun.runners.processes.worker import worker_loop, worker_main
from shardrun.runners.sequential import SequentialRunner
from shardrun.telemetry.events import CollectingTestLogger, TestEventKind


def _by_path(results):
    grouped = {}
    for result_full in results:
        grouped.setdefault(str(result_full.path), []).append(result_full.result)
    return grouped


class TestWorkerLoop:
    """Tests for the worker side of the protocol, run in this process."""

    @pytest.fixture
    def wired(self):
        to_worker_read, to_worker_write = os.pipe()
        to_master_read, to_master_write = os.pipe()
        master = FramedChannel(to_master_read, to_worker_write, "master")
        worker = FramedChannel(to_worker_read, to_master_write, "worker-0")
        yield master, worker
        master.close()
        worker.close()

    def test_runs_requested_tests_until_stop(self, config, wired):
        master, worker = wired
        tests = tt.test_case_list(sample_suites.PASSING)
        master.send(RunTest(tests[1].path))
        master.send(Stop())

        worker_loop(worker, "worker-0", tests, config)

        assert master.receive() == Ready("worker-0")
        kinds = [master.receive().event.kind for _ in range(3)]
        assert kinds == [TestEventKind.START, TestEventKind.RESULT, TestEventKind.END]
        done = master.receive()
        assert isinstance(done, TestDone)
        assert done.path == tests[1].path
        assert done.result.result == Success()

    def test_unknown_path_is_an_error(self, config, wired):
        master, worker = wired
        tests = tt.test_case_list(sample_suites.PASSING)
        unknown = tt.TestPath((tt.Label("ghost"),))
        master.send(RunTest(unknown))
        master.send(Stop())

        worker_loop(worker, "worker-0", tests, config)

        messages = []
        while not isinstance(message := master.receive(), TestDone):
            messages.append(message)
        assert isinstance(message.result.result, Error)
        assert "ghost" in message.result.result.message
        assert all(isinstance(m, (Ready, ForwardedEvent)) for m in messages)

    def test_worker_main_takes_over_connections(self, config):
        to_worker_read, to_worker_write = os.pipe()
        to_master_read, to_master_write = os.pipe()
        master = FramedChannel(to_master_read, to_worker_write, "master")
        read_conn = Connection(to_worker_read, writable=False)
        write_conn = Connection(to_master_write, readable=False)
        try:
            master.send(Stop())
            worker_main(read_conn, write_conn, "worker-0", [], config)

            assert read_conn.closed
            assert write_conn.closed
            assert master.receive() == Ready("worker-0")
            with pytest.raises(ChannelClosedError):
                master.receive()
        finally:
            master.close()
            structlog.contextvars.clear_contextvars()

    def test_master_gone_before_ready(self, config, wired):
        master, worker = wired
        master.close()
        with pytest.raises(ChannelClosedError):
            worker_loop(worker, "worker-0", [], config)


class TestProcessesRunner:
    """End-to-end tests with real worker processes."""

    def test_every_test_runs_exactly_once(self, config, collecting_logger, chooser):
        tests = tt.test_case_list(sample_suites.quick_suite(12))
        runner = ProcessesRunner()
        results = runner.run(config, collecting_logger, chooser, tests)

        assert Counter(str(r.path) for r in results) == Counter(str(t.path) for t in tests)
        assert all(r.result == Success() for r in results)
        assert runner.process_errors == []

    def test_results_match_sequential_run(self, config, chooser):
        tests = tt.test_case_list(sample_suites.MIXED)
        parallel = ProcessesRunner().run(config, CollectingTestLogger(), chooser, tests)
        sequential = SequentialRunner().run(config, CollectingTestLogger(), chooser, tests)

        def kinds(results):
            return {path: [type(r) for r in rs] for path, rs in _by_path(results).items()}

        assert kinds(parallel) == kinds(sequential)

    def test_failure_location_survives_the_channel(self, config, collecting_logger, chooser):
        tests = tt.test_case_list(sample_suites.MIXED)
        results = _by_path(ProcessesRunner().run(config, collecting_logger, chooser, tests))
        (failure,) = results["mixed:1:fail"]
        assert isinstance(failure, Failure)
        assert failure.location.filename.endswith("sample_suites.py")

    def test_logs_are_forwarded_in_order(self, config, collecting_logger, chooser):
        suite = tt.suite("talk", [tt.labeled_case("chatty", sample_suites.chatty)])
        tests = tt.test_case_list(suite)
        ProcessesRunner().run(config, collecting_logger, chooser, tests)

        events = collecting_logger.events_for(tests[0].path)
        assert [e.kind for e in events] == [
            TestEventKind.START,
            TestEventKind.LOG,
            TestEventKind.RESULT,
            TestEventKind.END,
        ]
        assert events[1].message == "hello from the test body"

    def test_crashing_worker_fails_only_its_test(self, config, collecting_logger, chooser):
        suite = tt.suite(
            "crash",
            [
                tt.labeled_case("before", sample_suites.passing),
                tt.labeled_case("boom", sample_suites.crashing),
                tt.labeled_case("after", sample_suites.passing),
                tt.labeled_case("last", sample_suites.passing),
            ],
        )
        tests = tt.test_case_list(suite)
        results = _by_path(ProcessesRunner().run(attrs.evolve(config, shards=2), collecting_logger, chooser, tests))

        assert set(results) == {str(t.path) for t in tests}
        (crashed,) = results["crash:1:boom"]
        assert isinstance(crashed, Error)
        assert "died while running the test" in crashed.message
        assert "exited with code 3" in crashed.message
        for name in ("crash:0:before", "crash:2:after", "crash:3:last"):
            assert results[name] == [Success()]

        boom_events = collecting_logger.events_for(tests[1].path)
        assert [e.kind for e in boom_events] == [TestEventKind.START, TestEventKind.RESULT, TestEventKind.END]

    def test_overrunning_test_times_out(self, config, collecting_logger, chooser):
        tests = [
            tt.ScheduledTest(tt.TestPath((tt.Label("slow"),)), sample_suites.sleeping, tt.CustomLength(0.3)),
            tt.ScheduledTest(tt.TestPath((tt.Label("fast"),)), sample_suites.passing),
        ]
        timed = attrs.evolve(config, enforce_timeouts=True, processes_grace_period=0.2, processes_kill_period=0.5)
        results = _by_path(ProcessesRunner().run(timed, collecting_logger, chooser, tests))

        assert results["slow"] == [Timeout(tt.CustomLength(0.3))]
        assert results["fast"] == [Success()]

    def test_more_shards_than_tests(self, config, collecting_logger, chooser):
        tests = tt.test_case_list(sample_suites.PASSING)
        results = ProcessesRunner().run(attrs.evolve(config, shards=8), collecting_logger, chooser, tests)
        assert len(results) == 2

    def test_no_tests(self, config, collecting_logger, chooser):
        assert ProcessesRunner().run(config, collecting_logger, chooser, []) == []

    def test_spawn_start_method(self, config, collecting_logger, chooser):
        tests = tt.test_case_list(sample_suites.quick_suite(4))
        spawned = attrs.evolve(config, start_method="spawn", shards=2)
        results = ProcessesRunner().run(spawned, collecting_logger, chooser, tests)
        assert sorted(str(r.path) for r in results) == sorted(str(t.path) for t in tests)
        assert all(r.result == Success() for r in results)

