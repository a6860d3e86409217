# src/shardrun/runners/processes/runner.py

"""
Runs tests in parallel across a pool of worker processes.

The master keeps up to ``config.shards`` workers alive while work remains,
hands a test path to each idle worker, and reads back forwarded log events and
results. A worker that dies with a test in flight turns that test into an
Error; the test is not dispatched again.
"""

import time
from collections.abc import Sequence

import structlog

from shardrun.chooser import Chooser
from shardrun.config.models import RunnerConfig
from shardrun.exceptions import ChannelError, WorkerStartError
from shardrun.results import Error, Result, ResultFull, ResultList, Timeout
from shardrun.runners.processes.messages import ForwardedEvent, Ready, RunTest, TestDone
from shardrun.runners.processes.pool import (
    Worker,
    WorkerExit,
    close_worker,
    create_worker,
    workers_waiting,
)
from shardrun.runners.protocols import Runner
from shardrun.state import RunnerState
from shardrun.telemetry import StructLogger
from shardrun.telemetry.events import GlobalEvent, TestEvent, TestEventKind, TestLogger
from shardrun.tree import ScheduledTest, delay_of_length

log: StructLogger = structlog.get_logger("runners.processes.runner")


class _Master:
    """Mutable bookkeeping of one parallel run."""

    def __init__(self, config: RunnerConfig, logger: TestLogger, state: RunnerState, tests: Sequence[ScheduledTest]):
        self.config = config
        self.logger = logger
        self.state = state
        self.tests = list(tests)
        self.shards = min(config.shards, len(self.tests))
        self.workers: dict[str, Worker] = {}
        self.idle: list[str] = []
        self.in_flight: dict[str, tuple[ScheduledTest, float]] = {}
        self.ever_ready: set[str] = set()
        self.process_errors: list[str] = []
        self._next_shard = 0
        self._failed_starts = 0

    # --- Pool management ---
    def _spawn(self) -> Worker | None:
        shard_id = f"worker-{self._next_shard}"
        self._next_shard += 1
        inherited = [fd for worker in self.workers.values() for fd in (worker.channel.read_fd, worker.channel.write_fd)]
        try:
            worker = create_worker(self.config, self.tests, shard_id, inherited)
        except WorkerStartError as e:
            log.error("Failed to start worker", shard_id=shard_id, error=str(e))
            self.logger.report(GlobalEvent("error", str(e)))
            self._failed_starts += 1
            return None
        self.workers[shard_id] = worker
        return worker

    def _fill_pool(self) -> None:
        while len(self.workers) < self.shards:
            waiting_for_work = len(self.workers) - len(self.in_flight)
            if waiting_for_work >= self.state.pending_count:
                return
            if self._failed_starts > self.shards:
                return
            if self._spawn() is None:
                return

    def _report_exit(self, worker_exit: WorkerExit) -> None:
        if worker_exit.is_fatal:
            self.process_errors.append(worker_exit.message or "unable to kill worker")
            self.logger.report(GlobalEvent("critical", worker_exit.message or "unable to kill worker"))
        elif worker_exit.message:
            self.logger.report(GlobalEvent("warning", worker_exit.message))

    def _retire(self, worker: Worker) -> WorkerExit:
        self.workers.pop(worker.shard_id, None)
        if worker.shard_id in self.idle:
            self.idle.remove(worker.shard_id)
        worker_exit = close_worker(worker, self.config)
        self._report_exit(worker_exit)
        return worker_exit

    def _finish_test(self, test: ScheduledTest, result: Result) -> None:
        """Records a result the worker could not deliver itself."""
        self.logger.report(TestEvent(test.path, TestEventKind.RESULT, result=result))
        self.logger.report(TestEvent(test.path, TestEventKind.END))
        self.state.add_result_full(ResultFull(test.path, result))

    def _worker_lost(self, worker: Worker, reason: str) -> None:
        entry = self.in_flight.pop(worker.shard_id, None)
        if worker.shard_id not in self.ever_ready:
            self._failed_starts += 1
        worker_exit = self._retire(worker)
        if entry is None:
            log.warning("Worker went away while idle", shard_id=worker.shard_id, reason=reason)
            return
        test, _ = entry
        detail = worker_exit.message or reason
        log.error("Worker died while running a test", shard_id=worker.shard_id, test=str(test.path), detail=detail)
        self._finish_test(test, Error(f"Worker {worker.shard_id} (pid {worker.pid}) died while running the test: {detail}"))

    def _abandon_pending(self, message: str) -> None:
        log.critical("Giving up on pending tests", reason=message, pending=self.state.pending_count)
        self.logger.report(GlobalEvent("critical", message))
        while (test := self.state.next_test_case()) is not None:
            self.logger.report(TestEvent(test.path, TestEventKind.START))
            self._finish_test(test, Error(message))

    # --- Dispatch and collection ---
    def _dispatch(self) -> None:
        for shard_id in list(self.idle):
            test = self.state.next_test_case()
            if test is None:
                return
            worker = self.workers[shard_id]
            self.idle.remove(shard_id)
            self.in_flight[shard_id] = (test, time.monotonic())
            try:
                worker.channel.send(RunTest(test.path))
            except ChannelError as e:
                self._worker_lost(worker, str(e))

    def _handle(self, worker: Worker) -> None:
        try:
            message = worker.channel.receive()
        except ChannelError as e:
            self._worker_lost(worker, str(e))
            return

        match message:
            case Ready():
                self.ever_ready.add(worker.shard_id)
                self.idle.append(worker.shard_id)
            case ForwardedEvent(event=event):
                self.logger.report(event)
            case TestDone(result=result, others=others):
                self.in_flight.pop(worker.shard_id, None)
                self.state.add_test_result((result, others))
                self.idle.append(worker.shard_id)
            case _:
                log.warning("Ignoring unexpected message", shard_id=worker.shard_id, message=repr(message))

    def _wait_timeout(self) -> float:
        timeout = self.config.wait_timeout
        if not self.config.enforce_timeouts or not self.in_flight:
            return timeout
        now = time.monotonic()
        for test, started in self.in_flight.values():
            timeout = min(timeout, started + delay_of_length(test.length) - now)
        return max(timeout, 0.0)

    def _check_timeouts(self) -> None:
        if not self.config.enforce_timeouts:
            return
        now = time.monotonic()
        for shard_id, (test, started) in list(self.in_flight.items()):
            if now - started <= delay_of_length(test.length):
                continue
            worker = self.workers[shard_id]
            log.warning("Test exceeded its expected length", test=str(test.path), shard_id=shard_id, emoji_key="timeout")
            del self.in_flight[shard_id]
            self._retire(worker)
            self._finish_test(test, Timeout(test.length))

    def run(self) -> ResultList:
        try:
            while not self.state.is_done:
                self._fill_pool()
                if not self.workers:
                    self._abandon_pending("Unable to start any worker process")
                    break
                self._dispatch()
                for worker in workers_waiting(list(self.workers.values()), self._wait_timeout()):
                    if worker.shard_id in self.workers:
                        self._handle(worker)
                self._check_timeouts()
        finally:
            for worker in list(self.workers.values()):
                self._retire(worker)
        return self.state.get_results()


class ProcessesRunner(Runner):
    """Implements the Runner protocol with a pool of worker processes."""

    def __init__(self) -> None:
        self.process_errors: list[str] = []

    def run(
        self,
        config: RunnerConfig,
        logger: TestLogger,
        chooser: Chooser,
        tests: Sequence[ScheduledTest],
    ) -> ResultList:
        state = RunnerState(chooser, tests)
        master = _Master(config, logger, state, tests)
        log.info("Running tests in worker processes", count=len(tests), shards=master.shards)
        try:
            return master.run()
        finally:
            self.process_errors = master.process_errors
            if master.process_errors:
                log.critical("Some workers could not be stopped", errors=master.process_errors)
            log.info("Parallel run finished", results=len(state.results))


# 🔼⚙️
