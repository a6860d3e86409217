# src/shardrun/runners/processes/worker.py

"""
The worker process: receives test paths from the master, runs them and sends
back forwarded log events and results.

``worker_main`` is the entry point handed to the child process. It is a plain
module-level function so every multiprocessing start method can reach it.
"""

import os
from collections.abc import Iterable, Sequence
from multiprocessing.connection import Connection

import structlog

from shardrun.config.models import RunnerConfig
from shardrun.context import SharedState
from shardrun.exceptions import ChannelClosedError
from shardrun.results import Error, ResultFull, SourceLocation
from shardrun.runners.base import TestOutcome, run_one_test
from shardrun.runners.processes.channel import FramedChannel
from shardrun.runners.processes.messages import ForwardedEvent, Ready, RunTest, Stop, TestDone
from shardrun.telemetry import StructLogger
from shardrun.telemetry.logger import configure_worker_logging
from shardrun.telemetry.events import LogEvent, TestEvent, TestEventKind
from shardrun.tree import ScheduledTest, TestPath

log: StructLogger = structlog.get_logger("runners.processes.worker")


class ForwardingLogger:
    """TestLogger that ships every event to the master."""

    def __init__(self, channel: FramedChannel):
        self._channel = channel

    def report(self, event: LogEvent) -> None:
        self._channel.send(ForwardedEvent(event))

    def source_location(self) -> SourceLocation | None:
        return None


def _unknown_test(logger: ForwardingLogger, path: TestPath) -> TestOutcome:
    result_full = ResultFull(path, Error(f"Worker has no test at path '{path}'"))
    logger.report(TestEvent(path, TestEventKind.START))
    logger.report(TestEvent(path, TestEventKind.RESULT, result=result_full.result))
    logger.report(TestEvent(path, TestEventKind.END))
    return result_full, []


def worker_loop(
    channel: FramedChannel,
    shard_id: str,
    tests: Sequence[ScheduledTest],
    config: RunnerConfig,
) -> None:
    """Announces readiness, then serves RunTest requests until Stop or EOF."""
    tests_by_path = {test.path: test for test in tests}
    worker_log = log.bind(shard_id=shard_id, pid=os.getpid())
    logger = ForwardingLogger(channel)
    shared = SharedState()

    channel.send(Ready(shard_id))
    worker_log.debug("Worker ready", tests=len(tests_by_path))

    while True:
        try:
            message = channel.receive()
        except ChannelClosedError:
            worker_log.debug("Master closed the channel")
            return

        match message:
            case Stop():
                worker_log.debug("Stop requested")
                return
            case RunTest(path=path):
                test = tests_by_path.get(path)
                if test is None:
                    worker_log.warning("Asked to run an unknown test", test=str(path))
                    outcome = _unknown_test(logger, path)
                else:
                    outcome = run_one_test(config, logger, test, shared)
                worst, others = outcome
                channel.send(TestDone(path, worst, others))
            case _:
                worker_log.warning("Ignoring unexpected message", message=repr(message))


def worker_main(
    read_conn: Connection,
    write_conn: Connection,
    shard_id: str,
    tests: Sequence[ScheduledTest],
    config: RunnerConfig,
    close_fds: Iterable[int] = (),
) -> None:
    """
    Child process entry point.

    Args:
        read_conn: Read end of the master-to-worker pipe.
        write_conn: Write end of the worker-to-master pipe.
        shard_id: Identifier of this worker.
        tests: Every test the master may ask for, looked up by path.
        config: Run configuration.
        close_fds: Master-side descriptors inherited through fork.
    """
    for fd in close_fds:
        try:
            os.close(fd)
        except OSError:
            pass

    configure_worker_logging(shard_id, config.log_level)
    read_fd = os.dup(read_conn.fileno())
    write_fd = os.dup(write_conn.fileno())
    read_conn.close()
    write_conn.close()
    channel = FramedChannel(read_fd, write_fd, shard_id)
    try:
        worker_loop(channel, shard_id, tests, config)
    except ChannelClosedError as e:
        log.debug("Master went away while worker was sending", shard_id=shard_id, error=str(e))
    finally:
        channel.close()


# 🔼⚙️
