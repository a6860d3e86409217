# src/shardrun/runners/processes/pool.py

"""
Worker process lifecycle: creation, liveness, multiplexed waiting and the
stop / SIGTERM / SIGKILL shutdown escalation.
"""

import multiprocessing
import os
import select
import signal
import time
from collections.abc import Iterable, Sequence
from multiprocessing.connection import Connection
from multiprocessing.context import BaseContext
from typing import Protocol

import structlog
from attrs import define, field

from shardrun.config.models import RunnerConfig
from shardrun.exceptions import ChannelError, WorkerStartError
from shardrun.runners.processes.channel import FramedChannel
from shardrun.runners.processes.messages import Stop
from shardrun.runners.processes.worker import worker_main
from shardrun.telemetry import StructLogger
from shardrun.tree import ScheduledTest

log: StructLogger = structlog.get_logger("runners.processes.pool")

MASTER_ID = "master"


class ProcessHandle(Protocol):
    """The parts of multiprocessing.Process the pool relies on."""

    pid: int | None
    exitcode: int | None

    def is_alive(self) -> bool: ...

    def terminate(self) -> None: ...

    def kill(self) -> None: ...


def process_isolation_available() -> bool:
    """True where workers can be created as separate processes wired with pipes."""
    return os.name == "posix"


def get_context(config: RunnerConfig) -> BaseContext:
    """Multiprocessing context for ``config.start_method``, fork when available."""
    method = config.start_method
    if method is None:
        method = "fork" if "fork" in multiprocessing.get_all_start_methods() else None
    return multiprocessing.get_context(method)


def describe_exit_status(exitcode: int) -> str:
    if exitcode < 0:
        try:
            name = signal.Signals(-exitcode).name
        except ValueError:
            name = f"signal {-exitcode}"
        return f"killed by {name}"
    return f"exited with code {exitcode}"


@define(frozen=True, slots=True)
class WorkerExit:
    """Outcome of closing a worker."""
    ended: bool
    message: str | None = field(default=None)

    @property
    def is_fatal(self) -> bool:
        return not self.ended


@define(slots=True, eq=False)
class Worker:
    """A worker process and the master's end of its channel."""

    shard_id: str
    process: ProcessHandle
    channel: FramedChannel
    _exitcode: int | None = field(default=None, init=False)

    @property
    def pid(self) -> int | None:
        return self.process.pid

    def fileno(self) -> int:
        return self.channel.fileno()

    def is_running(self) -> bool:
        """Non-blocking liveness check; reaps the process once it has exited."""
        if self._exitcode is not None:
            return False
        if self.process.is_alive():
            return True
        self._exitcode = self.process.exitcode
        return False

    @property
    def exitcode(self) -> int | None:
        return self._exitcode

    def exit_message(self) -> str | None:
        """None for a clean exit, else a description of how the process ended."""
        if self._exitcode is None or self._exitcode == 0:
            return None
        return f"worker {self.shard_id} (pid {self.pid}) {describe_exit_status(self._exitcode)}"


def _close_quietly(fd: int) -> None:
    try:
        os.close(fd)
    except OSError:
        pass


def create_worker(
    config: RunnerConfig,
    tests: Sequence[ScheduledTest],
    shard_id: str,
    inherited_fds: Iterable[int] = (),
) -> Worker:
    """
    Starts a worker process wired to the master with two pipes.

    Args:
        config: Run configuration, also handed to the worker.
        tests: Every test the master may dispatch.
        shard_id: Identifier of the new worker.
        inherited_fds: Master-side descriptors of other workers, closed in a
            forked child.

    Raises:
        WorkerStartError: If the pipes or the process cannot be created.
    """
    context = get_context(config)
    try:
        read_from_worker, write_to_master = os.pipe()
        read_from_master, write_to_worker = os.pipe()
    except OSError as e:
        raise WorkerStartError("Unable to create worker pipes", details=e) from e

    master_fds = [read_from_worker, write_to_worker]
    close_fds: list[int] = []
    if context.get_start_method() == "fork":
        close_fds = [*master_fds, *inherited_fds]

    read_conn = Connection(read_from_master, writable=False)
    write_conn = Connection(write_to_master, readable=False)
    process = context.Process(
        target=worker_main,
        args=(read_conn, write_conn, shard_id, list(tests), config, close_fds),
        name=f"shardrun-worker-{shard_id}",
        daemon=True,
    )

    try:
        process.start()
    except Exception as e:
        for fd in master_fds:
            _close_quietly(fd)
        raise WorkerStartError(f"Unable to start worker {shard_id}", details=e) from e
    finally:
        # The child owns its ends now.
        read_conn.close()
        write_conn.close()

    channel = FramedChannel(read_from_worker, write_to_worker, MASTER_ID)
    worker = Worker(shard_id=shard_id, process=process, channel=channel)
    log.debug("Worker started", shard_id=shard_id, pid=process.pid, start_method=context.get_start_method())
    return worker


def workers_waiting(workers: Sequence[Worker], timeout: float) -> list[Worker]:
    """Waits up to ``timeout`` seconds and returns the workers with data ready."""
    if not workers:
        return []
    ready, _, _ = select.select([worker.fileno() for worker in workers], [], [], timeout)
    ready_fds = set(ready)
    return [worker for worker in workers if worker.fileno() in ready_fds]


def _wait_end(worker: Worker, timeout: float, poll_interval: float) -> bool:
    """Polls liveness until the worker has exited or ``timeout`` elapsed."""
    deadline = time.monotonic() + timeout
    while True:
        if not worker.is_running():
            return True
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return False
        time.sleep(min(poll_interval, remaining))


def close_worker(worker: Worker, config: RunnerConfig) -> WorkerExit:
    """
    Stops ``worker``, escalating until its process has exited.

    Sends Stop and closes the channel, then waits ``processes_grace_period``.
    A worker still alive gets SIGTERM and another ``processes_kill_period``,
    then SIGKILL and a last ``processes_kill_period``.

    Returns:
        ``ended=False`` with a message naming the pid when the process could
        not be killed; otherwise ``ended=True`` and a message only when the
        process ended abnormally.
    """
    worker_log = log.bind(shard_id=worker.shard_id, pid=worker.pid)
    grace_period = config.processes_grace_period
    kill_period = config.processes_kill_period

    if not worker.channel.closed:
        try:
            worker.channel.send(Stop())
        except ChannelError as e:
            worker_log.debug("Could not send Stop", error=str(e))
        worker.channel.close()

    ended = _wait_end(worker, grace_period, config.poll_interval)
    for escalate, name in ((worker.process.terminate, "SIGTERM"), (worker.process.kill, "SIGKILL")):
        if ended:
            break
        worker_log.warning("Worker still running, sending signal", signal=name, emoji_key="worker")
        try:
            escalate()
        except ProcessLookupError:
            pass
        ended = _wait_end(worker, kill_period, config.poll_interval)

    if not ended:
        message = f"unable to kill process {worker.pid}"
        worker_log.critical("Worker survived SIGKILL", emoji_key="worker")
        return WorkerExit(ended=False, message=message)

    message = worker.exit_message()
    if message:
        worker_log.warning("Worker ended abnormally", exitcode=worker.exitcode)
    else:
        worker_log.debug("Worker exited cleanly")
    return WorkerExit(ended=True, message=message)


# 🔼⚙️
