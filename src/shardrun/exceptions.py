# src/shardrun/exceptions.py

"""
Custom exceptions for shardrun.

These are process-level and configuration errors. Per-test outcomes are never
raised out of a runner; they are converted to results (see shardrun.results).
"""


class ShardrunError(Exception):
    """Base class for all shardrun errors."""

    pass


class ConfigurationError(ShardrunError):
    """Raised when configuration values or plugin names are invalid."""

    pass


class RunnerError(ShardrunError):
    """Raised when a runner cannot carry out a run."""

    pass


class ChannelError(ShardrunError):
    """Base class for worker channel errors."""

    def __init__(
        self,
        message: str,
        shard_id: str | None = None,
        details: Exception | None = None,
    ):
        self.shard_id = shard_id
        self.details = details
        full_message = f"[Channel] {message}"
        if shard_id:
            full_message += f" (Shard: '{shard_id}')"
        super().__init__(full_message)
        if details and hasattr(self, "add_note"):
            self.add_note(f"Original error: {type(details).__name__}: {details}")


class ChannelClosedError(ChannelError):
    """Raised when the peer closed its end of the channel."""

    pass


class WorkerError(RunnerError):
    """Base class for worker process errors."""

    def __init__(
        self,
        message: str,
        pid: int | None = None,
        details: Exception | None = None,
    ):
        self.pid = pid
        self.details = details
        full_message = f"[Worker] {message}"
        if pid is not None:
            full_message += f" (PID: {pid})"
        super().__init__(full_message)
        if details and hasattr(self, "add_note"):
            self.add_note(f"Original error: {type(details).__name__}: {details}")


class WorkerStartError(WorkerError):
    """Raised when a worker process cannot be created."""

    pass


# 🔼⚙️
