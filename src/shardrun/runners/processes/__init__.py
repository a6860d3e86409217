#
# src/shardrun/runners/processes/__init__.py
#
"""
Process-parallel runner: worker pool, framed channel and worker entry point.
"""
from .channel import FramedChannel
from .pool import Worker, WorkerExit, close_worker, create_worker, process_isolation_available, workers_waiting
from .runner import ProcessesRunner
from .worker import worker_main

__all__ = [
    "FramedChannel",
    "ProcessesRunner",
    "Worker",
    "WorkerExit",
    "close_worker",
    "create_worker",
    "process_isolation_available",
    "worker_main",
    "workers_waiting",
]

# 🔼⚙️
