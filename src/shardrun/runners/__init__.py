#
# src/shardrun/runners/__init__.py
#
"""
Runner strategies and the code they share.
"""
from .base import run_one_test
from .factory import build_chooser_registry, build_runner_registry, get_chooser, get_runner
from .processes import ProcessesRunner
from .protocols import Runner
from .sequential import SequentialRunner

__all__ = [
    "ProcessesRunner",
    "Runner",
    "SequentialRunner",
    "build_chooser_registry",
    "build_runner_registry",
    "get_chooser",
    "get_runner",
    "run_one_test",
]

# 🔼⚙️
