#
# config/models.py
#
"""
Attrs-based data models for shardrun configuration.
"""

import logging
import os
from typing import Any

from attrs import define, field


# --- Validators ---
def _validate_log_level(inst: Any, attr: Any, value: str) -> None:
    """Validator for standard logging level names."""
    valid = logging._nameToLevel.keys()
    if value.upper() not in valid:
        raise ValueError(f"Invalid log_level '{value}'. Must be one of {list(valid)}.")


def _validate_positive_int(inst: Any, attr: Any, value: int) -> None:
    """Validator ensures integer is positive."""
    if not isinstance(value, int) or value <= 0:
        raise ValueError(f"Field '{attr.name}' must be positive integer, got {value}")


def _validate_non_negative(inst: Any, attr: Any, value: float) -> None:
    if value < 0:
        raise ValueError(f"Field '{attr.name}' must not be negative, got {value}")


def _validate_positive(inst: Any, attr: Any, value: float) -> None:
    if value <= 0:
        raise ValueError(f"Field '{attr.name}' must be positive, got {value}")


def _validate_start_method(inst: Any, attr: Any, value: str | None) -> None:
    if value is not None and value not in ("fork", "spawn", "forkserver"):
        raise ValueError(f"Invalid start_method '{value}'. Must be one of fork, spawn, forkserver.")


def _default_shards() -> int:
    return os.cpu_count() or 1


def _to_str_tuple(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    return tuple(str(item) for item in value)


@define(frozen=True, slots=True)
class RunnerConfig:
    """Settings consumed by the runners and the execution context."""

    # Seconds to wait for a stopped worker to exit on its own.
    processes_grace_period: float = field(default=5.0, converter=float, validator=_validate_non_negative)
    # Seconds to wait after each termination signal.
    processes_kill_period: float = field(default=5.0, converter=float, validator=_validate_non_negative)
    shards: int = field(factory=_default_shards, converter=int, validator=_validate_positive_int)
    runner: str | None = field(default=None)
    chooser: str | None = field(default=None)
    capture_backtrace: bool = field(default=True)
    # Path prefixes whose frames are skipped when locating a failure.
    backtrace_exclude: tuple[str, ...] = field(default=(), converter=_to_str_tuple)
    enforce_timeouts: bool = field(default=False)
    start_method: str | None = field(default=None, validator=_validate_start_method)
    poll_interval: float = field(default=0.1, converter=float, validator=_validate_positive)
    wait_timeout: float = field(default=1.0, converter=float, validator=_validate_positive)
    random_seed: int | None = field(default=None)
    log_level: str = field(default="WARNING", validator=_validate_log_level)

# 🔼⚙️
