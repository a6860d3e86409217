#
# config/loader.py
#
"""
Loads RunnerConfig from defaults, an optional TOML file and the environment.

Precedence: Environment Variables > Config File > Defaults. CLI options are
applied on top by the caller with ``attrs.evolve``.
"""

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import attrs
import structlog

from shardrun.config.models import RunnerConfig
from shardrun.exceptions import ConfigurationError
from shardrun.telemetry import StructLogger

log: StructLogger = structlog.get_logger("config.loader")

CONFIG_TABLE = "shardrun"
ENV_PREFIX = "SHARDRUN_"
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _env_bool(value: str) -> bool:
    return value.strip().lower() not in _FALSE_VALUES


def _env_optional_str(value: str) -> str | None:
    return value.strip() or None


def _env_optional_int(value: str) -> int | None:
    value = value.strip()
    return int(value) if value else None


def _env_tuple(value: str) -> tuple[str, ...]:
    return tuple(part for part in value.split(os.pathsep) if part)


# Field name -> parser for the SHARDRUN_<FIELD> environment variable.
ENV_PARSERS = {
    "processes_grace_period": float,
    "processes_kill_period": float,
    "shards": int,
    "runner": _env_optional_str,
    "chooser": _env_optional_str,
    "capture_backtrace": _env_bool,
    "backtrace_exclude": _env_tuple,
    "enforce_timeouts": _env_bool,
    "start_method": _env_optional_str,
    "poll_interval": float,
    "wait_timeout": float,
    "random_seed": _env_optional_int,
    "log_level": str,
}


def _read_config_file(config_path: Path) -> dict[str, Any]:
    try:
        with config_path.open("rb") as handle:
            data = tomllib.load(handle)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: '{config_path}'") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in '{config_path}': {e}") from e

    table = data.get(CONFIG_TABLE, {})
    if not isinstance(table, dict):
        raise ConfigurationError(f"'[{CONFIG_TABLE}]' in '{config_path}' must be a table")
    return table


def _read_environment(env: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for name, parser in ENV_PARSERS.items():
        raw = env.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is None:
            continue
        try:
            values[name] = parser(raw)
        except ValueError as e:
            raise ConfigurationError(f"Invalid value for {ENV_PREFIX}{name.upper()}: {raw!r}") from e
    return values


def load_config(config_path: Path | None = None, env: Mapping[str, str] | None = None) -> RunnerConfig:
    """
    Builds a RunnerConfig.

    Args:
        config_path: Optional TOML file holding a ``[shardrun]`` table.
        env: Environment mapping, ``os.environ`` when omitted.

    Raises:
        ConfigurationError: On unreadable files, unknown keys or invalid values.
    """
    values: dict[str, Any] = {}
    if config_path is not None:
        values.update(_read_config_file(config_path))
        log.debug("Loaded config file", path=str(config_path), keys=sorted(values))

    values.update(_read_environment(os.environ if env is None else env))

    known = {a.name for a in attrs.fields(RunnerConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {unknown}")

    try:
        config = RunnerConfig(**values)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    log.debug("Configuration resolved", config=attrs.asdict(config))
    return config


# 🔼⚙️
