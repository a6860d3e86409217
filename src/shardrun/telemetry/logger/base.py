# src/shardrun/telemetry/logger/base.py

"""
structlog configuration for the master process and its workers.

Everything goes through the stdlib ``logging`` tree so that third-party
loggers and structlog loggers share handlers. The console renders to stderr;
stdout is left to the test bodies and the CLI report.
"""

import logging
import os
import sys

import structlog
from structlog.typing import FilteringBoundLogger, Processor

from shardrun.telemetry.logger.processors import (
    add_emoji_processor,
    remove_extra_keys_processor,
)

BASE_LOGGER_NAME = "shardrun"

StructLogger = FilteringBoundLogger


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_emoji_processor,
        remove_extra_keys_processor,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]


def _console_renderer(json_logs: bool) -> Processor:
    if json_logs:
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def _reset_root(level: int) -> logging.Logger:
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        handler.close()
        root_logger.removeHandler(handler)
    root_logger.setLevel(level)
    return root_logger


def _json_file_handler(log_file: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=structlog.processors.JSONRenderer(sort_keys=True))
    )
    handler.setLevel(level)
    return handler


def setup_logging(
    level: int = logging.INFO,
    json_logs: bool = False,
    log_file: str | None = None,
    file_only: bool = False,
) -> None:
    """
    Configures structlog and the root stdlib logger.

    Args:
        level: Minimum level for every handler.
        json_logs: Render console logs as JSON instead of the dev renderer.
        log_file: Also write JSON lines to this file.
        file_only: Skip the console handler; only meaningful with ``log_file``.
    """
    structlog.configure(
        processors=_shared_processors(),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = _reset_root(level)
    slog = structlog.get_logger(BASE_LOGGER_NAME)

    if not (file_only and log_file):
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=_console_renderer(json_logs)))
        root_logger.addHandler(console_handler)

    if log_file:
        try:
            root_logger.addHandler(_json_file_handler(log_file, level))
        except OSError as e:
            slog.error("Failed to open log file", log_file=log_file, error=str(e))

    slog.debug(
        "Logging configured",
        level=logging.getLevelName(level),
        json_console=json_logs,
        log_file=log_file or "None",
    )


def configure_worker_logging(shard_id: str, level_name: str) -> None:
    """
    Prepares logging inside a worker process.

    A forked worker inherits the master's configuration; a spawned one starts
    unconfigured and gets console logging at ``level_name``. Either way every
    line is tagged with the shard and pid.
    """
    if not structlog.is_configured():
        setup_logging(level=logging.getLevelName(level_name.upper()))
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(shard_id=shard_id, pid=os.getpid())


# 🔼⚙️
