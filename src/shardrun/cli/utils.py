# src/shardrun/cli/utils.py

"""
Helpers shared by the shardrun commands: logging options and report lines.
"""

import logging

import click
import structlog
from attrs import define

from shardrun.results import ResultFull, describe_result, result_name
from shardrun.runtime import RunReport
from shardrun.telemetry.logger import setup_logging as core_setup_logging

log = structlog.get_logger("cli.utils")

LOG_LEVEL_CHOICES = click.Choice(list(logging._nameToLevel.keys()), case_sensitive=False)


@define(frozen=True, slots=True)
class LoggingOptions:
    """Logging choices made on the command line; None means not given."""
    level: str | None = None
    log_file: str | None = None
    json_logs: bool | None = None

    def overlay(self, other: "LoggingOptions") -> "LoggingOptions":
        """Returns these options with every value given in ``other`` taking precedence."""
        return LoggingOptions(
            level=other.level or self.level,
            log_file=other.log_file or self.log_file,
            json_logs=other.json_logs if other.json_logs is not None else self.json_logs,
        )


_LOGGING_OPTIONS = (
    click.option(
        "--json-logs",
        is_flag=True,
        default=None,
        envvar="SHARDRUN_JSON_LOGS",
        help="Output console logs as JSON.",
    ),
    click.option(
        "--log-file",
        type=click.Path(dir_okay=False, writable=True, resolve_path=True),
        default=None,
        envvar="SHARDRUN_LOG_FILE",
        help="Also write logs to this file (JSON lines).",
    ),
    click.option(
        "-l",
        "--log-level",
        type=LOG_LEVEL_CHOICES,
        default=None,
        envvar="SHARDRUN_LOG_LEVEL",
        help="Set the logging level (overrides the config file).",
    ),
)


def logging_options(f):
    """Decorator adding --log-level, --log-file and --json-logs to a command."""
    for option in _LOGGING_OPTIONS:
        f = option(f)
    return f


def options_from_kwargs(kwargs: dict) -> LoggingOptions:
    return LoggingOptions(kwargs.get("log_level"), kwargs.get("log_file"), kwargs.get("json_logs"))


def setup_logging_from_context(
    ctx: click.Context,
    local: LoggingOptions | None = None,
    default_log_level: str = "WARNING",
) -> None:
    """Configures logging from the group's options, overlaid with a command's own."""
    options = ctx.find_object(LoggingOptions) or LoggingOptions()
    if local is not None:
        options = options.overlay(local)

    level_name = (options.level or default_log_level).upper()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        level_name, numeric_level = "INFO", logging.INFO

    core_setup_logging(level=numeric_level, json_logs=bool(options.json_logs), log_file=options.log_file)
    log.debug("CLI logging initialized", level=level_name, file=options.log_file or "console")


def format_result_line(result_full: ResultFull) -> str:
    """One report line: KIND: path (location): description."""
    where = result_full.location or getattr(result_full.result, "location", None)
    location = f" ({where})" if where else ""
    return f"{result_name(result_full.result).upper()}: {result_full.path}{location}: {describe_result(result_full.result)}"


def summary_line(report: RunReport) -> str:
    summary = report.summary
    return (
        f"Ran: {report.test_count} tests with {report.runner}; "
        f"Failures: {summary.failures}; Errors: {summary.errors}; Skip: {summary.skips}; "
        f"Todo: {summary.todos}; Timeouts: {summary.timeouts}; Results: {summary.total}"
    )


# 🔼⚙️
