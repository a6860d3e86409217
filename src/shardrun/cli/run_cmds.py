# src/shardrun/cli/run_cmds.py

"""
The list and run commands.
"""

from pathlib import Path

import attrs
import click
import structlog

from shardrun.cli.utils import (
    format_result_line,
    logging_options,
    options_from_kwargs,
    setup_logging_from_context,
    summary_line,
)
from shardrun.config import load_config
from shardrun.exceptions import ConfigurationError
from shardrun.loader import load_suite
from shardrun.results import Success
from shardrun.runtime import SuiteOrchestrator
from shardrun.telemetry import StructLogger
from shardrun.tree import test_case_paths

log: StructLogger = structlog.get_logger("cli.run")

config_option = click.option(
    "-c",
    "--config-path",
    type=click.Path(exists=True, file_okay=True, dir_okay=False, readable=True, path_type=Path),
    default=None,
    envvar="SHARDRUN_CONF",
    help="Path to a TOML file with a [shardrun] table (env var SHARDRUN_CONF).",
    show_envvar=True,
)


@click.command(name="list")
@click.argument("suite")
@logging_options
@click.pass_context
def list_cli(ctx: click.Context, suite: str, **kwargs):
    """Print the path of every test case in SUITE (module:attribute)."""
    setup_logging_from_context(ctx, options_from_kwargs(kwargs))
    try:
        tree = load_suite(suite)
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(2)

    for path in test_case_paths(tree):
        click.echo(str(path))


@click.command(name="run")
@click.argument("suite")
@click.option("--only", "only", multiple=True, metavar="PATH", help="Run only this test path (repeatable).")
@click.option(
    "--skip-unselected",
    is_flag=True,
    default=False,
    help="With --only, report unselected tests as skipped instead of dropping them.",
)
@click.option("-r", "--runner", "runner_name", default=None, help="Runner to use (default: highest priority).")
@click.option("--chooser", "chooser_name", default=None, help="Test selection policy.")
@click.option("-j", "--shards", type=click.IntRange(min=1), default=None, help="Number of worker processes.")
@config_option
@logging_options
@click.pass_context
def run_cli(
    ctx: click.Context,
    suite: str,
    only: tuple[str, ...],
    skip_unselected: bool,
    runner_name: str | None,
    chooser_name: str | None,
    shards: int | None,
    config_path: Path | None,
    **kwargs,
):
    """Run the tests of SUITE (module:attribute)."""
    try:
        config = load_config(config_path)
        overrides = {
            key: value
            for key, value in (("runner", runner_name), ("chooser", chooser_name), ("shards", shards))
            if value is not None
        }
        config = attrs.evolve(config, **overrides)
        tree = load_suite(suite)
    except (ConfigurationError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(2)

    # Configured level applies unless --log-level was given.
    setup_logging_from_context(ctx, options_from_kwargs(kwargs), default_log_level=config.log_level)

    log.info("Executing 'run' command", suite=suite, runner=config.runner or "auto")
    try:
        report = SuiteOrchestrator(config).run(tree, only=only, skip_unselected=skip_unselected)
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(2)

    for result_full in report.results:
        if not isinstance(result_full.result, Success):
            click.echo(format_result_line(result_full))
    for message in report.process_errors:
        click.echo(f"PROCESS ERROR: {message}", err=True)

    click.echo(summary_line(report))
    ctx.exit(report.exit_code)

# 🔼⚙️
