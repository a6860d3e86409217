# src/shardrun/cli/main.py

"""
The ``shardrun`` command group.

Global logging options are stored on the click context as a LoggingOptions
object; subcommands overlay their own options on it.
"""

from importlib.metadata import PackageNotFoundError, version

import click
import structlog

from shardrun.cli.run_cmds import list_cli, run_cli
from shardrun.cli.utils import logging_options, options_from_kwargs, setup_logging_from_context
from shardrun.telemetry import StructLogger

try:
    __version__ = version("shardrun")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

log: StructLogger = structlog.get_logger("cli.main")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "-V", "--version", package_name="shardrun")
@logging_options
@click.pass_context
def cli(ctx: click.Context, **kwargs):
    """
    Shardrun: run test trees sequentially or across worker processes.

    SUITE arguments name a test tree as 'package.module:attribute'.
    Configuration precedence: CLI options > Environment Variables > Config File > Defaults.
    """
    ctx.obj = options_from_kwargs(kwargs)
    setup_logging_from_context(ctx)
    log.debug("CLI group initialized", options=ctx.obj)


cli.add_command(list_cli)
cli.add_command(run_cli)

if __name__ == "__main__":
    cli()

# 🔼⚙️
