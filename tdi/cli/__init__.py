"""
Click CLI implementation for tdi.

This module provides the ``tdi`` command group. Commands are split into
authentication commands (login, logout, status, me), task commands
(show, add, complete, reopen, delete) and the interactive shell.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import click

from tdi import __version__
from tdi.oauth.config import default_config_dir

from .auth_commands import login, logout, me, status
from .shell import shell
from .task_commands import add, complete, delete, reopen, show

logger = logging.getLogger(__name__)


@dataclass
class CLIContext:
    """Context object passed to all CLI commands.

    Attributes:
        config_dir: Directory holding credentials.json and config.yaml
        config_file: Explicit YAML config file (None = <config_dir>/config.yaml)
        verbose: Verbose output enabled
    """

    config_dir: str
    config_file: Optional[str]
    verbose: bool

    def as_args(self) -> List[str]:
        """Global options that recreate this context (used by the shell)."""
        args = ["--config-dir", self.config_dir]
        if self.config_file:
            args += ["--config-file", self.config_file]
        if self.verbose:
            args.append("--verbose")
        return args


@click.group()
@click.option(
    "--config-dir",
    envvar="TDI_CONFIG_DIR",
    type=click.Path(file_okay=False),
    help="Directory for credentials and config (default: per-user config dir)",
)
@click.option(
    "--config-file",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to YAML configuration file",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.version_option(__version__, prog_name="tdi")
@click.pass_context
def cli(
    ctx: click.Context,
    config_dir: Optional[str],
    config_file: Optional[str],
    verbose: bool,
) -> None:
    """
    tdi - manage your to-do list from the terminal.

    Run 'tdi login' once to sign in; the token is stored for later commands.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    ctx.ensure_object(dict)
    ctx.obj["cli_context"] = CLIContext(
        config_dir=config_dir or default_config_dir(),
        config_file=config_file,
        verbose=verbose,
    )
    logger.debug(f"Using config directory {ctx.obj['cli_context'].config_dir}")


# Register authentication commands
cli.add_command(login)
cli.add_command(logout)
cli.add_command(status)
cli.add_command(me)

# Register task commands
cli.add_command(show)
cli.add_command(add)
cli.add_command(complete)
cli.add_command(reopen)
cli.add_command(delete)

# Interactive mode
cli.add_command(shell)


def main() -> None:
    """Entry point for the ``tdi`` console script."""
    cli(obj={})
