"""
Interactive shell for the tdi CLI.

Each input line is split with shell quoting rules and run through the same
click command group as the one-shot CLI, with the options the shell itself
was started with.
"""

import logging
import shlex

import click

from .utils import get_cli_context, print_error, print_warning

logger = logging.getLogger(__name__)

EXIT_COMMANDS = ("exit", "quit")
PROMPT = "tdi>>"


def run_line(group: click.Group, base_args: list, line: str) -> bool:
    """
    Run one shell line through the command group.

    Args:
        group: Root command group
        base_args: Global options to prepend (config dir, verbosity)
        line: Raw input line

    Returns:
        False when the shell should exit, True otherwise
    """
    try:
        args = shlex.split(line)
    except ValueError as e:
        print_error(f"could not parse input: {e}")
        return True

    if not args:
        return True

    if args[0] in EXIT_COMMANDS:
        return False

    if args[0] == "shell":
        print_warning("already in the interactive shell")
        return True

    try:
        group.main(args=base_args + args, prog_name="tdi", standalone_mode=False)
    except click.ClickException as e:
        e.show()
    except click.Abort:
        print_error("aborted")
    except Exception as e:
        logger.exception(f"Command failed: {line}")
        print_error(str(e) or type(e).__name__)
    return True


@click.command()
@click.pass_context
def shell(ctx: click.Context) -> None:
    """
    Interactive shell: type tdi commands without the 'tdi' prefix.

    Leave with 'exit', 'quit' or Ctrl-D.
    """
    cli_ctx = get_cli_context(ctx)
    group = ctx.find_root().command

    click.echo("tdi interactive shell, type 'exit' to leave.")
    while True:
        try:
            line = click.prompt(PROMPT, default="", show_default=False, prompt_suffix=" ")
        except click.Abort:
            click.echo()
            break

        if not run_line(group, cli_ctx.as_args(), line):
            break
