"""
Main Typer application for the actiongate CLI.

This module defines the root CLI application and registers all command groups.
"""

import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from actiongate import __version__
from actiongate.cli.commands import audit, run, tools
from actiongate.cli.output import print_error, print_info
from actiongate.config import get_config
from actiongate.exceptions import ConfigurationError

# Create the main Typer app
app = typer.Typer(
    name="actiongate",
    help="Approval-gated agent for natural-language site operations.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        print_info(f"actiongate version [green]{__version__}[/green]")
        raise typer.Exit()


def configure_logging(level: str) -> None:
    """Send library logging to stderr through rich."""
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s",
        handlers=[handler],
        force=True,
    )
    # Keep third-party chatter out of the operator's terminal
    for noisy in ("httpx", "httpcore", "LiteLLM"):
        logging.getLogger(noisy).setLevel(max(logging.WARNING, logging.getLogger().level))


# noinspection PyUnusedLocal
@app.callback()
def main_callback(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Show debug logging.",
        ),
    ] = False,
) -> None:
    """
    [bold blue]actiongate[/bold blue] - Approval-gated site operations agent

    Turns a natural-language command into calls against the backend action
    API. Sensitive actions wait for a human approval.

    Use [bold]actiongate run "close ticket 12"[/bold] to execute a command.
    """
    try:
        level = "DEBUG" if verbose else get_config().logging.level
    except ConfigurationError as e:
        print_error(str(e))
        raise typer.Exit(2) from e
    configure_logging(level)


# Register command groups
app.add_typer(run.app, name="run")
app.add_typer(tools.app, name="tools")
app.add_typer(audit.app, name="audit")


if __name__ == "__main__":
    app()
