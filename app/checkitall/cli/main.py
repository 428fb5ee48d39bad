"""Main CLI application entry point.

Defines the Typer application and global options.
"""

import logging
from typing import Annotated

import typer
from rich.logging import RichHandler

from checkitall import __version__
from checkitall.cli.commands import config, filter, run
from checkitall.utils.formatting import err_console

app = typer.Typer(
    name="cia",
    help="Check It All: admission gate for directory trees.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"cia version {__version__}")
        raise typer.Exit()


def setup_logging(verbose: bool, quiet: bool) -> None:
    """Route log records to stderr through Rich.

    Args:
        verbose: Log at DEBUG level.
        quiet: Log warnings and errors only. Ignored with verbose.
    """
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(threadName)s %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=verbose, rich_tracebacks=True)],
        force=True,
    )


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Only log warnings and errors.",
        ),
    ] = False,
) -> None:
    """cia - submit a directory tree to an analyzer and gate on the verdicts.

    Every regular file selected by the filter is analyzed; the run
    fails when the policy rejects any of them.
    """
    setup_logging(verbose, quiet)


# Register commands
app.command(name="run")(run.run_command)
app.add_typer(filter.app, name="filter")
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
