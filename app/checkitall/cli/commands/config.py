"""Configuration commands.

Writes a default cia.toml and shows the effective configuration.
"""

from pathlib import Path
from typing import Annotated

import tomli_w
import typer
from rich.syntax import Syntax

from checkitall.cli.types import ExitCode, resolve_config
from checkitall.core.config import AppConfig, mask_secret, save_config
from checkitall.core.errors import ConfigError
from checkitall.core.paths import CONFIG_FILE_NAME
from checkitall.utils.formatting import console, print_error, print_success

app = typer.Typer(
    help="Create and inspect configuration.",
    invoke_without_command=True,
    no_args_is_help=True,
)


@app.command()
def init(
    path: Annotated[
        Path,
        typer.Argument(help="Where to write the config file."),
    ] = Path(CONFIG_FILE_NAME),
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite an existing file."),
    ] = False,
) -> None:
    """Write a config file with default settings."""
    if path.exists() and not force:
        print_error(f"{path} already exists (use --force to overwrite)")
        raise typer.Exit(code=ExitCode.CONFIG_ERROR)

    try:
        save_config(AppConfig(), path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=ExitCode.CONFIG_ERROR) from e
    print_success(f"Config written to {path}")


@app.command()
def show(
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", envvar="CIA_CONFIG", help="Config file (cia.toml)."),
    ] = None,
) -> None:
    """Show the effective configuration with secrets masked."""
    try:
        config = resolve_config(config_path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=ExitCode.CONFIG_ERROR) from e

    data = config.model_dump(by_alias=True, exclude_none=True)
    data["analyzer"]["api_key"] = mask_secret(config.analyzer.api_key)
    console.print(Syntax(tomli_w.dumps(data), "toml", background_color="default"))
