"""CLI package for cia.

This package contains the Typer application and all subcommands.
"""

from checkitall.cli.main import app

__all__ = ["app"]
