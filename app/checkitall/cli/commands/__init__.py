"""CLI commands for cia.

This package contains all subcommand implementations.
"""

from checkitall.cli.commands import config, filter, run

__all__ = ["config", "filter", "run"]
