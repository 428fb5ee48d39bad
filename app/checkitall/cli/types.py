"""Shared types and helpers for CLI commands."""

import logging
from enum import Enum, IntEnum
from pathlib import Path

from checkitall.core.config import AppConfig, find_config_path, load_config

logger = logging.getLogger(__name__)


class ExitCode(IntEnum):
    """Process exit codes.

    Inadmissible files and aborted runs are kept apart so callers can
    tell a policy failure from an infrastructure failure.
    """

    SUCCESS = 0
    INADMISSIBLE = 1
    CONFIG_ERROR = 2
    ABORTED = 3


class FileErrorChoice(str, Enum):
    """Handling of files that cannot be classified or read."""

    ABORT = "abort"
    REJECT = "reject"


class OutputFormat(str, Enum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


def resolve_config(config_path: Path | None) -> AppConfig:
    """Load the run configuration.

    An explicit path must exist. Without one, the default locations are
    searched and built-in defaults are used when none exists.

    Args:
        config_path: Explicit config file path, or None.

    Returns:
        Validated AppConfig.

    Raises:
        ConfigError: If the config cannot be loaded.
    """
    path = config_path or find_config_path()
    if path is None:
        logger.debug("No config file found, using defaults")
        return AppConfig()
    return load_config(path)
