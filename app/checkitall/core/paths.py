"""XDG-compliant path management for cia.

XDG defaults:
- Config: ~/.config/cia/
- State: ~/.local/state/cia/
"""

import os
from pathlib import Path

APP_NAME = "cia"

CONFIG_FILE_NAME = "cia.toml"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/cia/ (or XDG_CONFIG_HOME/cia/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_state_dir() -> Path:
    """Get the state directory path.

    Returns:
        Path to ~/.local/state/cia/ (or XDG_STATE_HOME/cia/).
    """
    return _get_xdg_dir("XDG_STATE_HOME", ".local/state")


def get_config_candidates() -> list[Path]:
    """Get config file locations in lookup order.

    The working directory wins over the user config directory, so a
    pipeline checkout can carry its own cia.toml.

    Returns:
        List of candidate config file paths.
    """
    return [Path.cwd() / CONFIG_FILE_NAME, get_config_dir() / CONFIG_FILE_NAME]


def get_client_uuid_path() -> Path:
    """Get the path of the persisted analyzer client UUID.

    Returns:
        Path to ~/.local/state/cia/client-uuid.
    """
    return get_state_dir() / "client-uuid"


def ensure_state_dir() -> Path:
    """Create the state directory if it doesn't exist.

    Returns:
        Path to the state directory.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    path = get_state_dir()
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create state directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create state directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path
