"""Path constants and discovery for the auto-loader.

All paths are host-defined and resolved relative to the game root, which
is the host's working directory unless configured otherwise.
"""

import os
from pathlib import Path
from typing import Optional, Union


# Flat directory holding one native module file per component
BIN_DIR = Path("garrysmod") / "lua" / "bin"

# Addon install directory (one subtree per archive install)
ADDONS_DIR = Path("garrysmod") / "addons"

# Private data directory for the version cache, signal file and logs
DATA_DIR = Path("garrysmod") / "data" / "gmod_integration"

VERSION_CACHE_FILE = "versions.json"
UPDATE_SIGNAL_FILE = "update_signal.json"
SETTINGS_FILE = "autoloader_settings.json"
LOG_FILE = "autoloader.log"


def get_game_root(game_root: Optional[Union[str, Path]] = None) -> Path:
    """
    Get the game root directory.

    Args:
        game_root: Explicit root, or None for the current working directory

    Returns:
        Path to the game root
    """
    if game_root:
        return Path(game_root)
    return Path(os.getcwd())


def get_bin_dir(game_root: Optional[Union[str, Path]] = None) -> Path:
    """Get the binary module directory (not created here)."""
    return get_game_root(game_root) / BIN_DIR


def get_addons_dir(game_root: Optional[Union[str, Path]] = None) -> Path:
    """Get the addon install directory (not created here)."""
    return get_game_root(game_root) / ADDONS_DIR


def get_data_dir(game_root: Optional[Union[str, Path]] = None) -> Path:
    """
    Get the auto-loader data directory.

    Not created here; each writer creates the parents of its own file.

    Returns:
        Path to data directory
    """
    return get_game_root(game_root) / DATA_DIR


def get_version_cache_path(game_root: Optional[Union[str, Path]] = None) -> Path:
    """Get the path to the installed-versions JSON file."""
    return get_data_dir(game_root) / VERSION_CACHE_FILE


def get_update_signal_path(game_root: Optional[Union[str, Path]] = None) -> Path:
    """Get the path to the update-signal JSON file."""
    return get_data_dir(game_root) / UPDATE_SIGNAL_FILE


def get_settings_path(game_root: Optional[Union[str, Path]] = None) -> Path:
    """Get the path to the settings JSON file."""
    return get_data_dir(game_root) / SETTINGS_FILE


def get_log_dir(game_root: Optional[Union[str, Path]] = None) -> Path:
    """Get the directory for log files (not created here)."""
    return get_data_dir(game_root) / "logs"


def get_log_file_path(game_root: Optional[Union[str, Path]] = None) -> Path:
    """Get the path to the auto-loader log file."""
    return get_log_dir(game_root) / LOG_FILE
