"""Platform-aware configuration path resolution.

Handles config file locations for:
- Windows: %PROGRAMDATA% (system), %APPDATA% (user)
- Unix: /etc/ (system), $XDG_CONFIG_HOME or ~/.config/p4shell/ or ~/.p4shell/ (user)
- Project: nearest .p4shell/ at or above the working directory
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

CONFIG_FILENAME = "config.yaml"
APP_NAME = "p4shell"
SHORT_NAME = ".p4shell"
HISTORY_FILENAME = "history"


def get_system_config_path() -> Path | None:
    """Get system-level config path. The file may not exist."""
    if sys.platform == "win32":
        program_data = os.environ.get("PROGRAMDATA")
        if program_data:
            return Path(program_data) / APP_NAME / CONFIG_FILENAME
    else:
        return Path("/etc") / APP_NAME / CONFIG_FILENAME
    return None


def get_user_config_dir() -> Path | None:
    """Get the user-level config directory. The directory may not exist."""
    if sys.platform == "win32":
        app_data = os.environ.get("APPDATA")
        if app_data:
            return Path(app_data) / APP_NAME
        return None

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_NAME

    home = Path.home()
    xdg_default = home / ".config"
    if xdg_default.exists():
        return xdg_default / APP_NAME

    return home / SHORT_NAME


def get_user_config_path() -> Path | None:
    """Get user-level config path. The file may not exist."""
    config_dir = get_user_config_dir()
    if config_dir is None:
        return None
    return config_dir / CONFIG_FILENAME


def get_history_path() -> Path | None:
    """Get the REPL history file path, next to the user config."""
    config_dir = get_user_config_dir()
    if config_dir is None:
        return None
    return config_dir / HISTORY_FILENAME


def get_project_config_path(project_root: str) -> Path:
    """Get project-level config path (may not exist)."""
    return Path(project_root) / SHORT_NAME / CONFIG_FILENAME


def find_project_root(start: str) -> str | None:
    """Nearest directory at or above ``start`` holding a project config.

    A workspace subdirectory picks up the config at its root, the same way p4
    finds P4CONFIG.
    """
    directory = Path(start).resolve()
    for candidate in (directory, *directory.parents):
        if (candidate / SHORT_NAME / CONFIG_FILENAME).is_file():
            return str(candidate)
    return None


def get_config_paths(project_root: str | None = None) -> list[Path]:
    """Get all config paths in priority order (lowest to highest).

    Args:
        project_root: Optional project directory for project-level config.

    Returns:
        List of config paths in order: system, user, project.
    """
    paths: list[Path] = []

    system_path = get_system_config_path()
    if system_path:
        paths.append(system_path)

    user_path = get_user_config_path()
    if user_path:
        paths.append(user_path)

    if project_root:
        paths.append(get_project_config_path(find_project_root(project_root) or project_root))

    return paths
