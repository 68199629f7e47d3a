"""Platform-aware configuration path resolution.

Handles config file locations for:
- Windows: %PROGRAMDATA% (system), %APPDATA% (user)
- Unix: /etc/ (system), ~/.config/qscripts/ or ~/.qscripts/ (user)
- Project: $project_root/.qscripts/
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

CONFIG_FILENAME = "config.yaml"
STATE_FILENAME = "state.yaml"
APP_NAME = "qscripts"
SHORT_NAME = ".qscripts"


def get_system_config_path() -> Path | None:
    """Get system-level config path (the file may not exist)."""
    if sys.platform == "win32":
        program_data = os.environ.get("PROGRAMDATA")
        if program_data:
            return Path(program_data) / APP_NAME / CONFIG_FILENAME
        return None
    return Path("/etc") / APP_NAME / CONFIG_FILENAME


def get_user_config_dir() -> Path | None:
    """Get the per-user configuration directory (may not exist)."""
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
    """Get user-level config path (the file may not exist)."""
    user_dir = get_user_config_dir()
    return user_dir / CONFIG_FILENAME if user_dir else None


def get_state_path() -> Path | None:
    """Get the path of the persisted settings store."""
    user_dir = get_user_config_dir()
    return user_dir / STATE_FILENAME if user_dir else None


def get_project_config_path(project_root: str) -> Path:
    """Get project-level config path (may not exist)."""
    return Path(project_root) / SHORT_NAME / CONFIG_FILENAME


def get_config_paths(project_root: str | None = None) -> list[Path]:
    """Get all config paths, lowest priority first: system, user, project."""
    paths: list[Path] = []

    system_path = get_system_config_path()
    if system_path:
        paths.append(system_path)

    user_path = get_user_config_path()
    if user_path:
        paths.append(user_path)

    if project_root:
        paths.append(get_project_config_path(project_root))

    return paths
