"""Global aggregate directory and staging path resolution.

Provides the canonical functions for locating:
- The user-global aggregate ``.agent`` directory (cross-platform)
- The ag-jz configuration file
- The reused staging directory kits are fetched into
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

AGENT_FOLDER = ".agent"
STAGING_FOLDER = ".temp_ag_jz"
CONFIG_FILE = "config.yaml"


def _is_windows() -> bool:
    """Return True when running on Windows."""
    return os.name == "nt"


def default_global_agent_dir() -> Path:
    """Return the built-in aggregate directory, ``~/.gemini/antigravity/.agent``."""
    return Path.home() / ".gemini" / "antigravity" / AGENT_FOLDER


def get_global_agent_dir(configured: Path | None = None) -> Path:
    """Return the aggregate directory every kit is merged into.

    Resolution order:
    1. AG_JZ_HOME environment variable (all platforms)
    2. *configured* (the ``global_dir`` key of the config file)
    3. ~/.gemini/antigravity/.agent

    Returns:
        Path: Absolute path to the aggregate directory.
    """
    if env_home := os.environ.get("AG_JZ_HOME"):
        return Path(env_home).expanduser().resolve()

    if configured is not None:
        return Path(configured).expanduser().resolve()

    return default_global_agent_dir()


def get_config_path() -> Path:
    """Return the path of the ag-jz configuration file.

    Resolution order:
    1. AG_JZ_CONFIG environment variable (all platforms)
    2. ~/.ag-jz/config.yaml on macOS/Linux
    3. %LOCALAPPDATA%\\ag-jz\\config.yaml on Windows (via platformdirs)
    """
    if env_config := os.environ.get("AG_JZ_CONFIG"):
        return Path(env_config).expanduser()

    if _is_windows():
        from platformdirs import user_config_dir

        return Path(user_config_dir("ag-jz")) / CONFIG_FILE

    return Path.home() / ".ag-jz" / CONFIG_FILE


def get_staging_dir(configured: Path | None = None) -> Path:
    """Return the staging directory fetched kits are extracted into.

    The same location is reused for every kit in a batch; the orchestrator
    removes it between kits.
    """
    if configured is not None:
        return Path(configured).expanduser()
    return Path(tempfile.gettempdir()) / STAGING_FOLDER
