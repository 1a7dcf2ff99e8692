"""Point a workspace's ``.agent`` directory at the aggregate directory."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from agjz_cli.errors import GlobalDirMissingError, LinkExistsError
from agjz_cli.kits.home import AGENT_FOLDER

logger = logging.getLogger(__name__)


def workspace_agent_path(workspace: Path) -> Path:
    return Path(workspace).resolve() / AGENT_FOLDER


def _remove_existing(path: Path) -> None:
    # A link is removed itself, never the directory it points to.
    if path.is_symlink() or path.is_file():
        path.unlink()
    else:
        shutil.rmtree(path)


def link_workspace(global_dir: Path, workspace: Path, *, replace: bool = False) -> Path:
    """Create ``<workspace>/.agent`` as a directory link to *global_dir*.

    Args:
        global_dir: Aggregate directory to link to.
        workspace: Workspace root.
        replace: Remove an existing ``.agent`` entry instead of failing.

    Returns:
        Path of the created link.

    Raises:
        GlobalDirMissingError: *global_dir* does not exist.
        LinkExistsError: ``.agent`` exists and *replace* is false.
    """
    global_dir = Path(global_dir)
    if not global_dir.exists():
        raise GlobalDirMissingError(global_dir)

    link_path = workspace_agent_path(workspace)
    if link_path.exists() or link_path.is_symlink():
        if not replace:
            raise LinkExistsError(link_path)
        logger.debug("Replacing existing %s", link_path)
        _remove_existing(link_path)

    link_path.parent.mkdir(parents=True, exist_ok=True)
    os.symlink(global_dir, link_path, target_is_directory=True)
    logger.info("Linked %s -> %s", link_path, global_dir)
    return link_path
