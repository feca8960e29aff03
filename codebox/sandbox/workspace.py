"""
Workspace Manager - one ephemeral directory per execution request.

A workspace is created at request start, holds exactly one source file, and is
removed on every exit path. Use ``allocate()`` rather than pairing
``create()``/``destroy()`` by hand.
"""

import os
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from loguru import logger

from codebox.sandbox.errors import WorkspaceError


WORKSPACE_PREFIX = "run-"

# The container user is unprivileged and not the directory owner
DIR_MODE = 0o755
FILE_MODE = 0o644


@dataclass(frozen=True)
class Workspace:
    """An exclusively-owned directory for a single run."""
    path: Path

    @property
    def name(self) -> str:
        return self.path.name


def create(root: Optional[str] = None) -> Workspace:
    """
    Allocate a fresh, uniquely-named workspace directory.

    Args:
        root: Parent directory; defaults to the system temp dir

    Raises:
        WorkspaceError: If the directory cannot be created
    """
    try:
        path = tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=root)
        os.chmod(path, DIR_MODE)
    except OSError as e:
        raise WorkspaceError(f"Could not create workspace: {e}") from e
    logger.debug("Created workspace {}", path)
    return Workspace(path=Path(path))


def write(workspace: Workspace, filename: str, content: str) -> Path:
    """
    Persist source text into the workspace.

    Raises:
        WorkspaceError: If the filename is not a bare name or the write fails
    """
    if not filename or os.path.basename(filename) != filename or filename in (".", ".."):
        raise WorkspaceError(f"Invalid source filename: {filename!r}")
    target = workspace.path / filename
    try:
        with open(target, "w", encoding="utf-8") as f:
            f.write(content)
        os.chmod(target, FILE_MODE)
    except OSError as e:
        raise WorkspaceError(f"Could not write {filename}: {e}") from e
    return target


def destroy(workspace: Workspace) -> None:
    """Remove the workspace and its contents. Never raises."""
    try:
        shutil.rmtree(workspace.path)
    except FileNotFoundError:
        return
    except OSError as e:
        logger.warning("Failed to remove workspace {}: {}", workspace.path, e)
        return
    logger.debug("Removed workspace {}", workspace.path)


@contextmanager
def allocate(root: Optional[str] = None) -> Iterator[Workspace]:
    """Create a workspace and destroy it however the block exits."""
    workspace = create(root)
    try:
        yield workspace
    finally:
        destroy(workspace)
