from __future__ import annotations

import logging
import os
import stat
from pathlib import Path
from typing import Callable, List, Optional, Protocol

from ..scm.interface import External, ModuleLocation, Revision

logger = logging.getLogger(__name__)


class BuildLogSink(Protocol):
    def write_stdout(self, data: bytes) -> None:  # pragma: no cover - protocol
        ...

    def write_stderr(self, data: bytes) -> None:  # pragma: no cover - protocol
        ...


class DefaultRevisionResolver(Protocol):
    def resolve_default(self, location: ModuleLocation) -> Revision:  # pragma: no cover - protocol
        ...


class UpdateTask(Protocol):
    """One synchronization of a module location into a workspace."""

    def perform(self, workspace: Path, location: ModuleLocation) -> Optional[List[External]]:  # pragma: no cover - protocol
        ...


class WorkspaceUpdater(Protocol):
    """Strategy boundary for bringing a workspace to a revision.

    Implementations must:
    - Create an `UpdateTask` bound to a listener and an update client.
    - Return the externals traversed, or None when the failure was reported
      to the build log instead of raised.
    """

    def create_task(self, *args, **kwargs) -> UpdateTask:  # pragma: no cover - protocol
        ...


def _retry_writable(operation: Callable[[], None], path: Path) -> None:
    try:
        operation()
    except PermissionError:
        # svn keeps pristine copies read-only
        parent = path.parent
        os.chmod(parent, os.stat(parent).st_mode | stat.S_IRWXU)
        if not path.is_symlink():
            os.chmod(path, os.stat(path).st_mode | stat.S_IRWXU)
        operation()


def delete_recursive(path: Path) -> None:
    """Delete a file, symlink or directory tree."""
    if path.is_dir() and not path.is_symlink():
        delete_contents_recursive(path)
        _retry_writable(path.rmdir, path)
    else:
        _retry_writable(path.unlink, path)


def delete_contents_recursive(path: Path) -> None:
    """Delete everything below `path`, keeping `path` itself.

    A missing directory is left alone. Failures propagate.
    """
    if not path.is_dir():
        return
    for child in list(path.iterdir()):
        delete_recursive(child)
    logger.debug("Cleaned directory %s", path)
