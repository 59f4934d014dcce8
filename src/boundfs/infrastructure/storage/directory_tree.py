"""Recursive directory creation and removal.

These helpers take absolute paths that were already validated by the
boundary layer; they do no path checking of their own.
"""

from __future__ import annotations

import os

from boundfs.domain.errors import FilesystemError
from boundfs.infrastructure.logging_setup import get_logger


logger = get_logger(__name__)


def ensure_directory_chain(path: str) -> None:
    """Create `path` and every missing ancestor, top-down.

    Raises:
        FilesystemError: if a plain file occupies any ancestor, or mkdir fails.
    """
    if not path or os.path.isdir(path):
        return
    parent = os.path.dirname(path.rstrip("/")) if path != "/" else path
    if parent and parent != path:
        ensure_directory_chain(parent)
    if os.path.isfile(path):
        raise FilesystemError("Cannot create directory, a file exists at this path", path, "mkdir")
    try:
        os.mkdir(path)
    except FileExistsError:
        # Lost a race against another creator; fine as long as it is a directory.
        if not os.path.isdir(path):
            raise FilesystemError("Cannot create directory, a file exists at this path", path, "mkdir")
    except OSError as exc:
        raise FilesystemError(f"Failed to create directory: {exc.strerror}", path, "mkdir") from exc
    logger.debug("directory_created", path=path)


def delete_directory_tree(path: str) -> None:
    """Remove `path` and everything below it, files first.

    Symlinks are unlinked, never followed. A failure part-way through leaves
    the already-removed entries gone and raises.
    """
    if os.path.isfile(path):
        raise FilesystemError("Cannot delete directory, a file exists at this path", path, "rmdir")
    if not os.path.isdir(path):
        return

    try:
        with os.scandir(path) as iterator:
            entries = list(iterator)
    except OSError as exc:
        raise FilesystemError(f"Failed to read directory contents: {exc.strerror}", path, "rmdir") from exc

    for entry in entries:
        entry_path = f"{path.rstrip('/')}/{entry.name}"
        if entry.is_dir(follow_symlinks=False):
            delete_directory_tree(entry_path)
            continue
        try:
            os.remove(entry_path)
        except OSError as exc:
            raise FilesystemError(f"Failed to delete file: {exc.strerror}", entry_path, "rmdir") from exc

    try:
        os.rmdir(path)
    except OSError as exc:
        raise FilesystemError(f"Failed to delete directory: {exc.strerror}", path, "rmdir") from exc
    logger.debug("directory_tree_deleted", path=path)
