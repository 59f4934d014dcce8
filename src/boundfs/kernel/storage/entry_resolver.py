"""Resolution of root-relative paths into File and Directory handles.

Stateless helpers shared by ``Filesystem`` and ``Directory``. Every path is
normalized against `root` first, so a traversal attempt fails before any
disk access. `root` is the canonical root with its trailing separator.
"""

from __future__ import annotations

import os
from typing import Callable, Optional, Union

from boundfs.domain.errors import FilesystemError
from boundfs.infrastructure.storage.host import FilesystemHost, get_default_host
from boundfs.infrastructure.storage.path_normalizer import normalize
from boundfs.kernel.storage.directory import Directory
from boundfs.kernel.storage.file import File


FilePredicate = Callable[[File], bool]
DirectoryPredicate = Callable[[Directory], bool]
PathArg = Union[str, "os.PathLike[str]"]


def _directory_path(root: str, relative: str) -> str:
    return (root + relative).rstrip("/") or "/"


def resolve_file(
    root: str,
    path: PathArg,
    create: bool = False,
    relative_to: Optional[str] = None,
    host: Optional[FilesystemHost] = None,
) -> Optional[File]:
    """File handle for `path`, or None when it is absent and `create` is False.

    ``create=True`` only means "do not require existence"; nothing is
    written until the handle is used.

    Raises:
        FilesystemError: a directory already occupies the location.
        FilesystemSecurityError: `path` resolves outside `root`.
    """
    host = host or get_default_host()
    absolute = root + normalize(os.fspath(path), root, relative_to)
    if host.is_dir(absolute):
        raise FilesystemError(
            "A directory already exists at the requested file path", absolute, "resolve_file"
        )
    if not create and not host.is_file(absolute):
        return None
    return File(absolute, root, host)


def resolve_directory(
    root: str,
    path: PathArg,
    create: bool = False,
    relative_to: Optional[str] = None,
    host: Optional[FilesystemHost] = None,
) -> Optional[Directory]:
    """Directory counterpart of :func:`resolve_file`."""
    host = host or get_default_host()
    relative = normalize(os.fspath(path), root, relative_to)
    absolute = root + relative
    if host.is_file(absolute):
        raise FilesystemError(
            "A file already exists at the requested directory path", absolute, "resolve_directory"
        )
    if not create and not host.is_dir(absolute):
        return None
    return Directory(_directory_path(root, relative), root, host)


def list_files(
    root: str,
    base_path: str,
    pattern: Optional[str] = None,
    predicate: Optional[FilePredicate] = None,
    relative_to: Optional[str] = None,
    host: Optional[FilesystemHost] = None,
) -> list[File]:
    """Files in `base_path` matching `pattern` (default ``*``).

    `predicate` runs last, on already-built handles, so it may call
    ``size()`` or ``modified()``. Order is whatever the host glob returns.
    """
    host = host or get_default_host()
    matches = host.glob(relative_to or base_path, pattern or "*")
    files = []
    for match in matches:
        if host.is_dir(match):
            continue
        files.append(File(root + normalize(match, root, relative_to), root, host))
    if predicate is not None:
        files = [item for item in files if predicate(item)]
    return files


def list_directories(
    root: str,
    base_path: str,
    pattern: Optional[str] = None,
    predicate: Optional[DirectoryPredicate] = None,
    relative_to: Optional[str] = None,
    host: Optional[FilesystemHost] = None,
) -> list[Directory]:
    host = host or get_default_host()
    matches = host.glob(relative_to or base_path, pattern or "*", only_dirs=True)
    directories = [
        Directory(_directory_path(root, normalize(match, root, relative_to)), root, host)
        for match in matches
    ]
    if predicate is not None:
        directories = [item for item in directories if predicate(item)]
    return directories
