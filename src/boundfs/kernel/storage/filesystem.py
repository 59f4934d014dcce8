"""Filesystem - the bounded root every operation is confined to.

A ``Filesystem`` owns one canonical absolute root. Every path handed to it,
relative or absolute, is normalized and must stay inside that root, or a
``FilesystemSecurityError`` is raised before the disk is touched.

Data only crosses the boundary through the explicit transfer methods:

- ``copy`` / ``move``: both ends inside the root
- ``copy_out`` / ``move_out``: source inside, destination anywhere
- ``copy_in`` / ``move_in``: source anywhere, destination inside

Usage:
    fs = Filesystem("/srv/tenants/acme")
    fs.file("reports/q1.csv", create=True).write(csv_bytes)
    fs.copy("reports/q1.csv", "archive/2026/q1.csv")
    fs.file("../../etc/passwd")  # raises FilesystemSecurityError
    media = fs.filesystem("media")  # nested boundary, created on demand
"""

from __future__ import annotations

import os
import shutil
from typing import Callable, Optional, Union

from boundfs.domain.errors import FilesystemError
from boundfs.infrastructure.logging_setup import get_logger
from boundfs.infrastructure.storage.directory_tree import ensure_directory_chain
from boundfs.infrastructure.storage.host import FilesystemHost, get_default_host
from boundfs.infrastructure.storage.path_normalizer import normalize
from boundfs.kernel.storage.directory import Directory
from boundfs.kernel.storage.entry_resolver import (
    list_directories,
    list_files,
    resolve_directory,
    resolve_file,
)
from boundfs.kernel.storage.file import File


logger = get_logger(__name__)

PathArg = Union[str, "os.PathLike[str]", File]


class Filesystem:
    """Bounded view of one directory tree."""

    def __init__(
        self,
        root: Union[str, "os.PathLike[str]"],
        host: Optional[FilesystemHost] = None,
    ):
        """Mount a boundary at `root`.

        Args:
            root: Existing directory; symlinks are resolved.
            host: Host primitives, defaults to the local disk.

        Raises:
            FilesystemError: if `root` does not exist or is not a directory.
        """
        self._host = host or get_default_host()
        raw = os.fspath(root)
        canonical = self._host.realpath(raw)
        if canonical is None:
            raise FilesystemError("Filesystem root directory does not exist", raw, "mount")
        if not self._host.is_dir(canonical):
            raise FilesystemError("Filesystem root path is not a directory", canonical, "mount")
        self._root = canonical.replace("\\", "/").rstrip("/") + "/"
        logger.debug("filesystem_mounted", root=self._root)

    @property
    def root(self) -> str:
        """Canonical absolute root, always ending with ``/``."""
        return self._root

    @property
    def host(self) -> FilesystemHost:
        return self._host

    def _base_path(self) -> str:
        return self._root.rstrip("/") or "/"

    def _inside(self, path: PathArg) -> str:
        return self._root + normalize(os.fspath(path), self._root)

    # -------------------------------------------------------------------------
    # Entries
    # -------------------------------------------------------------------------

    def file(self, path: PathArg, create: bool = False) -> Optional[File]:
        """File handle for `path`; None if it is absent and `create` is False."""
        return resolve_file(self._root, path, create, host=self._host)

    def directory(self, path: PathArg, create: bool = False) -> Optional[Directory]:
        return resolve_directory(self._root, path, create, host=self._host)

    def files(
        self,
        pattern: Optional[str] = None,
        predicate: Optional[Callable[[File], bool]] = None,
    ) -> list[File]:
        return list_files(self._root, self._base_path(), pattern, predicate, host=self._host)

    def directories(
        self,
        pattern: Optional[str] = None,
        predicate: Optional[Callable[[Directory], bool]] = None,
    ) -> list[Directory]:
        return list_directories(self._root, self._base_path(), pattern, predicate, host=self._host)

    def glob_file(
        self,
        pattern: str,
        predicate: Optional[Callable[[File], bool]] = None,
    ) -> Optional[File]:
        """First file matching `pattern` (and `predicate`), or None."""
        matches = self.files(pattern, predicate)
        return matches[0] if matches else None

    def glob_directory(
        self,
        pattern: str,
        predicate: Optional[Callable[[Directory], bool]] = None,
    ) -> Optional[Directory]:
        matches = self.directories(pattern, predicate)
        return matches[0] if matches else None

    def filesystem(self, path: PathArg) -> "Filesystem":
        """Nested boundary rooted at `path`, creating the directory if needed.

        The child holds no reference to this filesystem.
        """
        new_root = self._inside(path)
        ensure_directory_chain(new_root)
        return Filesystem(new_root, host=self._host)

    # -------------------------------------------------------------------------
    # Transfers
    # -------------------------------------------------------------------------

    def copy(self, source: PathArg, destination: PathArg, allow_overwrite: bool = False) -> None:
        """Copy a file to another location inside this filesystem."""
        source_path = self._inside(source)
        destination_path = self._inside(destination)
        self._transfer(source_path, destination_path, allow_overwrite, "copy")
        logger.info("file_copied", source=source_path, destination=destination_path)

    def move(self, source: PathArg, destination: PathArg, allow_overwrite: bool = False) -> None:
        """Copy, then remove the source."""
        source_path = self._inside(source)
        destination_path = self._inside(destination)
        self._transfer(source_path, destination_path, allow_overwrite, "move")
        _remove(source_path, "move")
        logger.info("file_moved", source=source_path, destination=destination_path)

    def copy_out(
        self,
        source: PathArg,
        destination: Union[str, "os.PathLike[str]"],
        allow_overwrite: bool = False,
    ) -> None:
        """Copy a file from this filesystem to an external path.

        `destination` is used as given and may lie anywhere on the host.
        """
        source_path = self._inside(source)
        destination_path = os.fspath(destination)
        self._transfer(source_path, destination_path, allow_overwrite, "copy_out")
        logger.info("file_copied_out", source=source_path, destination=destination_path)

    def move_out(
        self,
        source: PathArg,
        destination: Union[str, "os.PathLike[str]"],
        allow_overwrite: bool = False,
    ) -> None:
        source_path = self._inside(source)
        destination_path = os.fspath(destination)
        self._transfer(source_path, destination_path, allow_overwrite, "move_out")
        _remove(source_path, "move_out")
        logger.info("file_moved_out", source=source_path, destination=destination_path)

    def copy_in(
        self,
        source: Union[str, "os.PathLike[str]"],
        destination: PathArg,
        allow_overwrite: bool = False,
    ) -> None:
        """Copy an external file into this filesystem.

        Transient uploads are refused outright; they must be consumed with
        :meth:`move_in` so no copy of them lingers.
        """
        source_path = os.fspath(source)
        if self._host.is_transient_upload(source_path):
            raise FilesystemError(
                "Cannot copy uploaded file, use move_in() instead", source_path, "copy_in"
            )
        destination_path = self._inside(destination)
        self._transfer(source_path, destination_path, allow_overwrite, "copy_in")
        logger.info("file_copied_in", source=source_path, destination=destination_path)

    def move_in(
        self,
        source: Union[str, "os.PathLike[str]"],
        destination: PathArg,
        allow_overwrite: bool = False,
        allow_uploaded_files: bool = False,
    ) -> None:
        """Move an external file into this filesystem.

        Transient upload sources are only accepted with
        ``allow_uploaded_files=True``; otherwise nothing on disk changes.
        """
        source_path = os.fspath(source)
        destination_path = self._inside(destination)
        self._check_transfer(source_path, destination_path, allow_overwrite, "move_in")

        if self._host.is_transient_upload(source_path):
            if not allow_uploaded_files:
                raise FilesystemError("Moving in uploaded file blocked", source_path, "move_in")
            ensure_directory_chain(os.path.dirname(destination_path))
            try:
                shutil.move(source_path, destination_path)
            except OSError as exc:
                raise FilesystemError(
                    f"Failed to move uploaded file: {exc.strerror}", source_path, "move_in"
                ) from exc
            logger.info("upload_moved_in", source=source_path, destination=destination_path)
            return

        ensure_directory_chain(os.path.dirname(destination_path))
        _copy_bytes(source_path, destination_path, "move_in")
        _remove(source_path, "move_in")
        logger.info("file_moved_in", source=source_path, destination=destination_path)

    def _check_transfer(self, source: str, destination: str, allow_overwrite: bool, operation: str) -> None:
        if not os.path.isfile(source):
            raise FilesystemError("Source file does not exist", source, operation)
        if os.path.isfile(destination) and not allow_overwrite:
            raise FilesystemError(
                "Destination file already exists and overwriting is not allowed", destination, operation
            )

    def _transfer(self, source: str, destination: str, allow_overwrite: bool, operation: str) -> None:
        self._check_transfer(source, destination, allow_overwrite, operation)
        ensure_directory_chain(os.path.dirname(destination))
        _copy_bytes(source, destination, operation)

    def __repr__(self) -> str:
        return f"Filesystem(root={self._root!r})"


def _copy_bytes(source: str, destination: str, operation: str) -> None:
    try:
        shutil.copyfile(source, destination)
    except OSError as exc:
        raise FilesystemError(f"Failed to copy file: {exc.strerror or exc}", destination, operation) from exc


def _remove(path: str, operation: str) -> None:
    try:
        os.remove(path)
    except OSError as exc:
        raise FilesystemError(f"Failed to remove source file: {exc.strerror}", path, operation) from exc
