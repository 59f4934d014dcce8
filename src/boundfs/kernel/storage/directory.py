"""Directory handle bound to a filesystem root."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Optional, Union

from boundfs.domain.errors import FilesystemError
from boundfs.infrastructure.logging_setup import get_logger
from boundfs.infrastructure.storage.directory_tree import (
    delete_directory_tree,
    ensure_directory_chain,
)
from boundfs.infrastructure.storage.host import FilesystemHost, get_default_host

if TYPE_CHECKING:
    from boundfs.kernel.storage.file import File


logger = get_logger(__name__)


@dataclass(frozen=True)
class Directory:
    """A directory inside a bounded filesystem.

    `path` is absolute and carries no trailing separator. Paths handed to
    :meth:`file` and :meth:`directory` are resolved relative to this
    directory, but validated against the owning root, so ``d.file("../x")``
    is fine as long as it stays inside the root.
    """

    path: str
    root: str
    host: FilesystemHost = field(default_factory=get_default_host, repr=False, compare=False)

    def create(self) -> "Directory":
        """Create this directory and its ancestors; idempotent."""
        ensure_directory_chain(self.path)
        return self

    def delete(self, recursive: bool = False) -> "Directory":
        """Delete the directory.

        Raises:
            FilesystemError: non-recursive delete of a non-empty or missing
                directory, or any removal failure during a recursive delete.
        """
        if recursive:
            delete_directory_tree(self.path)
            logger.info("directory_deleted", path=self.path, recursive=True)
            return self
        try:
            os.rmdir(self.path)
        except OSError as exc:
            raise FilesystemError(f"Failed to delete directory: {exc.strerror}", self.path, "rmdir") from exc
        logger.info("directory_deleted", path=self.path, recursive=False)
        return self

    def file(self, path: Union[str, os.PathLike], create: bool = False) -> Optional["File"]:
        from boundfs.kernel.storage.entry_resolver import resolve_file

        return resolve_file(self.root, path, create, relative_to=self.path, host=self.host)

    def directory(self, path: Union[str, os.PathLike], create: bool = False) -> Optional["Directory"]:
        from boundfs.kernel.storage.entry_resolver import resolve_directory

        return resolve_directory(self.root, path, create, relative_to=self.path, host=self.host)

    def files(
        self,
        pattern: Optional[str] = None,
        predicate: Optional[Callable[["File"], bool]] = None,
    ) -> list["File"]:
        """Files directly in this directory matching the brace-glob `pattern`."""
        from boundfs.kernel.storage.entry_resolver import list_files

        return list_files(self.root, self.path, pattern, predicate, host=self.host)

    def directories(
        self,
        pattern: Optional[str] = None,
        predicate: Optional[Callable[["Directory"], bool]] = None,
    ) -> list["Directory"]:
        from boundfs.kernel.storage.entry_resolver import list_directories

        return list_directories(self.root, self.path, pattern, predicate, host=self.host)

    def glob_file(
        self,
        pattern: str,
        predicate: Optional[Callable[["File"], bool]] = None,
    ) -> Optional["File"]:
        """First file matching `pattern` (and `predicate`), or None."""
        matches = self.files(pattern, predicate)
        return matches[0] if matches else None

    def glob_directory(
        self,
        pattern: str,
        predicate: Optional[Callable[["Directory"], bool]] = None,
    ) -> Optional["Directory"]:
        matches = self.directories(pattern, predicate)
        return matches[0] if matches else None

    def exists(self) -> bool:
        return self.host.is_dir(self.path)

    def modified(self) -> Optional[datetime]:
        if not self.exists():
            return None
        try:
            timestamp = os.path.getmtime(self.path)
        except OSError as exc:
            raise FilesystemError(
                f"Failed to get modification time: {exc.strerror}", self.path, "modified"
            ) from exc
        return datetime.fromtimestamp(timestamp)

    def basename(self) -> str:
        return self.path.rstrip("/").rsplit("/", 1)[-1]

    def relative_path(self) -> str:
        return self.path[len(self.root):]

    def __str__(self) -> str:
        return self.path

    def __fspath__(self) -> str:
        return self.path
