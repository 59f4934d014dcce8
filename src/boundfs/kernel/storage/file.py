"""File handle bound to a filesystem root."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from boundfs.domain.errors import FilesystemError
from boundfs.infrastructure.logging_setup import get_logger
from boundfs.infrastructure.storage import locked_io
from boundfs.infrastructure.storage.directory_tree import ensure_directory_chain
from boundfs.infrastructure.storage.host import FilesystemHost, get_default_host


logger = get_logger(__name__)


@dataclass(frozen=True)
class File:
    """A single file inside a bounded filesystem.

    Handles are cheap and hold no OS resources. Nothing is cached: every
    accessor asks the disk again, and a handle stays usable after the file
    is deleted (``exists()`` just turns False).

    Obtain handles from ``Filesystem.file()`` / ``Directory.file()`` rather
    than constructing them directly; the constructor does no validation.

    Mutating methods return the handle itself for chaining:

        fs.file("logs/app.log", create=True).append_line("started").append_line("ready")
    """

    path: str
    root: str
    host: FilesystemHost = field(default_factory=get_default_host, repr=False, compare=False)

    def read(self) -> Optional[bytes]:
        """Entire content under a shared lock, or None if the file is absent."""
        if not self.exists():
            return None
        return locked_io.read_all(self.path)

    def read_text(self, encoding: str = "utf-8") -> Optional[str]:
        data = self.read()
        if data is None:
            return None
        try:
            return data.decode(encoding)
        except UnicodeDecodeError as exc:
            raise FilesystemError(f"Content is not valid {encoding}", self.path, "read") from exc

    def write(self, data: Union[str, bytes]) -> "File":
        """Replace the content, creating the file and parent directories.

        A failure part-way leaves the file in an indeterminate state; there
        is no rollback.
        """
        ensure_directory_chain(os.path.dirname(self.path))
        written = locked_io.write_all(self.path, data)
        logger.debug("file_written", path=self.path, bytes=written)
        return self

    def append(self, data: Union[str, bytes]) -> "File":
        ensure_directory_chain(os.path.dirname(self.path))
        written = locked_io.append(self.path, data)
        logger.debug("file_appended", path=self.path, bytes=written)
        return self

    def append_line(self, line: Union[str, bytes]) -> "File":
        """Append `line` so that lines are separated by exactly one newline."""
        ensure_directory_chain(os.path.dirname(self.path))
        locked_io.append_line(self.path, line)
        return self

    def copy_from(self, source: Union[str, os.PathLike]) -> "File":
        """Replace the content with that of `source`, both files locked.

        `source` is used as given; callers are responsible for having
        validated it.
        """
        source_path = os.fspath(source)
        if not os.path.isfile(source_path):
            raise FilesystemError("Source file does not exist", source_path, "copy_from")
        ensure_directory_chain(os.path.dirname(self.path))
        written = locked_io.copy_into(self.path, source_path)
        logger.debug("file_copied_from", path=self.path, source=source_path, bytes=written)
        return self

    def delete(self) -> "File":
        """Remove the file; a missing file is not an error."""
        if not self.host.is_file(self.path):
            return self
        try:
            os.remove(self.path)
        except FileNotFoundError:
            return self
        except OSError as exc:
            raise FilesystemError(f"Failed to delete file: {exc.strerror}", self.path, "delete") from exc
        logger.debug("file_deleted", path=self.path)
        return self

    def exists(self) -> bool:
        return self.host.is_file(self.path)

    def size(self) -> Optional[int]:
        """Size in bytes, or None if the file does not exist."""
        if not self.exists():
            return None
        try:
            return os.path.getsize(self.path)
        except OSError as exc:
            raise FilesystemError(f"Failed to get file size: {exc.strerror}", self.path, "size") from exc

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

    def filename(self) -> str:
        return self.path.rstrip("/").rsplit("/", 1)[-1]

    def extension(self) -> str:
        """Lower-cased text after the last dot of the filename, or ``""``.

        ``.bashrc`` has extension ``bashrc``; ``archive.`` has none.
        """
        name = self.filename()
        if "." not in name:
            return ""
        return name.rsplit(".", 1)[1].lower()

    def relative_path(self) -> str:
        return self.path[len(self.root):]

    def __str__(self) -> str:
        return self.path

    def __fspath__(self) -> str:
        return self.path
