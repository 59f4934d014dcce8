"""Domain types shared across boundfs."""

from boundfs.domain.errors import FilesystemError, FilesystemSecurityError

__all__ = [
    "FilesystemError",
    "FilesystemSecurityError",
]
