"""Kernel Storage - bounded filesystem handles.

A Filesystem owns a canonical root; File and Directory handles minted from
it can never point outside that root.
"""

from boundfs.kernel.storage.directory import Directory
from boundfs.kernel.storage.file import File
from boundfs.kernel.storage.filesystem import Filesystem
from boundfs.kernel.storage.entry_resolver import (
    list_directories,
    list_files,
    resolve_directory,
    resolve_file,
)

__all__ = [
    "Directory",
    "File",
    "Filesystem",
    "resolve_file",
    "resolve_directory",
    "list_files",
    "list_directories",
]
