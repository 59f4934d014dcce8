"""Storage infrastructure for boundfs.

Provides path normalization, host primitives, locked I/O and directory tree
helpers. None of these know about roots beyond what they are handed.
"""

from .path_normalizer import (
    is_absolute,
    normalize,
    normalize_slashes,
)
from .host import (
    FilesystemHost,
    LocalHost,
    expand_braces,
    get_default_host,
)
from .directory_tree import (
    delete_directory_tree,
    ensure_directory_chain,
)
from .locked_io import (
    acquire_lock,
    locked_open,
    release_lock,
)

__all__ = [
    # Path normalization
    "is_absolute",
    "normalize",
    "normalize_slashes",
    # Host primitives
    "FilesystemHost",
    "LocalHost",
    "expand_braces",
    "get_default_host",
    # Directory trees
    "delete_directory_tree",
    "ensure_directory_chain",
    # Locked I/O
    "acquire_lock",
    "locked_open",
    "release_lock",
]
