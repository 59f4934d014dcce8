"""boundfs - a filesystem confined to a single root directory.

Every caller-supplied path is normalized and proven to stay inside the root
before any disk access:
- relative or absolute paths, any separator style, ``.`` and ``..``
- control characters and null bytes are rejected outright
- file reads and writes take advisory locks with bounded retry
"""

from boundfs.domain.errors import FilesystemError, FilesystemSecurityError
from boundfs.infrastructure.storage.host import FilesystemHost, LocalHost
from boundfs.infrastructure.storage.path_normalizer import normalize
from boundfs.kernel.storage import Directory, File, Filesystem

__version__ = "0.1.0"

__all__ = [
    "Directory",
    "File",
    "Filesystem",
    "FilesystemError",
    "FilesystemHost",
    "FilesystemSecurityError",
    "LocalHost",
    "normalize",
]
