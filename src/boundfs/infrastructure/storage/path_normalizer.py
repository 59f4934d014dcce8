"""Lexical path normalization against a filesystem root.

Every caller-supplied path passes through :func:`normalize` before any disk
operation. The function never touches the disk, so it is safe to call on
paths that do not exist yet.

Only the components ``.`` and ``..`` carry meaning. Everything else (``...``,
``%2e%2e``, ``C:`` in the middle of a path, zero-width or bidi characters) is
an ordinary file name and is kept verbatim.

Examples:
    >>> normalize("data/../config.json", "/srv/app")
    'config.json'
    >>> normalize("/srv/app/uploads/a.png", "/srv/app/")
    'uploads/a.png'
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

from boundfs.domain.errors import FilesystemSecurityError
from boundfs.infrastructure.logging_setup import get_logger


logger = get_logger(__name__)

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:/")
_SEPARATOR_RUN = re.compile(r"/+")


def normalize_slashes(path: str) -> str:
    """Convert backslashes to ``/`` and collapse separator runs."""
    return _SEPARATOR_RUN.sub("/", path.replace("\\", "/"))


def is_absolute(path: str) -> bool:
    """Absolute means a leading ``/`` or a ``X:/`` drive prefix.

    Expects a path that already went through :func:`normalize_slashes`.
    """
    return path.startswith("/") or bool(_DRIVE_PREFIX.match(path))


def _reject(path: str, reason: str) -> FilesystemSecurityError:
    logger.warning("path_rejected", path=repr(path), reason=reason)
    return FilesystemSecurityError(reason, path, "normalize")


def normalize(path: str, root: str, relative_to: Optional[str] = None) -> str:
    """Return `path` relative to `root`, or raise FilesystemSecurityError.

    Args:
        path: Relative or absolute path, any separator style.
        root: Canonical absolute root; a trailing separator is optional.
        relative_to: Base for relative paths (defaults to `root`). It only
            changes where relative paths start; the result must still lie
            inside `root`.

    Returns:
        The root-relative path without leading separator; ``""`` for the
        root itself.

    Raises:
        FilesystemSecurityError: control characters, ``..`` above the root,
            or an absolute path outside the root.
    """
    if _CONTROL_CHARS.search(path):
        raise _reject(path, "Path contains invalid control characters")

    candidate = normalize_slashes(path)
    root = normalize_slashes(root)
    base = root if relative_to is None else normalize_slashes(relative_to)

    if not is_absolute(candidate):
        if not base.endswith("/"):
            base += "/"
        candidate = base + candidate

    if candidate != "/":
        candidate = candidate.rstrip("/")

    try:
        return _resolve_components(candidate.split("/"), root)
    except _Escape as escape:
        raise _reject(path, str(escape)) from None


class _Escape(Exception):
    pass


def _resolve_components(parts: Iterable[str], root: str) -> str:
    prefix = root if root.endswith("/") else root + "/"

    stack: list[str] = []
    for part in parts:
        if part == ".":
            continue
        if part == "..":
            # No "above root and back" tolerance: fail the moment we escape.
            if not stack:
                raise _Escape("Path traversal above filesystem root detected")
            stack.pop()
            continue
        stack.append(part)

    joined = "/".join(stack)
    # Compare with the separator appended so /app/data_sibling != /app/data.
    if not (joined + "/").startswith(prefix):
        raise _Escape("Path traversal above allowed root detected")
    return joined[len(prefix):]
