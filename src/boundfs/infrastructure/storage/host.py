"""Host filesystem capabilities used by the boundary layer.

The boundary logic only needs a handful of primitives from the operating
system: canonicalizing an existing path, telling files from directories,
expanding a glob inside one directory and recognising transient upload
files. They are collected behind :class:`FilesystemHost` so the resolver can
be exercised against an in-memory fake.

Glob language supported by :class:`LocalHost`:
- ``*`` any run of characters except ``/``
- ``?`` any single character except ``/``
- ``[...]`` / ``[!...]`` character classes
- ``{a,b,c}`` alternation, nestable
- ``\\`` escapes the next character
"""

from __future__ import annotations

import glob as _glob
import os
import threading
from abc import ABC, abstractmethod
from typing import Optional, Sequence


class FilesystemHost(ABC):
    """Primitives the boundary layer borrows from the host OS."""

    @abstractmethod
    def realpath(self, path: str) -> Optional[str]:
        """Canonical absolute form of an existing path, ``None`` if missing."""
        pass

    @abstractmethod
    def is_file(self, path: str) -> bool:
        pass

    @abstractmethod
    def is_dir(self, path: str) -> bool:
        pass

    @abstractmethod
    def glob(self, directory: str, pattern: str, *, only_dirs: bool = False) -> list[str]:
        """Absolute paths of entries of `directory` matching `pattern`."""
        pass

    @abstractmethod
    def is_transient_upload(self, path: str) -> bool:
        """Whether `path` is an upload whose lifecycle another subsystem owns."""
        pass


class LocalHost(FilesystemHost):
    """FilesystemHost backed by the local disk."""

    def __init__(self, upload_dirs: Optional[Sequence[str]] = None):
        self._upload_dirs = list(upload_dirs) if upload_dirs is not None else None

    @property
    def upload_dirs(self) -> list[str]:
        if self._upload_dirs is not None:
            return list(self._upload_dirs)
        from boundfs.config import settings
        return list(settings.upload_dirs)

    def realpath(self, path: str) -> Optional[str]:
        if not path or not os.path.exists(path):
            return None
        return os.path.realpath(path).replace("\\", "/")

    def is_file(self, path: str) -> bool:
        return os.path.isfile(path)

    def is_dir(self, path: str) -> bool:
        return os.path.isdir(path)

    def glob(self, directory: str, pattern: str, *, only_dirs: bool = False) -> list[str]:
        base = _glob.escape(directory.rstrip("/"))
        matches: list[str] = []
        seen: set[str] = set()
        for expanded in expand_braces(pattern):
            for item in sorted(_glob.glob(f"{base}/{_translate_escapes(expanded)}")):
                if only_dirs and not os.path.isdir(item):
                    continue
                item = item.replace("\\", "/")
                if item not in seen:
                    seen.add(item)
                    matches.append(item)
        return matches

    def is_transient_upload(self, path: str) -> bool:
        candidate = self.realpath(path)
        if candidate is None:
            return False
        for upload_dir in self.upload_dirs:
            upload_root = self.realpath(upload_dir)
            if upload_root is None:
                continue
            prefix = upload_root.rstrip("/") + "/"
            if candidate != upload_root and candidate.startswith(prefix):
                return True
        return False


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternations into plain glob patterns.

    Alternatives keep their left-to-right order and duplicates are dropped.
    An unmatched ``{`` is literal, and escaped braces or commas are left for
    the glob matcher.

    >>> expand_braces("*.{jpg,png}")
    ['*.jpg', '*.png']
    >>> expand_braces("{a,b{1,2}}x")
    ['ax', 'b1x', 'b2x']
    """
    group = _first_brace_group(pattern)
    if group is None:
        return [pattern]
    start, end, options = group
    head, tail = pattern[:start], pattern[end + 1:]
    expanded: list[str] = []
    for option in options:
        for item in expand_braces(head + option + tail):
            if item not in expanded:
                expanded.append(item)
    return expanded


def _first_brace_group(pattern: str) -> Optional[tuple[int, int, list[str]]]:
    index = 0
    while index < len(pattern):
        char = pattern[index]
        if char == "\\":
            index += 2
            continue
        if char == "{":
            group = _match_brace(pattern, index)
            if group is not None:
                return group
        index += 1
    return None


def _match_brace(pattern: str, start: int) -> Optional[tuple[int, int, list[str]]]:
    depth = 0
    options: list[str] = []
    option_start = start + 1
    index = start
    while index < len(pattern):
        char = pattern[index]
        if char == "\\":
            index += 2
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                options.append(pattern[option_start:index])
                return start, index, options
        elif char == "," and depth == 1:
            options.append(pattern[option_start:index])
            option_start = index + 1
        index += 1
    return None


def _translate_escapes(pattern: str) -> str:
    # fnmatch has no backslash escape; bracket the magic characters instead.
    out: list[str] = []
    index = 0
    while index < len(pattern):
        char = pattern[index]
        if char == "\\" and index + 1 < len(pattern):
            escaped = pattern[index + 1]
            out.append(f"[{escaped}]" if escaped in "*?[" else escaped)
            index += 2
            continue
        out.append(char)
        index += 1
    return "".join(out)


# Global host instance
_default_host: Optional[LocalHost] = None
_default_host_lock = threading.Lock()


def get_default_host() -> LocalHost:
    """Get or create the process-wide LocalHost."""
    global _default_host

    if _default_host is not None:
        return _default_host

    with _default_host_lock:
        if _default_host is None:
            _default_host = LocalHost()
        return _default_host
