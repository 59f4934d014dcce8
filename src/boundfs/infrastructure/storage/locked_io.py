"""Advisory-locked file I/O.

Every operation opens its own handle, takes an advisory lock with bounded
retry, does its work and releases the lock and handle on every exit path.
Nothing is held between calls.

Locking uses ``fcntl.flock`` on POSIX and ``msvcrt.locking`` of the first
byte on Windows (where shared locks degrade to exclusive ones).
"""

from __future__ import annotations

import os
import time
from contextlib import contextmanager
from typing import BinaryIO, Iterator, Optional, Union

from boundfs.domain.errors import FilesystemError
from boundfs.infrastructure.logging_setup import get_logger

try:
    import fcntl  # POSIX systems

    HAVE_FCNTL = True
except ImportError:
    HAVE_FCNTL = False

try:
    import msvcrt  # Windows

    HAVE_MSVCRT = True
except ImportError:
    HAVE_MSVCRT = False


logger = get_logger(__name__)

Data = Union[str, bytes, bytearray, memoryview]


def _as_bytes(data: Data) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def _create_opener(path: str, flags: int) -> int:
    # "r+b" without O_CREAT would refuse missing files; never truncate here.
    return os.open(path, flags | os.O_CREAT, 0o666)


def _try_lock(handle: BinaryIO, exclusive: bool) -> bool:
    fd = handle.fileno()
    if HAVE_FCNTL:
        operation = (fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH) | fcntl.LOCK_NB
        try:
            fcntl.flock(fd, operation)
        except (BlockingIOError, PermissionError):
            return False
        return True
    if HAVE_MSVCRT:
        position = os.lseek(fd, 0, os.SEEK_CUR)
        os.lseek(fd, 0, os.SEEK_SET)
        try:
            msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
        except OSError:
            return False
        finally:
            os.lseek(fd, position, os.SEEK_SET)
        return True
    return True


def release_lock(handle: BinaryIO) -> None:
    fd = handle.fileno()
    if HAVE_FCNTL:
        fcntl.flock(fd, fcntl.LOCK_UN)
    elif HAVE_MSVCRT:
        position = os.lseek(fd, 0, os.SEEK_CUR)
        os.lseek(fd, 0, os.SEEK_SET)
        try:
            msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
        finally:
            os.lseek(fd, position, os.SEEK_SET)


def acquire_lock(
    handle: BinaryIO,
    *,
    exclusive: bool,
    max_attempts: Optional[int] = None,
    initial_delay_ms: Optional[int] = None,
) -> bool:
    """Try to lock `handle` without blocking, backing off exponentially.

    With the defaults this is 5 attempts separated by 10, 20, 40 and 80 ms,
    so a contended lock costs at most ~150 ms before giving up.

    Returns:
        True once the lock is held, False if every attempt failed.
    """
    from boundfs.config import settings

    attempts = max(1, max_attempts if max_attempts is not None else settings.lock_max_attempts)
    delay_ms = initial_delay_ms if initial_delay_ms is not None else settings.lock_initial_delay_ms

    for attempt in range(1, attempts + 1):
        if _try_lock(handle, exclusive):
            return True
        if attempt < attempts:
            time.sleep(delay_ms * (2 ** (attempt - 1)) / 1000)
    return False


@contextmanager
def locked_open(path: str, mode: str, *, exclusive: bool, operation: str) -> Iterator[BinaryIO]:
    """Open `path` unbuffered in binary `mode` and hold an advisory lock.

    Modes containing ``+`` without ``a`` open-or-create without truncating.
    """
    opener = _create_opener if "+" in mode and "a" not in mode else None
    try:
        handle = open(path, mode, buffering=0, opener=opener)
    except OSError as exc:
        raise FilesystemError(f"Failed to open file: {exc.strerror}", path, operation) from exc

    try:
        try:
            locked = acquire_lock(handle, exclusive=exclusive)
        except OSError as exc:
            raise FilesystemError(f"Failed to lock file: {exc.strerror}", path, operation) from exc
        if not locked:
            logger.warning("lock_not_acquired", path=path, operation=operation)
            raise FilesystemError("Failed to acquire lock for file", path, operation)
        try:
            yield handle
        finally:
            try:
                release_lock(handle)
            except OSError as exc:
                raise FilesystemError(f"Failed to unlock file: {exc.strerror}", path, operation) from exc
    finally:
        handle.close()


def _write_fully(handle: BinaryIO, payload: bytes, path: str, operation: str) -> int:
    view = memoryview(payload)
    total = 0
    while view:
        try:
            written = handle.write(view)
        except OSError as exc:
            raise FilesystemError(
                f"Failed mid-stream to write data to file: {exc.strerror}", path, operation
            ) from exc
        if not written:
            raise FilesystemError("Failed mid-stream to write data to file", path, operation)
        total += written
        view = view[written:]
    return total


def read_all(path: str) -> bytes:
    """Whole content of `path` under a shared lock."""
    with locked_open(path, "rb", exclusive=False, operation="read") as handle:
        try:
            return handle.readall()
        except OSError as exc:
            raise FilesystemError(f"Failed to read data from file: {exc.strerror}", path, "read") from exc


def write_all(path: str, data: Data) -> int:
    """Replace the content of `path`; truncation happens only once locked."""
    payload = _as_bytes(data)
    with locked_open(path, "r+b", exclusive=True, operation="write") as handle:
        try:
            handle.truncate(0)
        except OSError as exc:
            raise FilesystemError(f"Failed to truncate file: {exc.strerror}", path, "write") from exc
        return _write_fully(handle, payload, path, "write")


def append(path: str, data: Data) -> int:
    payload = _as_bytes(data)
    with locked_open(path, "ab", exclusive=True, operation="append") as handle:
        return _write_fully(handle, payload, path, "append")


def append_line(path: str, line: Data) -> int:
    """Append `line`, separated from existing content by exactly one newline.

    No trailing newline is written, so repeated calls yield ``a\\nb\\nc``.
    """
    payload = _as_bytes(line)
    with locked_open(path, "a+b", exclusive=True, operation="append_line") as handle:
        try:
            size = os.fstat(handle.fileno()).st_size
            needs_newline = False
            if size > 0:
                handle.seek(-1, os.SEEK_END)
                needs_newline = handle.read(1) != b"\n"
        except OSError as exc:
            raise FilesystemError(f"Failed to inspect file: {exc.strerror}", path, "append_line") from exc
        if needs_newline:
            payload = b"\n" + payload
        return _write_fully(handle, payload, path, "append_line")


def copy_into(destination: str, source: str, *, chunk_size: Optional[int] = None) -> int:
    """Stream `source` into `destination`, both locked for the duration."""
    from boundfs.config import settings

    chunk = chunk_size if chunk_size is not None else settings.copy_chunk_size
    if chunk < 1:
        raise FilesystemError(f"Invalid copy chunk size: {chunk}", destination, "copy_from")
    total = 0
    with locked_open(destination, "r+b", exclusive=True, operation="copy_from") as target:
        with locked_open(source, "rb", exclusive=False, operation="copy_from") as origin:
            try:
                target.truncate(0)
            except OSError as exc:
                raise FilesystemError(
                    f"Failed to truncate file: {exc.strerror}", destination, "copy_from"
                ) from exc
            while True:
                try:
                    block = origin.read(chunk)
                except OSError as exc:
                    raise FilesystemError(
                        f"Failed mid-stream to read data from file: {exc.strerror}", source, "copy_from"
                    ) from exc
                if not block:
                    break
                total += _write_fully(target, block, destination, "copy_from")
    return total
