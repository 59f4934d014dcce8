"""Tests for advisory-locked file I/O."""

import errno

import pytest

from boundfs.domain.errors import FilesystemError
from boundfs.infrastructure.storage import locked_io


class TestAcquireLock:
    """Retry and backoff behaviour, with the OS lock call stubbed out."""

    @pytest.fixture
    def sleeps(self, monkeypatch):
        recorded = []
        monkeypatch.setattr(locked_io.time, "sleep", recorded.append)
        return recorded

    def _fail_times(self, monkeypatch, failures):
        calls = {"count": 0}

        def fake_try_lock(handle, exclusive):
            calls["count"] += 1
            return calls["count"] > failures

        monkeypatch.setattr(locked_io, "_try_lock", fake_try_lock)
        return calls

    def test_first_attempt_succeeds_without_sleeping(self, monkeypatch, sleeps):
        self._fail_times(monkeypatch, 0)
        assert locked_io.acquire_lock(object(), exclusive=True, max_attempts=5, initial_delay_ms=10)
        assert sleeps == []

    def test_exponential_backoff_until_success(self, monkeypatch, sleeps):
        calls = self._fail_times(monkeypatch, 3)
        assert locked_io.acquire_lock(object(), exclusive=False, max_attempts=5, initial_delay_ms=10)
        assert calls["count"] == 4
        assert sleeps == pytest.approx([0.01, 0.02, 0.04])

    def test_gives_up_after_max_attempts(self, monkeypatch, sleeps):
        calls = self._fail_times(monkeypatch, 100)
        assert not locked_io.acquire_lock(object(), exclusive=True, max_attempts=5, initial_delay_ms=10)
        assert calls["count"] == 5
        # No sleep after the final attempt.
        assert sleeps == pytest.approx([0.01, 0.02, 0.04, 0.08])

    def test_defaults_come_from_settings(self, monkeypatch, sleeps):
        monkeypatch.setattr("boundfs.config.settings.lock_max_attempts", 2)
        monkeypatch.setattr("boundfs.config.settings.lock_initial_delay_ms", 7)
        calls = self._fail_times(monkeypatch, 100)
        assert not locked_io.acquire_lock(object(), exclusive=True)
        assert calls["count"] == 2
        assert sleeps == pytest.approx([0.007])

    def test_at_least_one_attempt(self, monkeypatch, sleeps):
        calls = self._fail_times(monkeypatch, 100)
        assert not locked_io.acquire_lock(object(), exclusive=True, max_attempts=0, initial_delay_ms=10)
        assert calls["count"] == 1

    def test_open_raises_when_lock_never_granted(self, tmp_path, monkeypatch, sleeps):
        target = tmp_path / "busy.txt"
        target.write_bytes(b"keep")
        self._fail_times(monkeypatch, 100)
        with pytest.raises(FilesystemError, match="Failed to acquire lock") as exc_info:
            locked_io.write_all(str(target), b"new")
        assert exc_info.value.operation == "write"
        # Truncation only happens once the lock is held.
        assert target.read_bytes() == b"keep"


@pytest.mark.skipif(not locked_io.HAVE_FCNTL, reason="flock contention needs fcntl")
class TestRealContention:
    """Another open file description holding the lock blocks us."""

    @pytest.fixture
    def held(self, tmp_path):
        import fcntl

        target = tmp_path / "shared.txt"
        target.write_bytes(b"content")
        handle = open(target, "rb")

        def hold(operation):
            fcntl.flock(handle.fileno(), operation | fcntl.LOCK_NB)

        yield target, hold
        fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        handle.close()

    def test_exclusive_holder_blocks_readers(self, held, fast_locks):
        import fcntl

        target, hold = held
        hold(fcntl.LOCK_EX)
        with pytest.raises(FilesystemError, match="Failed to acquire lock"):
            locked_io.read_all(str(target))

    def test_shared_holder_allows_readers(self, held, fast_locks):
        import fcntl

        target, hold = held
        hold(fcntl.LOCK_SH)
        assert locked_io.read_all(str(target)) == b"content"

    def test_shared_holder_blocks_writers(self, held, fast_locks):
        import fcntl

        target, hold = held
        hold(fcntl.LOCK_SH)
        with pytest.raises(FilesystemError, match="Failed to acquire lock"):
            locked_io.append(str(target), b"more")
        assert target.read_bytes() == b"content"

    def test_lock_released_after_each_call(self, tmp_path, fast_locks):
        import fcntl

        target = tmp_path / "released.txt"
        locked_io.write_all(str(target), b"x")
        with open(target, "rb") as handle:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


class TestReadWrite:
    def test_write_creates_and_replaces(self, tmp_path):
        target = str(tmp_path / "a.bin")
        assert locked_io.write_all(target, b"first version") == 13
        locked_io.write_all(target, b"v2")
        assert locked_io.read_all(target) == b"v2"

    def test_write_accepts_text(self, tmp_path):
        target = str(tmp_path / "t.txt")
        locked_io.write_all(target, "héllo")
        assert locked_io.read_all(target) == "héllo".encode("utf-8")

    def test_write_empty(self, tmp_path):
        target = str(tmp_path / "empty")
        locked_io.write_all(target, b"")
        assert locked_io.read_all(target) == b""

    def test_read_missing_file(self, tmp_path):
        with pytest.raises(FilesystemError, match="Failed to open file") as exc_info:
            locked_io.read_all(str(tmp_path / "missing"))
        assert exc_info.value.operation == "read"

    def test_append_creates(self, tmp_path):
        target = str(tmp_path / "log")
        locked_io.append(target, b"a")
        locked_io.append(target, b"b")
        assert locked_io.read_all(target) == b"ab"


class TestAppendLine:
    @pytest.mark.parametrize(
        "existing, line, expected",
        [
            (None, "first", b"first"),
            (b"", "first", b"first"),
            (b"a", "b", b"a\nb"),
            (b"a\n", "b", b"a\nb"),
            (b"a\n\n", "b", b"a\n\nb"),
        ],
    )
    def test_single_separator(self, tmp_path, existing, line, expected):
        target = tmp_path / "lines.txt"
        if existing is not None:
            target.write_bytes(existing)
        locked_io.append_line(str(target), line)
        assert target.read_bytes() == expected

    def test_repeated_calls(self, tmp_path):
        target = str(tmp_path / "lines.txt")
        for line in ["a", "b", "c"]:
            locked_io.append_line(target, line)
        assert locked_io.read_all(target) == b"a\nb\nc"


class TestCopyInto:
    def test_streams_in_chunks(self, tmp_path):
        source = tmp_path / "source.bin"
        payload = bytes(range(256)) * 50
        source.write_bytes(payload)
        destination = tmp_path / "dest.bin"
        destination.write_bytes(b"old content that is longer than nothing")

        copied = locked_io.copy_into(str(destination), str(source), chunk_size=1000)

        assert copied == len(payload)
        assert destination.read_bytes() == payload

    def test_empty_source_truncates(self, tmp_path):
        source = tmp_path / "empty"
        source.write_bytes(b"")
        destination = tmp_path / "dest"
        destination.write_bytes(b"stale")
        assert locked_io.copy_into(str(destination), str(source)) == 0
        assert destination.read_bytes() == b""

    def test_zero_chunk_size_is_refused(self, tmp_path):
        source = tmp_path / "source.bin"
        source.write_bytes(b"payload")
        destination = tmp_path / "dest.bin"
        destination.write_bytes(b"keep")

        with pytest.raises(FilesystemError, match="Invalid copy chunk size") as exc_info:
            locked_io.copy_into(str(destination), str(source), chunk_size=0)

        assert exc_info.value.operation == "copy_from"
        assert destination.read_bytes() == b"keep"

    def test_zero_chunk_size_from_settings_is_refused(self, tmp_path, monkeypatch):
        monkeypatch.setattr("boundfs.config.settings.copy_chunk_size", 0)
        source = tmp_path / "source.bin"
        source.write_bytes(b"payload")
        destination = tmp_path / "dest.bin"
        destination.write_bytes(b"keep")

        with pytest.raises(FilesystemError):
            locked_io.copy_into(str(destination), str(source))
        assert destination.read_bytes() == b"keep"


class FlakyWriter:
    """Handle whose write() follows a script of byte counts or exceptions."""

    def __init__(self, script):
        self.script = list(script)
        self.data = bytearray()

    def write(self, view):
        step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        self.data += bytes(view[:step])
        return step


class TestPartialWrites:
    def test_short_writes_are_continued(self):
        handle = FlakyWriter([2, 2, 3])
        assert locked_io._write_fully(handle, b"payload", "/x", "write") == 7
        assert bytes(handle.data) == b"payload"

    def test_zero_byte_write_fails_mid_stream(self):
        handle = FlakyWriter([3, 0])
        with pytest.raises(FilesystemError, match="Failed mid-stream") as exc_info:
            locked_io._write_fully(handle, b"payload", "/x", "write")
        assert exc_info.value.operation == "write"
        assert exc_info.value.path == "/x"
        # No rollback of what already reached the file.
        assert bytes(handle.data) == b"pay"

    def test_os_error_fails_mid_stream(self):
        handle = FlakyWriter([2, OSError(errno.EIO, "Input/output error")])
        with pytest.raises(FilesystemError, match="Failed mid-stream") as exc_info:
            locked_io._write_fully(handle, b"payload", "/x", "append")
        assert exc_info.value.operation == "append"
        assert isinstance(exc_info.value.__cause__, OSError)
        assert bytes(handle.data) == b"pa"


@pytest.mark.skipif(not locked_io.HAVE_FCNTL, reason="needs fcntl")
class TestLockSystemErrors:
    """flock failures other than contention surface as FilesystemError."""

    def _flock_failing_on(self, monkeypatch, failing):
        import fcntl

        real_flock = fcntl.flock

        def flock(fd, operation):
            if failing(operation):
                raise OSError(errno.ENOLCK, "No locks available")
            return real_flock(fd, operation)

        monkeypatch.setattr(locked_io.fcntl, "flock", flock)

    @pytest.mark.parametrize(
        "call",
        [
            lambda path: locked_io.read_all(path),
            lambda path: locked_io.write_all(path, b"x"),
            lambda path: locked_io.append(path, b"x"),
            lambda path: locked_io.append_line(path, b"x"),
        ],
    )
    def test_lock_failure(self, tmp_path, monkeypatch, call):
        import fcntl

        target = tmp_path / "nfs.txt"
        target.write_bytes(b"data")
        self._flock_failing_on(monkeypatch, lambda op: op != fcntl.LOCK_UN)

        with pytest.raises(FilesystemError, match="Failed to lock file") as exc_info:
            call(str(target))

        assert isinstance(exc_info.value.__cause__, OSError)
        assert exc_info.value.path == str(target)
        assert target.read_bytes() == b"data"

    def test_unlock_failure(self, tmp_path, monkeypatch):
        import fcntl

        target = tmp_path / "nfs.txt"
        target.write_bytes(b"data")
        self._flock_failing_on(monkeypatch, lambda op: op == fcntl.LOCK_UN)

        with pytest.raises(FilesystemError, match="Failed to unlock file") as exc_info:
            locked_io.read_all(str(target))
        assert exc_info.value.operation == "read"
