"""Shared fixtures for boundfs tests."""

from pathlib import Path

import pytest

from boundfs.kernel.storage.filesystem import Filesystem


@pytest.fixture
def fs_root(tmp_path) -> Path:
    """A small tree: file.txt, subdir/file2.txt, subdir/nested/."""
    root = tmp_path / "root"
    (root / "subdir" / "nested").mkdir(parents=True)
    (root / "file.txt").write_text("root file")
    (root / "subdir" / "file2.txt").write_text("nested file")
    return root


@pytest.fixture
def fs(fs_root) -> Filesystem:
    return Filesystem(fs_root)


@pytest.fixture
def fast_locks(monkeypatch):
    """Shrink lock backoff so contention tests stay quick."""
    monkeypatch.setattr("boundfs.config.settings.lock_initial_delay_ms", 1)
    monkeypatch.setattr("boundfs.config.settings.lock_max_attempts", 3)
