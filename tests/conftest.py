"""Shared fixtures."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from lazyssh.fs import LocalFileSystem
from lazyssh.store.ssh_config import SSHConfigRepository

UTC = timezone.utc


class FlakyFileSystem(LocalFileSystem):
    """LocalFileSystem that fails selected operations."""

    def __init__(self, fail_rename: bool = False, fail_backup: bool = False):
        self.fail_rename = fail_rename
        self.fail_backup = fail_backup

    def rename(self, src: Path, dst: Path) -> None:
        if self.fail_rename:
            raise OSError("simulated crash during rename")
        super().rename(src, dst)

    def write_file(self, path: Path, data: bytes, mode: int, sync: bool = True) -> None:
        if self.fail_backup and path.name.endswith("backup"):
            raise OSError("simulated disk full")
        super().write_file(path, data, mode, sync)


class FakeClock:
    """Deterministic clock; each call advances by `step`."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


@pytest.fixture
def home(tmp_path, monkeypatch):
    """Isolated home directory with an empty ~/.ssh."""
    home_dir = tmp_path / "home"
    (home_dir / ".ssh").mkdir(parents=True)
    monkeypatch.setenv("HOME", str(home_dir))
    return home_dir


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def repo(home, clock):
    return SSHConfigRepository(
        home / ".ssh" / "config",
        home / ".lazyssh" / "metadata.json",
        home=str(home),
        clock=clock,
    )


@pytest.fixture
def flaky_fs():
    """Factory for file systems that fail on demand."""
    return FlakyFileSystem
