"""Crash-safe file replacement and config backups."""

import logging
import time
from pathlib import Path
from typing import Callable

from lazyssh.fs import FileSystem

logger = logging.getLogger(__name__)

MAX_BACKUPS = 10
BACKUP_SUFFIX = "lazyssh.backup"
ORIGINAL_BACKUP_SUFFIX = ".original.backup"
TEMP_SUFFIX = ".tmp"
CONFIG_PERMS = 0o600


def temp_path_for(path: Path) -> Path:
    return path.with_name(f"{path.name}.{time.time_ns()}{TEMP_SUFFIX}")


def atomic_write(
    fs: FileSystem,
    path: Path,
    data: bytes,
    mode: int = CONFIG_PERMS,
    before_rename: Callable[[], None] | None = None,
) -> None:
    """Replace `path` with `data` through an fsynced sibling temp file.

    `before_rename` runs after the temp file is durable and before it is
    moved over the target. Any failure up to and including the rename
    removes the temp file and leaves the target untouched.
    """
    tmp = temp_path_for(path)
    try:
        fs.write_file(tmp, data, mode)
        if before_rename is not None:
            before_rename()
        fs.rename(tmp, path)
    except Exception:
        if fs.exists(tmp):
            try:
                fs.remove(tmp)
            except OSError as err:
                logger.warning(f"Failed to remove temporary file {tmp}: {err}")
        raise


def cleanup_stale_temp_files(fs: FileSystem, path: Path) -> list[Path]:
    """Remove `<name>.*.tmp` siblings left behind by an interrupted write."""
    removed = []
    prefix = f"{path.name}."
    for name in fs.listdir(path.parent):
        if not (name.startswith(prefix) and name.endswith(TEMP_SUFFIX)):
            continue
        stale = path.parent / name
        try:
            fs.remove(stale)
            removed.append(stale)
            logger.debug(f"Removed stale temporary file {stale}")
        except OSError as err:
            logger.warning(f"Failed to remove stale temporary file {stale}: {err}")
    return removed


class BackupManager:
    """One-time original backup plus rolling timestamped backups of a file."""

    def __init__(self, fs: FileSystem, path: Path, max_backups: int = MAX_BACKUPS):
        if max_backups < 1:
            raise ValueError("max_backups must be at least 1")
        self.fs = fs
        self.path = path
        self.max_backups = max_backups

    @property
    def original_backup_path(self) -> Path:
        return self.path.with_name(self.path.name + ORIGINAL_BACKUP_SUFFIX)

    def backup_before_write(self) -> None:
        """Run both backup steps. Nothing happens if the file does not exist yet."""
        if not self.fs.exists(self.path):
            return
        self.ensure_original_backup()
        self.create_rolling_backup()

    def ensure_original_backup(self) -> bool:
        """Copy the file to `<name>.original.backup` once. Returns True if written."""
        target = self.original_backup_path
        if self.fs.exists(target) or not self.fs.exists(self.path):
            return False
        self.fs.write_file(target, self.fs.read_bytes(self.path), CONFIG_PERMS)
        logger.info(f"Saved original config to {target}")
        return True

    def create_rolling_backup(self) -> Path | None:
        if not self.fs.exists(self.path):
            return None

        stamp = time.time_ns() // 1_000_000
        target = self._rolling_name(stamp)
        while self.fs.exists(target):
            stamp += 1
            target = self._rolling_name(stamp)

        mode = self.fs.stat(self.path).st_mode & 0o777
        self.fs.write_file(target, self.fs.read_bytes(self.path), mode)
        logger.debug(f"Created backup: {target}")

        self.prune()
        return target

    def _rolling_name(self, stamp: int) -> Path:
        return self.path.with_name(f"{self.path.name}-{stamp}-{BACKUP_SUFFIX}")

    def list_backups(self) -> list[Path]:
        """Rolling backups of this file, newest first."""
        prefix = f"{self.path.name}-"
        entries = []
        for name in self.fs.listdir(self.path.parent):
            if not (name.startswith(prefix) and name.endswith(BACKUP_SUFFIX)):
                continue
            backup = self.path.parent / name
            try:
                mtime = self.fs.stat(backup).st_mtime_ns
            except OSError as err:
                logger.warning(f"Failed to stat backup {backup}: {err}")
                continue
            entries.append((mtime, name, backup))
        entries.sort(reverse=True)
        return [backup for _, _, backup in entries]

    def prune(self) -> None:
        """Remove rolling backups past the retention bound. Never raises on removal."""
        try:
            backups = self.list_backups()
        except OSError as err:
            logger.warning(f"Failed to list backups in {self.path.parent}: {err}")
            return

        for old in backups[self.max_backups :]:
            try:
                self.fs.remove(old)
                logger.debug(f"Removed old backup: {old}")
            except OSError as err:
                logger.warning(f"Failed to remove old backup {old}: {err}")
