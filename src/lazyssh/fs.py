"""File-system gateway used by the storage layer."""

import os
from pathlib import Path
from typing import Protocol


class FileSystem(Protocol):
    """Protocol for the file operations the storage layer needs."""

    def read_bytes(self, path: Path) -> bytes:
        ...

    def write_file(self, path: Path, data: bytes, mode: int, sync: bool = True) -> None:
        """Create or truncate `path` with `mode`, write `data`, optionally fsync."""
        ...

    def stat(self, path: Path) -> os.stat_result:
        ...

    def exists(self, path: Path) -> bool:
        ...

    def rename(self, src: Path, dst: Path) -> None:
        ...

    def remove(self, path: Path) -> None:
        ...

    def chmod(self, path: Path, mode: int) -> None:
        ...

    def listdir(self, path: Path) -> list[str]:
        ...

    def makedirs(self, path: Path, mode: int) -> None:
        ...


class LocalFileSystem:
    """FileSystem backed by the host OS."""

    def read_bytes(self, path: Path) -> bytes:
        with open(path, "rb") as f:
            return f.read()

    def write_file(self, path: Path, data: bytes, mode: int, sync: bool = True) -> None:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            if sync:
                os.fsync(f.fileno())
        # os.open honours the umask, so force the requested bits
        os.chmod(path, mode)

    def stat(self, path: Path) -> os.stat_result:
        return os.stat(path)

    def exists(self, path: Path) -> bool:
        return os.path.exists(path)

    def rename(self, src: Path, dst: Path) -> None:
        os.replace(src, dst)

    def remove(self, path: Path) -> None:
        os.remove(path)

    def chmod(self, path: Path, mode: int) -> None:
        os.chmod(path, mode)

    def listdir(self, path: Path) -> list[str]:
        return sorted(os.listdir(path))

    def makedirs(self, path: Path, mode: int) -> None:
        os.makedirs(path, mode=mode, exist_ok=True)
