"""JSON sidecar holding per-host tags, pin and usage data."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable

from pydantic import BaseModel, ValidationError

from lazyssh.errors import ParseError, wrap_os_error
from lazyssh.fs import FileSystem, LocalFileSystem
from lazyssh.store.atomic import atomic_write, cleanup_stale_temp_files
from lazyssh.types import Server

logger = logging.getLogger(__name__)

METADATA_PERMS = 0o600
METADATA_DIR_PERMS = 0o750


class ServerMetadata(BaseModel):
    """One entry of the sidecar. Empty fields are omitted on disk."""

    tags: list[str] = []
    last_seen: str = ""
    pinned_at: str = ""
    ssh_count: int = 0


def format_timestamp(value: datetime) -> str:
    """RFC3339 with seconds precision and the local UTC offset."""
    if value.tzinfo is None:
        value = value.astimezone()
    return value.replace(microsecond=0).isoformat()


def parse_timestamp(value: str) -> datetime | None:
    """Parse an RFC3339 timestamp; anything unparseable counts as unset."""
    if not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Ignoring invalid timestamp {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def local_now() -> datetime:
    return datetime.now().astimezone()


class MetadataStore:
    """Load, merge and save the metadata sidecar.

    Every mutation is a full load-modify-save cycle; the file is replaced
    atomically without rolling backups.
    """

    def __init__(
        self,
        path: Path,
        fs: FileSystem | None = None,
        clock: Callable[[], datetime] = local_now,
    ):
        self.path = Path(path)
        self.fs = fs or LocalFileSystem()
        self.clock = clock

    def load_all(self) -> dict[str, ServerMetadata]:
        """Missing or empty file means no metadata."""
        if not self.fs.exists(self.path):
            return {}
        try:
            raw = self.fs.read_bytes(self.path)
        except OSError as err:
            raise wrap_os_error(err, f"failed to read metadata {self.path}") from err

        if not raw.strip():
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as err:
            raise ParseError(f"invalid metadata JSON in {self.path}: {err}") from err
        if not isinstance(data, dict):
            raise ParseError(f"invalid metadata JSON in {self.path}: expected an object")

        try:
            return {alias: ServerMetadata.model_validate(entry) for alias, entry in data.items()}
        except ValidationError as err:
            raise ParseError(f"invalid metadata entry in {self.path}: {err}") from err

    def save_all(self, data: dict[str, ServerMetadata]) -> None:
        payload = {alias: entry.model_dump(exclude_defaults=True) for alias, entry in data.items()}
        content = json.dumps(payload, indent=2) + "\n"
        try:
            self.fs.makedirs(self.path.parent, METADATA_DIR_PERMS)
            atomic_write(self.fs, self.path, content.encode("utf-8"), METADATA_PERMS)
        except OSError as err:
            raise wrap_os_error(err, f"failed to save metadata {self.path}") from err

        try:
            cleanup_stale_temp_files(self.fs, self.path)
        except OSError as err:
            logger.warning(f"Failed to scan for stale temporary files: {err}")

    def merge(self, servers: list[Server]) -> list[Server]:
        """Attach metadata to each record; unmatched records get zero metadata."""
        data = self.load_all()
        merged = []
        for server in servers:
            entry = data.get(server.alias, ServerMetadata())
            merged.append(
                server.model_copy(
                    update={
                        "tags": tuple(entry.tags),
                        "last_seen": parse_timestamp(entry.last_seen),
                        "pinned_at": parse_timestamp(entry.pinned_at),
                        "ssh_count": entry.ssh_count,
                    }
                )
            )
        return merged

    def update_server(self, server: Server, old_alias: str = "") -> None:
        """Re-key on rename, replace tags, keep prior values for unset fields."""
        data = self.load_all()

        if old_alias and old_alias != server.alias:
            # Metadata follows the host; a stale entry under the new alias is dropped
            data[server.alias] = data.pop(old_alias, ServerMetadata())

        entry = data.get(server.alias, ServerMetadata())
        entry.tags = list(server.tags)
        if server.last_seen is not None:
            entry.last_seen = format_timestamp(server.last_seen)
        if server.pinned_at is not None:
            entry.pinned_at = format_timestamp(server.pinned_at)
        if server.ssh_count > 0:
            entry.ssh_count = server.ssh_count
        data[server.alias] = entry

        self.save_all(data)

    def delete_server(self, alias: str) -> None:
        data = self.load_all()
        if data.pop(alias, None) is not None:
            self.save_all(data)

    def set_pinned(self, alias: str, pinned: bool) -> None:
        data = self.load_all()
        entry = data.setdefault(alias, ServerMetadata())
        entry.pinned_at = format_timestamp(self.clock()) if pinned else ""
        self.save_all(data)

    def record_ssh(self, alias: str) -> None:
        data = self.load_all()
        entry = data.setdefault(alias, ServerMetadata())
        now = self.clock()
        previous = parse_timestamp(entry.last_seen)
        if previous is not None and previous > now:
            now = previous
        entry.last_seen = format_timestamp(now)
        entry.ssh_count += 1
        self.save_all(data)
