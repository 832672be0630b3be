"""ServerRepository backed by the OpenSSH client config and the metadata sidecar."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable

from lazyssh.errors import AliasConflictError, HostNotFoundError, LazySSHError, ParseError, wrap_os_error
from lazyssh.fs import FileSystem, LocalFileSystem
from lazyssh.sshconfig import (
    ConfigDocument,
    append_server,
    find_block,
    parse_config,
    remove_server,
    servers_from_document,
    update_server,
)
from lazyssh.store.atomic import (
    CONFIG_PERMS,
    MAX_BACKUPS,
    BackupManager,
    atomic_write,
    cleanup_stale_temp_files,
)
from lazyssh.store.base import filter_servers
from lazyssh.store.metadata import MetadataStore, local_now
from lazyssh.types import Server

logger = logging.getLogger(__name__)

SSH_DIR_PERMS = 0o700


class SSHConfigRepository:
    """File-based repository.

    Mutations follow one path: load the document, change it in memory,
    write it atomically (with backups), then update the sidecar. The
    config rename always completes before the sidecar is touched; a
    sidecar failure at that point is logged and does not undo the write.
    """

    def __init__(
        self,
        config_path: Path,
        metadata_path: Path,
        fs: FileSystem | None = None,
        max_backups: int = MAX_BACKUPS,
        home: str | None = None,
        clock: Callable[[], datetime] = local_now,
    ):
        self.config_path = Path(config_path)
        self.fs = fs or LocalFileSystem()
        self.home = home
        self.metadata = MetadataStore(metadata_path, self.fs, clock)
        self.backups = BackupManager(self.fs, self.config_path, max_backups)
        self.warnings: list[str] = []

    # Config I/O

    def load_document(self) -> ConfigDocument:
        """Parse the config file; a missing file is an empty document."""
        if not self.fs.exists(self.config_path):
            self.warnings = []
            return ConfigDocument()
        try:
            raw = self.fs.read_bytes(self.config_path)
        except OSError as err:
            raise wrap_os_error(err, f"failed to read config {self.config_path}") from err
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as err:
            raise ParseError(f"failed to decode config {self.config_path}: {err}") from err

        result = parse_config(text)
        self.warnings = result.warnings
        return result.document

    def save_document(self, document: ConfigDocument) -> None:
        data = document.render().encode("utf-8")
        try:
            self.fs.makedirs(self.config_path.parent, SSH_DIR_PERMS)
            atomic_write(
                self.fs,
                self.config_path,
                data,
                CONFIG_PERMS,
                before_rename=self.backups.backup_before_write,
            )
        except OSError as err:
            raise wrap_os_error(err, f"failed to write config {self.config_path}") from err

        try:
            cleanup_stale_temp_files(self.fs, self.config_path)
        except OSError as err:
            logger.warning(f"Failed to scan for stale temporary files: {err}")
        logger.info(f"SSH config updated: {self.config_path}")

    def _sync_metadata(self, action: str, fn: Callable, *args) -> None:
        try:
            fn(*args)
        except LazySSHError as err:
            logger.warning(f"Config saved but metadata {action} failed: {err}")

    def _check_conflicts(self, document: ConfigDocument, server: Server, skip=None) -> None:
        wanted = [server.alias, *server.aliases]
        for block in document.host_blocks():
            if block is skip:
                continue
            for pattern in wanted:
                if pattern in block.concrete_patterns:
                    raise AliasConflictError(pattern)

    # Repository contract

    def list_servers(self, query: str = "") -> list[Server]:
        document = self.load_document()
        servers = self.metadata.merge(servers_from_document(document))
        return filter_servers(servers, query)

    def add_server(self, server: Server) -> None:
        document = self.load_document()
        self._check_conflicts(document, server)
        append_server(document, server, self.home)
        self.save_document(document)
        self._sync_metadata("update", self.metadata.update_server, server)

    def update_server(self, server: Server, new_server: Server) -> None:
        document = self.load_document()
        block = find_block(document, server.alias)
        if block is None:
            raise HostNotFoundError(server.alias)
        self._check_conflicts(document, new_server, skip=block)

        update_server(document, server.alias, new_server, self.home)
        self.save_document(document)
        self._sync_metadata("update", self.metadata.update_server, new_server, server.alias)

    def delete_server(self, server: Server) -> None:
        document = self.load_document()
        remove_server(document, server.alias)
        self.save_document(document)
        self._sync_metadata("delete", self.metadata.delete_server, server.alias)

    def set_pinned(self, alias: str, pinned: bool) -> None:
        self.metadata.set_pinned(alias, pinned)

    def record_ssh(self, alias: str) -> None:
        self.metadata.record_ssh(alias)
