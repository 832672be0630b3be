"""In-memory ServerRepository."""

from datetime import datetime
from typing import Callable

from lazyssh.errors import AliasConflictError, HostNotFoundError
from lazyssh.store.base import filter_servers
from lazyssh.store.metadata import local_now
from lazyssh.types import Server


class InMemoryRepository:
    """Repository over an explicit list of records. Nothing is persisted."""

    def __init__(
        self,
        servers: list[Server] | None = None,
        clock: Callable[[], datetime] = local_now,
    ):
        self._servers: list[Server] = list(servers or [])
        self.clock = clock

    def _index(self, alias: str) -> int:
        for index, server in enumerate(self._servers):
            if server.alias == alias or alias in server.aliases:
                return index
        raise HostNotFoundError(alias)

    def _check_conflicts(self, server: Server, skip: int | None = None) -> None:
        wanted = [server.alias, *server.aliases]
        for index, existing in enumerate(self._servers):
            if index == skip:
                continue
            taken = {existing.alias, *existing.aliases}
            for pattern in wanted:
                if pattern in taken:
                    raise AliasConflictError(pattern)

    def list_servers(self, query: str = "") -> list[Server]:
        return filter_servers(list(self._servers), query)

    def add_server(self, server: Server) -> None:
        self._check_conflicts(server)
        self._servers.append(server)

    def update_server(self, server: Server, new_server: Server) -> None:
        index = self._index(server.alias)
        self._check_conflicts(new_server, skip=index)
        current = self._servers[index]
        # Unset metadata keeps the stored value, tags always replace
        self._servers[index] = new_server.model_copy(
            update={
                "last_seen": new_server.last_seen or current.last_seen,
                "pinned_at": new_server.pinned_at or current.pinned_at,
                "ssh_count": new_server.ssh_count or current.ssh_count,
            }
        )

    def delete_server(self, server: Server) -> None:
        del self._servers[self._index(server.alias)]

    def set_pinned(self, alias: str, pinned: bool) -> None:
        index = self._index(alias)
        pinned_at = self.clock() if pinned else None
        self._servers[index] = self._servers[index].model_copy(update={"pinned_at": pinned_at})

    def record_ssh(self, alias: str) -> None:
        index = self._index(alias)
        current = self._servers[index]
        now = self.clock()
        if current.last_seen is not None and current.last_seen > now:
            now = current.last_seen
        self._servers[index] = current.model_copy(
            update={"last_seen": now, "ssh_count": current.ssh_count + 1}
        )
