"""ServerRepository protocol for host persistence."""

from typing import Protocol

from lazyssh.types import Server


class ServerRepository(Protocol):
    """Protocol for host record storage."""

    def list_servers(self, query: str = "") -> list[Server]:
        """Records in decode order with metadata merged, filtered by `query`."""
        ...

    def add_server(self, server: Server) -> None:
        ...

    def update_server(self, server: Server, new_server: Server) -> None:
        """Replace `server` with `new_server`, renaming metadata if the alias changed."""
        ...

    def delete_server(self, server: Server) -> None:
        ...

    def set_pinned(self, alias: str, pinned: bool) -> None:
        ...

    def record_ssh(self, alias: str) -> None:
        """Bump last-seen and the use count after a connection."""
        ...


def matches_query(server: Server, query: str) -> bool:
    """Case-folded substring match on host, user, tags and aliases."""
    query = query.casefold()
    if not query:
        return True
    fields = [server.host, server.user, *server.tags, server.alias, *server.aliases]
    return any(query in field.casefold() for field in fields)


def filter_servers(servers: list[Server], query: str) -> list[Server]:
    return [server for server in servers if matches_query(server, query)]
