"""Registry service: validated operations over a ServerRepository."""

import logging

from lazyssh.errors import AliasConflictError, FieldValidationError, HostNotFoundError
from lazyssh.sorting import SortMode, sort_servers
from lazyssh.store.base import ServerRepository
from lazyssh.types import Server
from lazyssh.validation import get_field_validators, validate_server

logger = logging.getLogger(__name__)


class Registry:
    """Front door for every registry operation.

    Writes are validated here before they reach the repository; the
    repository still re-checks alias collisions against the file.
    """

    def __init__(self, repository: ServerRepository, check_paths: bool = True):
        self.repository = repository
        self.check_paths = check_paths

    def list_servers(self, query: str = "") -> list[Server]:
        return self.repository.list_servers(query)

    def list_sorted(self, query: str = "", mode: SortMode = SortMode.ALIAS_ASC) -> list[Server]:
        return sort_servers(self.list_servers(query), mode)

    def get(self, alias: str) -> Server:
        for server in self.list_servers():
            if server.alias == alias:
                return server
        raise HostNotFoundError(alias)

    def _taken_aliases(self, exclude: str = "") -> set[str]:
        taken = set()
        for server in self.list_servers():
            if exclude and server.alias == exclude:
                continue
            taken.add(server.alias)
            taken.update(server.aliases)
        return taken

    def _validate(self, server: Server, original_alias: str = "") -> None:
        taken = self._taken_aliases(exclude=original_alias)
        for pattern in [server.alias, *server.aliases]:
            if pattern in taken:
                raise AliasConflictError(pattern)

        errors = validate_server(server, original_alias, check_paths=self.check_paths)
        if errors:
            raise FieldValidationError(errors)

    def add(self, server: Server) -> None:
        self._validate(server)
        self.repository.add_server(server)
        logger.info(f"Added host {server.alias}")

    def update(self, server: Server, new_server: Server) -> None:
        self._validate(new_server, original_alias=server.alias)
        self.repository.update_server(server, new_server)
        if new_server.alias != server.alias:
            logger.info(f"Renamed host {server.alias} to {new_server.alias}")
        else:
            logger.info(f"Updated host {server.alias}")

    def delete(self, server: Server) -> None:
        self.repository.delete_server(server)
        logger.info(f"Deleted host {server.alias}")

    def set_pinned(self, alias: str, pinned: bool) -> None:
        self.repository.set_pinned(alias, pinned)

    def record_ssh(self, alias: str) -> None:
        self.repository.record_ssh(alias)

    def set_tags(self, alias: str, tags: list[str]) -> None:
        """Replace the tags of one host; other fields are left as they are."""
        server = self.get(alias)
        new_server = server.model_copy(update={"tags": tuple(tags)})
        error = get_field_validators()["Tags"].check(",".join(tags))
        if error:
            raise FieldValidationError([f"Tags: {error}"])
        self.repository.update_server(server, new_server)
