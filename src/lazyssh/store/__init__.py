"""Persistence for host records."""

from lazyssh.store.base import ServerRepository
from lazyssh.store.memory import InMemoryRepository
from lazyssh.store.ssh_config import SSHConfigRepository

__all__ = ["InMemoryRepository", "SSHConfigRepository", "ServerRepository"]
