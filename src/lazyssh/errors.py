"""Error taxonomy for lazyssh."""

from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of failure surfaced by registry operations."""

    IO = "io"
    SYNTAX = "syntax"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    PERMISSION = "permission"


class LazySSHError(Exception):
    """Base class for all lazyssh errors."""

    kind: ErrorKind = ErrorKind.IO


class ConfigIOError(LazySSHError):
    """An underlying file operation failed."""

    kind = ErrorKind.IO


class PermissionDeniedError(LazySSHError):
    """A path exists but cannot be opened with the required mode."""

    kind = ErrorKind.PERMISSION


class ParseError(LazySSHError):
    """Config decode or invocation tokenization failed."""

    kind = ErrorKind.SYNTAX


class FieldValidationError(LazySSHError):
    """One or more fields violate their rules."""

    kind = ErrorKind.VALIDATION

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


class AliasConflictError(LazySSHError):
    """The alias is already used by another host block."""

    kind = ErrorKind.CONFLICT

    def __init__(self, alias: str):
        self.alias = alias
        super().__init__(f"alias '{alias}' already exists")


class HostNotFoundError(LazySSHError):
    """The alias targeted by an update or delete is absent."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, alias: str):
        self.alias = alias
        super().__init__(f"host '{alias}' not found")


def wrap_os_error(err: OSError, action: str) -> LazySSHError:
    """Translate an OSError raised by the file-system gateway."""
    message = f"{action}: {err}"
    if isinstance(err, PermissionError):
        return PermissionDeniedError(message)
    return ConfigIOError(message)
