"""Ordering of records for display."""

from enum import Enum
from functools import cmp_to_key

from lazyssh.types import Server


class SortMode(str, Enum):
    ALIAS_ASC = "alias_asc"
    ALIAS_DESC = "alias_desc"
    LAST_SEEN_DESC = "last_seen_desc"
    LAST_SEEN_ASC = "last_seen_asc"

    @property
    def label(self) -> str:
        return _LABELS[self]

    def toggle_field(self) -> "SortMode":
        """Switch between alias and last-seen, keeping the direction."""
        return _TOGGLED[self]

    def reverse(self) -> "SortMode":
        return _REVERSED[self]


_LABELS = {
    SortMode.ALIAS_ASC: "Alias ↑",
    SortMode.ALIAS_DESC: "Alias ↓",
    SortMode.LAST_SEEN_ASC: "Last SSH ↑",
    SortMode.LAST_SEEN_DESC: "Last SSH ↓",
}
_TOGGLED = {
    SortMode.ALIAS_ASC: SortMode.LAST_SEEN_ASC,
    SortMode.ALIAS_DESC: SortMode.LAST_SEEN_DESC,
    SortMode.LAST_SEEN_ASC: SortMode.ALIAS_ASC,
    SortMode.LAST_SEEN_DESC: SortMode.ALIAS_DESC,
}
_REVERSED = {
    SortMode.ALIAS_ASC: SortMode.ALIAS_DESC,
    SortMode.ALIAS_DESC: SortMode.ALIAS_ASC,
    SortMode.LAST_SEEN_ASC: SortMode.LAST_SEEN_DESC,
    SortMode.LAST_SEEN_DESC: SortMode.LAST_SEEN_ASC,
}


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def _compare(mode: SortMode, a: Server, b: Server) -> int:
    alias_order = _cmp(a.alias.casefold(), b.alias.casefold())

    if a.pinned != b.pinned:
        return -1 if a.pinned else 1
    if a.pinned:
        if a.pinned_at != b.pinned_at:
            return -1 if a.pinned_at > b.pinned_at else 1
        return alias_order

    if mode in (SortMode.LAST_SEEN_DESC, SortMode.LAST_SEEN_ASC):
        if (a.last_seen is None) != (b.last_seen is None):
            return 1 if a.last_seen is None else -1
        if a.last_seen is not None and a.last_seen != b.last_seen:
            order = _cmp(a.last_seen, b.last_seen)
            return -order if mode == SortMode.LAST_SEEN_DESC else order
        return alias_order

    if mode == SortMode.ALIAS_DESC:
        return -alias_order
    return alias_order


def sort_servers(servers: list[Server], mode: SortMode = SortMode.ALIAS_ASC) -> list[Server]:
    """Pinned records first (newest pin first), then the rest by `mode`."""
    return sorted(servers, key=cmp_to_key(lambda a, b: _compare(mode, a, b)))
