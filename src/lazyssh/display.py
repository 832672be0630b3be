"""Text rendering helpers shared by the CLI and the picker."""

from datetime import datetime, timedelta

from lazyssh.types import Server

TSV_COLUMNS = ("Alias", "Host", "User", "Port", "Tags", "Last")


def humanize_since(when: datetime | None, now: datetime | None = None) -> str:
    """Render a last-seen timestamp as `never`, `just now`, `5m ago`, `3h ago`, ..."""
    if when is None:
        return "never"
    if now is None:
        now = datetime.now(tz=when.tzinfo)
    delta = now - when

    if delta < timedelta(minutes=1):
        return "just now"
    if delta < timedelta(hours=1):
        return f"{int(delta.total_seconds() // 60)}m ago"
    hours = int(delta.total_seconds() // 3600)
    if delta < timedelta(hours=48):
        return f"{hours}h ago"
    if delta < timedelta(days=60):
        return f"{hours // 24}d ago"
    if delta < timedelta(days=365):
        return f"{max(hours // (24 * 30), 1)}mo ago"
    return f"{max(hours // (24 * 365), 1)}y ago"


def _tsv_cell(value: str) -> str:
    return value.replace("\t", " ").replace("\n", " ")


def format_tsv(servers: list[Server], now: datetime | None = None) -> str:
    """Header plus one tab-separated line per record."""
    lines = ["\t".join(TSV_COLUMNS)]
    for server in servers:
        cells = [
            server.alias,
            server.host,
            server.user,
            str(server.port),
            ",".join(server.tags),
            humanize_since(server.last_seen, now),
        ]
        lines.append("\t".join(_tsv_cell(cell) for cell in cells))
    return "\n".join(lines)


def server_label(server: Server) -> str:
    """One-line summary used by the picker."""
    target = f"{server.user}@{server.host}" if server.user else server.host
    if server.port != 22:
        target += f":{server.port}"
    pin = "* " if server.pinned else "  "
    tags = f" [{', '.join(server.tags)}]" if server.tags else ""
    return f"{pin}{server.alias:<24} {target}{tags}  ({humanize_since(server.last_seen)})"
