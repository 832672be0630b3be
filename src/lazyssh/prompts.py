"""Interactive host picker using InquirerPy."""

from InquirerPy import inquirer
from InquirerPy.base.control import Choice

from lazyssh.display import server_label
from lazyssh.types import Server

ACTION_CONNECT = "connect"
ACTION_SHOW = "show"
ACTION_PIN = "pin"
ACTION_DELETE = "delete"
ACTION_BACK = "back"


def pick_server(servers: list[Server], sort_label: str = "") -> Server | None:
    """Fuzzy-search the hosts. Returns None when the user picks nothing."""
    if not servers:
        return None
    by_alias = {server.alias: server for server in servers}
    choices = [Choice(value=server.alias, name=server_label(server)) for server in servers]
    message = f"Host ({sort_label}):" if sort_label else "Host:"
    alias = inquirer.fuzzy(
        message=message,
        choices=choices,
        mandatory=False,
        max_height="70%",
    ).execute()
    return by_alias.get(alias) if alias else None


def pick_action(server: Server) -> str:
    return inquirer.select(
        message=f"{server.alias}:",
        choices=[
            Choice(value=ACTION_CONNECT, name="Connect"),
            Choice(value=ACTION_SHOW, name="Show ssh command"),
            Choice(value=ACTION_PIN, name="Unpin" if server.pinned else "Pin"),
            Choice(value=ACTION_DELETE, name="Delete"),
            Choice(value=ACTION_BACK, name="Back"),
        ],
        default=ACTION_CONNECT,
    ).execute()


def confirm_delete(server: Server) -> bool:
    return inquirer.confirm(
        message=f"Delete host '{server.alias}' from the SSH config?",
        default=False,
    ).execute()
