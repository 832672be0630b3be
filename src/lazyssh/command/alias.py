"""Alias synthesis for imported hosts."""

import re

from lazyssh.types import DEFAULT_PORT
from lazyssh.validation import is_ip_address

# Distribution and cloud-image default logins that add nothing to an alias
COMMON_USERS = frozenset(
    {
        "root",
        "ubuntu", "debian", "centos", "fedora", "alpine", "arch",
        "ec2-user", "azureuser", "opc", "cloud-user", "cloud_user",
        "core", "rancher", "docker",
        "user", "guest", "vagrant",
    }
)

_SUFFIX_RE = re.compile(r"^(.*)_(\d+)$")


def is_common_user(user: str) -> bool:
    return user.lower() in COMMON_USERS


def generate_smart_alias(host: str, user: str = "", port: int = DEFAULT_PORT) -> str:
    """Short alias from user, host and port.

    `www.` is dropped, a name with more than two labels keeps the first two
    and a two-label name keeps the first. Uncommon users are prepended as
    `user@` and a non-default port is appended as `:port`.
    """
    alias = host.removeprefix("www.")

    if "." in alias and not is_ip_address(alias):
        labels = alias.split(".")
        if len(labels) > 2:
            alias = ".".join(labels[:2])
        elif len(labels) == 2:
            alias = labels[0]

    if user and not is_common_user(user):
        alias = f"{user}@{alias}"

    if port and port != DEFAULT_PORT:
        alias = f"{alias}:{port}"

    return alias


def generate_unique_alias(base: str, existing) -> str:
    """Return `base`, or `base_N` with N one past the highest suffix in use."""
    taken = set(existing)
    if base not in taken:
        return base

    match = _SUFFIX_RE.match(base)
    name = match.group(1) if match else base

    highest = 0
    prefix = f"{name}_"
    for alias in taken:
        if alias.startswith(prefix) and alias[len(prefix) :].isdigit():
            highest = max(highest, int(alias[len(prefix) :]))
    return f"{name}_{highest + 1}"
