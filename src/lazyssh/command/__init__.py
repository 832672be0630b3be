"""Conversion between host records and ssh invocations."""

from lazyssh.command.alias import generate_smart_alias, generate_unique_alias
from lazyssh.command.builder import build_ssh_command
from lazyssh.command.parser import parse_ssh_command

__all__ = [
    "build_ssh_command",
    "generate_smart_alias",
    "generate_unique_alias",
    "parse_ssh_command",
]
