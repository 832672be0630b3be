"""Reading and writing the OpenSSH client config."""

from lazyssh.sshconfig.document import Block, ConfigDocument, Line, ParseResult, parse_config
from lazyssh.sshconfig.mapper import (
    append_server,
    block_to_server,
    find_block,
    remove_server,
    servers_from_document,
    update_server,
)

__all__ = [
    "Block",
    "ConfigDocument",
    "Line",
    "ParseResult",
    "append_server",
    "block_to_server",
    "find_block",
    "parse_config",
    "remove_server",
    "servers_from_document",
    "update_server",
]
