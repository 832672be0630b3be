"""Map host blocks to Server records and apply record changes back to blocks."""

import logging
import os

from lazyssh.errors import HostNotFoundError
from lazyssh.sshconfig.document import Block, ConfigDocument, Line
from lazyssh.types import DEFAULT_PORT, OPTION_FIELDS, OPTIONS_BY_KEY, Category, OptionSpec, Server

logger = logging.getLogger(__name__)

_CATEGORY_ORDER = {category: index for index, category in enumerate(Category)}
WRITE_ORDER: tuple[OptionSpec, ...] = tuple(
    sorted(OPTION_FIELDS, key=lambda spec: _CATEGORY_ORDER[spec.category])
)


def to_tilde_path(path: str, home: str | None = None) -> str:
    """Rewrite an absolute path under the home directory to `~/...`."""
    if not path or path.startswith("~"):
        return path
    home = (home or os.path.expanduser("~")).rstrip("/")
    if not home:
        return path
    if path == home:
        return "~"
    if path.startswith(home + "/"):
        return "~/" + path[len(home) + 1 :]
    return path


def block_to_server(block: Block) -> Server | None:
    """Build a record from a host block; None when the block has no concrete alias."""
    concrete = block.concrete_patterns
    if not concrete:
        return None

    values: dict = {"alias": concrete[0], "aliases": concrete[1:]}
    for line in block.options():
        spec = OPTIONS_BY_KEY.get(line.key.lower())
        if spec is None:
            continue
        if spec.attr == "port":
            try:
                port = int(line.value)
            except ValueError:
                logger.debug(f"Ignoring non-numeric Port {line.value!r} for {concrete[0]}")
                continue
            values.setdefault("port", port)
        elif spec.multi:
            values.setdefault(spec.attr, []).append(line.value)
        else:
            # ssh uses the first value it sees
            values.setdefault(spec.attr, line.value)
    return Server(**values)


def servers_from_document(document: ConfigDocument) -> list[Server]:
    servers = []
    for block in document.host_blocks():
        server = block_to_server(block)
        if server is not None:
            servers.append(server)
    return servers


def find_block(document: ConfigDocument, alias: str) -> Block | None:
    for block in document.host_blocks():
        if alias in block.concrete_patterns:
            return block
    return None


def _values_for(server: Server, spec: OptionSpec, home: str | None) -> list[str]:
    value = getattr(server, spec.attr)
    if spec.attr == "port":
        return [] if value in (DEFAULT_PORT, 0) else [str(value)]
    if spec.multi:
        values = [v for v in value if v]
        if spec.attr == "identity_files":
            values = [to_tilde_path(v, home) for v in values]
        return values
    return [value] if value else []


def build_block(server: Server, home: str | None = None) -> Block:
    """A fresh host block with options in category order."""
    patterns = [server.alias, *server.aliases]
    header = Line(raw=f"Host {' '.join(patterns)}", key="Host", value=" ".join(patterns))
    block = Block(header=header, kind="host", patterns=patterns)
    for spec in WRITE_ORDER:
        for value in _values_for(server, spec, home):
            block.lines.append(Line.option(spec.key, value))
    return block


def append_server(document: ConfigDocument, server: Server, home: str | None = None) -> Block:
    block = build_block(server, home)
    if not document.is_empty():
        last = document.blocks[-1]
        last_raw = last.lines[-1].raw if last.lines else (last.header.raw if last.header else "")
        if last_raw.strip():
            last.lines.append(Line(raw=""))
    document.blocks.append(block)
    document.trailing_newline = True
    return block


def remove_server(document: ConfigDocument, alias: str) -> None:
    block = find_block(document, alias)
    if block is None:
        raise HostNotFoundError(alias)
    document.blocks.remove(block)


def _insert_index(block: Block) -> int:
    """Position just after the last option line of the block."""
    for index in range(len(block.lines) - 1, -1, -1):
        if block.lines[index].is_option:
            return index + 1
    return 0


def _update_header(block: Block, server: Server) -> None:
    concrete = block.concrete_patterns
    patterns = [server.alias, *server.aliases] + [p for p in block.patterns if p not in concrete]
    if patterns == block.patterns:
        return
    header = block.header
    lead = header.raw[: len(header.raw) - len(header.raw.lstrip())]
    value = " ".join(patterns)
    block.header = Line(raw=f"{lead}{header.key} {value}", key=header.key, value=value)
    block.patterns = patterns


def _update_single(block: Block, spec: OptionSpec, values: list[str]) -> None:
    key = spec.key.lower()
    existing = [i for i, line in enumerate(block.lines) if line.key.lower() == key]

    if not values:
        if spec.attr == "port" and existing and block.lines[existing[0]].value == str(DEFAULT_PORT):
            return
        for index in reversed(existing):
            del block.lines[index]
        return

    if existing:
        line = block.lines[existing[0]]
        if line.value != values[0]:
            indent = line.raw[: len(line.raw) - len(line.raw.lstrip())]
            block.lines[existing[0]] = Line.option(spec.key, values[0], indent)
        return

    block.lines.insert(_insert_index(block), Line.option(spec.key, values[0], block.indent()))


def _update_multi(block: Block, spec: OptionSpec, values: list[str]) -> None:
    key = spec.key.lower()
    existing = [i for i, line in enumerate(block.lines) if line.key.lower() == key]
    if [block.lines[i].value for i in existing] == values:
        return

    indent = block.indent()
    for index in reversed(existing):
        del block.lines[index]
    position = existing[0] if existing else _insert_index(block)
    for offset, value in enumerate(values):
        block.lines.insert(position + offset, Line.option(spec.key, value, indent))


def update_server(
    document: ConfigDocument, old_alias: str, server: Server, home: str | None = None
) -> Block:
    """Apply `server` to the block currently holding `old_alias`.

    Untouched lines keep their exact text. Multi-valued keys are replaced
    wholesale at the position of their first old occurrence.
    """
    block = find_block(document, old_alias)
    if block is None:
        raise HostNotFoundError(old_alias)

    _update_header(block, server)
    for spec in WRITE_ORDER:
        values = _values_for(server, spec, home)
        if spec.multi:
            _update_multi(block, spec, values)
        else:
            _update_single(block, spec, values)
    return block
