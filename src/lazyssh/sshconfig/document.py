"""Lossless line model of an OpenSSH client config file.

Every source line is kept as-is in ``Line.raw``. Lines that are never
touched by a mutation render back byte-for-byte, which is what keeps
comments, unknown keywords and Match blocks intact across a round trip.
"""

import logging
import re
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

WILDCARD_CHARS = "!*?[]"

# `Key Value`, `Key=Value` and `Key = Value`
_KV_RE = re.compile(r"^\s*([^\s=]+)(?:\s*=\s*|\s+|\s*$)(.*?)\s*$")


def strip_comment(value: str) -> str:
    """Cut `value` at the first unquoted `#` that starts a word."""
    quote = ""
    for i, char in enumerate(value):
        if quote:
            if char == quote:
                quote = ""
        elif char in "\"'":
            quote = char
        elif char == "#" and (i == 0 or value[i - 1].isspace()):
            return value[:i].rstrip()
    return value


@dataclass
class Line:
    """One physical line. `key` is empty for comments and blank lines."""

    raw: str
    key: str = ""
    value: str = ""

    @property
    def is_option(self) -> bool:
        return bool(self.key)

    @classmethod
    def parse(cls, raw: str) -> "Line":
        stripped = raw.strip()
        if not stripped or stripped.startswith("#"):
            return cls(raw=raw)
        match = _KV_RE.match(raw)
        if match is None:
            return cls(raw=raw)
        return cls(raw=raw, key=match.group(1), value=strip_comment(match.group(2)))

    @classmethod
    def option(cls, key: str, value: str, indent: str = "    ") -> "Line":
        return cls(raw=f"{indent}{key} {value}", key=key, value=value)


@dataclass
class Block:
    """A run of lines opened by a `Host` or `Match` header.

    The preamble (lines before the first header) is a block with no header.
    Host blocks whose header carries no patterns are kept as opaque text.
    """

    header: Line | None
    kind: str  # "preamble", "host", "match" or "opaque"
    patterns: list[str] = field(default_factory=list)
    lines: list[Line] = field(default_factory=list)

    @property
    def concrete_patterns(self) -> list[str]:
        if self.kind != "host":
            return []
        return [p for p in self.patterns if not any(c in p for c in WILDCARD_CHARS)]

    def options(self) -> list[Line]:
        return [line for line in self.lines if line.is_option]

    def indent(self) -> str:
        """Leading whitespace used by the block's option lines (4 spaces if none)."""
        for line in self.options():
            return line.raw[: len(line.raw) - len(line.raw.lstrip())] or "    "
        return "    "

    def render_lines(self) -> list[str]:
        raws = [self.header.raw] if self.header is not None else []
        raws.extend(line.raw for line in self.lines)
        return raws


@dataclass
class ConfigDocument:
    """An ordered list of blocks plus the trailing-newline flag."""

    blocks: list[Block] = field(default_factory=list)
    trailing_newline: bool = True

    def host_blocks(self) -> list[Block]:
        return [b for b in self.blocks if b.kind == "host"]

    def is_empty(self) -> bool:
        return not any(b.render_lines() for b in self.blocks)

    def render(self) -> str:
        raws: list[str] = []
        for block in self.blocks:
            raws.extend(block.render_lines())
        if not raws:
            return ""
        text = "\n".join(raws)
        return text + "\n" if self.trailing_newline else text


@dataclass
class ParseResult:
    document: ConfigDocument
    warnings: list[str] = field(default_factory=list)


def parse_config(text: str) -> ParseResult:
    """Split config text into blocks. Never raises on malformed input."""
    if not text:
        return ParseResult(ConfigDocument())

    raw_lines = text.split("\n")
    trailing_newline = raw_lines[-1] == ""
    if trailing_newline:
        raw_lines.pop()

    blocks = [Block(header=None, kind="preamble")]
    warnings: list[str] = []

    for lineno, raw in enumerate(raw_lines, start=1):
        line = Line.parse(raw)
        keyword = line.key.lower()
        if keyword == "host":
            patterns = line.value.split()
            if patterns:
                blocks.append(Block(header=line, kind="host", patterns=patterns))
            else:
                msg = f"line {lineno}: Host line without patterns, block skipped"
                logger.warning(msg)
                warnings.append(msg)
                blocks.append(Block(header=line, kind="opaque"))
        elif keyword == "match":
            blocks.append(Block(header=line, kind="match", patterns=line.value.split()))
        else:
            blocks[-1].lines.append(line)

    if not blocks[0].lines:
        blocks.pop(0)

    return ParseResult(ConfigDocument(blocks=blocks, trailing_newline=trailing_newline), warnings)
