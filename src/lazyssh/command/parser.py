"""Parse a pasted ssh invocation into a host record."""

import logging
import re

from lazyssh.command.alias import generate_smart_alias
from lazyssh.errors import ParseError
from lazyssh.types import DEFAULT_PORT, OPTIONS_BY_KEY, Server

logger = logging.getLogger(__name__)

ALIAS_MARKER = "lazyssh-alias:"
TAGS_MARKER = " tags:"

# Flags that stand alone: attribute and value to set
SWITCH_FLAGS = {
    "-4": ("address_family", "inet"),
    "-6": ("address_family", "inet6"),
    "-A": ("forward_agent", "yes"),
    "-a": ("forward_agent", "no"),
    "-C": ("compression", "yes"),
    "-g": ("gateway_ports", "yes"),
    "-M": ("control_master", "yes"),
    "-N": ("session_type", "none"),
    "-n": ("batch_mode", "yes"),
    "-q": ("log_level", "QUIET"),
    "-s": ("session_type", "subsystem"),
    "-T": ("request_tty", "no"),
    "-t": ("request_tty", "yes"),
    "-vv": ("log_level", "DEBUG"),
    "-vvv": ("log_level", "DEBUG2"),
    "-X": ("forward_x11", "yes"),
    "-x": ("forward_x11", "no"),
}
IGNORED_SWITCHES = frozenset({"-f", "-k", "-K", "-V"})
SPECIAL_SWITCHES = frozenset({"-v", "-Y"})

# Flags that take the next token as their value
VALUE_FLAGS = {
    "-b": "bind_address",
    "-B": "bind_interface",
    "-c": "ciphers",
    "-e": "escape_char",
    "-J": "proxy_jump",
    "-l": "user",
    "-m": "macs",
    "-S": "control_path",
}
APPEND_FLAGS = {
    "-i": "identity_files",
    "-L": "local_forward",
    "-R": "remote_forward",
    "-D": "dynamic_forward",
}
IGNORED_VALUE_FLAGS = frozenset({"-F", "-O"})
SPECIAL_VALUE_FLAGS = frozenset({"-p", "-W", "-o"})

SINGLE_TOKEN_FLAGS = frozenset(SWITCH_FLAGS) | IGNORED_SWITCHES | SPECIAL_SWITCHES
TWO_TOKEN_FLAGS = frozenset(VALUE_FLAGS) | frozenset(APPEND_FLAGS) | IGNORED_VALUE_FLAGS | SPECIAL_VALUE_FLAGS

VERBOSITY_STEPS = {"": "VERBOSE", "VERBOSE": "DEBUG", "DEBUG": "DEBUG2", "DEBUG2": "DEBUG3"}


def extract_metadata_comments(text: str) -> tuple[str, str, list[str]]:
    """Drop comment lines, keeping alias and tags from a `# lazyssh-alias:` line.

    Returns (remaining text, alias, tags).
    """
    alias = ""
    tags: list[str] = []
    kept = []
    for line in text.split("\n"):
        stripped = line.strip()
        if not stripped.startswith("#"):
            kept.append(line)
            continue
        if ALIAS_MARKER not in stripped:
            continue
        rest = stripped.split(ALIAS_MARKER, 1)[1].strip()
        tag_index = rest.find(TAGS_MARKER)
        if tag_index > 0:
            alias = rest[:tag_index].strip()
            tags = [t.strip() for t in rest[tag_index + len(TAGS_MARKER) :].split(",") if t.strip()]
        else:
            alias = rest
    return "\n".join(kept), alias, tags


def join_continuations(text: str) -> str:
    """Join all lines with single spaces, dropping trailing backslashes."""
    pieces = []
    for line in text.split("\n"):
        stripped = line.strip()
        if stripped.endswith("\\"):
            stripped = stripped[:-1].strip()
        if stripped:
            pieces.append(stripped)
    return " ".join(pieces)


def split_command(command: str) -> list[str]:
    """Whitespace split honouring quotes and backslash escapes."""
    parts = []
    current: list[str] = []
    quote = ""
    escaped = False

    for char in command:
        if escaped:
            current.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif quote:
            if char == quote:
                quote = ""
            else:
                current.append(char)
        elif char in ("'", '"'):
            quote = char
        elif char in (" ", "\t"):
            if current:
                parts.append("".join(current))
                current = []
        else:
            current.append(char)

    if quote:
        raise ParseError("unclosed quote in command")
    if current:
        parts.append("".join(current))
    return parts


def _flag_width(token: str) -> int:
    if token in TWO_TOKEN_FLAGS:
        return 2
    if token in SINGLE_TOKEN_FLAGS:
        return 1
    return 0


def _parse_port(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ParseError(f"invalid port value: {value}")


class _Invocation:
    """Field values accumulated while walking the tokens."""

    def __init__(self):
        self.values: dict = {}

    def set(self, attr: str, value) -> None:
        self.values[attr] = value

    def append(self, attr: str, value: str) -> None:
        self.values.setdefault(attr, []).append(value)

    def apply_option(self, option: str) -> None:
        """Apply a `-o` argument: `Key=Value` or `Key Value`."""
        if "=" in option:
            key, value = option.split("=", 1)
        elif " " in option.strip():
            key, value = option.strip().split(" ", 1)
        else:
            raise ParseError(f"invalid SSH option: invalid option format: {option}")
        key = key.strip()
        value = value.strip()

        spec = OPTIONS_BY_KEY.get(key.lower())
        if spec is None:
            logger.debug(f"Ignoring unsupported option {key}")
            return
        if spec.attr == "port":
            self.set("port", _parse_port(value))
        elif spec.multi:
            self.append(spec.attr, value)
        else:
            self.set(spec.attr, value)

    def apply_flag(self, tokens: list[str], index: int) -> int:
        """Apply the flag at `index`; returns how many tokens it used."""
        flag = tokens[index]
        width = _flag_width(flag)
        if width == 2 and index + 1 >= len(tokens):
            raise ParseError(f"missing value after {flag}")

        if flag in SWITCH_FLAGS:
            attr, value = SWITCH_FLAGS[flag]
            self.set(attr, value)
        elif flag == "-v":
            current = self.values.get("log_level", "")
            self.set("log_level", VERBOSITY_STEPS.get(current, current))
        elif flag == "-Y":
            self.set("forward_x11", "yes")
            self.set("forward_x11_trusted", "yes")
        elif flag in VALUE_FLAGS:
            self.set(VALUE_FLAGS[flag], tokens[index + 1])
        elif flag in APPEND_FLAGS:
            self.append(APPEND_FLAGS[flag], tokens[index + 1])
        elif flag == "-p":
            self.set("port", _parse_port(tokens[index + 1]))
        elif flag == "-W":
            self.set("proxy_command", f"ssh -W {tokens[index + 1]} %h:%p")
        elif flag == "-o":
            self.apply_option(tokens[index + 1])
        return max(width, 1)


def _split_destination(destination: str) -> tuple[str, str, int | None]:
    user = ""
    if "@" in destination:
        user, destination = destination.split("@", 1)
    port = None
    # host:port, but leave IPv6 literals alone
    if destination.count(":") == 1 and "[" not in destination:
        host, port_text = destination.split(":", 1)
        if port_text.isdigit():
            destination, port = host, int(port_text)
    return user, destination, port


def parse_ssh_command(text: str) -> Server:
    """Build a record from an ssh invocation.

    The destination is the first token that is not a flag (or a flag's
    value). After it, known flags are still applied and everything else
    becomes the remote command.
    """
    body, alias, tags = extract_metadata_comments(text.strip())
    command = join_continuations(body)
    if not re.match(r"^ssh\s", command):
        raise ParseError("not a valid ssh command")

    tokens = split_command(command)[1:]
    if not tokens:
        raise ParseError("missing host specification")

    dest_index = -1
    index = 0
    while index < len(tokens):
        token = tokens[index]
        if not token.startswith("-"):
            dest_index = index
            break
        index += max(_flag_width(token), 1)
    if dest_index == -1:
        raise ParseError("missing destination host")

    dest_user, host, dest_port = _split_destination(tokens[dest_index])
    invocation = _Invocation()
    invocation.set("host", host)
    if dest_port is not None:
        invocation.set("port", dest_port)

    remote = []
    index = 0
    while index < len(tokens):
        token = tokens[index]
        if index == dest_index:
            index += 1
            continue
        if index < dest_index:
            index += invocation.apply_flag(tokens, index)
        elif token.startswith("-") and _flag_width(token):
            index += invocation.apply_flag(tokens, index)
        else:
            remote.append(token)
            index += 1

    values = invocation.values
    if dest_user:
        values["user"] = dest_user
    if remote:
        values["remote_command"] = " ".join(remote)
    values.setdefault("port", DEFAULT_PORT)
    if not values["port"]:
        values["port"] = DEFAULT_PORT

    # The alias carries a port only when the destination itself named one
    values["alias"] = alias or generate_smart_alias(
        values.get("host", ""), values.get("user", ""), dest_port or DEFAULT_PORT
    )
    values["tags"] = tags
    return Server(**values)
