"""Per-field validation rules for host records."""

import ipaddress
import os
import re
import threading
from dataclasses import dataclass
from typing import Callable

from lazyssh.types import Server

INVALID_HOST_CHARS = "@#$%^&*()=+[]{}|\\;:'\"<>,?/"
INVALID_ADDRESS_CHARS = "@#$%^&()=+{}|\\;:'\"<>,?/"

IPQOS_VALUES = frozenset(
    {
        "af11", "af12", "af13", "af21", "af22", "af23",
        "af31", "af32", "af33", "af41", "af42", "af43",
        "cs0", "cs1", "cs2", "cs3", "cs4", "cs5", "cs6", "cs7",
        "ef", "le", "lowdelay", "throughput", "reliability", "none",
    }
)

# Keyword values ssh accepts for the enum-like options (compared case-insensitively)
YES_NO = ("yes", "no")
ENUM_OPTIONS = {
    "RequestTTY": ("request_tty", ("yes", "no", "force", "auto")),
    "Compression": ("compression", YES_NO),
    "TCPKeepAlive": ("tcp_keep_alive", YES_NO),
    "ControlMaster": ("control_master", ("yes", "no", "auto", "ask", "autoask")),
    "ForwardAgent": ("forward_agent", YES_NO),
    "ForwardX11": ("forward_x11", YES_NO),
    "ForwardX11Trusted": ("forward_x11_trusted", YES_NO),
    "PubkeyAuthentication": ("pubkey_authentication", YES_NO),
    "PasswordAuthentication": ("password_authentication", YES_NO),
    "IdentitiesOnly": ("identities_only", YES_NO),
    "AddKeysToAgent": ("add_keys_to_agent", ("yes", "no", "ask", "confirm")),
    "StrictHostKeyChecking": ("strict_host_key_checking", ("yes", "no", "ask", "accept-new")),
    "PermitLocalCommand": ("permit_local_command", YES_NO),
    "BatchMode": ("batch_mode", YES_NO),
    "AddressFamily": ("address_family", ("any", "inet", "inet6")),
    "SessionType": ("session_type", ("none", "subsystem", "default")),
    "LogLevel": (
        "log_level",
        ("quiet", "fatal", "error", "info", "verbose", "debug", "debug1", "debug2", "debug3"),
    ),
}

# Display order of errors; fields not listed follow in insertion order
FIELD_ORDER = (
    "Alias", "Host", "Port", "User", "Keys", "Tags",
    "ConnectTimeout", "ConnectionAttempts", "ServerAliveInterval", "ServerAliveCountMax",
    "IPQoS", "BindAddress", "LocalForward", "RemoteForward", "DynamicForward",
    "NumberOfPasswordPrompts", "CanonicalizeMaxDots", "EscapeChar",
)


@dataclass
class FieldValidator:
    """Rules for one field. `validate` raises ValueError with a specific message."""

    required: bool = False
    pattern: re.Pattern | None = None
    validate: Callable[[str], None] | None = None
    message: str = ""

    def check(self, value: str) -> str:
        """Return the error for `value`, or an empty string."""
        if not value:
            return self.message if self.required else ""
        if self.pattern is not None and not self.pattern.match(value):
            return self.message
        if self.validate is not None:
            try:
                self.validate(value)
            except ValueError as e:
                return str(e) or self.message
        return ""


class ValidationState:
    """Thread-safe map of field name to error message."""

    def __init__(self):
        self._errors: dict[str, str] = {}
        self._lock = threading.Lock()

    def set_error(self, field: str, message: str) -> None:
        """Set an error, or clear it when `message` is empty."""
        with self._lock:
            if message:
                self._errors[field] = message
            else:
                self._errors.pop(field, None)

    def get_error(self, field: str) -> str:
        with self._lock:
            return self._errors.get(field, "")

    def has_errors(self) -> bool:
        with self._lock:
            return bool(self._errors)

    def error_count(self) -> int:
        with self._lock:
            return len(self._errors)

    def all_errors(self) -> list[str]:
        """Errors formatted as `Field: message`, in display order."""
        with self._lock:
            ordered = [f for f in FIELD_ORDER if f in self._errors]
            ordered += [f for f in self._errors if f not in FIELD_ORDER]
            return [f"{field}: {self._errors[field]}" for field in ordered]

    def clear(self) -> None:
        with self._lock:
            self._errors.clear()


# Individual checks


def is_ip_address(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def validate_port(value: str) -> None:
    try:
        port = int(value)
    except ValueError:
        raise ValueError("invalid port number")
    if port < 1 or port > 65535:
        raise ValueError("port must be between 1 and 65535")


def validate_connect_timeout(value: str) -> None:
    if value == "none":
        return
    try:
        timeout = int(value)
    except ValueError:
        raise ValueError("invalid timeout value")
    if timeout <= 0:
        raise ValueError("timeout must be positive or 'none'")


def validate_non_negative(value: str) -> None:
    try:
        number = int(value)
    except ValueError:
        raise ValueError("invalid number")
    if number < 0:
        raise ValueError("must be non-negative")


def validate_password_prompts(value: str) -> None:
    try:
        number = int(value)
    except ValueError:
        raise ValueError("invalid number")
    if number < 0 or number > 10:
        raise ValueError("must be between 0 and 10")


def validate_escape_char(value: str) -> None:
    if value in ("none", "~"):
        return
    if len(value) == 2 and value[0] == "^" and value[1].isascii() and value[1].isalpha():
        return
    if len(value) == 1 and 32 <= ord(value) <= 126:
        return
    raise ValueError("invalid escape character format")


def validate_ipqos(value: str) -> None:
    parts = value.split()
    if len(parts) > 2:
        raise ValueError("IPQoS accepts at most 2 values")
    for part in parts:
        if part.lower() not in IPQOS_VALUES:
            raise ValueError(f"invalid IPQoS value: {part}")


def validate_host(host: str) -> None:
    if not host:
        raise ValueError("host is required")
    if " " in host:
        raise ValueError("host cannot contain spaces")
    if is_ip_address(host):
        return
    if len(host) > 253:
        raise ValueError("hostname too long")
    if any(c in INVALID_HOST_CHARS for c in host):
        raise ValueError("host contains invalid characters")
    if host.startswith(".") or host.endswith("."):
        raise ValueError("hostname cannot start or end with a dot")
    if ".." in host:
        raise ValueError("hostname cannot contain consecutive dots")
    for label in host.split("."):
        if not label:
            raise ValueError("hostname has empty label")
        if len(label) > 63:
            raise ValueError("hostname label too long")
        if label.startswith("-") or label.endswith("-"):
            raise ValueError("hostname label cannot start or end with hyphen")


def validate_bind_address(address: str) -> None:
    """IP, `*`, or a hostname under relaxed rules."""
    if not address or address == "*":
        return
    if " " in address:
        raise ValueError("address cannot contain spaces")
    if is_ip_address(address):
        return
    if any(c in INVALID_ADDRESS_CHARS for c in address):
        raise ValueError("address contains invalid characters")
    if address.startswith(".") or address.endswith("."):
        raise ValueError("address cannot start or end with a dot")
    if address.startswith("-") or address.endswith("-"):
        raise ValueError("address cannot start or end with hyphen")
    if ".." in address:
        raise ValueError("address cannot contain consecutive dots")

    # Digits and dots only: must be a dotted-quad
    if "." in address and all(c == "." or c.isdigit() for c in address):
        segments = address.split(".")
        if len(segments) != 4:
            raise ValueError("invalid address format")
        for segment in segments:
            if not segment or int(segment) > 255:
                raise ValueError("invalid IP address format")
        return

    for label in address.split("."):
        if label.startswith("-") or label.endswith("-"):
            raise ValueError("address label cannot start or end with hyphen")


def _parse_forward_port(value: str, what: str) -> None:
    try:
        port = int(value)
    except ValueError:
        raise ValueError(f"invalid {what}: {value}")
    if port < 1 or port > 65535:
        raise ValueError(f"invalid {what}: {value}")


def _check_bind(bind: str) -> None:
    if bind and bind != "*":
        try:
            validate_bind_address(bind)
        except ValueError as e:
            raise ValueError(f"invalid bind address: {e}")


def validate_port_forward(value: str) -> None:
    """`[bind:]port:host:hostport`, several separated by commas."""
    for forward in value.split(","):
        forward = forward.strip()
        if not forward:
            continue
        parts = forward.split(":")
        if len(parts) not in (3, 4):
            raise ValueError("invalid format, expected [bind_address:]port:host:hostport")
        if len(parts) == 4:
            _check_bind(parts[0])
            parts = parts[1:]
        _parse_forward_port(parts[0], "port number")
        _parse_forward_port(parts[2], "host port number")


def validate_dynamic_forward(value: str) -> None:
    """`[bind:]port`, several separated by commas."""
    for forward in value.split(","):
        forward = forward.strip()
        if not forward:
            continue
        parts = forward.split(":")
        if len(parts) > 2:
            raise ValueError("invalid format, expected [bind_address:]port")
        if len(parts) == 2:
            _check_bind(parts[0])
        _parse_forward_port(parts[-1], "port number")


def validate_tags(value: str) -> None:
    for tag in value.split(","):
        if not tag.strip():
            raise ValueError("tags cannot be empty")
        if any(c.isspace() for c in tag.strip()):
            raise ValueError(f"tag cannot contain whitespace: {tag.strip()}")


def _expand_home(path: str) -> str:
    return os.path.expanduser(path)


def _check_paths(paths: list[str]) -> None:
    missing = []
    inaccessible = []
    for path in paths:
        path = path.strip()
        if not path:
            continue
        expanded = _expand_home(path)
        try:
            is_dir = os.path.isdir(expanded)
            os.stat(expanded)
        except FileNotFoundError:
            missing.append(path)
            continue
        except OSError:
            inaccessible.append(path)
            continue
        if is_dir:
            missing.append(f"{path} (is a directory)")
            continue
        try:
            with open(expanded, "rb"):
                pass
        except OSError:
            inaccessible.append(path)

    problems = []
    if missing:
        problems.append(f"file(s) not found: {', '.join(missing)}")
    if inaccessible:
        problems.append(f"file(s) not accessible: {', '.join(inaccessible)}")
    if problems:
        raise ValueError("; ".join(problems))


def validate_key_paths(value: str) -> None:
    """Comma-separated identity files must exist and be readable."""
    if any(c in value for c in "\n\r\t"):
        raise ValueError("file path contains invalid characters")
    _check_paths(value.split(","))


def validate_known_hosts_files(value: str) -> None:
    """Space-separated known_hosts files must exist and be readable."""
    if any(c in value for c in "\n\r\t"):
        raise ValueError("file path contains invalid characters")
    _check_paths(value.split())


def one_of(allowed) -> Callable[[str], None]:
    def check(value: str) -> None:
        if value.lower() not in allowed:
            raise ValueError(f"must be one of: {', '.join(allowed)}")

    return check


def alias_uniqueness_check(original_alias: str, existing_aliases) -> Callable[[str], None]:
    existing = set(existing_aliases or ())

    def check(alias: str) -> None:
        if original_alias and alias == original_alias:
            return
        if alias in existing:
            raise ValueError(f"alias '{alias}' already exists")

    return check


def get_field_validators(
    original_alias: str = "",
    existing_aliases=None,
    check_paths: bool = True,
) -> dict[str, FieldValidator]:
    """Validators keyed by display field name.

    `original_alias` is exempt from the uniqueness check so that an edit
    can keep its own alias.
    """
    validators = {
        "Alias": FieldValidator(
            required=True,
            pattern=re.compile(r"^[a-zA-Z0-9._-]+$"),
            validate=alias_uniqueness_check(original_alias, existing_aliases),
            message="Alias is required and can only contain letters, numbers, dots, hyphens, and underscores",
        ),
        "Host": FieldValidator(
            required=True,
            validate=validate_host,
            message="Host is required and must be a valid hostname or IP address",
        ),
        "Port": FieldValidator(
            pattern=re.compile(r"^([1-9]\d{0,4})$"),
            validate=validate_port,
            message="Port must be between 1 and 65535",
        ),
        "User": FieldValidator(
            pattern=re.compile(r"^[a-zA-Z][a-zA-Z0-9._-]*$"),
            message="User must start with a letter and contain only letters, numbers, dots, hyphens, and underscores",
        ),
        "Keys": FieldValidator(
            validate=validate_key_paths if check_paths else None,
            message="Key file not found or not accessible",
        ),
        "Tags": FieldValidator(
            validate=validate_tags,
            message="Tags must be comma-separated words",
        ),
        "ConnectTimeout": FieldValidator(
            validate=validate_connect_timeout,
            message="ConnectTimeout must be a positive number or 'none'",
        ),
        "ConnectionAttempts": FieldValidator(
            pattern=re.compile(r"^[1-9]\d*$"),
            message="ConnectionAttempts must be a positive number",
        ),
        "ServerAliveInterval": FieldValidator(
            pattern=re.compile(r"^\d+$"),
            validate=validate_non_negative,
            message="ServerAliveInterval must be a non-negative number",
        ),
        "ServerAliveCountMax": FieldValidator(
            pattern=re.compile(r"^\d+$"),
            validate=validate_non_negative,
            message="ServerAliveCountMax must be a non-negative number",
        ),
        "IPQoS": FieldValidator(
            validate=validate_ipqos,
            message="IPQoS must be valid QoS values (e.g., 'af21 cs1', 'lowdelay', 'ef')",
        ),
        "BindAddress": FieldValidator(
            validate=validate_bind_address,
            message="BindAddress must be a valid IP address, hostname, or '*'",
        ),
        "LocalForward": FieldValidator(
            validate=validate_port_forward,
            message="LocalForward must be in format '[bind_address:]port:host:hostport'",
        ),
        "RemoteForward": FieldValidator(
            validate=validate_port_forward,
            message="RemoteForward must be in format '[bind_address:]port:host:hostport'",
        ),
        "DynamicForward": FieldValidator(
            validate=validate_dynamic_forward,
            message="DynamicForward must be in format '[bind_address:]port'",
        ),
        "NumberOfPasswordPrompts": FieldValidator(
            pattern=re.compile(r"^\d+$"),
            validate=validate_password_prompts,
            message="NumberOfPasswordPrompts must be between 0 and 10",
        ),
        "CanonicalizeMaxDots": FieldValidator(
            pattern=re.compile(r"^\d+$"),
            validate=validate_non_negative,
            message="CanonicalizeMaxDots must be a non-negative number",
        ),
        "EscapeChar": FieldValidator(
            validate=validate_escape_char,
            message="EscapeChar must be a single character, 'none', or ^X format (e.g., ^A)",
        ),
        "UserKnownHostsFile": FieldValidator(
            validate=validate_known_hosts_files if check_paths else None,
            message="Known hosts file not found or not accessible",
        ),
    }
    for field, (_, allowed) in ENUM_OPTIONS.items():
        validators[field] = FieldValidator(
            validate=one_of(allowed),
            message=f"{field} has an invalid value",
        )
    return validators


def field_values(server: Server) -> dict[str, str]:
    """Form-style string values of the validated fields of a record."""
    values = {
        "Alias": server.alias,
        "Host": server.host,
        "Port": str(server.port) if server.port else "",
        "User": server.user,
        "Keys": ",".join(server.identity_files),
        "Tags": ",".join(server.tags),
        "ConnectTimeout": server.connect_timeout,
        "ConnectionAttempts": server.connection_attempts,
        "ServerAliveInterval": server.server_alive_interval,
        "ServerAliveCountMax": server.server_alive_count_max,
        "IPQoS": server.ipqos,
        "BindAddress": server.bind_address,
        "LocalForward": ",".join(server.local_forward),
        "RemoteForward": ",".join(server.remote_forward),
        "DynamicForward": ",".join(server.dynamic_forward),
        "NumberOfPasswordPrompts": server.number_of_password_prompts,
        "CanonicalizeMaxDots": server.canonicalize_max_dots,
        "EscapeChar": server.escape_char,
        "UserKnownHostsFile": server.user_known_hosts_file,
    }
    for field, (attr, _) in ENUM_OPTIONS.items():
        values[field] = getattr(server, attr)
    return values


def validate_server(
    server: Server,
    original_alias: str = "",
    existing_aliases=None,
    check_paths: bool = True,
    state: ValidationState | None = None,
) -> list[str]:
    """Run every field validator and return the errors in display order."""
    state = state or ValidationState()
    validators = get_field_validators(original_alias, existing_aliases, check_paths)
    for field, value in field_values(server).items():
        state.set_error(field, validators[field].check(value))
    return state.all_errors()
