"""Core type definitions for lazyssh."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict

DEFAULT_PORT = 22


class Category(str, Enum):
    """Option categories, in the order they are written to a new host block."""

    IDENTITY = "identity"
    CONNECTION = "connection"
    FORWARDING = "forwarding"
    AUTH = "auth"
    MULTIPLEXING = "multiplexing"
    KEEPALIVE = "keepalive"
    SECURITY = "security"
    COMMAND = "command"
    ENVIRONMENT = "environment"
    DEBUG = "debug"


@dataclass(frozen=True)
class OptionSpec:
    """Maps an ssh_config keyword onto a Server attribute."""

    attr: str
    key: str  # canonical spelling
    category: Category
    multi: bool = False


OPTION_FIELDS: tuple[OptionSpec, ...] = (
    # Identity
    OptionSpec("host", "HostName", Category.IDENTITY),
    OptionSpec("user", "User", Category.IDENTITY),
    OptionSpec("port", "Port", Category.IDENTITY),
    OptionSpec("identity_files", "IdentityFile", Category.IDENTITY, multi=True),
    # Connection and proxy
    OptionSpec("proxy_jump", "ProxyJump", Category.CONNECTION),
    OptionSpec("proxy_command", "ProxyCommand", Category.CONNECTION),
    OptionSpec("connect_timeout", "ConnectTimeout", Category.CONNECTION),
    OptionSpec("connection_attempts", "ConnectionAttempts", Category.CONNECTION),
    OptionSpec("bind_address", "BindAddress", Category.CONNECTION),
    OptionSpec("bind_interface", "BindInterface", Category.CONNECTION),
    OptionSpec("address_family", "AddressFamily", Category.CONNECTION),
    OptionSpec("ipqos", "IPQoS", Category.CONNECTION),
    OptionSpec("canonicalize_hostname", "CanonicalizeHostname", Category.CONNECTION),
    OptionSpec("canonical_domains", "CanonicalDomains", Category.CONNECTION),
    OptionSpec("canonicalize_fallback_local", "CanonicalizeFallbackLocal", Category.CONNECTION),
    OptionSpec("canonicalize_max_dots", "CanonicalizeMaxDots", Category.CONNECTION),
    OptionSpec("canonicalize_permitted_cnames", "CanonicalizePermittedCNAMEs", Category.CONNECTION),
    # Forwarding
    OptionSpec("local_forward", "LocalForward", Category.FORWARDING, multi=True),
    OptionSpec("remote_forward", "RemoteForward", Category.FORWARDING, multi=True),
    OptionSpec("dynamic_forward", "DynamicForward", Category.FORWARDING, multi=True),
    OptionSpec("clear_all_forwardings", "ClearAllForwardings", Category.FORWARDING),
    OptionSpec("exit_on_forward_failure", "ExitOnForwardFailure", Category.FORWARDING),
    OptionSpec("gateway_ports", "GatewayPorts", Category.FORWARDING),
    OptionSpec("forward_agent", "ForwardAgent", Category.FORWARDING),
    OptionSpec("forward_x11", "ForwardX11", Category.FORWARDING),
    OptionSpec("forward_x11_trusted", "ForwardX11Trusted", Category.FORWARDING),
    # Authentication
    OptionSpec("pubkey_authentication", "PubkeyAuthentication", Category.AUTH),
    OptionSpec("pubkey_accepted_algorithms", "PubkeyAcceptedAlgorithms", Category.AUTH),
    OptionSpec("hostbased_accepted_algorithms", "HostbasedAcceptedAlgorithms", Category.AUTH),
    OptionSpec("identities_only", "IdentitiesOnly", Category.AUTH),
    OptionSpec("add_keys_to_agent", "AddKeysToAgent", Category.AUTH),
    OptionSpec("identity_agent", "IdentityAgent", Category.AUTH),
    OptionSpec("password_authentication", "PasswordAuthentication", Category.AUTH),
    OptionSpec("kbd_interactive_authentication", "KbdInteractiveAuthentication", Category.AUTH),
    OptionSpec("number_of_password_prompts", "NumberOfPasswordPrompts", Category.AUTH),
    OptionSpec("preferred_authentications", "PreferredAuthentications", Category.AUTH),
    # Multiplexing
    OptionSpec("control_master", "ControlMaster", Category.MULTIPLEXING),
    OptionSpec("control_path", "ControlPath", Category.MULTIPLEXING),
    OptionSpec("control_persist", "ControlPersist", Category.MULTIPLEXING),
    # Keep-alive and reliability
    OptionSpec("server_alive_interval", "ServerAliveInterval", Category.KEEPALIVE),
    OptionSpec("server_alive_count_max", "ServerAliveCountMax", Category.KEEPALIVE),
    OptionSpec("tcp_keep_alive", "TCPKeepAlive", Category.KEEPALIVE),
    OptionSpec("compression", "Compression", Category.KEEPALIVE),
    OptionSpec("batch_mode", "BatchMode", Category.KEEPALIVE),
    # Security and cryptography
    OptionSpec("strict_host_key_checking", "StrictHostKeyChecking", Category.SECURITY),
    OptionSpec("check_host_ip", "CheckHostIP", Category.SECURITY),
    OptionSpec("fingerprint_hash", "FingerprintHash", Category.SECURITY),
    OptionSpec("user_known_hosts_file", "UserKnownHostsFile", Category.SECURITY),
    OptionSpec("host_key_algorithms", "HostKeyAlgorithms", Category.SECURITY),
    OptionSpec("macs", "MACs", Category.SECURITY),
    OptionSpec("ciphers", "Ciphers", Category.SECURITY),
    OptionSpec("kex_algorithms", "KexAlgorithms", Category.SECURITY),
    OptionSpec("verify_host_key_dns", "VerifyHostKeyDNS", Category.SECURITY),
    OptionSpec("update_host_keys", "UpdateHostKeys", Category.SECURITY),
    OptionSpec("hash_known_hosts", "HashKnownHosts", Category.SECURITY),
    OptionSpec("visual_host_key", "VisualHostKey", Category.SECURITY),
    # Command execution
    OptionSpec("remote_command", "RemoteCommand", Category.COMMAND),
    OptionSpec("request_tty", "RequestTTY", Category.COMMAND),
    OptionSpec("session_type", "SessionType", Category.COMMAND),
    OptionSpec("local_command", "LocalCommand", Category.COMMAND),
    OptionSpec("permit_local_command", "PermitLocalCommand", Category.COMMAND),
    OptionSpec("escape_char", "EscapeChar", Category.COMMAND),
    # Environment
    OptionSpec("send_env", "SendEnv", Category.ENVIRONMENT, multi=True),
    OptionSpec("set_env", "SetEnv", Category.ENVIRONMENT, multi=True),
    # Debugging
    OptionSpec("log_level", "LogLevel", Category.DEBUG),
)

OPTIONS_BY_KEY: dict[str, OptionSpec] = {spec.key.lower(): spec for spec in OPTION_FIELDS}
OPTIONS_BY_ATTR: dict[str, OptionSpec] = {spec.attr: spec for spec in OPTION_FIELDS}

METADATA_FIELDS = frozenset({"tags", "last_seen", "pinned_at", "ssh_count"})


def canonical_key(key: str) -> str:
    """Return the canonical spelling of a known keyword; unknown keys keep their case."""
    spec = OPTIONS_BY_KEY.get(key.lower())
    return spec.key if spec else key


class Server(BaseModel):
    """A host block from the SSH config, with sidecar metadata merged in.

    Equality compares config fields only; tags, timestamps and the use
    count are ignored so that an unchanged form compares equal to the
    record it was opened from.
    """

    model_config = ConfigDict(frozen=True)

    alias: str
    aliases: tuple[str, ...] = ()  # additional patterns of the same block
    host: str = ""
    user: str = ""
    port: int = DEFAULT_PORT
    identity_files: tuple[str, ...] = ()

    proxy_jump: str = ""
    proxy_command: str = ""
    connect_timeout: str = ""
    connection_attempts: str = ""
    bind_address: str = ""
    bind_interface: str = ""
    address_family: str = ""
    ipqos: str = ""
    canonicalize_hostname: str = ""
    canonical_domains: str = ""
    canonicalize_fallback_local: str = ""
    canonicalize_max_dots: str = ""
    canonicalize_permitted_cnames: str = ""

    local_forward: tuple[str, ...] = ()
    remote_forward: tuple[str, ...] = ()
    dynamic_forward: tuple[str, ...] = ()
    clear_all_forwardings: str = ""
    exit_on_forward_failure: str = ""
    gateway_ports: str = ""
    forward_agent: str = ""
    forward_x11: str = ""
    forward_x11_trusted: str = ""

    pubkey_authentication: str = ""
    pubkey_accepted_algorithms: str = ""
    hostbased_accepted_algorithms: str = ""
    identities_only: str = ""
    add_keys_to_agent: str = ""
    identity_agent: str = ""
    password_authentication: str = ""
    kbd_interactive_authentication: str = ""
    number_of_password_prompts: str = ""
    preferred_authentications: str = ""

    control_master: str = ""
    control_path: str = ""
    control_persist: str = ""

    server_alive_interval: str = ""
    server_alive_count_max: str = ""
    tcp_keep_alive: str = ""
    compression: str = ""
    batch_mode: str = ""

    strict_host_key_checking: str = ""
    check_host_ip: str = ""
    fingerprint_hash: str = ""
    user_known_hosts_file: str = ""
    host_key_algorithms: str = ""
    macs: str = ""
    ciphers: str = ""
    kex_algorithms: str = ""
    verify_host_key_dns: str = ""
    update_host_keys: str = ""
    hash_known_hosts: str = ""
    visual_host_key: str = ""

    remote_command: str = ""
    request_tty: str = ""
    session_type: str = ""
    local_command: str = ""
    permit_local_command: str = ""
    escape_char: str = ""

    send_env: tuple[str, ...] = ()
    set_env: tuple[str, ...] = ()

    log_level: str = ""

    # Metadata (sidecar JSON)
    tags: tuple[str, ...] = ()
    last_seen: datetime | None = None
    pinned_at: datetime | None = None
    ssh_count: int = 0

    @property
    def pinned(self) -> bool:
        return self.pinned_at is not None

    def config_dump(self) -> dict:
        """Config fields only, as a plain dict."""
        return self.model_dump(exclude=set(METADATA_FIELDS))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Server):
            return NotImplemented
        return self.config_dump() == other.config_dump()

    def __hash__(self) -> int:
        return hash(self.alias)
