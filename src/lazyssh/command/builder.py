"""Build a runnable ssh invocation from a host record."""

from lazyssh.command.parser import ALIAS_MARKER, TAGS_MARKER
from lazyssh.types import DEFAULT_PORT, Server

LOG_LEVEL_FLAGS = {"VERBOSE": "-v", "DEBUG": "-vv", "DEBUG2": "-vvv", "QUIET": "-q"}
ADDRESS_FAMILY_FLAGS = {"inet": "-4", "inet6": "-6"}
REQUEST_TTY_FLAGS = {"yes": "-t", "no": "-T"}
SESSION_TYPE_FLAGS = {"none": "-N", "subsystem": "-s"}
YES_NO_FLAGS = {
    "forward_agent": {"yes": "-A", "no": "-a"},
    "forward_x11": {"yes": "-X", "no": "-x"},
}


def quote_if_needed(value: str) -> str:
    """Double-quote values the invocation tokenizer would otherwise split or unescape."""
    if value and not any(c.isspace() or c in "\"'\\" for c in value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class _Parts:
    def __init__(self):
        self.tokens: list[str] = ["ssh"]

    def add(self, *tokens: str) -> None:
        self.tokens.extend(tokens)

    def option(self, key: str, value: str) -> None:
        if value:
            self.tokens.extend(["-o", quote_if_needed(f"{key}={value}")])

    def flag_or_option(self, flags: dict[str, str], key: str, value: str) -> None:
        if not value:
            return
        if value in flags:
            self.tokens.append(flags[value])
        else:
            self.option(key, value)


def metadata_comment(server: Server) -> str:
    comment = f"# {ALIAS_MARKER}{server.alias}"
    if server.tags:
        comment += f"{TAGS_MARKER}{','.join(server.tags)}"
    return comment


def build_ssh_command(server: Server) -> str:
    """Render `server` as `# lazyssh-alias:...` plus an ssh command line.

    Dedicated flags are used where one exists, `-o Key=Value` otherwise,
    so that the output parses back into an equal record.
    """
    s = server
    p = _Parts()

    # Proxy
    if s.proxy_jump:
        p.add("-J", quote_if_needed(s.proxy_jump))
    p.option("ProxyCommand", s.proxy_command)

    # Connection timing and addressing
    p.option("ConnectTimeout", s.connect_timeout)
    p.option("ConnectionAttempts", s.connection_attempts)
    if s.bind_address:
        p.add("-b", quote_if_needed(s.bind_address))
    if s.bind_interface:
        p.add("-B", quote_if_needed(s.bind_interface))
    p.flag_or_option(ADDRESS_FAMILY_FLAGS, "AddressFamily", s.address_family)
    p.option("IPQoS", s.ipqos)
    p.option("CanonicalizeHostname", s.canonicalize_hostname)
    p.option("CanonicalDomains", s.canonical_domains)
    p.option("CanonicalizeFallbackLocal", s.canonicalize_fallback_local)
    p.option("CanonicalizeMaxDots", s.canonicalize_max_dots)
    p.option("CanonicalizePermittedCNAMEs", s.canonicalize_permitted_cnames)

    # Port forwarding
    for forward in s.local_forward:
        p.add("-L", quote_if_needed(forward))
    for forward in s.remote_forward:
        p.add("-R", quote_if_needed(forward))
    for forward in s.dynamic_forward:
        p.add("-D", quote_if_needed(forward))
    p.option("ClearAllForwardings", s.clear_all_forwardings)
    p.option("ExitOnForwardFailure", s.exit_on_forward_failure)
    p.option("GatewayPorts", s.gateway_ports)

    # Authentication
    p.option("PubkeyAuthentication", s.pubkey_authentication)
    p.option("PubkeyAcceptedAlgorithms", s.pubkey_accepted_algorithms)
    p.option("HostbasedAcceptedAlgorithms", s.hostbased_accepted_algorithms)
    p.option("PasswordAuthentication", s.password_authentication)
    p.option("PreferredAuthentications", s.preferred_authentications)
    p.option("IdentitiesOnly", s.identities_only)
    p.option("AddKeysToAgent", s.add_keys_to_agent)
    p.option("IdentityAgent", s.identity_agent)
    p.option("KbdInteractiveAuthentication", s.kbd_interactive_authentication)
    p.option("NumberOfPasswordPrompts", s.number_of_password_prompts)

    # Agent and X11
    p.flag_or_option(YES_NO_FLAGS["forward_agent"], "ForwardAgent", s.forward_agent)
    if s.forward_x11 == "yes" and s.forward_x11_trusted == "yes":
        p.add("-Y")
    else:
        p.flag_or_option(YES_NO_FLAGS["forward_x11"], "ForwardX11", s.forward_x11)
        p.option("ForwardX11Trusted", s.forward_x11_trusted)

    # Multiplexing
    p.option("ControlMaster", s.control_master)
    p.option("ControlPath", s.control_path)
    p.option("ControlPersist", s.control_persist)

    # Keep-alive
    p.option("ServerAliveInterval", s.server_alive_interval)
    p.option("ServerAliveCountMax", s.server_alive_count_max)
    p.flag_or_option({"yes": "-C"}, "Compression", s.compression)
    p.option("TCPKeepAlive", s.tcp_keep_alive)
    p.option("BatchMode", s.batch_mode)

    # Security
    p.option("StrictHostKeyChecking", s.strict_host_key_checking)
    p.option("CheckHostIP", s.check_host_ip)
    p.option("FingerprintHash", s.fingerprint_hash)
    p.option("UserKnownHostsFile", s.user_known_hosts_file)
    p.option("HostKeyAlgorithms", s.host_key_algorithms)
    if s.macs:
        p.add("-m", quote_if_needed(s.macs))
    if s.ciphers:
        p.add("-c", quote_if_needed(s.ciphers))
    p.option("KexAlgorithms", s.kex_algorithms)
    p.option("VerifyHostKeyDNS", s.verify_host_key_dns)
    p.option("UpdateHostKeys", s.update_host_keys)
    p.option("HashKnownHosts", s.hash_known_hosts)
    p.option("VisualHostKey", s.visual_host_key)

    # Command execution
    p.option("LocalCommand", s.local_command)
    p.option("PermitLocalCommand", s.permit_local_command)
    if s.escape_char:
        p.add("-e", quote_if_needed(s.escape_char))

    # Environment
    for env in s.send_env:
        p.option("SendEnv", env)
    for env in s.set_env:
        p.option("SetEnv", env)

    # TTY, logging and session
    p.flag_or_option(REQUEST_TTY_FLAGS, "RequestTTY", s.request_tty)
    p.flag_or_option(LOG_LEVEL_FLAGS, "LogLevel", s.log_level)
    p.flag_or_option(SESSION_TYPE_FLAGS, "SessionType", s.session_type)

    if s.port and s.port != DEFAULT_PORT:
        p.add("-p", str(s.port))
    for identity in s.identity_files:
        p.add("-i", quote_if_needed(identity))

    # Without a HostName ssh resolves the alias itself
    target = s.host or s.alias
    destination = f"{s.user}@{target}" if s.user else target
    p.add(quote_if_needed(destination))

    if s.remote_command == "none":
        p.option("RemoteCommand", "none")
    elif s.remote_command:
        p.add(quote_if_needed(s.remote_command))

    command = " ".join(p.tokens)
    if s.alias or s.tags:
        return f"{metadata_comment(s)}\n{command}"
    return command
