"""Reachability probes for registry hosts using paramiko."""

import logging
import socket
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable

import paramiko

from lazyssh.types import DEFAULT_PORT, Server

logger = logging.getLogger(__name__)


@dataclass
class ProbeResult:
    """Outcome of one probe."""

    alias: str
    reachable: bool
    latency_ms: float | None = None
    banner: str = ""
    error: str = ""
    skipped: bool = False


def probe_server(
    server: Server,
    timeout: float = 3.0,
    connect: Callable = socket.create_connection,
    transport_factory: Callable = paramiko.Transport,
) -> ProbeResult:
    """Open a TCP connection and read the server identification string.

    Hosts reached through ProxyJump or ProxyCommand are skipped since a
    direct connection says nothing about them.
    """
    if server.proxy_jump or server.proxy_command:
        return ProbeResult(alias=server.alias, reachable=False, skipped=True, error="behind a proxy")

    host = server.host or server.alias
    port = server.port or DEFAULT_PORT

    start = time.perf_counter()
    try:
        sock = connect((host, port), timeout)
    except OSError as e:
        logger.debug(f"Probe {server.alias}: connect failed: {e}")
        return ProbeResult(alias=server.alias, reachable=False, error=str(e) or type(e).__name__)
    latency_ms = (time.perf_counter() - start) * 1000

    transport = transport_factory(sock)
    try:
        transport.banner_timeout = timeout
        transport.start_client(timeout=timeout)
    except (paramiko.SSHException, EOFError, OSError) as e:
        banner = transport.remote_version or ""
        if not banner:
            logger.debug(f"Probe {server.alias}: no SSH banner: {e}")
            return ProbeResult(
                alias=server.alias,
                reachable=False,
                latency_ms=latency_ms,
                error=str(e) or type(e).__name__,
            )
        # Key exchange failed but the server answered
        return ProbeResult(alias=server.alias, reachable=True, latency_ms=latency_ms, banner=banner)
    finally:
        transport.close()

    return ProbeResult(
        alias=server.alias,
        reachable=True,
        latency_ms=latency_ms,
        banner=transport.remote_version or "",
    )


class ProbeRunner:
    """Fan probes out on a thread pool.

    Results are handed to the callback on the calling thread, one at a
    time, as they complete. Probes never touch the registry.
    """

    def __init__(
        self,
        timeout: float = 3.0,
        workers: int = 8,
        probe: Callable[..., ProbeResult] = probe_server,
    ):
        self.timeout = timeout
        self.workers = workers
        self.probe = probe

    def run(
        self,
        servers: list[Server],
        callback: Callable[[ProbeResult], None] | None = None,
    ) -> list[ProbeResult]:
        results = []
        if not servers:
            return results

        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            futures = {pool.submit(self.probe, server, self.timeout): server for server in servers}
            for future in as_completed(futures):
                server = futures[future]
                try:
                    result = future.result()
                except Exception as e:
                    logger.warning(f"Probe for {server.alias} crashed: {e}")
                    result = ProbeResult(alias=server.alias, reachable=False, error=str(e))
                results.append(result)
                if callback is not None:
                    callback(result)
        return results
