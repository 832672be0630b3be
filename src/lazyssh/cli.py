"""lazyssh CLI."""

import logging
import os
import re
import subprocess
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from lazyssh import __version__
from lazyssh.command import build_ssh_command, generate_unique_alias, parse_ssh_command
from lazyssh.config import LazySSHConfig, default_config_path, get_config_template, load_config
from lazyssh.display import format_tsv, humanize_since
from lazyssh.errors import LazySSHError
from lazyssh.probe import ProbeResult, ProbeRunner
from lazyssh.registry import Registry
from lazyssh.sorting import SortMode
from lazyssh.store.ssh_config import SSHConfigRepository

app = typer.Typer(help="lazyssh - pick, manage and connect to SSH hosts")
console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)

LOG_DIR_PERMS = 0o750


class State:
    """Per-invocation settings shared by the subcommands."""

    def __init__(self, config: LazySSHConfig, config_path: Path):
        self.config = config
        self.config_path = config_path
        self._registry: Registry | None = None

    @property
    def registry(self) -> Registry:
        if self._registry is None:
            repository = SSHConfigRepository(
                self.config.paths.resolve("ssh_config"),
                self.config.paths.resolve("metadata"),
                max_backups=self.config.backups.max_backups,
            )
            self._registry = Registry(repository, check_paths=self.config.validation.check_paths)
        return self._registry


def setup_logging(verbose: bool = False, log_file: Path | None = None):
    """Configure logging with rich handler, plus a plain log file."""
    console_handler = RichHandler(console=err_console, rich_tracebacks=True)
    # Only warnings reach the terminal unless --verbose
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    handlers: list[logging.Handler] = [console_handler]

    if log_file is not None:
        try:
            os.makedirs(log_file.parent, mode=LOG_DIR_PERMS, exist_ok=True)
            file_handler = logging.FileHandler(log_file, delay=True)
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
            )
            handlers.append(file_handler)
        except OSError as e:
            err_console.print(f"[yellow]Warning:[/yellow] cannot open log file {log_file}: {e}")

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
    )
    logging.getLogger("paramiko").setLevel(logging.WARNING)


def fail(message: str) -> None:
    err_console.print(f"[red]Error:[/red] {escape(message)}", soft_wrap=True)
    raise typer.Exit(1)


def get_state(ctx: typer.Context) -> State:
    return ctx.find_root().obj


def version_callback(value: bool):
    if value:
        typer.echo(__version__)
        raise typer.Exit(0)


def to_config_alias(alias: str) -> str:
    """Replace characters an alias may not contain (`admin@host:2222` -> `admin-host-2222`)."""
    return re.sub(r"[^A-Za-z0-9._-]+", "-", alias).strip("-") or "host"


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-v", callback=version_callback, is_eager=True, help="Print version"
    ),
    list_hosts: bool = typer.Option(False, "--list", "-l", help="Print hosts as TSV and exit"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose logging"),
    config: Path | None = typer.Option(
        None, "--config", envvar="LAZYSSH_CONFIG", help="Path to the lazyssh config file"
    ),
):
    """Pick an SSH host and connect. Runs the interactive picker without a subcommand."""
    config_path = config or default_config_path()
    try:
        settings = load_config(config_path)
    except LazySSHError as e:
        fail(str(e))
        return

    setup_logging(verbose, settings.paths.resolve("log_file"))
    ctx.obj = State(settings, config_path)

    if list_hosts:
        print_hosts(ctx.obj, "", settings.ui.default_sort)
        raise typer.Exit(0)

    if ctx.invoked_subcommand is None:
        run_picker(ctx.obj)


def print_hosts(state: State, query: str, mode: SortMode):
    try:
        servers = state.registry.list_sorted(query, mode)
    except LazySSHError as e:
        fail(str(e))
        return
    typer.echo(format_tsv(servers))


def connect_to(state: State, alias: str) -> int:
    try:
        state.registry.record_ssh(alias)
    except LazySSHError as e:
        logger.warning(f"Could not record use of {alias}: {e}")
    logger.info(f"Connecting to {alias}")
    return subprocess.run(["ssh", alias]).returncode


def run_picker(state: State):
    """Interactive loop: pick a host, then an action."""
    from lazyssh import prompts

    if not sys.stdin.isatty():
        fail("the interactive picker needs a terminal; use 'lazyssh list' instead")

    mode = state.config.ui.default_sort
    while True:
        try:
            servers = state.registry.list_sorted("", mode)
        except LazySSHError as e:
            fail(str(e))
            return
        if not servers:
            console.print("No hosts yet. Add one with 'lazyssh import \"ssh user@host\"'.")
            return

        server = prompts.pick_server(servers, mode.label)
        if server is None:
            return

        action = prompts.pick_action(server)
        try:
            if action == prompts.ACTION_CONNECT:
                raise typer.Exit(connect_to(state, server.alias))
            if action == prompts.ACTION_SHOW:
                console.print(build_ssh_command(server), markup=False, highlight=False)
            elif action == prompts.ACTION_PIN:
                state.registry.set_pinned(server.alias, not server.pinned)
            elif action == prompts.ACTION_DELETE and prompts.confirm_delete(server):
                state.registry.delete(server)
        except LazySSHError as e:
            err_console.print(f"[red]Error:[/red] {escape(str(e))}", soft_wrap=True)


@app.command()
def init(ctx: typer.Context):
    """Write a commented configuration file."""
    state = get_state(ctx)
    config_file = state.config_path

    if config_file.exists():
        console.print(f"[yellow]Warning:[/yellow] {config_file} already exists.")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit(0)

    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(get_config_template())
    console.print(f"[green]Wrote[/green] {config_file}")


@app.command()
def version():
    """Print the version."""
    typer.echo(__version__)


@app.command("list")
def list_command(
    ctx: typer.Context,
    query: str = typer.Argument("", help="Filter on host, user, tags and aliases"),
    sort: SortMode | None = typer.Option(None, "--sort", "-s", help="Sort mode"),
):
    """Print hosts as TSV: Alias, Host, User, Port, Tags, Last."""
    state = get_state(ctx)
    print_hosts(state, query, sort or state.config.ui.default_sort)


@app.command()
def show(ctx: typer.Context, alias: str = typer.Argument(..., help="Host alias")):
    """Print the ssh command for a host."""
    state = get_state(ctx)
    try:
        server = state.registry.get(alias)
    except LazySSHError as e:
        fail(str(e))
        return
    typer.echo(build_ssh_command(server))


@app.command("import")
def import_command(
    ctx: typer.Context,
    command: str = typer.Argument(..., help="ssh invocation, or '-' to read it from stdin"),
    alias: str | None = typer.Option(None, "--alias", "-a", help="Alias for the new host"),
    tags: list[str] = typer.Option([], "--tag", "-t", help="Tag to attach (repeatable)"),
):
    """Add a host from a pasted ssh command."""
    state = get_state(ctx)
    text = sys.stdin.read() if command == "-" else command

    try:
        server = parse_ssh_command(text)
        existing = [a for s in state.registry.list_servers() for a in (s.alias, *s.aliases)]
        name = to_config_alias(alias or server.alias)
        updates = {"alias": generate_unique_alias(name, existing)}
        if tags:
            updates["tags"] = tuple(tags)
        server = server.model_copy(update=updates)
        state.registry.add(server)
    except LazySSHError as e:
        fail(str(e))
        return
    console.print(f"[green]Added[/green] {server.alias}")


@app.command()
def connect(ctx: typer.Context, alias: str = typer.Argument(..., help="Host alias")):
    """Connect with the system ssh client and record the use."""
    state = get_state(ctx)
    try:
        state.registry.get(alias)
    except LazySSHError as e:
        fail(str(e))
        return
    raise typer.Exit(connect_to(state, alias))


def _set_pinned(ctx: typer.Context, alias: str, pinned: bool):
    state = get_state(ctx)
    try:
        state.registry.get(alias)
        state.registry.set_pinned(alias, pinned)
    except LazySSHError as e:
        fail(str(e))
        return
    console.print(f"{'Pinned' if pinned else 'Unpinned'} {alias}")


@app.command()
def pin(ctx: typer.Context, alias: str = typer.Argument(..., help="Host alias")):
    """Pin a host to the top of the list."""
    _set_pinned(ctx, alias, True)


@app.command()
def unpin(ctx: typer.Context, alias: str = typer.Argument(..., help="Host alias")):
    """Unpin a host."""
    _set_pinned(ctx, alias, False)


@app.command()
def tag(
    ctx: typer.Context,
    alias: str = typer.Argument(..., help="Host alias"),
    tags: list[str] | None = typer.Argument(None, help="Tags; none clears them"),
):
    """Replace the tags of a host."""
    state = get_state(ctx)
    try:
        state.registry.set_tags(alias, tags or [])
    except LazySSHError as e:
        fail(str(e))
        return
    console.print(f"Tagged {alias}: {', '.join(tags or []) or '(none)'}")


@app.command()
def rm(
    ctx: typer.Context,
    alias: str = typer.Argument(..., help="Host alias"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Remove a host from the SSH config and the metadata."""
    state = get_state(ctx)
    try:
        server = state.registry.get(alias)
        if not yes and not typer.confirm(f"Delete host '{alias}'?"):
            raise typer.Exit(0)
        state.registry.delete(server)
    except LazySSHError as e:
        fail(str(e))
        return
    console.print(f"Deleted {alias}")


@app.command()
def ping(
    ctx: typer.Context,
    aliases: list[str] | None = typer.Argument(None, help="Hosts to probe (default: all)"),
):
    """Check which hosts answer with an SSH banner."""
    state = get_state(ctx)
    try:
        servers = state.registry.list_sorted("", state.config.ui.default_sort)
    except LazySSHError as e:
        fail(str(e))
        return
    if aliases:
        known = {s.alias for s in servers}
        missing = [a for a in aliases if a not in known]
        if missing:
            fail(f"host(s) not found: {', '.join(missing)}")
        servers = [s for s in servers if s.alias in aliases]

    runner = ProbeRunner(
        timeout=state.config.probe.timeout_seconds,
        workers=state.config.probe.workers,
    )
    results: dict[str, ProbeResult] = {}

    def on_result(result: ProbeResult):
        results[result.alias] = result
        logger.debug(f"Probe {result.alias}: reachable={result.reachable}")

    with console.status("Probing hosts..."):
        runner.run(servers, on_result)

    table = Table()
    table.add_column("Alias")
    table.add_column("Status")
    table.add_column("Latency")
    table.add_column("Banner / error")
    table.add_column("Last SSH")
    for server in servers:
        result = results[server.alias]
        if result.skipped:
            status = "[dim]skipped[/dim]"
        elif result.reachable:
            status = "[green]up[/green]"
        else:
            status = "[red]down[/red]"
        latency = f"{result.latency_ms:.0f} ms" if result.latency_ms is not None else ""
        table.add_row(
            server.alias,
            status,
            latency,
            escape(result.banner or result.error),
            humanize_since(server.last_seen),
        )
    console.print(table)


if __name__ == "__main__":
    app()
