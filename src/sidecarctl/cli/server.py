"""Server commands: start, stop, restart, status."""

from __future__ import annotations

import asyncio
import json

import click
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ._common import BRIDGE_HOME, console, make_app, print_error, run_command
from ..errors import CommandError
from ..events import SIDECAR_LOG, SIDECAR_TERMINATED
from ..models import LogEvent, LogLevel, StatusResponse, TerminatedEvent


def _print_log(event: LogEvent) -> None:
    style = "red" if event.level is LogLevel.ERROR else "dim"
    console.print(f"[{style}]{escape(event.message)}[/]")


def _print_terminated(event: TerminatedEvent) -> None:
    if event.signal is not None:
        console.print(f"\n  [yellow]Sidecar (PID {event.pid}) killed by signal {event.signal}[/]")
    else:
        color = "green" if event.code == 0 else "yellow"
        console.print(f"\n  [{color}]Sidecar (PID {event.pid}) exited with code {event.code}[/]")


def render_status(status: StatusResponse) -> Panel:
    """Build the Rich panel shown by ``sidecarctl status``."""
    server, auth, cfg = status.server, status.auth, status.config

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="dim")
    table.add_column("Value")

    table.add_row("Server", "[bold green]RUNNING[/]" if server.running else "[bold red]STOPPED[/]")
    table.add_row("PID", str(server.pid) if server.pid else "[dim]—[/]")
    table.add_row("URL", escape(server.url) if server.url else "[dim]—[/]")
    table.add_row(
        "Account",
        escape(auth.username or "logged in") if auth.logged_in else "[yellow]logged out[/]",
    )
    table.add_row("Endpoint", f"{cfg.webdav.host}:{cfg.webdav.port}")
    table.add_row("Remote path", escape(cfg.remote_path) or "[dim]/[/]")
    if cfg.cache is not None:
        cache = "on" if cfg.cache.enabled else "off"
        table.add_row("Cache", f"{cache} (ttl {cfg.cache.ttl_seconds}s, max {cfg.cache.max_size_mb} MB)")
    table.add_row("Log file", escape(status.log_file) or "[dim]—[/]")

    color = "green" if server.running else "yellow"
    return Panel(table, title="[bold]WebDAV Bridge Status[/]", border_style=color)


def register_server_commands(main: click.Group) -> None:
    """Register the server lifecycle commands."""

    @main.command("start")
    @click.option("--home", default=BRIDGE_HOME, type=click.Path(), help="Host home directory.")
    @click.option("--port", type=int, default=None, help="Port to serve WebDAV on.")
    @click.option("--wait", "wait_ready", is_flag=True, help="Wait until the server is serving.")
    def start(home: str, port, wait_ready: bool):
        """Start the bridge and supervise it in the foreground.

        Streams the bridge's log lines until it exits. Ctrl-C stops it.

        \b
        Examples:

            sidecarctl start

            sidecarctl start --port 8080 --wait
        """
        app = make_app(home)
        app.events.subscribe(SIDECAR_LOG, _print_log)
        app.events.subscribe(SIDECAR_TERMINATED, _print_terminated)

        async def supervise() -> None:
            pid = await app.start_sidecar(port)
            console.print(f"\n  [green]Sidecar started[/] (PID [cyan]{pid}[/])")
            console.print(f"  Log: {app.log_file}")
            console.print("  [dim]Running in foreground (Ctrl+C to stop)[/]\n")

            if wait_ready:
                try:
                    status = await app.supervisor.wait_until_serving(app.status)
                except CommandError:
                    await _stop_quietly(app)
                    raise
                console.print(f"  [green]Serving[/] at [cyan]{status.server.url or status.port}[/]\n")

            await app.supervisor.wait_terminated()

        try:
            run_command(supervise())
        except KeyboardInterrupt:
            console.print("\n  [yellow]Interrupted — stopping sidecar[/]")
            asyncio.run(_stop_quietly(app))

    @main.command("stop")
    @click.option("--home", default=BRIDGE_HOME, type=click.Path(), help="Host home directory.")
    def stop(home: str):
        """Stop the running bridge."""
        app = make_app(home)
        run_command(app.stop_sidecar())
        console.print("\n  [green]Sidecar stopped.[/]\n")

    @main.command("restart")
    @click.option("--home", default=BRIDGE_HOME, type=click.Path(), help="Host home directory.")
    @click.option("--port", type=int, required=True, help="New WebDAV port.")
    def restart(home: str, port: int):
        """Restart the bridge on a new port (foreground)."""
        app = make_app(home)
        app.events.subscribe(SIDECAR_LOG, _print_log)
        app.events.subscribe(SIDECAR_TERMINATED, _print_terminated)

        async def supervise() -> None:
            pid = await app.set_network_port(port)
            console.print(f"\n  [green]Sidecar restarted[/] on port [cyan]{port}[/] (PID {pid})\n")
            await app.supervisor.wait_terminated()

        try:
            run_command(supervise())
        except KeyboardInterrupt:
            asyncio.run(_stop_quietly(app))

    @main.command("status")
    @click.option("--home", default=BRIDGE_HOME, type=click.Path(), help="Host home directory.")
    @click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
    def status(home: str, as_json: bool):
        """Show the bridge's live status."""
        app = make_app(home)
        result = run_command(app.get_status())

        if as_json:
            click.echo(json.dumps(result.to_wire(), indent=2))
            return

        console.print()
        console.print(render_status(result))
        console.print()


async def _stop_quietly(app) -> None:
    try:
        await app.stop_sidecar()
    except CommandError as exc:
        print_error(exc)
