"""Mount commands: start, stop, status."""

from __future__ import annotations

import json

import click
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ._common import BRIDGE_HOME, console, make_app, run_command
from ..mounts import endpoint_uri


def register_mount_commands(main: click.Group) -> None:
    """Register the mount command group."""

    @main.group()
    def mount():
        """Desktop mount of the bridge's WebDAV drive.

        \b
        Mount:    sidecarctl mount start
        Unmount:  sidecarctl mount stop
        Status:   sidecarctl mount status
        """

    @mount.command("start")
    @click.option("--home", default=BRIDGE_HOME, type=click.Path(), help="Host home directory.")
    def mount_start(home: str):
        """Mount the running bridge's drive (GIO on Linux).

        \b
        Requires: pip install sidecarctl[gio]
        """
        app = make_app(home)
        console.print("[bold cyan]Mounting bridge drive ...[/]")
        uri = run_command(app.mount_drive())
        console.print(f"[green]Mounted[/] [white]{escape(uri)}[/]")

    @mount.command("stop")
    @click.option("--home", default=BRIDGE_HOME, type=click.Path(), help="Host home directory.")
    def mount_stop(home: str):
        """Unmount the bridge's drive."""
        app = make_app(home)
        console.print("[bold cyan]Unmounting bridge drive ...[/]")
        uri = run_command(app.unmount_drive())
        console.print(f"[green]Unmounted[/] [white]{escape(uri)}[/]")

    @mount.command("status")
    @click.option("--home", default=BRIDGE_HOME, type=click.Path(), help="Host home directory.")
    @click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
    def mount_status(home: str, as_json: bool):
        """Show whether the bridge's drive is mounted."""
        app = make_app(home)

        async def check():
            status = await app.get_status()
            return endpoint_uri(status.port), await app.check_mount_status()

        endpoint, name = run_command(check())

        if as_json:
            click.echo(json.dumps({"mounted": name is not None, "mount": name, "endpoint": endpoint}, indent=2))
            return

        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Key", style="dim")
        table.add_column("Value")
        table.add_row("Status", "[bold green]MOUNTED[/]" if name else "[bold red]NOT MOUNTED[/]")
        table.add_row("Endpoint", escape(endpoint))
        table.add_row("Mount", escape(name) if name else "[dim]—[/]")

        console.print()
        console.print(Panel(table, title="[bold]Bridge Drive Mount[/]", border_style="cyan"))
        console.print()
