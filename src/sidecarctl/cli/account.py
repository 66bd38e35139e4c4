"""Account commands: login, logout, purge-cache."""

from __future__ import annotations

import click

from ._common import BRIDGE_HOME, console, make_app, run_command


def register_account_commands(main: click.Group) -> None:
    """Register the account and cache commands."""

    @main.command("login")
    @click.argument("email")
    @click.option("--home", default=BRIDGE_HOME, type=click.Path(), help="Host home directory.")
    def login(email: str, home: str):
        """Log the bridge in to the account EMAIL.

        \b
        Example:

            sidecarctl login me@proton.me
        """
        app = make_app(home)
        run_command(app.login(email))
        console.print(f"[green]Logged in as[/] {email.strip()}")

    @main.command("logout")
    @click.option("--home", default=BRIDGE_HOME, type=click.Path(), help="Host home directory.")
    def logout(home: str):
        """Stop the bridge and forget stored credentials."""
        app = make_app(home)
        run_command(app.logout())
        console.print("[green]Logged out.[/]")

    @main.command("purge-cache")
    @click.option("--home", default=BRIDGE_HOME, type=click.Path(), help="Host home directory.")
    def purge_cache(home: str):
        """Clear the bridge's local cache."""
        app = make_app(home)
        run_command(app.purge_cache())
        console.print("[green]Cache purged.[/]")
