"""
sidecarctl CLI — drive the WebDAV bridge sidecar from a terminal.

Each command group lives in its own module and is registered on the
main Click group here.

Entry point: sidecarctl.cli:main
"""

from __future__ import annotations

import click

from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="sidecarctl")
def main():
    """sidecarctl — supervise the WebDAV bridge and mount its drive."""


from .server import register_server_commands
from .account import register_account_commands
from .mount import register_mount_commands

register_server_commands(main)
register_account_commands(main)
register_mount_commands(main)
