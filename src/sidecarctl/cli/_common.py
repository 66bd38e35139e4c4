"""Shared utilities for all CLI command modules.

Provides the Rich console, the host factory, and the bridge between
Click's synchronous commands and the async host API.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any, Awaitable

from rich.console import Console
from rich.markup import escape

from .. import BRIDGE_HOME
from ..app import BridgeApp, setup_logging
from ..errors import CommandError

console = Console()

__all__ = ["BRIDGE_HOME", "console", "make_app", "print_error", "run_command"]


def make_app(home: str) -> BridgeApp:
    """Build the host for ``home`` and start logging to its log file."""
    app = BridgeApp(Path(home).expanduser())
    setup_logging(app.log_file, app.config.log_level)
    return app


def print_error(exc: CommandError) -> None:
    """Print a command error as ``CODE message``."""
    console.print(f"[bold red]{exc.code}[/] {escape(str(exc))}")


def run_command(coro: Awaitable[Any]) -> Any:
    """Run a host coroutine; exit 1 on a CommandError.

    Args:
        coro: Coroutine to run to completion.

    Returns:
        Whatever the coroutine returns.
    """
    try:
        return asyncio.run(coro)
    except CommandError as exc:
        print_error(exc)
        sys.exit(1)
