"""
Bridge host — wires configuration, events, supervisor, status and mounts.

One BridgeApp per desktop session. The shell (GUI or CLI) calls its
async commands and subscribes to its event bus.

Usage:
    app = get_app()
    app.events.subscribe("sidecar:log", print)
    await app.start_sidecar()
    status = await app.get_status()
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from . import account
from .config import LOG_DIR, BridgeConfig, load_config, resolve_home
from .events import EventBus
from .models import StatusResponse
from .mount_ops import MountOrchestrator
from .sidecar import SidecarSupervisor
from .status import StatusReconciler

logger = logging.getLogger("sidecarctl.app")

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def setup_logging(log_file: Path, level: str = "INFO") -> logging.Handler:
    """Attach a file handler to the root logger.

    Args:
        log_file: Destination log file; parent directories are created.
        level: Root logging level name.

    Returns:
        The installed handler (remove it to undo).
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler


class BridgeApp:
    """The host-side command surface for the bridge worker.

    Args:
        home: Host home directory.
        config: Configuration; loaded from ``home`` if omitted.
        events: Event bus; a fresh one if omitted.
    """

    def __init__(
        self,
        home: Optional[Path] = None,
        config: Optional[BridgeConfig] = None,
        events: Optional[EventBus] = None,
    ) -> None:
        self.home = resolve_home(home)
        self.config = config or load_config(self.home)
        self.events = events or EventBus()
        self.supervisor = SidecarSupervisor(self.config, self.events)
        self.status = StatusReconciler(self.config, self.supervisor, self.events)
        self.mounts = MountOrchestrator(self.config, self.status, self.events)

    @property
    def log_file(self) -> Path:
        return self.home / LOG_DIR / "sidecarctl.log"

    async def start_sidecar(self, port: Optional[int] = None) -> int:
        return await self.supervisor.start(port)

    async def stop_sidecar(self) -> None:
        await self.supervisor.stop()

    async def set_network_port(self, port: int) -> int:
        """Restart the worker on a new port."""
        return await self.supervisor.restart_with_port(port)

    async def get_status(self) -> StatusResponse:
        return await self.status.query()

    async def login(self, email: str) -> None:
        await account.login(self.config, email)

    async def logout(self) -> None:
        await account.logout(self.config, self.supervisor)

    async def purge_cache(self) -> None:
        await account.purge_cache(self.config)

    async def mount_drive(self) -> str:
        return await self.mounts.mount()

    async def unmount_drive(self) -> str:
        return await self.mounts.unmount()

    async def check_mount_status(self) -> Optional[str]:
        return await self.mounts.mount_status()


_app: Optional[BridgeApp] = None


def get_app(home: Optional[Path] = None) -> BridgeApp:
    """Get or create the session's BridgeApp.

    A different ``home`` than the cached app's replaces it.
    """
    global _app
    resolved = resolve_home(home)
    if _app is None or _app.home != resolved:
        _app = BridgeApp(resolved)
    return _app
