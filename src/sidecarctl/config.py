"""
Host configuration — where the worker lives and how long to wait on it.

Loaded from ``~/.sidecarctl/config/config.yaml``. A missing or broken
file falls back to defaults; the host must always be able to start.

Example config.yaml::

    sidecar_path: /opt/bridge/proton-drive-webdav-bridge
    default_port: 12345
    status_timeout: 5
    mount_timeout: 20
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field

from . import BRIDGE_HOME
from .models import DEFAULT_PORT

logger = logging.getLogger("sidecarctl.config")

CONFIG_DIR = "config"
CONFIG_FILE = "config.yaml"
LOG_DIR = "logs"

SIDECAR_NAME = "proton-drive-webdav-bridge"


class BridgeConfig(BaseModel):
    """Settings for supervising the bridge worker.

    Attributes:
        sidecar_name: Executable name searched on PATH.
        sidecar_path: Explicit executable, or a full argv prefix
            (e.g. ``["node", "dist/index.js"]``). Wins over the name.
        default_port: Port assumed when the worker cannot tell us.
        status_timeout: Seconds to wait for ``status --json``.
        stop_timeout: Seconds to wait for ``stop``.
        mount_callback_timeout: Seconds the GLib loop waits for the
            mount callback before it is torn down.
        mount_timeout: Overall bound on a mount operation.
        server_init_timeout: Seconds to wait for a fresh worker to serve.
        check_port: Probe a requested port before spawning.
        log_level: Root logging level for the host log file.
    """

    sidecar_name: str = SIDECAR_NAME
    sidecar_path: Optional[Union[str, list[str]]] = None
    default_port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    status_timeout: float = Field(default=5.0, gt=0)
    stop_timeout: float = Field(default=30.0, gt=0)
    mount_callback_timeout: float = Field(default=5.0, gt=0)
    mount_timeout: float = Field(default=20.0, gt=0)
    server_init_timeout: float = Field(default=15.0, gt=0)
    check_port: bool = True
    log_level: str = "INFO"


def resolve_home(home: Optional[Path] = None) -> Path:
    """Expand the host home directory (``SIDECARCTL_HOME`` or default)."""
    return (home or Path(BRIDGE_HOME)).expanduser()


def config_path(home: Optional[Path] = None) -> Path:
    """Path of config.yaml under the host home."""
    return resolve_home(home) / CONFIG_DIR / CONFIG_FILE


def load_config(home: Optional[Path] = None) -> BridgeConfig:
    """Load host configuration from disk.

    Args:
        home: Host home directory.

    Returns:
        BridgeConfig from config.yaml, or defaults.
    """
    path = config_path(home)
    if path.exists():
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            return BridgeConfig(**data)
        except (yaml.YAMLError, ValueError, TypeError, OSError) as exc:
            logger.warning("Failed to load config: %s; using defaults", exc)
    return BridgeConfig()


def save_config(config: BridgeConfig, home: Optional[Path] = None) -> Path:
    """Write configuration back to config.yaml.

    Args:
        config: Configuration to persist.
        home: Host home directory.

    Returns:
        Path of the written file.
    """
    path = config_path(home)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.safe_dump(config.model_dump(exclude_none=True), default_flow_style=False),
        encoding="utf-8",
    )
    return path
