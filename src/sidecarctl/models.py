"""
Pydantic models for the bridge worker's state and the host's events.

Field names are snake_case in Python; the worker speaks camelCase JSON,
so every multi-word field carries its wire name as an alias. Models
are frozen; each status query produces a fresh snapshot.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 12345


class _WireModel(BaseModel):
    """Base for models exchanged with the worker as JSON."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    def to_wire(self) -> dict:
        """Dump using the worker's camelCase field names."""
        return self.model_dump(by_alias=True, mode="json")


class ServerStatus(_WireModel):
    """Whether the WebDAV server is serving, and where."""

    running: bool
    pid: Optional[int] = None
    url: Optional[str] = None


class AuthStatus(_WireModel):
    """Whether the worker holds stored credentials."""

    logged_in: bool = Field(alias="loggedIn")
    username: Optional[str] = None


class WebdavConfig(_WireModel):
    """The endpoint the worker serves."""

    host: str
    port: int
    https: bool
    require_auth: bool = Field(alias="requireAuth")
    username: Optional[str] = None
    password_hash: Optional[str] = Field(default=None, alias="passwordHash")


class CacheConfig(_WireModel):
    """Worker-side metadata cache settings."""

    enabled: bool
    ttl_seconds: int = Field(alias="ttlSeconds")
    max_size_mb: int = Field(alias="maxSizeMB")


class ConfigStatus(_WireModel):
    """The worker's effective configuration."""

    webdav: WebdavConfig
    remote_path: str = Field(alias="remotePath")
    cache: Optional[CacheConfig] = None
    debug: Optional[bool] = None
    auto_start: Optional[bool] = Field(default=None, alias="autoStart")


class StatusResponse(_WireModel):
    """Snapshot of the worker: server, auth, config and log file."""

    server: ServerStatus
    auth: AuthStatus
    config: ConfigStatus
    log_file: str = Field(alias="logFile")

    @property
    def port(self) -> int:
        """Port of the served WebDAV endpoint."""
        return self.config.webdav.port


def default_status(port: int = DEFAULT_PORT) -> StatusResponse:
    """Build the safe fallback status.

    Reports a stopped server, logged-out auth and the canonical local
    endpoint. Every non-optional field is populated.

    Args:
        port: Endpoint port to report (default: 12345).

    Returns:
        A fresh StatusResponse.
    """
    return StatusResponse(
        server=ServerStatus(running=False, pid=None, url=None),
        auth=AuthStatus(logged_in=False, username=None),
        config=ConfigStatus(
            webdav=WebdavConfig(
                host=DEFAULT_HOST,
                port=port,
                https=False,
                require_auth=False,
                username=None,
                password_hash=None,
            ),
            remote_path="",
            cache=None,
            debug=False,
            auto_start=None,
        ),
        log_file="",
    )


class LogLevel(str, Enum):
    """Level of a streamed worker output line."""

    INFO = "info"
    ERROR = "error"


class LogEvent(BaseModel):
    """Payload of ``sidecar:log``."""

    level: LogLevel
    message: str


class TerminatedEvent(BaseModel):
    """Payload of ``sidecar:terminated``.

    ``code`` is the exit status; ``signal`` is set instead when the
    worker was killed by a signal.
    """

    pid: int
    code: Optional[int] = None
    signal: Optional[int] = None


class MountRecord(BaseModel):
    """One entry of the OS mount table, as seen right now."""

    uri: str
    can_unmount: bool
    name: Optional[str] = None


class MountLocation(str, Enum):
    """Where the target endpoint stands in the mount table."""

    UNMOUNTABLE = "unmountable"
    NOT_UNMOUNTABLE = "not-unmountable"
    NOT_FOUND = "not-found"
