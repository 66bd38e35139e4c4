"""
Command errors — the closed failure taxonomy.

Every operation that touches the bridge worker or the desktop mount
table reports failure through one of these classes. Each carries a
stable machine code (for programmatic handling) and a human message
(for display), plus an optional free-text diagnostic.

Usage:
    try:
        await supervisor.start()
    except CommandError as exc:
        print(exc.code, exc)
"""

from __future__ import annotations

from typing import Any, Optional


class CommandError(Exception):
    """Base class for all bridge command failures.

    Attributes:
        code: Stable machine-readable error code.
        message: Human-readable summary for this error kind.
        detail: Optional diagnostic text (stderr, OS message, ...).
    """

    code: str = "UNKNOWN_ERROR"
    message: str = "An unexpected error occurred."

    def __init__(self, detail: Optional[str] = None) -> None:
        self.detail = detail.strip() if isinstance(detail, str) else detail
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message} {self.detail}"
        return self.message

    def to_dict(self) -> dict[str, str]:
        """Serialize as ``{"code", "message"}`` for the host UI."""
        return {"code": self.code, "message": str(self)}


class SidecarAlreadyRunning(CommandError):
    code = "SIDECAR_ALREADY_RUNNING"
    message = "The WebDAV server is already running."


class SidecarNotRunning(CommandError):
    code = "SIDECAR_NOT_RUNNING"
    message = "The WebDAV server is not running."


class SidecarSpawnFailed(CommandError):
    code = "SIDECAR_SPAWN_FAILED"
    message = "Failed to start the WebDAV server."


class SidecarCommandFailed(CommandError):
    code = "SIDECAR_COMMAND_FAILED"
    message = "WebDAV server command failed."


class InvalidPort(CommandError):
    code = "INVALID_PORT"
    message = "Invalid port number."


class PortInUse(CommandError):
    """The requested port already accepts connections."""

    code = "PORT_IN_USE"
    message = "The specified port is already in use."

    def __init__(self, port: int) -> None:
        self.port = port
        super().__init__(f"Port {port}.")


class InvalidEmail(CommandError):
    code = "INVALID_EMAIL"
    message = "Invalid email address format."


class AuthFailed(CommandError):
    code = "AUTH_FAILED"
    message = "Authentication failed."


class ServerInitTimeout(CommandError):
    code = "SERVER_INIT_TIMEOUT"
    message = "Server initialization timed out."


class MountTimeout(CommandError):
    code = "MOUNT_TIMEOUT"
    message = "Mount operation timed out."


class ServerNotRunning(CommandError):
    code = "SERVER_NOT_RUNNING"
    message = "The WebDAV server is not running. Start it first."


class GioError(CommandError):
    code = "GIO_ERROR"
    message = "File system mounting error."


class IoError(CommandError):
    code = "IO_ERROR"
    message = "An input/output error occurred."


class UnknownError(CommandError):
    code = "UNKNOWN_ERROR"
    message = "An unexpected error occurred."


ERROR_CODES: dict[str, type[CommandError]] = {
    cls.code: cls
    for cls in (
        SidecarAlreadyRunning,
        SidecarNotRunning,
        SidecarSpawnFailed,
        SidecarCommandFailed,
        InvalidPort,
        PortInUse,
        InvalidEmail,
        AuthFailed,
        ServerInitTimeout,
        MountTimeout,
        ServerNotRunning,
        GioError,
        IoError,
        UnknownError,
    )
}


def from_dict(data: dict[str, Any]) -> CommandError:
    """Rebuild an error from its serialized ``{"code", "message"}`` form.

    The human message is kept as the detail when it differs from the
    class summary. Unrecognized codes become :class:`UnknownError`.

    Args:
        data: Dict produced by :meth:`CommandError.to_dict`.

    Returns:
        The matching CommandError instance.
    """
    cls = ERROR_CODES.get(str(data.get("code", "")), UnknownError)
    text = str(data.get("message") or "")
    if text.startswith(cls.message):
        text = text[len(cls.message):].strip()

    if cls is PortInUse:
        digits = "".join(ch for ch in text if ch.isdigit())
        return PortInUse(int(digits) if digits else 0)
    return cls(text or None)
