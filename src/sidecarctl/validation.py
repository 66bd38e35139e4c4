"""Input validation for user-supplied ports and account emails."""

from __future__ import annotations

import re
import socket
from typing import Any

from .errors import InvalidEmail, InvalidPort

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_port(port: Any) -> int:
    """Coerce and range-check a TCP port.

    Args:
        port: Port as int or numeric string.

    Returns:
        The port as int.

    Raises:
        InvalidPort: Not an integer in 1–65535.
    """
    if isinstance(port, bool):
        raise InvalidPort(f"{port!r} is not a number.")
    try:
        value = int(str(port).strip()) if isinstance(port, str) else int(port)
    except (TypeError, ValueError):
        raise InvalidPort(f"{port!r} is not a number.") from None
    if isinstance(port, float) and port != value:
        raise InvalidPort(f"{port!r} is not a whole number.")
    if not 1 <= value <= 65535:
        raise InvalidPort(f"{value} must be between 1 and 65535.")
    return value


def validate_email(email: Any) -> str:
    """Trim and sanity-check an account email address.

    Not RFC 5322; rejects empty input, whitespace and a missing domain.

    Raises:
        InvalidEmail: The address is malformed.
    """
    if not isinstance(email, str) or not email.strip():
        raise InvalidEmail("Email must not be empty.")
    trimmed = email.strip()
    if not _EMAIL_RE.match(trimmed):
        raise InvalidEmail(f"'{trimmed}' is not a valid address.")
    return trimmed


def port_in_use(port: int, host: str = "127.0.0.1", timeout: float = 0.5) -> bool:
    """Return True if something already accepts connections on ``host:port``."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False
