"""Account and cache commands — one worker invocation each.

Login uses the ``auth login --username <email>`` form; the older
``auth --email`` convention is not supported.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .config import BridgeConfig
from .errors import AuthFailed, CommandError, SidecarCommandFailed
from .sidecar import SidecarSupervisor, run_sidecar
from .validation import validate_email

logger = logging.getLogger("sidecarctl.account")


async def login(config: BridgeConfig, email: str, timeout: Optional[float] = None) -> None:
    """Authenticate the worker as ``email``.

    Raises:
        InvalidEmail: Malformed address.
        AuthFailed: The worker rejected the login or timed out.
        SidecarSpawnFailed: The worker could not be launched.
    """
    email = validate_email(email)
    try:
        result = await run_sidecar(config, "auth", "login", "--username", email, timeout=timeout)
    except asyncio.TimeoutError:
        raise AuthFailed(f"Login did not finish within {timeout:g}s.") from None
    if not result.ok:
        raise AuthFailed(result.diagnostic or f"exit code {result.returncode}")
    logger.info("Logged in as %s", email)


async def logout(config: BridgeConfig, supervisor: Optional[SidecarSupervisor] = None) -> None:
    """Stop the worker (best effort) and clear stored credentials.

    Raises:
        AuthFailed: ``auth --logout`` exited non-zero.
    """
    if supervisor is not None:
        try:
            await supervisor.stop()
        except CommandError as exc:
            logger.info("Ignoring stop failure before logout: %s", exc)

    result = await run_sidecar(config, "auth", "--logout")
    if not result.ok:
        raise AuthFailed(result.diagnostic or f"exit code {result.returncode}")
    logger.info("Logged out")


async def purge_cache(config: BridgeConfig) -> None:
    """Clear the worker's on-disk cache.

    Raises:
        SidecarCommandFailed: ``config --purge-cache`` exited non-zero.
    """
    result = await run_sidecar(config, "config", "--purge-cache")
    if not result.ok:
        raise SidecarCommandFailed(result.diagnostic or f"exit code {result.returncode}")
    logger.info("Sidecar cache purged")
