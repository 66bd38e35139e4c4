"""
Status reconciliation — what is the worker doing right now?

Runs ``status --json`` under a hard timeout and turns whatever comes
back into a StatusResponse. Never raises: every failure degrades to the
default status, with a warning in the log.

The worker logs plain-text lines to stdout before the JSON object, so
the payload is taken from the first ``{`` onward.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Optional

from pydantic import ValidationError

from .config import BridgeConfig
from .errors import CommandError
from .events import STATUS_UPDATE, EventBus
from .models import StatusResponse, default_status
from .sidecar import run_sidecar

if TYPE_CHECKING:
    from .sidecar import SidecarSupervisor

logger = logging.getLogger("sidecarctl.status")


def extract_json(text: str) -> Optional[str]:
    """Return everything from the first ``{`` in ``text``, or None."""
    start = text.find("{")
    if start < 0:
        return None
    return text[start:]


def parse_status(text: str) -> StatusResponse:
    """Parse worker output (preamble allowed) into a StatusResponse.

    Text after the closing brace of the first JSON object is ignored.

    Raises:
        ValueError: No JSON object, invalid or too deeply nested JSON,
            or schema mismatch.
    """
    document = extract_json(text)
    if document is None:
        raise ValueError("no JSON object in status output")
    try:
        data, _ = json.JSONDecoder().raw_decode(document)
    except RecursionError as exc:
        raise ValueError("status output is nested too deeply") from exc
    if not isinstance(data, dict):
        raise ValueError("status output is not a JSON object")
    return StatusResponse.model_validate(data)


class StatusReconciler:
    """Queries the worker for its live status.

    Args:
        config: Host configuration (timeouts, default port).
        supervisor: Source of the locally tracked PID for back-fill.
        events: Bus that receives ``status:update``.
    """

    def __init__(
        self,
        config: BridgeConfig,
        supervisor: Optional[SidecarSupervisor] = None,
        events: Optional[EventBus] = None,
    ) -> None:
        self.config = config
        self.supervisor = supervisor
        self.events = events or (supervisor.events if supervisor else EventBus())

    def default(self) -> StatusResponse:
        """The degraded status for this host's configured port."""
        return default_status(self.config.default_port)

    async def query(self) -> StatusResponse:
        """Return the worker's status, or the default status on any failure."""
        self.events.emit(STATUS_UPDATE, self.default())

        status = await self._fetch()
        if status is None:
            return self.default()

        if status.server.pid is None and self.supervisor is not None:
            tracked = self.supervisor.pid
            if tracked is not None:
                status = status.model_copy(
                    update={"server": status.server.model_copy(update={"pid": tracked})}
                )

        self.events.emit(STATUS_UPDATE, status)
        return status

    async def _fetch(self) -> Optional[StatusResponse]:
        timeout = self.config.status_timeout
        try:
            result = await run_sidecar(self.config, "status", "--json", timeout=timeout)
        except CommandError as exc:
            logger.warning("Sidecar not available: %s", exc)
            return None
        except asyncio.TimeoutError:
            logger.warning("Sidecar status command timed out after %gs", timeout)
            return None

        if not result.ok:
            logger.warning("Sidecar status command failed: %s", result.diagnostic)
            return None

        try:
            return parse_status(result.stdout)
        except (ValueError, ValidationError) as exc:
            logger.warning("Failed to parse status output: %s", exc)
            return None
