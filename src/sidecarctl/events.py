"""
In-process event bus for host notifications.

The desktop shell listens for a fixed set of named events; this module
is the seam between the core and whatever UI subscribes. Payloads are
pydantic models or plain strings and are handed to listeners as-is.

Usage:
    bus = EventBus()
    bus.subscribe(SIDECAR_LOG, lambda evt: print(evt.message))
    bus.subscribe("status:*", on_status)      # wildcard
    bus.emit(SIDECAR_LOG, LogEvent(level="info", message="ready"))
"""

from __future__ import annotations

import fnmatch
import logging
import threading
from collections import deque
from typing import Any, Callable

logger = logging.getLogger("sidecarctl.events")

SIDECAR_LOG = "sidecar:log"
SIDECAR_TERMINATED = "sidecar:terminated"
STATUS_UPDATE = "status:update"
MOUNT_STATUS = "mount:status"

EVENT_NAMES = (SIDECAR_LOG, SIDECAR_TERMINATED, STATUS_UPDATE, MOUNT_STATUS)

Listener = Callable[[Any], None]


class EventBus:
    """Thread-safe publish/subscribe for named host events.

    Listeners run synchronously on the emitting thread. A listener that
    raises is logged and skipped; it never breaks the emitter.

    Args:
        history: Number of recent events kept for late subscribers.
    """

    def __init__(self, history: int = 200) -> None:
        self._lock = threading.Lock()
        self._listeners: dict[str, list[Listener]] = {}
        self._history: deque[tuple[str, Any]] = deque(maxlen=history)

    def subscribe(self, pattern: str, listener: Listener) -> Callable[[], None]:
        """Register a listener for an event name or glob pattern.

        Args:
            pattern: Event name (``sidecar:log``) or glob (``sidecar:*``).
            listener: Callable receiving the event payload.

        Returns:
            A function that removes the subscription.
        """
        with self._lock:
            self._listeners.setdefault(pattern, []).append(listener)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(pattern, [])
                if listener in listeners:
                    listeners.remove(listener)

        return unsubscribe

    def emit(self, name: str, payload: Any = None) -> int:
        """Deliver an event to every matching listener.

        Args:
            name: Event name.
            payload: Event payload.

        Returns:
            Number of listeners that received the event.
        """
        with self._lock:
            self._history.append((name, payload))
            targets = [
                listener
                for pattern, listeners in self._listeners.items()
                if fnmatch.fnmatch(name, pattern)
                for listener in listeners
            ]

        delivered = 0
        for listener in targets:
            try:
                listener(payload)
                delivered += 1
            except Exception as exc:
                logger.warning("Listener for '%s' failed: %s", name, exc)
        return delivered

    def recent(self, pattern: str = "*") -> list[tuple[str, Any]]:
        """Return buffered events whose name matches ``pattern``, oldest first."""
        with self._lock:
            return [(n, p) for n, p in self._history if fnmatch.fnmatch(n, pattern)]
