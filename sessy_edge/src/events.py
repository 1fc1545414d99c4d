"""
Host event sink for flow triggers and user notifications.

The controller does not know how the host delivers events. It calls an
:class:`EventSink`. The daemon uses :class:`LoggingEventSink`, which only
logs. :class:`RecordingEventSink` additionally keeps the most recent events
and notifications in bounded buffers for inspection.

CHANGELOG:
- 2026-10-18: Initial creation
- 2026-10-19: Logging sink no longer accumulates events; bounded recording sink

TODO:
- None
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Protocol

logger = logging.getLogger(__name__)

DEFAULT_HISTORY = 100


class EventSink(Protocol):
    """Receives flow trigger events and user notifications."""

    async def trigger(self, event: str, tokens: dict[str, Any]) -> None: ...

    async def notify(self, excerpt: str) -> None: ...


class LoggingEventSink:
    """Event sink that logs every event and notification."""

    async def trigger(self, event: str, tokens: dict[str, Any]) -> None:
        logger.info("Event %s: %s", event, tokens)

    async def notify(self, excerpt: str) -> None:
        logger.info("Notification: %s", excerpt)


class RecordingEventSink(LoggingEventSink):
    """Logging sink that also keeps the last *maxlen* events and notifications.

    Args:
        maxlen: Maximum number of entries kept per buffer; older ones are dropped.
    """

    def __init__(self, maxlen: int = DEFAULT_HISTORY) -> None:
        self.events: deque[tuple[str, dict[str, Any]]] = deque(maxlen=maxlen)
        self.notifications: deque[str] = deque(maxlen=maxlen)

    async def trigger(self, event: str, tokens: dict[str, Any]) -> None:
        await super().trigger(event, tokens)
        self.events.append((event, dict(tokens)))

    async def notify(self, excerpt: str) -> None:
        await super().notify(excerpt)
        self.notifications.append(excerpt)
