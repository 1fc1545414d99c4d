"""
Health file writer for the controller.

Writes a JSON health file with four fields:
- last_poll_ts: ISO timestamp of the most recent poll attempt.
- last_success_ts: ISO timestamp of the most recent successful poll.
- watchdog_counter: Remaining failed polls before a restart.
- available: Whether the device is currently marked available.

The file is rewritten after every poll attempt, providing a simple liveness
signal that Docker HEALTHCHECK or monitoring can inspect.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path


class HealthWriter:
    """Writes controller health status to a JSON file.

    Args:
        path: Filesystem path for the health JSON file. Accepts str or Path.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._last_poll_ts: str | None = None
        self._last_success_ts: str | None = None
        self._watchdog_counter: int | None = None
        self._available: bool = False

    def record_poll(self, *, success: bool, watchdog_counter: int, available: bool) -> None:
        """Record a poll attempt and write the health file.

        Args:
            success: The poll completed without error.
            watchdog_counter: Watchdog counter after the poll.
            available: Device availability after the poll.
        """
        now = datetime.now(tz=UTC).isoformat()
        self._last_poll_ts = now
        if success:
            self._last_success_ts = now
        self._watchdog_counter = watchdog_counter
        self._available = available
        self._write()

    def _write(self) -> None:
        """Write the health JSON file with current state."""
        data = {
            "last_poll_ts": self._last_poll_ts,
            "last_success_ts": self._last_success_ts,
            "watchdog_counter": self._watchdog_counter,
            "available": self._available,
        }
        self.path.write_text(json.dumps(data))
