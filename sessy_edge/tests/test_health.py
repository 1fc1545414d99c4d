"""
Unit tests for the controller health writer.

Tests verify:
- record_poll() writes all four fields.
- A failed poll updates last_poll_ts but not last_success_ts.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import json
from pathlib import Path

from sessy_edge.src.health import HealthWriter


class TestRecordPoll:
    """record_poll() creates/updates the health JSON file."""

    def test_successful_poll(self, tmp_path: Path) -> None:
        health_path = tmp_path / "health.json"
        writer = HealthWriter(health_path)

        writer.record_poll(success=True, watchdog_counter=10, available=True)

        data = json.loads(health_path.read_text())
        assert set(data) == {"last_poll_ts", "last_success_ts", "watchdog_counter", "available"}
        assert "T" in data["last_poll_ts"]
        assert data["last_success_ts"] == data["last_poll_ts"]
        assert data["watchdog_counter"] == 10
        assert data["available"] is True

    def test_failed_poll_keeps_last_success(self, tmp_path: Path) -> None:
        health_path = tmp_path / "health.json"
        writer = HealthWriter(str(health_path))

        writer.record_poll(success=False, watchdog_counter=9, available=True)

        data = json.loads(health_path.read_text())
        assert data["last_poll_ts"] is not None
        assert data["last_success_ts"] is None
        assert data["watchdog_counter"] == 9

    def test_success_after_failure(self, tmp_path: Path) -> None:
        health_path = tmp_path / "health.json"
        writer = HealthWriter(health_path)

        writer.record_poll(success=False, watchdog_counter=9, available=False)
        writer.record_poll(success=True, watchdog_counter=10, available=True)

        data = json.loads(health_path.read_text())
        assert data["last_success_ts"] is not None
        assert data["available"] is True
