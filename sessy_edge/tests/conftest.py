"""
Shared test fixtures for the Sessy controller tests.

Provides environment isolation for ControllerSettings tests and factories
for telemetry snapshots and settings used across the suite.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
from sessy_edge.src.config import ControllerSettings
from sessy_edge.src.models import DeviceSnapshot

# All ControllerSettings environment variable names, used for cleanup.
_ALL_ENV_VARS = (
    "SESSY_HOST",
    "SESSY_USERNAME",
    "SESSY_PASSWORD",
    "REQUEST_TIMEOUT_S",
    "POWER_MIN",
    "POWER_MAX_CHARGE",
    "POWER_MAX_DISCHARGE",
    "POWER_MAX",
    "FORCE_CONTROL_STRATEGY",
    "POLLING_INTERVAL_S",
    "SHOW_RE_TOTAL",
    "SHOW_RE1",
    "SHOW_RE2",
    "SHOW_RE3",
    "WATCHDOG_RESTART_DELAY_S",
    "INIT_RETRY_DELAY_S",
    "SETTINGS_RESTART_DELAY_S",
    "CAPABILITY_SETTLE_DELAY_S",
    "HEALTH_PATH",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all controller env vars and isolate from .env files before each test.

    Changes working directory to tmp_path so no .env file is accidentally
    loaded by Pydantic BaseSettings.
    """
    for var in _ALL_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def env_vars_full(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set all environment variables for ControllerSettings."""
    env = {
        "SESSY_HOST": "192.168.1.50",
        "SESSY_USERNAME": "sessy-user",
        "SESSY_PASSWORD": "sessy-secret",
        "REQUEST_TIMEOUT_S": "5",
        "POWER_MIN": "100",
        "POWER_MAX_CHARGE": "2000",
        "POWER_MAX_DISCHARGE": "1500",
        "FORCE_CONTROL_STRATEGY": "true",
        "POLLING_INTERVAL_S": "15",
        "SHOW_RE_TOTAL": "false",
        "SHOW_RE1": "true",
        "SHOW_RE2": "false",
        "SHOW_RE3": "false",
        "HEALTH_PATH": "/tmp/test-health.json",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture()
def make_settings() -> Callable[..., ControllerSettings]:
    """Factory for ControllerSettings with test-friendly delays."""

    def _make(**overrides: Any) -> ControllerSettings:
        values: dict[str, Any] = {
            "sessy_host": "192.168.1.50",
            "sessy_username": "sessy-user",
            "sessy_password": "sessy-secret",
            "power_min": 50,
            "power_max_charge": 2200,
            "power_max_discharge": 1800,
            "watchdog_restart_delay_s": 60.0,
            "init_retry_delay_s": 60.0,
            "settings_restart_delay_s": 2.0,
            "capability_settle_delay_s": 0.0,
        }
        values.update(overrides)
        return ControllerSettings(**values)

    return _make


@pytest.fixture()
def make_snapshot() -> Callable[..., DeviceSnapshot]:
    """Factory for DeviceSnapshot payloads as the dongle returns them."""

    def _make(
        *,
        system_state: str = "SYSTEM_STATE_RUNNING_SAFE",
        power: int = 0,
        power_setpoint: int = 0,
        state_of_charge: float = 0.5,
        frequency: int = 50012,
        phases: tuple[tuple[int, int, int], ...] = (
            (150, 700, 231000),
            (-40, 250, 229500),
            (0, 0, 230100),
        ),
    ) -> DeviceSnapshot:
        payload: dict[str, Any] = {
            "status": "ok",
            "sessy": {
                "state_of_charge": state_of_charge,
                "power": power,
                "power_setpoint": power_setpoint,
                "system_state": system_state,
                "system_state_details": "",
                "frequency": frequency,
            },
        }
        for idx, (p, current, voltage) in enumerate(phases, start=1):
            payload[f"renewable_energy_phase{idx}"] = {
                "power": p,
                "current_rms": current,
                "voltage_rms": voltage,
            }
        return DeviceSnapshot.model_validate(payload)

    return _make
