"""
Constants shared by the Sessy controller modules.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Control strategy
# ---------------------------------------------------------------------------

API_STRATEGY: str = "POWER_STRATEGY_API"
"""Strategy id under which this controller owns the power setpoint."""

# ---------------------------------------------------------------------------
# System state
# ---------------------------------------------------------------------------

SYSTEM_STATE_PREFIX: str = "SYSTEM_STATE_"
EMPTY_OR_FULL_MARKER: str = "EMPTY_OR_FULL"
ERROR_MARKER: str = "ERROR"

# ---------------------------------------------------------------------------
# Charge modes and their fixed setpoints (W, negative = charge)
# ---------------------------------------------------------------------------

CHARGE_MODE_STOP: str = "STOP"
CHARGE_MODE_CHARGE: str = "CHARGE"
CHARGE_MODE_DISCHARGE: str = "DISCHARGE"

CHARGE_MODE_SETPOINTS: dict[str, int] = {
    CHARGE_MODE_STOP: 0,
    CHARGE_MODE_CHARGE: -2200,
    CHARGE_MODE_DISCHARGE: 1800,
}

# ---------------------------------------------------------------------------
# Watchdog, override and firmware timing
# ---------------------------------------------------------------------------

WATCHDOG_START: int = 10
"""Consecutive failed polls tolerated before a full restart."""

OVERRIDE_THRESHOLD: int = 3
"""Consecutive out-of-bounds polls before a corrective setpoint write."""

FIRMWARE_CHECK_INTERVAL_S: float = 60 * 60

GUARD_BAND_W: int = 10
"""Tolerance above the configured maximum before the limiter caps a setpoint."""

LEGACY_MAX_DISCHARGE_W: int = 1800

# ---------------------------------------------------------------------------
# Capability ids, in the order the host should list them
# ---------------------------------------------------------------------------

CAP_CONTROL_STRATEGY = "control_strategy"
CAP_CHARGE_MODE = "charge_mode"
CAP_SYSTEM_STATE = "system_state"
CAP_ALARM_FAULT = "alarm_fault"
CAP_MEASURE_BATTERY = "measure_battery"
CAP_METER_SETPOINT = "meter_setpoint"
CAP_MEASURE_POWER = "measure_power"
CAP_MEASURE_FREQUENCY = "measure_frequency"
CAP_RE_TOTAL_POWER = "measure_power.total"

ALL_CAPABILITIES: tuple[str, ...] = (
    CAP_CONTROL_STRATEGY,
    CAP_CHARGE_MODE,
    CAP_SYSTEM_STATE,
    CAP_ALARM_FAULT,
    CAP_MEASURE_BATTERY,
    CAP_METER_SETPOINT,
    CAP_MEASURE_POWER,
    CAP_MEASURE_FREQUENCY,
    CAP_RE_TOTAL_POWER,
    "measure_power.p1",
    "measure_power.p2",
    "measure_power.p3",
    "measure_current.p1",
    "measure_current.p2",
    "measure_current.p3",
    "measure_voltage.p1",
    "measure_voltage.p2",
    "measure_voltage.p3",
)

# ---------------------------------------------------------------------------
# Host events
# ---------------------------------------------------------------------------

EVENT_SYSTEM_STATE_CHANGED = "system_state_changed"
EVENT_CHARGE_MODE_CHANGED = "charge_mode_changed"
EVENT_CONTROL_STRATEGY_CHANGED = "control_strategy_changed"
EVENT_FIRMWARE_CHANGED = "firmware_changed"
EVENT_NEW_FIRMWARE_AVAILABLE = "new_firmware_available"

# ---------------------------------------------------------------------------
# User-facing messages
# ---------------------------------------------------------------------------

MSG_CONNECTION_ERROR = "Connection to the Sessy is lost, the device will restart"
MSG_CONTROL_ERROR = (
    "The Sessy is not in API control mode. Enable 'force control strategy' "
    "or set the control strategy to POWER_STRATEGY_API first"
)
MSG_MIGRATING = "Device is migrating. Wait a few minutes!"
MSG_NEW_FIRMWARE = "The Sessy firmware was updated to {fw}"
MSG_NEW_FIRMWARE_AVAILABLE = "New firmware is available for the Sessy: {fw}"
