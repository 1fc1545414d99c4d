"""
Unit tests for the battery protection tracker.

Tests verify:
- Device EMPTY_OR_FULL alarm sets flags with wide bounds (20 % / 80 %).
- Sustained override sets flags with tight bounds (1 % / 99 %).
- Normal operation clears flags; the set branches never clear them.
- A protected battery blocks the matching setpoint direction.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from sessy_edge.src.limiter import limit_setpoint
from sessy_edge.src.models import ControlConfig, ControllerState
from sessy_edge.src.protection import BatteryProtectionTracker


def _tracker(*, empty: bool = False, full: bool = False) -> tuple[BatteryProtectionTracker, ControllerState]:
    state = ControllerState(bat_is_empty=empty, bat_is_full=full)
    return BatteryProtectionTracker(state), state


class TestDeviceAlarmBranch:
    """System state containing EMPTY_OR_FULL uses the wide bounds."""

    def test_low_charge_sets_empty(self) -> None:
        tracker, state = _tracker()
        flags = tracker.update("EMPTY_OR_FULL", 15.0, override_active=False)
        assert flags.bat_is_empty is True
        assert flags.bat_is_full is False
        assert state.bat_is_empty is True

    def test_high_charge_sets_full(self) -> None:
        tracker, state = _tracker()
        tracker.update("SYSTEM_STATE_EMPTY_OR_FULL", 85.0, override_active=False)
        assert state.bat_is_full is True
        assert state.bat_is_empty is False

    def test_mid_charge_keeps_existing_flags(self) -> None:
        tracker, state = _tracker(empty=True)
        tracker.update("EMPTY_OR_FULL", 50.0, override_active=False)
        assert state.bat_is_empty is True

    def test_alarm_takes_precedence_over_override(self) -> None:
        tracker, state = _tracker()
        tracker.update("EMPTY_OR_FULL", 15.0, override_active=True)
        assert state.bat_is_empty is True

    def test_empty_battery_blocks_discharge(self) -> None:
        """SoC 0.15 under EMPTY_OR_FULL marks empty; discharging is then refused."""
        tracker, state = _tracker()
        tracker.update("EMPTY_OR_FULL", 0.15 * 100, override_active=False)
        config = ControlConfig(power_min=50, power_max_charge=2200, power_max_discharge=1800)

        limited = limit_setpoint(
            1000,
            bat_is_empty=state.bat_is_empty,
            bat_is_full=state.bat_is_full,
            strategy_owned=True,
            config=config,
        )
        assert limited == 0


class TestOverrideBranch:
    """Sustained override uses the tight bounds and never clears."""

    def test_below_one_percent_sets_empty(self) -> None:
        tracker, state = _tracker()
        tracker.update("RUNNING_SAFE", 0.5, override_active=True)
        assert state.bat_is_empty is True

    def test_above_ninety_nine_percent_sets_full(self) -> None:
        tracker, state = _tracker()
        tracker.update("RUNNING_SAFE", 99.5, override_active=True)
        assert state.bat_is_full is True

    def test_wide_bounds_not_used(self) -> None:
        tracker, state = _tracker()
        tracker.update("RUNNING_SAFE", 15.0, override_active=True)
        assert state.bat_is_empty is False

    def test_does_not_clear_flags_set_by_alarm(self) -> None:
        tracker, state = _tracker()
        tracker.update("EMPTY_OR_FULL", 10.0, override_active=False)
        tracker.update("RUNNING_SAFE", 50.0, override_active=True)
        assert state.bat_is_empty is True


class TestNormalBranch:
    """Normal operation only clears flags."""

    def test_clears_empty_from_one_percent(self) -> None:
        tracker, state = _tracker(empty=True)
        tracker.update("RUNNING_SAFE", 1.0, override_active=False)
        assert state.bat_is_empty is False

    def test_keeps_empty_below_one_percent(self) -> None:
        tracker, state = _tracker(empty=True)
        tracker.update("RUNNING_SAFE", 0.5, override_active=False)
        assert state.bat_is_empty is True

    def test_clears_full_up_to_ninety_nine_percent(self) -> None:
        tracker, state = _tracker(full=True)
        tracker.update("RUNNING_SAFE", 99.0, override_active=False)
        assert state.bat_is_full is False

    def test_keeps_full_above_ninety_nine_percent(self) -> None:
        tracker, state = _tracker(full=True)
        tracker.update("RUNNING_SAFE", 99.5, override_active=False)
        assert state.bat_is_full is True

    def test_never_sets_flags(self) -> None:
        tracker, state = _tracker()
        tracker.update("RUNNING_SAFE", 0.0, override_active=False)
        tracker.update("RUNNING_SAFE", 100.0, override_active=False)
        assert state.bat_is_empty is False
        assert state.bat_is_full is False
