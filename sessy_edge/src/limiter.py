"""
Pure setpoint limiter.

Clamps a requested battery setpoint against the configured min/max bounds
and the battery empty/full protection flags. Called before every setpoint
write to the dongle and by the override monitor to compute what the output
power should be.

Sign convention: negative = charge, positive = discharge, zero = stop.

This is a pure function: no side effects, no I/O, no clock.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sessy_edge.src.const import GUARD_BAND_W

if TYPE_CHECKING:
    from sessy_edge.src.models import ControlConfig


def limit_setpoint(
    requested: int,
    *,
    bat_is_empty: bool,
    bat_is_full: bool,
    strategy_owned: bool,
    config: ControlConfig,
) -> int:
    """Return the setpoint that may actually be sent to the battery.

    Limits only apply while the controller owns the API strategy; under any
    other strategy the request passes through unchanged.

    Requests smaller than ``power_min`` are suppressed to 0 rather than
    rounded up. Requests beyond the maximum are capped only once they exceed
    it by more than the 10 W guard band.

    Args:
        requested: Requested setpoint in W.
        bat_is_empty: Block discharging.
        bat_is_full: Block charging.
        strategy_owned: Active strategy is POWER_STRATEGY_API.
        config: Configured bounds.

    Returns:
        The allowed setpoint in W. Its sign never opposes *requested*.
    """
    if not requested or not strategy_owned:
        return requested

    sp = requested
    if bat_is_empty and sp > 0:
        sp = 0
    if bat_is_full and sp < 0:
        sp = 0

    # Direction follows the requested value, not the protected one.
    if requested < 0:
        max_charge = config.power_max_charge
        if sp + config.power_min > 0:
            sp = 0
        elif sp + max_charge < -GUARD_BAND_W:
            sp = -max_charge
    else:
        max_discharge = config.power_max_discharge
        if sp - config.power_min < 0:
            sp = 0
        elif sp - max_discharge > GUARD_BAND_W:
            sp = max_discharge

    return sp
