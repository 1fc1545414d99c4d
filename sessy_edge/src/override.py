"""
Min/max override monitor.

Another app, or the dongle itself, can leave the battery running at a power
outside the configured bounds. After three consecutive polls where the
limiter would have changed the observed output, the monitor writes the
limited value once through the control authority gate.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sessy_edge.src.const import OVERRIDE_THRESHOLD

if TYPE_CHECKING:
    from sessy_edge.src.gate import ControlAuthorityGate
    from sessy_edge.src.models import ControllerState

logger = logging.getLogger(__name__)

INTERVENTION_SOURCE = "min_max intervention"


class OverrideMonitor:
    """Counts out-of-bounds polls and intervenes at the threshold.

    Args:
        gate: Gate used to limit and write the corrective setpoint.
        state: Shared controller state holding ``override_counter``.
    """

    def __init__(self, gate: ControlAuthorityGate, state: ControllerState) -> None:
        self._gate = gate
        self._state = state

    @property
    def active(self) -> bool:
        """True once the violation has lasted for the threshold number of polls."""
        return self._state.override_counter >= OVERRIDE_THRESHOLD

    async def observe(self, actual_power: int) -> int | None:
        """Compare the observed output power with its limited value.

        An idle battery (0 W) is always compliant and leaves the counter as is.
        Write errors propagate to the caller.

        Args:
            actual_power: Output power reported by this poll, in W.

        Returns:
            The corrective setpoint written, or None when no write happened.
        """
        if not actual_power:
            return None

        allowed = self._gate.limit(actual_power)
        if allowed == actual_power:
            self._state.override_counter = 0
            return None

        self._state.override_counter += 1
        logger.info(
            "Output power %d W outside bounds (allowed %d W), count=%d",
            actual_power,
            allowed,
            self._state.override_counter,
        )
        if self._state.override_counter != OVERRIDE_THRESHOLD:
            return None

        return await self._gate.set_power_setpoint(allowed, INTERVENTION_SOURCE)
