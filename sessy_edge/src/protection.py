"""
Battery empty/full detection with hysteresis.

The dongle keeps reporting a small output power when the battery is at its
limit. The tracker flags the battery as empty or full so the limiter can stop
sending setpoints in the direction the battery can no longer follow.

Three tiers, from most to least confident that the battery is at a limit:

- Device alarm (system state contains ``EMPTY_OR_FULL``): wide bounds,
  empty below 20 %, full above 80 %.
- Sustained override (override monitor fired): tight bounds, empty below
  1 %, full above 99 %.
- Normal operation: clear empty from 1 %, clear full up to 99 %.

Flags are only ever set in the first two tiers and only cleared in the last.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, NamedTuple

from sessy_edge.src.const import EMPTY_OR_FULL_MARKER

if TYPE_CHECKING:
    from sessy_edge.src.models import ControllerState

logger = logging.getLogger(__name__)

WIDE_EMPTY_PCT: float = 20.0
WIDE_FULL_PCT: float = 80.0
TIGHT_EMPTY_PCT: float = 1.0
TIGHT_FULL_PCT: float = 99.0


class ProtectionFlags(NamedTuple):
    bat_is_empty: bool
    bat_is_full: bool


class BatteryProtectionTracker:
    """Updates ``bat_is_empty`` / ``bat_is_full`` on the shared state.

    Args:
        state: The controller state holding the flags.
    """

    def __init__(self, state: ControllerState) -> None:
        self._state = state

    def update(
        self,
        system_state: str,
        state_of_charge: float,
        override_active: bool,
    ) -> ProtectionFlags:
        """Apply one poll's reading to the hysteresis flags.

        Args:
            system_state: System state (with or without the prefix).
            state_of_charge: State of charge in percent (0-100).
            override_active: The override monitor has counted at least the
                threshold number of consecutive out-of-bounds polls.

        Returns:
            The flags after the update.
        """
        state = self._state
        was = ProtectionFlags(state.bat_is_empty, state.bat_is_full)

        if EMPTY_OR_FULL_MARKER in system_state:
            if state_of_charge < WIDE_EMPTY_PCT:
                state.bat_is_empty = True
            if state_of_charge > WIDE_FULL_PCT:
                state.bat_is_full = True
        elif override_active:
            if state_of_charge < TIGHT_EMPTY_PCT:
                state.bat_is_empty = True
            if state_of_charge > TIGHT_FULL_PCT:
                state.bat_is_full = True
        else:
            if state_of_charge >= TIGHT_EMPTY_PCT:
                state.bat_is_empty = False
            if state_of_charge <= TIGHT_FULL_PCT:
                state.bat_is_full = False

        flags = ProtectionFlags(state.bat_is_empty, state.bat_is_full)
        if flags != was:
            logger.info(
                "Battery protection changed: empty=%s full=%s (soc=%.1f%%, state=%s)",
                flags.bat_is_empty,
                flags.bat_is_full,
                state_of_charge,
                system_state,
            )
        return flags
