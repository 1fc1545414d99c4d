"""
Device state synchronizer: telemetry snapshot to capability values.

:func:`build_capability_update` is a pure normalizer: it derives the charge
mode, strips the system state prefix, sums the renewable phases and converts
device units (mA, mV, mHz, 0-1 fraction) to display units (A, V, Hz, %).

:class:`DeviceStateSynchronizer` compares the new values with the last
published ones, writes every capability concurrently and best-effort, and
then fires the change events. Change detection always uses the values as
they stood before this poll's writes.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from sessy_edge.src.const import (
    CHARGE_MODE_CHARGE,
    CHARGE_MODE_DISCHARGE,
    CHARGE_MODE_STOP,
    ERROR_MARKER,
    EVENT_CHARGE_MODE_CHANGED,
    EVENT_CONTROL_STRATEGY_CHANGED,
    EVENT_SYSTEM_STATE_CHANGED,
    SYSTEM_STATE_PREFIX,
)
from sessy_edge.src.models import CapabilityUpdate

if TYPE_CHECKING:
    from sessy_edge.src.capabilities import CapabilityStore
    from sessy_edge.src.events import EventSink
    from sessy_edge.src.models import ControllerState, DeviceSnapshot

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Pure normalization
# ---------------------------------------------------------------------------


def charge_mode_for(setpoint: int) -> str:
    """Charge mode implied by the sign of a setpoint."""
    if setpoint < 0:
        return CHARGE_MODE_CHARGE
    if setpoint > 0:
        return CHARGE_MODE_DISCHARGE
    return CHARGE_MODE_STOP


def strip_system_state(raw: str) -> str:
    """``SYSTEM_STATE_RUNNING_SAFE`` -> ``RUNNING_SAFE``."""
    return raw.replace(SYSTEM_STATE_PREFIX, "")


def build_capability_update(
    snapshot: DeviceSnapshot,
    strategy: str | None,
) -> CapabilityUpdate:
    """Convert a telemetry snapshot into display-unit capability values.

    Pure function. Change flags are left False; the synchronizer sets them.

    Args:
        snapshot: Telemetry read this poll.
        strategy: Active strategy, or None when it could not be read.
    """
    sessy = snapshot.sessy
    phases = snapshot.phases
    system_state = strip_system_state(sessy.system_state)

    return CapabilityUpdate(
        control_strategy=strategy,
        charge_mode=charge_mode_for(sessy.power_setpoint),
        system_state=system_state,
        alarm_fault=ERROR_MARKER in system_state,
        measure_battery=sessy.state_of_charge * 100,
        meter_setpoint=sessy.power_setpoint,
        measure_power=sessy.power,
        measure_frequency=sessy.frequency / 1000,
        re_total_power=sum(phase.power for phase in phases),
        re_power=tuple(phase.power for phase in phases),
        re_current=tuple(phase.current_rms / 1000 for phase in phases),
        re_voltage=tuple(phase.voltage_rms / 1000 for phase in phases),
    )


# ---------------------------------------------------------------------------
# Synchronizer
# ---------------------------------------------------------------------------


class DeviceStateSynchronizer:
    """Publishes capability values and change events for each poll.

    Args:
        state: Controller state holding the last published values.
        store: Host capability registry.
        events: Host event sink.
    """

    def __init__(
        self,
        state: ControllerState,
        store: CapabilityStore,
        events: EventSink,
    ) -> None:
        self._state = state
        self._store = store
        self._events = events

    async def sync(
        self,
        snapshot: DeviceSnapshot,
        strategy: str | None,
    ) -> CapabilityUpdate | None:
        """Publish one snapshot.

        Never raises: unexpected errors are logged and None is returned.

        Returns:
            The published update with its change flags, or None on error.
        """
        try:
            return await self._sync(snapshot, strategy)
        except Exception:
            logger.error("Failed to update device state", exc_info=True)
            return None

    async def _sync(
        self,
        snapshot: DeviceSnapshot,
        strategy: str | None,
    ) -> CapabilityUpdate:
        state = self._state
        update = build_capability_update(snapshot, strategy)

        # Compare before anything is written.
        update = update.model_copy(
            update={
                "system_state_changed": update.system_state != state.system_state,
                "charge_mode_changed": update.charge_mode != state.charge_mode,
                "control_strategy_changed": update.control_strategy != state.control_strategy,
            }
        )

        state.system_state = update.system_state
        state.charge_mode = update.charge_mode
        state.control_strategy = update.control_strategy
        state.strategy_claimed = False
        state.measure_battery = update.measure_battery

        await asyncio.gather(
            *(
                self._set_capability(cap, value)
                for cap, value in update.as_capabilities().items()
            )
        )

        if update.system_state_changed:
            logger.info("System state changed: %s", update.system_state)
            await self._events.trigger(
                EVENT_SYSTEM_STATE_CHANGED, {"system_state": update.system_state}
            )
        if update.charge_mode_changed:
            logger.info("Charge mode changed: %s", update.charge_mode)
            await self._events.trigger(
                EVENT_CHARGE_MODE_CHANGED, {"charge_mode": update.charge_mode}
            )
        if update.control_strategy_changed:
            logger.info("Control strategy changed: %s", update.control_strategy)
            await self._events.trigger(
                EVENT_CONTROL_STRATEGY_CHANGED,
                {"control_strategy": update.control_strategy},
            )

        return update

    async def _set_capability(self, capability: str, value: Any) -> None:
        if not self._store.has(capability):
            return
        try:
            await self._store.set_value(capability, value)
        except Exception:
            logger.warning(
                "Failed to set capability %s to %r", capability, value, exc_info=True
            )
