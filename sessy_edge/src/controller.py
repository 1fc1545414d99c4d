"""
Supervisory controller for one Sessy battery.

Owns the ControllerState and wires the components together:

1. **Poll loop**: an interval timer spawns one poll per tick. A poll fetches
   the status (and the active strategy when credentials are set), marks the
   device available, then runs the synchronizer, the override monitor and the
   battery protection tracker in that order. Once per hour it also checks the
   firmware status. Overlapping ticks are dropped via the ``busy`` flag.
2. **Watchdog**: every failed poll decrements the watchdog counter, every
   successful poll resets it to 10. At 0 the device is flagged (alarm,
   unavailable) and a full restart is scheduled.
3. **Commands**: control strategy, charge mode and raw setpoint commands from
   the host go through the control authority gate.

Restart stops the timer, cancels any poll still in flight, waits, and
re-initializes from scratch. Concurrent restart requests collapse into one.

CHANGELOG:
- 2026-10-18: Initial creation
- 2026-10-19: Cancel in-flight polls when polling stops

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable, Coroutine
from typing import TYPE_CHECKING, Any

from sessy_edge.src.capabilities import expected_capabilities, repair_capabilities
from sessy_edge.src.client import SessyClient
from sessy_edge.src.const import (
    API_STRATEGY,
    CAP_ALARM_FAULT,
    CAP_CHARGE_MODE,
    CAP_CONTROL_STRATEGY,
    CAP_MEASURE_BATTERY,
    CAP_METER_SETPOINT,
    CAP_SYSTEM_STATE,
    FIRMWARE_CHECK_INTERVAL_S,
    MSG_CONNECTION_ERROR,
    WATCHDOG_START,
)
from sessy_edge.src.firmware import FirmwareTracker
from sessy_edge.src.gate import ControlAuthorityGate
from sessy_edge.src.models import CapabilityUpdate, ControlConfig, ControllerState
from sessy_edge.src.override import OverrideMonitor
from sessy_edge.src.protection import BatteryProtectionTracker
from sessy_edge.src.synchronizer import DeviceStateSynchronizer

if TYPE_CHECKING:
    from sessy_edge.src.capabilities import CapabilityStore
    from sessy_edge.src.config import ControllerSettings
    from sessy_edge.src.events import EventSink
    from sessy_edge.src.health import HealthWriter

logger = logging.getLogger(__name__)


def _default_client(settings: ControllerSettings) -> SessyClient:
    return SessyClient(
        settings.sessy_host,
        username=settings.sessy_username,
        password=settings.sessy_password,
        timeout_s=settings.request_timeout_s,
    )


class Controller:
    """One supervised Sessy device.

    Collaborators are injected: the host capability registry, the host event
    sink and optionally a prebuilt client. Without a client one is built from
    the settings and rebuilt whenever the settings change.

    Args:
        settings: Controller settings.
        store: Host capability registry.
        events: Host event sink.
        client: Prebuilt Sessy client (tests); owned by the caller.
        health: Health file writer, or None to skip health writes.
        clock: Monotonic clock used for the firmware check interval.
    """

    def __init__(
        self,
        settings: ControllerSettings,
        *,
        store: CapabilityStore,
        events: EventSink,
        client: SessyClient | None = None,
        health: HealthWriter | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._store = store
        self._events = events
        self._health = health
        self._clock = clock
        self._owns_client = client is None
        self._client: SessyClient = client if client is not None else _default_client(settings)
        self._rebuild_client = False

        self.state = ControllerState()
        self.firmware = FirmwareTracker(events)
        self._stop_event: asyncio.Event | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._poll_tasks: set[asyncio.Task[bool]] = set()
        self._build_components()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def settings(self) -> ControllerSettings:
        return self._settings

    @property
    def polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def initialize(self) -> None:
        """Initialize from scratch and start polling.

        On any failure the device is flagged and a restart is scheduled.
        """
        try:
            self.state.reset()
            self._build_components()

            if self._settings.force_control_strategy:
                await self.gate.set_control_strategy(API_STRATEGY, "device init")

            await self.migrate()
            self._seed_from_store()
            await self.start_polling()
            logger.info("Sessy controller initialized for %s", self._client.base_url)
        except Exception as exc:
            logger.error("Controller initialization failed", exc_info=True)
            await self._set_capability(CAP_ALARM_FAULT, True)
            await self._store.set_unavailable(str(exc) or type(exc).__name__)
            self.schedule_restart(self._settings.init_retry_delay_s)

    async def migrate(self) -> None:
        """Repair the registered capability set for the current settings."""
        logger.info("Checking capability migration")
        expected = expected_capabilities(
            show_re_total=self._settings.show_re_total,
            show_re1=self._settings.show_re1,
            show_re2=self._settings.show_re2,
            show_re3=self._settings.show_re3,
        )
        try:
            await repair_capabilities(
                self._store,
                expected,
                settle_delay_s=self._settings.capability_settle_delay_s,
            )
        except Exception:
            logger.error("Capability migration failed", exc_info=True)

    async def apply_settings(self, settings: ControllerSettings) -> None:
        """Adopt new settings and restart with them."""
        logger.info("Settings changed, restarting controller")
        self._settings = settings
        self._rebuild_client = True
        self.state.restarting = False
        self.schedule_restart(settings.settings_restart_delay_s)

    async def teardown(self) -> None:
        """Stop polling, cancel pending work and close the client."""
        await self.stop_polling()
        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        if self._owns_client:
            await self._client.close()
        logger.info("Sessy controller removed")

    # ------------------------------------------------------------------
    # Poll timer
    # ------------------------------------------------------------------

    async def start_polling(self) -> None:
        """Poll once immediately, then on every interval tick."""
        await self.stop_polling()
        interval = self.config.polling_interval_s
        logger.info("Start polling every %ss", interval)
        await self.poll_once()
        self._stop_event = asyncio.Event()
        self._poll_task = asyncio.create_task(self._poll_loop(interval, self._stop_event))

    async def stop_polling(self) -> None:
        """Stop the timer and cancel any poll still in flight."""
        if self._stop_event is not None:
            logger.info("Stop polling")
            self._stop_event.set()
        if self._poll_task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._poll_task
        self._stop_event = None
        self._poll_task = None

        # A poll outliving the timer would clear busy and touch the watchdog
        # of the next session.
        in_flight = [task for task in self._poll_tasks if task is not asyncio.current_task()]
        for task in in_flight:
            task.cancel()
        await asyncio.gather(*in_flight, return_exceptions=True)

    async def _poll_loop(self, interval: float, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            if stop_event.is_set():
                break
            # Ticks do not wait for the previous poll; poll_once drops overlaps.
            self._spawn_poll()

    def _spawn_poll(self) -> asyncio.Task[bool]:
        task = asyncio.create_task(self.poll_once())
        self._poll_tasks.add(task)
        task.add_done_callback(self._poll_tasks.discard)
        return task

    # ------------------------------------------------------------------
    # Poll
    # ------------------------------------------------------------------

    async def poll_once(self) -> bool:
        """Run one poll tick.

        Returns:
            True if a poll ran and succeeded, False if it failed or was skipped.
        """
        state = self.state
        if state.watchdog_counter <= 0:
            logger.warning("Watchdog triggered, restarting device")
            await self._set_capability(CAP_ALARM_FAULT, True)
            await self._store.set_unavailable(MSG_CONNECTION_ERROR)
            self.schedule_restart(self._settings.watchdog_restart_delay_s)
            return False
        if state.busy:
            logger.info("Still busy, skipping a poll")
            return False

        state.busy = True
        try:
            await self._poll()
        except Exception:
            state.watchdog_counter -= 1
            logger.error("Poll error (watchdog=%d)", state.watchdog_counter, exc_info=True)
            success = False
        else:
            state.watchdog_counter = WATCHDOG_START
            success = True
        finally:
            state.busy = False

        self._record_health(success)
        return success

    async def _poll(self) -> None:
        snapshot = await self._client.get_status()
        strategy: str | None = None
        if self._settings.has_credentials:
            strategy = (await self._client.get_strategy()).strategy
        await self._store.set_available()

        update = await self.synchronizer.sync(snapshot, strategy)
        await self.override.observe(snapshot.sessy.power)
        self._update_protection(update)

        if strategy is not None and self._firmware_check_due():
            ota = await self._client.get_ota_status()
            await self.firmware.update(ota)
            self.state.last_firmware_check = self._clock()

    def _update_protection(self, update: CapabilityUpdate | None) -> None:
        state = self.state
        system_state = update.system_state if update is not None else state.system_state
        soc = update.measure_battery if update is not None else state.measure_battery
        if system_state is None or soc is None:
            return
        try:
            self.protection.update(system_state, soc, self.override.active)
        except Exception:
            logger.error("Battery protection update failed", exc_info=True)

    def _firmware_check_due(self) -> bool:
        last = self.state.last_firmware_check
        return last is None or self._clock() - last > FIRMWARE_CHECK_INTERVAL_S

    # ------------------------------------------------------------------
    # Restart
    # ------------------------------------------------------------------

    def schedule_restart(self, delay_s: float) -> None:
        """Restart in the background after *delay_s* seconds."""
        self._spawn(self.restart(delay_s))

    async def restart(self, delay_s: float) -> None:
        """Stop polling, wait, and re-initialize. No-op while already restarting."""
        if self.state.restarting:
            return
        self.state.restarting = True
        await self.stop_polling()
        logger.info("Device will restart in %.1f seconds", delay_s)
        await asyncio.sleep(delay_s)
        self.state.restarting = False
        await self.initialize()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def handle_command(
        self,
        capability: str,
        value: Any,
        source: str = "app",
    ) -> int | None:
        """Dispatch a host command.

        Args:
            capability: ``control_strategy``, ``charge_mode`` or ``meter_setpoint``.
            value: Strategy id, charge mode, or setpoint in W.
            source: Who issued the command, for logging.

        Returns:
            The setpoint written for charge mode and setpoint commands,
            otherwise None.

        Raises:
            ControlAuthorityError: The battery is under another strategy and
                forcing is disabled.
            SessyClientError: The write to the dongle failed.
            ValueError: Unknown capability.
        """
        if capability == CAP_CONTROL_STRATEGY:
            await self.gate.set_control_strategy(str(value), source)
            return None
        if capability == CAP_CHARGE_MODE:
            return await self.gate.set_charge_mode(str(value), source)
        if capability == CAP_METER_SETPOINT:
            return await self.gate.set_power_setpoint(int(value), source)
        raise ValueError(f"Unsupported command capability '{capability}'")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _build_components(self) -> None:
        if self._rebuild_client and self._owns_client:
            self._spawn(self._client.close())
            self._client = _default_client(self._settings)
        self._rebuild_client = False

        self.config = ControlConfig.from_settings(self._settings)
        self.gate = ControlAuthorityGate(self._client, self.state, self.config)
        self.synchronizer = DeviceStateSynchronizer(self.state, self._store, self._events)
        self.override = OverrideMonitor(self.gate, self.state)
        self.protection = BatteryProtectionTracker(self.state)

    def _seed_from_store(self) -> None:
        """Load the last published values so restarts do not re-fire events."""
        self.state.system_state = self._store.get(CAP_SYSTEM_STATE)
        self.state.charge_mode = self._store.get(CAP_CHARGE_MODE)
        self.state.control_strategy = self._store.get(CAP_CONTROL_STRATEGY)
        self.state.measure_battery = self._store.get(CAP_MEASURE_BATTERY)

    async def _set_capability(self, capability: str, value: Any) -> None:
        try:
            await self._store.set_value(capability, value)
        except Exception:
            logger.warning("Failed to set capability %s", capability, exc_info=True)

    def _record_health(self, success: bool) -> None:
        if self._health is None:
            return
        try:
            self._health.record_poll(
                success=success,
                watchdog_counter=self.state.watchdog_counter,
                available=self._store.available,
            )
        except Exception:
            logger.warning("Failed to write health file", exc_info=True)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
