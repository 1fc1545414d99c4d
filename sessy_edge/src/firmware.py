"""
Firmware change detection for the Sessy dongle and battery.

Compares the OTA status with the versions seen before. An installed version
change fires ``firmware_changed``; a newly offered update fires
``new_firmware_available`` once per offered version. Both also send a user
notification. Nothing is ever installed.

The tracker outlives controller restarts so a restart does not re-announce
the same firmware. Known versions are kept in memory only; nothing is
persisted, so after a process start the first OTA check announces the
installed firmware (``firmware_changed`` plus its notification) once.

CHANGELOG:
- 2026-10-18: Initial creation
- 2026-10-19: Document in-memory version tracking

TODO:
- None
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sessy_edge.src.const import (
    EVENT_FIRMWARE_CHANGED,
    EVENT_NEW_FIRMWARE_AVAILABLE,
    MSG_NEW_FIRMWARE,
    MSG_NEW_FIRMWARE_AVAILABLE,
)

if TYPE_CHECKING:
    from sessy_edge.src.events import EventSink
    from sessy_edge.src.models import OTAStatus

logger = logging.getLogger(__name__)


class FirmwareTracker:
    """Remembers installed and announced firmware versions.

    Args:
        events: Host event sink for triggers and notifications.
    """

    def __init__(self, events: EventSink) -> None:
        self._events = events
        self.fw_dongle: str | None = None
        self.fw_bat: str | None = None
        self.available_fw_dongle: str | None = None
        self.available_fw_bat: str | None = None

    async def update(self, ota: OTAStatus) -> None:
        """Diff one OTA status against the remembered versions.

        Errors are logged and swallowed.
        """
        try:
            await self._update(ota)
        except Exception:
            logger.error("Failed to process firmware status", exc_info=True)

    async def _update(self, ota: OTAStatus) -> None:
        fw_dongle = ota.dongle.installed_firmware.version
        fw_bat = ota.battery.installed_firmware.version
        available_dongle = ota.dongle.available_firmware.version
        available_bat = ota.battery.available_firmware.version

        if fw_dongle != self.fw_dongle or fw_bat != self.fw_bat:
            logger.info("Firmware updated: dongle=%s battery=%s", fw_dongle, fw_bat)
            self.fw_dongle = fw_dongle
            self.fw_bat = fw_bat
            await self._events.trigger(
                EVENT_FIRMWARE_CHANGED, {"fw_dongle": fw_dongle, "fw_bat": fw_bat}
            )
            await self._events.notify(
                MSG_NEW_FIRMWARE.format(fw=f"Dongle: {fw_dongle}, Bat: {fw_bat}")
            )

        new_dongle = fw_dongle != available_dongle and self.available_fw_dongle != available_dongle
        new_bat = fw_bat != available_bat and self.available_fw_bat != available_bat
        if new_dongle or new_bat:
            logger.info(
                "New firmware available: dongle=%s battery=%s", available_dongle, available_bat
            )
            self.available_fw_dongle = available_dongle
            self.available_fw_bat = available_bat
            await self._events.trigger(
                EVENT_NEW_FIRMWARE_AVAILABLE,
                {"available_fw_dongle": available_dongle, "available_fw_bat": available_bat},
            )
            await self._events.notify(
                MSG_NEW_FIRMWARE_AVAILABLE.format(
                    fw=f"Dongle: {available_dongle}, Bat: {available_bat}"
                )
            )
