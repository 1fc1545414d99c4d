"""
In-memory capability registry and capability-set repair.

The :class:`CapabilityStore` stands in for the host's device registry: an
ordered list of capability ids with their last written values, plus the
device availability flag and reason.

:func:`repair_capabilities` brings the registered capability list in line
with the expected one (which depends on the renewable energy visibility
settings). Values are snapshotted explicitly before anything is removed so
they can be restored on the re-added capabilities.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from sessy_edge.src.const import ALL_CAPABILITIES, CAP_RE_TOTAL_POWER, MSG_MIGRATING

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class CapabilityStore:
    """Ordered capability registry with availability.

    Args:
        capabilities: Initially registered capability ids, in order.
    """

    def __init__(self, capabilities: list[str] | tuple[str, ...] = ()) -> None:
        self._order: list[str] = list(capabilities)
        self._values: dict[str, Any] = {}
        self.available: bool = True
        self.unavailable_reason: str | None = None

    def capabilities(self) -> list[str]:
        return list(self._order)

    def has(self, capability: str) -> bool:
        return capability in self._order

    def get(self, capability: str) -> Any:
        return self._values.get(capability)

    def snapshot(self) -> dict[str, Any]:
        """Copy of the current values of all registered capabilities."""
        return {cap: self._values[cap] for cap in self._order if cap in self._values}

    async def add(self, capability: str) -> None:
        if capability not in self._order:
            self._order.append(capability)

    async def remove(self, capability: str) -> None:
        if capability not in self._order:
            raise KeyError(f"Capability '{capability}' is not registered")
        self._order.remove(capability)
        self._values.pop(capability, None)

    async def set_value(self, capability: str, value: Any) -> None:
        """Write a value. Writes to unregistered capabilities are ignored."""
        if capability not in self._order:
            return
        self._values[capability] = value

    async def set_available(self) -> None:
        if not self.available:
            logger.info("Device available again")
        self.available = True
        self.unavailable_reason = None

    async def set_unavailable(self, reason: str) -> None:
        logger.warning("Device unavailable: %s", reason)
        self.available = False
        self.unavailable_reason = reason


# ---------------------------------------------------------------------------
# Expected capability set
# ---------------------------------------------------------------------------


def expected_capabilities(
    *,
    show_re_total: bool = True,
    show_re1: bool = True,
    show_re2: bool = True,
    show_re3: bool = True,
) -> list[str]:
    """Return the ordered capability ids to register for these settings."""
    caps = list(ALL_CAPABILITIES)
    if not show_re_total:
        caps = [cap for cap in caps if CAP_RE_TOTAL_POWER not in cap]
    for phase, shown in (("p1", show_re1), ("p2", show_re2), ("p3", show_re3)):
        if not shown:
            caps = [cap for cap in caps if phase not in cap]
    return caps


# ---------------------------------------------------------------------------
# Repair
# ---------------------------------------------------------------------------


async def repair_capabilities(
    store: CapabilityStore,
    expected: list[str],
    *,
    settle_delay_s: float = 2.0,
) -> bool:
    """Make the registered capabilities match *expected*, order included.

    At the first position where the registered list differs, every capability
    from that position on is removed and the expected one is added, restoring
    its value from the pre-repair snapshot. Each add/remove is followed by a
    settle delay. Individual removal failures are logged and skipped.

    Args:
        store: The capability registry to repair.
        expected: Expected ordered capability ids.
        settle_delay_s: Pause after each add/remove.

    Returns:
        True if anything was changed.
    """
    snapshot = store.snapshot()
    changed = False

    for index in range(len(expected) + 1):
        current = store.capabilities()
        wanted = expected[index] if index < len(expected) else None
        have = current[index] if index < len(current) else None
        if have == wanted:
            continue

        if not changed:
            await store.set_unavailable(MSG_MIGRATING)
            changed = True

        for cap in current[index:]:
            logger.info("Removing capability %s", cap)
            try:
                await store.remove(cap)
            except Exception:
                logger.warning("Failed to remove capability %s", cap, exc_info=True)
            await asyncio.sleep(settle_delay_s)

        if wanted is not None:
            logger.info("Adding capability %s", wanted)
            await store.add(wanted)
            if wanted in snapshot:
                logger.info("Restoring %s to %r", wanted, snapshot[wanted])
                await store.set_value(wanted, snapshot[wanted])
            await asyncio.sleep(settle_delay_s)

    return changed
