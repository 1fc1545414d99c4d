"""
Control authority gate for setpoint and charge mode commands.

Only one authority may drive the battery setpoint: the dongle's active power
strategy. Commands are accepted only while that strategy is
POWER_STRATEGY_API. Otherwise the gate either claims the strategy first
(``force_control_strategy``) or rejects the command without any write.

Every accepted setpoint is passed through the limiter before it is written.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sessy_edge.src.const import API_STRATEGY, CHARGE_MODE_SETPOINTS, MSG_CONTROL_ERROR
from sessy_edge.src.limiter import limit_setpoint

if TYPE_CHECKING:
    from sessy_edge.src.client import SessyClient
    from sessy_edge.src.models import ControlConfig, ControllerState

logger = logging.getLogger(__name__)


class ControlAuthorityError(Exception):
    """A command arrived while another strategy controls the battery."""

    def __init__(self, message: str = MSG_CONTROL_ERROR) -> None:
        super().__init__(message)


class ControlAuthorityGate:
    """Arbitrates strategy ownership and writes limited setpoints.

    Args:
        client: Sessy API client.
        state: Shared controller state (active strategy, protection flags).
        config: Configured bounds and the force flag.
    """

    def __init__(
        self,
        client: SessyClient,
        state: ControllerState,
        config: ControlConfig,
    ) -> None:
        self._client = client
        self._state = state
        self._config = config

    @property
    def strategy_owned(self) -> bool:
        return self._state.control_strategy == API_STRATEGY or self._state.strategy_claimed

    def limit(self, requested: int) -> int:
        """Limit *requested* against the current state and bounds."""
        return limit_setpoint(
            requested,
            bat_is_empty=self._state.bat_is_empty,
            bat_is_full=self._state.bat_is_full,
            strategy_owned=self.strategy_owned,
            config=self._config,
        )

    async def set_control_strategy(self, strategy: str, source: str) -> None:
        """Write the active power strategy."""
        await self._client.set_strategy(strategy)
        logger.info("Control strategy set by %s to %s", source, strategy)

    async def ensure_authority(self) -> None:
        """Claim the API strategy if allowed, else raise.

        Raises:
            ControlAuthorityError: Another strategy is active and forcing is
                disabled.
        """
        if self.strategy_owned:
            return
        if not self._config.force_control_strategy:
            logger.warning(
                "Command rejected: active strategy is %s", self._state.control_strategy
            )
            raise ControlAuthorityError
        await self.set_control_strategy(API_STRATEGY, "control attempt")
        self._state.strategy_claimed = True

    async def set_charge_mode(self, charge_mode: str, source: str) -> int:
        """Translate a charge mode into its fixed setpoint and write it.

        Unknown modes map to 0 (stop).

        Returns:
            The setpoint actually written, after limiting.
        """
        await self.ensure_authority()
        setpoint = CHARGE_MODE_SETPOINTS.get(charge_mode, 0)
        written = await self.set_power_setpoint(setpoint, source)
        logger.info("Charge mode set by %s to %s", source, charge_mode)
        return written

    async def set_power_setpoint(self, setpoint: int, source: str) -> int:
        """Limit and write a raw power setpoint.

        Returns:
            The setpoint actually written, after limiting.
        """
        await self.ensure_authority()
        limited = self.limit(setpoint)
        await self._client.set_setpoint(limited)
        logger.info("Power setpoint set by %s to %d (requested %d)", source, limited, setpoint)
        return limited
