"""
Unit tests for the control authority gate.

Tests verify:
- Commands are accepted under POWER_STRATEGY_API and limited before writing.
- Commands under another strategy are rejected without any write when
  forcing is disabled.
- With forcing enabled the strategy is claimed first, then the limited
  setpoint is written.
- Charge modes translate to their fixed setpoints.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, call

import pytest
from sessy_edge.src.const import API_STRATEGY
from sessy_edge.src.gate import ControlAuthorityError, ControlAuthorityGate
from sessy_edge.src.models import ControlConfig, ControllerState


def _make_gate(
    *,
    strategy: str | None = API_STRATEGY,
    force: bool = False,
    **state_overrides: object,
) -> tuple[ControlAuthorityGate, AsyncMock, ControllerState]:
    client = AsyncMock()
    state = ControllerState(control_strategy=strategy, **state_overrides)  # type: ignore[arg-type]
    config = ControlConfig(
        power_min=50,
        power_max_charge=2000,
        power_max_discharge=1800,
        force_control_strategy=force,
    )
    return ControlAuthorityGate(client, state, config), client, state


class TestAcceptedCommands:
    """Under the API strategy commands are limited and written."""

    @pytest.mark.asyncio
    async def test_writes_limited_setpoint(self) -> None:
        gate, client, _ = _make_gate()

        written = await gate.set_power_setpoint(-2500, "app")

        assert written == -2000
        client.set_setpoint.assert_awaited_once_with(-2000)
        client.set_strategy.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_respects_protection_flags(self) -> None:
        gate, client, _ = _make_gate(bat_is_full=True)

        written = await gate.set_power_setpoint(-1000, "app")

        assert written == 0
        client.set_setpoint.assert_awaited_once_with(0)


class TestRejectedCommands:
    """Another strategy without forcing rejects the command."""

    @pytest.mark.asyncio
    async def test_setpoint_rejected_without_write(self) -> None:
        gate, client, state = _make_gate(strategy="POWER_STRATEGY_NOM")

        with pytest.raises(ControlAuthorityError):
            await gate.set_power_setpoint(-1000, "app")

        client.set_setpoint.assert_not_awaited()
        client.set_strategy.assert_not_awaited()
        assert state.strategy_claimed is False

    @pytest.mark.asyncio
    async def test_charge_mode_rejected_without_write(self) -> None:
        gate, client, _ = _make_gate(strategy=None)

        with pytest.raises(ControlAuthorityError):
            await gate.set_charge_mode("CHARGE", "app")

        client.set_setpoint.assert_not_awaited()


class TestForcedCommands:
    """With forcing enabled the gate claims the strategy first."""

    @pytest.mark.asyncio
    async def test_claims_strategy_then_writes(self) -> None:
        gate, client, state = _make_gate(strategy="POWER_STRATEGY_ECO", force=True)
        manager = MagicMock()
        manager.attach_mock(client.set_strategy, "set_strategy")
        manager.attach_mock(client.set_setpoint, "set_setpoint")

        written = await gate.set_power_setpoint(3000, "flow")

        assert manager.mock_calls == [
            call.set_strategy(API_STRATEGY),
            call.set_setpoint(1800),
        ]
        assert written == 1800
        assert state.strategy_claimed is True

    @pytest.mark.asyncio
    async def test_claims_only_once(self) -> None:
        gate, client, _ = _make_gate(strategy="POWER_STRATEGY_ECO", force=True)

        await gate.set_power_setpoint(500, "flow")
        await gate.set_power_setpoint(600, "flow")

        client.set_strategy.assert_awaited_once_with(API_STRATEGY)
        assert client.set_setpoint.await_count == 2


class TestChargeModes:
    """Charge modes map to fixed setpoints before limiting."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("mode", "expected"),
        [("STOP", 0), ("CHARGE", -2000), ("DISCHARGE", 1800), ("BOOST", 0)],
    )
    async def test_mode_setpoints(self, mode: str, expected: int) -> None:
        gate, client, _ = _make_gate()

        written = await gate.set_charge_mode(mode, "app")

        assert written == expected
        client.set_setpoint.assert_awaited_once_with(expected)


class TestSetControlStrategy:
    """Strategy commands are written directly."""

    @pytest.mark.asyncio
    async def test_writes_strategy(self) -> None:
        gate, client, _ = _make_gate(strategy="POWER_STRATEGY_ECO")

        await gate.set_control_strategy("POWER_STRATEGY_NOM", "app")

        client.set_strategy.assert_awaited_once_with("POWER_STRATEGY_NOM")
