"""
Pydantic models for Sessy telemetry and controller state.

Defines the wire models returned by the Sessy local API (status, strategy,
OTA status), the normalized CapabilityUpdate published to the host, the
ControlConfig bounds used by the setpoint limiter, and the mutable
ControllerState owned by one controller instance.

Raw telemetry uses device units: power in W, current in mA, voltage in mV,
frequency in mHz, state of charge as a 0-1 fraction.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass, fields

from pydantic import BaseModel, ConfigDict, Field

from sessy_edge.src.const import WATCHDOG_START

# ---------------------------------------------------------------------------
# Wire models (device -> controller)
# ---------------------------------------------------------------------------


class SessyReading(BaseModel):
    """Battery section of the power status response."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    system_state: str
    power: int
    power_setpoint: int
    state_of_charge: float
    frequency: int = 0


class PhaseReading(BaseModel):
    """Renewable energy reading of one grid phase."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    power: int = 0
    current_rms: int = 0
    voltage_rms: int = 0


class DeviceSnapshot(BaseModel):
    """Immutable telemetry snapshot read once per poll.

    Attributes:
        sessy: Battery state, output power and setpoint.
        renewable_energy_phase1: Phase 1 renewable energy reading.
        renewable_energy_phase2: Phase 2 renewable energy reading.
        renewable_energy_phase3: Phase 3 renewable energy reading.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    sessy: SessyReading
    renewable_energy_phase1: PhaseReading = Field(default_factory=PhaseReading)
    renewable_energy_phase2: PhaseReading = Field(default_factory=PhaseReading)
    renewable_energy_phase3: PhaseReading = Field(default_factory=PhaseReading)

    @property
    def phases(self) -> tuple[PhaseReading, PhaseReading, PhaseReading]:
        return (
            self.renewable_energy_phase1,
            self.renewable_energy_phase2,
            self.renewable_energy_phase3,
        )


class StrategyResponse(BaseModel):
    """Active power strategy as reported by the dongle."""

    model_config = ConfigDict(extra="ignore")

    strategy: str


class FirmwareVersion(BaseModel):
    model_config = ConfigDict(extra="ignore")

    version: str


class FirmwareComponent(BaseModel):
    """Installed and available firmware of one component."""

    model_config = ConfigDict(extra="ignore")

    installed_firmware: FirmwareVersion
    available_firmware: FirmwareVersion


class OTAStatus(BaseModel):
    """OTA status for the dongle (``self``) and the battery (``serial``)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    dongle: FirmwareComponent = Field(alias="self")
    battery: FirmwareComponent = Field(alias="serial")


# ---------------------------------------------------------------------------
# Normalized capability values (controller -> host)
# ---------------------------------------------------------------------------


class CapabilityUpdate(BaseModel):
    """Normalized capability values derived from one DeviceSnapshot.

    All values are in display units: percent, W, Hz, A, V.

    Attributes:
        control_strategy: Active strategy, or None without credentials.
        charge_mode: STOP, CHARGE or DISCHARGE derived from the setpoint sign.
        system_state: System state without the ``SYSTEM_STATE_`` prefix.
        alarm_fault: True when the system state reports an error.
        measure_battery: State of charge in percent.
        meter_setpoint: Current power setpoint in W.
        measure_power: Actual battery output power in W.
        measure_frequency: Grid frequency in Hz.
        re_total_power: Sum of the three renewable phase powers in W.
        re_power: Per-phase renewable power in W.
        re_current: Per-phase renewable current in A.
        re_voltage: Per-phase renewable voltage in V.
        system_state_changed: Differs from the previously published value.
        charge_mode_changed: Differs from the previously published value.
        control_strategy_changed: Differs from the previously published value.
    """

    control_strategy: str | None
    charge_mode: str
    system_state: str
    alarm_fault: bool
    measure_battery: float
    meter_setpoint: int
    measure_power: int
    measure_frequency: float
    re_total_power: int
    re_power: tuple[int, int, int]
    re_current: tuple[float, float, float]
    re_voltage: tuple[float, float, float]
    system_state_changed: bool = False
    charge_mode_changed: bool = False
    control_strategy_changed: bool = False

    def as_capabilities(self) -> dict[str, object]:
        """Return ``{capability_id: value}`` in host capability order."""
        values: dict[str, object] = {
            "control_strategy": self.control_strategy,
            "charge_mode": self.charge_mode,
            "system_state": self.system_state,
            "alarm_fault": self.alarm_fault,
            "measure_battery": self.measure_battery,
            "meter_setpoint": self.meter_setpoint,
            "measure_power": self.measure_power,
            "measure_frequency": self.measure_frequency,
            "measure_power.total": self.re_total_power,
        }
        for idx, power in enumerate(self.re_power, start=1):
            values[f"measure_power.p{idx}"] = power
        for idx, current in enumerate(self.re_current, start=1):
            values[f"measure_current.p{idx}"] = current
        for idx, voltage in enumerate(self.re_voltage, start=1):
            values[f"measure_voltage.p{idx}"] = voltage
        return values


# ---------------------------------------------------------------------------
# Limiter configuration
# ---------------------------------------------------------------------------


class ControlConfig(BaseModel):
    """Configured setpoint bounds, all non-negative magnitudes in W."""

    model_config = ConfigDict(frozen=True)

    power_min: int = Field(default=0, ge=0)
    power_max_charge: int = Field(ge=0)
    power_max_discharge: int = Field(ge=0)
    force_control_strategy: bool = False
    polling_interval_s: int = 10

    @classmethod
    def from_settings(cls, settings: object) -> ControlConfig:
        """Build from a ControllerSettings (or any object with the same attrs)."""
        return cls(
            power_min=settings.power_min,  # type: ignore[attr-defined]
            power_max_charge=settings.power_max_charge,  # type: ignore[attr-defined]
            power_max_discharge=settings.power_max_discharge,  # type: ignore[attr-defined]
            force_control_strategy=settings.force_control_strategy,  # type: ignore[attr-defined]
            polling_interval_s=settings.polling_interval_s,  # type: ignore[attr-defined]
        )


# ---------------------------------------------------------------------------
# Mutable controller state
# ---------------------------------------------------------------------------


@dataclass
class ControllerState:
    """State owned by one controller instance.

    Mutated only by the poll loop and the command handlers, which run on a
    single event loop. Reset on re-initialization.

    ``control_strategy`` is the last published strategy and drives change
    detection. ``strategy_claimed`` is set when this controller claimed the
    API strategy itself and holds until the next poll reports the real one.
    """

    busy: bool = False
    restarting: bool = False
    watchdog_counter: int = WATCHDOG_START
    override_counter: int = 0
    bat_is_empty: bool = False
    bat_is_full: bool = False
    last_firmware_check: float | None = None
    system_state: str | None = None
    charge_mode: str | None = None
    control_strategy: str | None = None
    strategy_claimed: bool = False
    measure_battery: float | None = None

    def reset(self) -> None:
        """Return every field except the restart guard to its initial value."""
        for f in fields(self):
            if f.name != "restarting":
                setattr(self, f.name, f.default)
