"""
Controller configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
All configuration values come from environment variables or .env files;
no hardcoded IPs or credentials.

Older installations configured a single ``POWER_MAX`` for both directions.
When that legacy value is present and the split charge/discharge bounds are
not, the bounds are migrated at load time (discharge capped at 1800 W).

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

from sessy_edge.src.const import LEGACY_MAX_DISCHARGE_W

DEFAULT_POWER_MAX_CHARGE_W = 2200
DEFAULT_POWER_MAX_DISCHARGE_W = 1800


class ControllerSettings(BaseSettings):
    """Sessy controller configuration.

    Attributes:
        sessy_host: Sessy dongle IP address / hostname on local LAN.
        sessy_username: Local API user (printed on the dongle sticker).
        sessy_password: Local API password. Strategy reads and firmware
            checks are skipped while either credential is empty.
        request_timeout_s: Timeout per HTTP request to the dongle.
        power_min: Dead-band in W; smaller (dis)charge requests become 0.
        power_max_charge: Maximum charge power in W (magnitude).
        power_max_discharge: Maximum discharge power in W (magnitude).
        power_max: Legacy single maximum, only used for migration.
        force_control_strategy: Claim POWER_STRATEGY_API automatically
            when a command arrives while another strategy is active.
        polling_interval_s: Seconds between telemetry polls.
        show_re_total: Publish the summed renewable energy power.
        show_re1: Publish phase 1 renewable energy readings.
        show_re2: Publish phase 2 renewable energy readings.
        show_re3: Publish phase 3 renewable energy readings.
        watchdog_restart_delay_s: Delay before re-init after the watchdog fires.
        init_retry_delay_s: Delay before re-init after a failed init.
        settings_restart_delay_s: Delay before re-init after a settings change.
        capability_settle_delay_s: Pause after each capability add/remove.
        health_path: Health JSON file path.
    """

    sessy_host: str
    sessy_username: str = ""
    sessy_password: str = ""
    request_timeout_s: float = 10.0
    power_min: int = 50
    power_max_charge: int | None = None
    power_max_discharge: int | None = None
    power_max: int | None = None
    force_control_strategy: bool = False
    polling_interval_s: int = 10
    show_re_total: bool = True
    show_re1: bool = True
    show_re2: bool = True
    show_re3: bool = True
    watchdog_restart_delay_s: float = 60.0
    init_retry_delay_s: float = 60.0
    settings_restart_delay_s: float = 2.0
    capability_settle_delay_s: float = 2.0
    health_path: str = "/data/health.json"

    @property
    def has_credentials(self) -> bool:
        """True when both local API credentials are configured."""
        return self.sessy_username != "" and self.sessy_password != ""

    @model_validator(mode="after")
    def _migrate_power_max(self) -> ControllerSettings:
        """Split a legacy POWER_MAX into charge/discharge bounds."""
        if self.power_max and (not self.power_max_charge or not self.power_max_discharge):
            self.power_max_charge = self.power_max
            self.power_max_discharge = min(self.power_max, LEGACY_MAX_DISCHARGE_W)
        if self.power_max_charge is None:
            self.power_max_charge = DEFAULT_POWER_MAX_CHARGE_W
        if self.power_max_discharge is None:
            self.power_max_discharge = DEFAULT_POWER_MAX_DISCHARGE_W
        return self

    @field_validator("power_min", "power_max_charge", "power_max_discharge", "power_max")
    @classmethod
    def power_bounds_must_be_non_negative(cls, v: int | None) -> int | None:
        """Power bounds are magnitudes; the sign comes from the direction."""
        if v is not None and v < 0:
            raise ValueError("Power bounds must be >= 0 (magnitudes in W)")
        return v

    @field_validator("polling_interval_s")
    @classmethod
    def polling_interval_must_be_reasonable(cls, v: int) -> int:
        """Reject intervals that would hammer the dongle."""
        if v < 2:
            raise ValueError("POLLING_INTERVAL_S must be >= 2")
        return v

    @field_validator("request_timeout_s")
    @classmethod
    def request_timeout_must_be_positive(cls, v: float) -> float:
        """Validate the HTTP timeout is positive."""
        if v <= 0:
            raise ValueError("REQUEST_TIMEOUT_S must be > 0")
        return v

    @field_validator(
        "watchdog_restart_delay_s",
        "init_retry_delay_s",
        "settings_restart_delay_s",
        "capability_settle_delay_s",
    )
    @classmethod
    def delays_must_be_non_negative(cls, v: float) -> float:
        """Validate restart and settle delays are non-negative."""
        if v < 0:
            raise ValueError("Delays must be >= 0")
        return v

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
