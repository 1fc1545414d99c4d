"""
Supervisory controller package for a Sessy home battery.

Polls telemetry from the Sessy dongle over its local HTTP API, republishes it
as normalized capability values, and guards every power setpoint written to
the battery with min/max and empty/full protection.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""
