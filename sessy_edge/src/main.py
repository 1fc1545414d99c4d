"""
Entrypoint for the Sessy supervisory controller daemon.

Loads settings, builds the client, capability registry, event sink and health
writer, initializes the controller and keeps it running until SIGTERM/SIGINT.
On shutdown the controller is torn down: polling stops, pending restarts are
cancelled and the HTTP client is closed.

Structured JSON logging is used for all events.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import signal
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sessy_edge.src.controller import Controller

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structured JSON logging for the controller.

    Sets up the root logger with a JSON-formatted handler writing to stderr.
    """

    class _JsonFormatter(logging.Formatter):
        """Minimal JSON log formatter."""

        def format(self, record: logging.LogRecord) -> str:
            log_entry = {
                "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
            }
            if record.exc_info and record.exc_info[1] is not None:
                log_entry["exception"] = self.formatException(record.exc_info)
            return json.dumps(log_entry)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def _masked_secret(value: str | None) -> str:
    """Return a short non-reversible fingerprint for diagnostics."""
    if not value:
        return "empty"
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()[:10]
    return f"len={len(value)} sha256={digest}"


# ---------------------------------------------------------------------------
# Startup config logging
# ---------------------------------------------------------------------------


def log_config_summary(settings: object) -> None:
    """Log a config summary at startup, excluding secrets.

    The password is replaced by a fingerprint.

    Args:
        settings: A ControllerSettings instance (or any object with the same attrs).
    """
    logger.info(
        "Sessy controller starting with config: "
        "sessy_host=%s, sessy_username=%s, polling_interval_s=%s, "
        "power_min=%s, power_max_charge=%s, power_max_discharge=%s, "
        "force_control_strategy=%s, show_re_total=%s, "
        "show_re=%s/%s/%s, health_path=%s, sessy_password_masked=%s",
        settings.sessy_host,  # type: ignore[attr-defined]
        settings.sessy_username,  # type: ignore[attr-defined]
        settings.polling_interval_s,  # type: ignore[attr-defined]
        settings.power_min,  # type: ignore[attr-defined]
        settings.power_max_charge,  # type: ignore[attr-defined]
        settings.power_max_discharge,  # type: ignore[attr-defined]
        settings.force_control_strategy,  # type: ignore[attr-defined]
        settings.show_re_total,  # type: ignore[attr-defined]
        settings.show_re1,  # type: ignore[attr-defined]
        settings.show_re2,  # type: ignore[attr-defined]
        settings.show_re3,  # type: ignore[attr-defined]
        settings.health_path,  # type: ignore[attr-defined]
        _masked_secret(settings.sessy_password),  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


async def run_controller(
    controller: Controller,
    shutdown_event: asyncio.Event,
) -> None:
    """Initialize the controller and run it until *shutdown_event* is set.

    The controller is always torn down, also when initialization raises.
    """
    try:
        await controller.initialize()
        await shutdown_event.wait()
    finally:
        logger.info("Shutting down controller")
        await controller.teardown()
        logger.info("Shutdown complete")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


async def async_main() -> None:
    """Async entrypoint: load config, build components, run the controller.

    Sets up SIGTERM/SIGINT handlers to trigger graceful shutdown.
    """
    configure_logging()

    from sessy_edge.src.capabilities import CapabilityStore, expected_capabilities
    from sessy_edge.src.config import ControllerSettings
    from sessy_edge.src.controller import Controller
    from sessy_edge.src.events import LoggingEventSink
    from sessy_edge.src.health import HealthWriter

    settings = ControllerSettings()
    log_config_summary(settings)

    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: _handle_signal(shutdown_event),
        )

    store = CapabilityStore(
        expected_capabilities(
            show_re_total=settings.show_re_total,
            show_re1=settings.show_re1,
            show_re2=settings.show_re2,
            show_re3=settings.show_re3,
        )
    )
    controller = Controller(
        settings,
        store=store,
        events=LoggingEventSink(),
        health=HealthWriter(settings.health_path),
    )

    await run_controller(controller, shutdown_event)


def _handle_signal(shutdown_event: asyncio.Event) -> None:
    """Handle SIGTERM/SIGINT by setting the shutdown event.

    Args:
        shutdown_event: The event to set for graceful shutdown.
    """
    logger.info("Received shutdown signal, initiating graceful shutdown")
    shutdown_event.set()


def main() -> None:
    """Synchronous entrypoint for the controller daemon."""
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
