"""
Async HTTP client for the Sessy dongle local API.

Wraps the five endpoints the controller needs. Credentials are sent as HTTP
basic auth when configured. Every transport failure, timeout or non-2xx
response is raised as :class:`SessyClientError` so the poll loop can count it
against the watchdog.

Operations:
- get_status(): Battery and renewable energy telemetry.
- get_strategy(): Active power strategy.
- set_strategy(strategy): Select the active power strategy.
- set_setpoint(setpoint): Write the power setpoint in W.
- get_ota_status(): Installed and available firmware versions.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from sessy_edge.src.models import DeviceSnapshot, OTAStatus, StrategyResponse

logger = logging.getLogger(__name__)

STATUS_PATH = "/api/v1/power/status"
STRATEGY_PATH = "/api/v1/power/active_strategy"
SETPOINT_PATH = "/api/v1/power/setpoint"
OTA_STATUS_PATH = "/api/v1/ota/status"


class SessyClientError(Exception):
    """A request to the Sessy dongle failed."""


class SessyClient:
    """Client for the Sessy local API.

    The underlying ``httpx.AsyncClient`` is created lazily and reused until
    :meth:`close`.

    Args:
        host: Dongle IP address or hostname, optionally with a scheme.
        username: Local API user, empty to send no credentials.
        password: Local API password.
        timeout_s: Timeout per request in seconds.
    """

    def __init__(
        self,
        host: str,
        *,
        username: str = "",
        password: str = "",
        timeout_s: float = 10.0,
    ) -> None:
        self._base_url = host if host.startswith(("http://", "https://")) else f"http://{host}"
        self._auth = httpx.BasicAuth(username, password) if username and password else None
        self._timeout_s = timeout_s
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_status(self) -> DeviceSnapshot:
        data = await self._request("GET", STATUS_PATH)
        return self._parse(DeviceSnapshot, data)

    async def get_strategy(self) -> StrategyResponse:
        data = await self._request("GET", STRATEGY_PATH)
        return self._parse(StrategyResponse, data)

    async def set_strategy(self, strategy: str) -> None:
        await self._request("POST", STRATEGY_PATH, json={"strategy": strategy})

    async def set_setpoint(self, setpoint: int) -> None:
        await self._request("POST", SETPOINT_PATH, json={"setpoint": int(setpoint)})

    async def get_ota_status(self) -> OTAStatus:
        data = await self._request("GET", OTA_STATUS_PATH)
        return self._parse(OTAStatus, data)

    async def close(self) -> None:
        """Close the underlying HTTP client, if any."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                auth=self._auth,
                timeout=self._timeout_s,
            )
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = await self._http().request(method, path, json=json)
        except httpx.HTTPError as exc:
            raise SessyClientError(f"{method} {path} failed: {exc}") from exc

        if response.status_code == 401:
            raise SessyClientError(f"{method} {path} unauthorized, check credentials")
        if not response.is_success:
            raise SessyClientError(f"{method} {path} returned HTTP {response.status_code}")

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise SessyClientError(f"{method} {path} returned invalid JSON") from exc

    @staticmethod
    def _parse(model: type[Any], data: Any) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise SessyClientError(f"Unexpected {model.__name__} payload: {exc}") from exc
