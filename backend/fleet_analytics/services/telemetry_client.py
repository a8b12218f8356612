"""
Client for the third-party telematics REST API.

Only fetches; aggregation never happens here and there is no retry policy.
Failures surface as TelemetryFetchError with a retryable hint for callers.
"""

import logging
from datetime import date
from typing import Any, Optional

import httpx

from fleet_analytics.config import Settings, get_settings


logger = logging.getLogger(__name__)


class TelemetryFetchError(Exception):
    """Upstream telemetry request failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, retryable: bool = True):
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


def format_api_date(value: date) -> str:
    """Format a date the way the history endpoint expects (DD-MM-YYYY)."""
    return value.strftime("%d-%m-%Y")


class TelemetryClient:
    """Async client for device listings and history series."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout_s: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_s = timeout_s
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "TelemetryClient":
        settings = settings or get_settings()
        return cls(
            base_url=settings.telemetry_base_url,
            api_key=settings.telemetry_api_key,
            timeout_s=settings.telemetry_timeout_s,
        )

    async def fetch_history(
        self,
        imei: str,
        start_date: date,
        end_date: date,
        kind: str = "locationData",
    ) -> dict[str, Any]:
        """
        Fetch a vehicle's history series.

        Args:
            imei: Device identifier
            start_date, end_date: Inclusive date range
            kind: History collection (locationData, batteryData, ...)

        Returns:
            Decoded JSON payload ({"results": [{"series": [...]}]})
        """
        params = {
            "startDate": format_api_date(start_date),
            "endDate": format_api_date(end_date),
        }
        return await self._get(f"/history/{kind}/{imei}", params)

    async def fetch_devices(self, current_index: int = 0, size_per_page: int = 10) -> dict[str, Any]:
        """Fetch one page of the device listing ({"entities": [...], ...})."""
        params = {"currentIndex": current_index, "sizePerPage": size_per_page}
        payload = await self._get("/devices", params)
        if not isinstance(payload.get("entities"), list):
            raise TelemetryFetchError("Invalid device listing from telemetry API", retryable=False)
        return payload

    async def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        headers = {"accept": "*/*"}
        if self.api_key:
            headers["apikey"] = self.api_key

        logger.info(f"Requesting {url} {params}")

        async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
            try:
                response = await client.get(url, params=params, headers=headers)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                logger.error(f"Telemetry API returned {status} for {url}")
                raise TelemetryFetchError(
                    f"Telemetry API returned {status}",
                    status_code=status,
                    retryable=status >= 500 or status == 429,
                ) from e
            except httpx.RequestError as e:
                logger.error(f"Telemetry API request failed for {url}: {e}")
                raise TelemetryFetchError(f"Telemetry API unreachable: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise TelemetryFetchError("Telemetry API returned invalid JSON", retryable=False) from e

        if not isinstance(payload, dict):
            raise TelemetryFetchError("Telemetry API returned an unexpected payload", retryable=False)
        return payload


# Global client instance (set up by app initialization)
_client: Optional[TelemetryClient] = None


def get_telemetry_client() -> TelemetryClient:
    """Get the global telemetry client, building it from settings on first use."""
    global _client
    if _client is None:
        _client = TelemetryClient.from_settings()
    return _client


def init_telemetry_client(client: Optional[TelemetryClient] = None) -> TelemetryClient:
    """Install a telemetry client (defaults to one built from settings)."""
    global _client
    _client = client or TelemetryClient.from_settings()
    return _client
