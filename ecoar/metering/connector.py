"""Remote metrics API connector: async access to per-device consumption arrays.

One GET per device: ``{base_url}?device_id=<id>&historico=<true|false>``
returning a JSON object of named arrays. Devices are fetched independently;
a failure on one never aborts the others.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

import httpx
from fastapi import Request

from ecoar.metering.models import DeviceData

_LOGGER = logging.getLogger(__name__)


class MetricsApiError(Exception):
    """Remote metrics request failed or returned an unusable body."""


@dataclass
class FetchReport:
    payloads: dict[int | str, dict[str, Any]] = field(default_factory=dict)
    successful: list[int | str] = field(default_factory=list)
    failed: dict[int | str, str] = field(default_factory=dict)

    def device_data(self) -> dict[int | str, DeviceData]:
        return {device_id: DeviceData.model_validate(p) for device_id, p in self.payloads.items()}


class MetricsClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: str,
        include_history: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self._http = http
        self._base_url = base_url
        self._include_history = include_history
        self._timeout = timeout

    async def fetch_raw(self, device_id: int | str) -> dict[str, Any]:
        """Fetch one device's JSON body. Raises MetricsApiError on any failure."""
        params = {
            "device_id": str(device_id),
            "historico": "true" if self._include_history else "false",
        }
        try:
            response = await self._http.get(
                self._base_url,
                params=params,
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise MetricsApiError(f"Device {device_id}: API returned status {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise MetricsApiError(f"Device {device_id}: request failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise MetricsApiError(f"Device {device_id}: response is not JSON") from exc
        if not isinstance(body, dict):
            raise MetricsApiError(f"Device {device_id}: expected a JSON object, got {type(body).__name__}")
        return body

    async def fetch_device(self, device_id: int | str) -> DeviceData:
        body = await self.fetch_raw(device_id)
        data = DeviceData.model_validate(body)
        _LOGGER.debug(
            "Device %s loaded: %d monthly / %d daily points",
            device_id,
            len(data.monthly_consumption),
            len(data.daily_consumption),
        )
        return data

    async def _fetch_one(self, device_id: int | str) -> tuple[int | str, dict[str, Any] | None, str | None]:
        try:
            return device_id, await self.fetch_raw(device_id), None
        except MetricsApiError as exc:
            _LOGGER.warning("%s", exc)
            return device_id, None, str(exc)

    async def fetch_devices(self, device_ids: Iterable[int | str]) -> FetchReport:
        """Fetch every device concurrently; failures are recorded, not raised."""
        results = await asyncio.gather(*(self._fetch_one(d) for d in device_ids))

        report = FetchReport()
        for device_id, payload, error in results:
            if payload is None:
                report.failed[device_id] = error or "unknown error"
            else:
                report.payloads[device_id] = payload
                report.successful.append(device_id)

        _LOGGER.info("Device loading: %d succeeded, %d failed", len(report.successful), len(report.failed))
        if report.failed:
            _LOGGER.info("Failed devices: %s", ", ".join(str(d) for d in report.failed))
        return report


def get_metrics_client(request: Request) -> MetricsClient:
    return request.app.state.metrics_client
