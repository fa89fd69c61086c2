"""Data endpoints: device roster, consumption summaries, validation report."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from ecoar.auth import verify_api_key
from ecoar.config import settings
from ecoar.metering import features
from ecoar.metering.connector import MetricsApiError, MetricsClient, get_metrics_client
from ecoar.metering.devices import ALL_DEVICES, DEVICE_ID_ALL, get_device, list_device_ids, list_devices
from ecoar.metering.models import ConsumptionSummary, PeriodKind, ValidationSummary, period_count
from ecoar.metering.rollup import combine
from ecoar.metering.validation import summarize_validations, validate_device

router = APIRouter(prefix="/dashboard", tags=["data"])


def _current_index(kind: PeriodKind) -> int:
    now = datetime.now()
    return now.month - 1 if kind == PeriodKind.monthly else now.day - 1


@router.get("/devices")
async def devices_list(
    _: str = Depends(verify_api_key),
) -> list[dict]:
    return [
        {"id": d.id, "name": d.name, "location": d.location}
        for d in [*list_devices(), ALL_DEVICES]
    ]


@router.get("/consumption/{entity_id}", response_model=ConsumptionSummary)
async def consumption_summary(
    entity_id: str,
    client: MetricsClient = Depends(get_metrics_client),
    _: str = Depends(verify_api_key),
    kind: PeriodKind = Query(default=PeriodKind.monthly, description="monthly | daily"),
    index: int | None = Query(default=None, ge=0, description="Selected period (default: current month/day)"),
) -> ConsumptionSummary:
    """Normalized series, totals and selected-period comparison for one device or `all`."""
    device = get_device(entity_id)
    if device is None:
        raise HTTPException(status_code=404, detail=f"Unknown device: {entity_id}")
    entity_id = str(device.id)

    period_index = index if index is not None else _current_index(kind)
    if period_index >= period_count(kind):
        raise HTTPException(status_code=422, detail=f"Index {period_index} outside {kind.value} range")

    if entity_id == DEVICE_ID_ALL:
        report = await client.fetch_devices(list_device_ids())
        data = combine(report.device_data())
    else:
        try:
            data = await client.fetch_device(entity_id)
        except MetricsApiError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc

    return features.summarize(data, entity_id, kind, period_index, settings.baseline_reduction_factor)


@router.get("/validation", response_model=ValidationSummary)
async def validation_report(
    client: MetricsClient = Depends(get_metrics_client),
    _: str = Depends(verify_api_key),
) -> ValidationSummary:
    device_ids = list_device_ids()
    report = await client.fetch_devices(device_ids)
    return summarize_validations(validate_device(d, report.payloads.get(d)) for d in device_ids)
