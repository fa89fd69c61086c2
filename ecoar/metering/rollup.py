"""All-devices rollup: index-wise sums over per-device arrays."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from ecoar.metering.models import DAILY_PERIODS, MONTHLY_PERIODS, DeviceData

_LOGGER = logging.getLogger(__name__)

# Field → fixed output length. Chart code indexes these positionally, so the
# rollup always returns full-length arrays, even for an empty device set.
ROLLUP_FIELDS: dict[str, int] = {
    "monthly_consumption": MONTHLY_PERIODS,
    "daily_consumption": DAILY_PERIODS,
    "monthly_without_system": MONTHLY_PERIODS,
    "daily_without_system": DAILY_PERIODS,
    "monthly_downtime_minutes": MONTHLY_PERIODS,
    "daily_downtime_minutes": DAILY_PERIODS,
    "monthly_occupancy": MONTHLY_PERIODS,
    "daily_occupancy": DAILY_PERIODS,
}


def combine(device_series: Mapping[Any, DeviceData | Mapping[str, Any] | None]) -> DeviceData:
    """Sum every device's arrays into one DeviceData.

    Missing or non-numeric values count as 0; values past the fixed length are
    dropped. Devices mapped to None (failed fetches) are skipped.
    """
    totals = {field: [0.0] * length for field, length in ROLLUP_FIELDS.items()}

    for entity_id, raw in device_series.items():
        if raw is None:
            _LOGGER.debug("Skipping device %s: no data", entity_id)
            continue
        data = raw if isinstance(raw, DeviceData) else DeviceData.model_validate(raw)
        for field, length in ROLLUP_FIELDS.items():
            values = getattr(data, field)
            if len(values) > length:
                _LOGGER.debug("Device %s: %s has %d values, keeping %d", entity_id, field, len(values), length)
            column = totals[field]
            for idx, value in enumerate(values[:length]):
                if value is not None:
                    column[idx] += value

    _LOGGER.debug("Combined %d devices", len(device_series))
    return DeviceData(**totals)
