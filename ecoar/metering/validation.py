"""Shape and range checks on raw device payloads.

Works on the raw JSON body (before DeviceData coercion) so nulls, NaN and
wrong types are still visible.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping

from ecoar.metering.extractor import coerce_number
from ecoar.metering.models import DeviceValidation, ValidationSummary

REQUIRED_FIELDS = (
    "consumo_mensal",
    "consumo_diario_mes_corrente",
    "consumo_sem_sistema_mensal",
    "consumo_sem_sistema_diario",
    "minutos_desligado_mensal",
    "minutos_desligado_diario",
    "ocupacao_mensal",
    "ocupacao_diaria",
)

NON_NEGATIVE_FIELDS = REQUIRED_FIELDS[:6]
PERCENT_FIELDS = ("ocupacao_mensal", "ocupacao_diaria")


def _numbers(values: Any) -> list[float]:
    if not isinstance(values, list):
        return []
    return [n for n in (coerce_number(v) for v in values) if n is not None]


def check_structure(payload: Mapping[str, Any]) -> list[str]:
    issues: list[str] = []
    for name in REQUIRED_FIELDS:
        value = payload.get(name)
        if not isinstance(value, list):
            issues.append(f"{name} is not an array")
        elif not value:
            issues.append(f"{name} is empty")
    return issues


def check_ranges(payload: Mapping[str, Any]) -> list[str]:
    issues: list[str] = []
    for name in NON_NEGATIVE_FIELDS:
        if any(v < 0 for v in _numbers(payload.get(name))):
            issues.append(f"{name} contains negative values")
    for name in PERCENT_FIELDS:
        if any(v < 0 or v > 100 for v in _numbers(payload.get(name))):
            issues.append(f"{name} contains values outside 0-100")
    return issues


def check_numbers(payload: Mapping[str, Any]) -> list[str]:
    issues: list[str] = []
    for name in REQUIRED_FIELDS:
        values = payload.get(name)
        if not isinstance(values, list):
            continue
        for idx, value in enumerate(values):
            if value is None:
                issues.append(f"{name}[{idx}] is null")
            elif isinstance(value, float) and not math.isfinite(value):
                issues.append(f"{name}[{idx}] is NaN or infinite")
            elif coerce_number(value) is None:
                issues.append(f"{name}[{idx}] is not numeric")
    return issues


def validate_device(device_id: int | str, payload: Mapping[str, Any] | None) -> DeviceValidation:
    result = DeviceValidation(device_id=device_id)
    if payload is None:
        result.valid = False
        result.issues.append("No data returned by the API")
        return result

    result.issues.extend(check_structure(payload))
    result.issues.extend(check_ranges(payload))
    result.issues.extend(check_numbers(payload))

    monthly_total = sum(_numbers(payload.get("consumo_mensal")))
    daily_total = sum(_numbers(payload.get("consumo_diario_mes_corrente")))
    if monthly_total == 0 and daily_total == 0:
        result.warnings.append("Zero consumption in every period")

    result.valid = not result.issues
    return result


def summarize_validations(results: Iterable[DeviceValidation]) -> ValidationSummary:
    summary = ValidationSummary()
    for res in results:
        summary.devices.append(res)
        summary.total += 1
        if res.valid:
            summary.valid += 1
        else:
            summary.invalid += 1
        if res.warnings:
            summary.with_warnings += 1
    return summary
