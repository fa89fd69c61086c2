"""Pure stateless consumption functions: math only, never raise."""

from __future__ import annotations

from typing import Any, Sequence

from ecoar.metering.extractor import coerce_number, non_negative, series_value
from ecoar.metering.models import (
    ConsumptionPoint,
    ConsumptionSummary,
    DeviceData,
    PeriodComparison,
    PeriodKind,
)

MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

# Without-system baseline when the source has none: the system is assumed to
# save 20%, so baseline = with_system / 0.8.
DEFAULT_BASELINE_FACTOR = 0.8

HOURS_PER_PERIOD = {PeriodKind.daily: 24.0, PeriodKind.monthly: 720.0}


def period_label(kind: PeriodKind, index: int) -> str:
    if kind == PeriodKind.monthly:
        return MONTH_LABELS[index] if 0 <= index < len(MONTH_LABELS) else f"M{index + 1}"
    return f"D{index + 1}"


def _without_system(with_value: float, raw_without: Any, baseline_factor: float) -> float:
    """Without-system value for one period.

    - no consumption → 0, whatever the source says
    - source value present and non-zero → that value, clamped
    - source explicitly 0 → 0
    - source absent → with_value / baseline_factor
    """
    if with_value == 0:
        return 0.0
    if raw_without is not None:
        number = coerce_number(raw_without)
        if number is None:
            number = 0.0  # present but non-numeric counts as 0
        return max(0.0, number)
    if baseline_factor <= 0:
        return with_value
    return max(0.0, with_value / baseline_factor)


def normalize(
    raw_with: Sequence[Any] | None,
    raw_without: Sequence[Any] | None,
    period_kind: PeriodKind,
    baseline_factor: float = DEFAULT_BASELINE_FACTOR,
) -> list[ConsumptionPoint]:
    """Pair with/without-system arrays by index into ConsumptionPoints.

    The with-system array drives the length; a shorter without-system array
    leaves the trailing periods absent (derived baseline).
    """
    if not isinstance(raw_with, (list, tuple)):
        return []
    without = raw_without if isinstance(raw_without, (list, tuple)) else []

    points: list[ConsumptionPoint] = []
    for index, raw in enumerate(raw_with):
        with_value = non_negative(raw)
        raw_w = without[index] if index < len(without) else None
        points.append(
            ConsumptionPoint(
                period_label=period_label(period_kind, index),
                period_index=index,
                consumption_with_system=with_value,
                consumption_without_system=_without_system(with_value, raw_w, baseline_factor),
            )
        )
    return points


def total_consumption(points: Sequence[ConsumptionPoint]) -> float:
    """With-system sum over the whole series, regardless of the selected period."""
    return sum(p.consumption_with_system for p in points)


def total_economy(points: Sequence[ConsumptionPoint]) -> float:
    """Without-system sum over periods where it is positive."""
    return sum(p.consumption_without_system for p in points if p.consumption_without_system > 0)


def economy_rate(total_economy_value: float, total_consumption_value: float) -> float:
    """Economy as a percentage of consumption. Capped at 100."""
    if total_consumption_value <= 0:
        return 0.0
    return min(100.0, (total_economy_value / total_consumption_value) * 100.0)


def _clamp_index(points: Sequence[ConsumptionPoint], period_index: int) -> int:
    return max(0, min(period_index, len(points) - 1))


def period_over_period_change(points: Sequence[ConsumptionPoint], period_index: int) -> PeriodComparison:
    """Savings of one period: without-system vs with-system of the SAME period.

    Despite the name this does not look at the previous period.
    current_value is the with-system value, previous_value the without-system one.
    """
    if not points:
        return PeriodComparison()
    point = points[_clamp_index(points, period_index)]
    with_system = point.consumption_with_system
    without_system = point.consumption_without_system
    if without_system == 0:
        return PeriodComparison(percent_change=0.0, current_value=with_system, previous_value=without_system)
    economy = max(0.0, without_system - with_system)
    return PeriodComparison(
        percent_change=(economy / without_system) * 100.0,
        current_value=with_system,
        previous_value=without_system,
    )


def selected_period_consumption(points: Sequence[ConsumptionPoint], period_index: int) -> float:
    if period_index < 0 or period_index >= len(points):
        return 0.0
    return points[period_index].consumption_with_system


def last_periods(points: Sequence[ConsumptionPoint], count: int = 3) -> list[ConsumptionPoint]:
    """Trailing `count` periods (the three-month view by default)."""
    if count <= 0:
        return []
    return list(points[-count:])


def activation_hours(
    downtime_minutes: Sequence[Any] | None,
    period_kind: PeriodKind,
    period_index: int,
) -> float:
    """Hours the device was active: period hours minus downtime. Missing downtime counts as 0."""
    minutes = series_value(downtime_minutes, period_index) or 0.0
    return max(0.0, HOURS_PER_PERIOD[period_kind] - minutes / 60.0)


def summarize(
    data: DeviceData,
    entity_id: str | int,
    period_kind: PeriodKind,
    period_index: int,
    baseline_factor: float = DEFAULT_BASELINE_FACTOR,
) -> ConsumptionSummary:
    points = normalize(data.consumption(period_kind), data.without_system(period_kind), period_kind, baseline_factor)
    consumption = total_consumption(points)
    economy = total_economy(points)
    return ConsumptionSummary(
        entity_id=str(entity_id),
        period_kind=period_kind,
        period_index=period_index,
        points=points,
        total_consumption=consumption,
        total_economy=economy,
        economy_rate=economy_rate(economy, consumption),
        selected_consumption=selected_period_consumption(points, period_index),
        activation_hours=activation_hours(data.downtime_minutes(period_kind), period_kind, period_index),
        comparison=period_over_period_change(points, period_index),
    )
