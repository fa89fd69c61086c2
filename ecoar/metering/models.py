"""Dashboard data contract: Pydantic v2 models."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ecoar.metering.extractor import coerce_goal_series, coerce_series


class PeriodKind(str, Enum):
    monthly = "monthly"
    daily = "daily"


MONTHLY_PERIODS = 12
DAILY_PERIODS = 31  # longest month; daily arrays always carry this many slots


def days_in_month(on: date | None = None) -> int:
    on = on or date.today()
    return calendar.monthrange(on.year, on.month)[1]


def period_count(kind: PeriodKind, on: date | None = None) -> int:
    """Valid index count: 12 months, or the days of the month containing `on` (today by default)."""
    if kind == PeriodKind.monthly:
        return MONTHLY_PERIODS
    return days_in_month(on)


def canonical_entity_id(entity_id: str | int) -> str:
    """String form used in keys: numeric ids lose leading zeros and whitespace."""
    text = str(entity_id).strip()
    if text.isascii() and text.isdigit():
        return str(int(text))
    return text


@dataclass(frozen=True, slots=True)
class MetaKey:
    """Identity of one stored goal value."""

    namespace: str
    entity_id: str
    period_kind: PeriodKind
    period_index: int

    @classmethod
    def build(
        cls,
        namespace: str,
        entity_id: str | int,
        period_kind: PeriodKind | str,
        period_index: int,
    ) -> MetaKey:
        return cls(
            namespace=namespace,
            entity_id=canonical_entity_id(entity_id),
            period_kind=PeriodKind(period_kind),
            period_index=int(period_index),
        )


class MetaRecord(BaseModel):
    key: MetaKey
    value: float
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ConsumptionPoint(BaseModel):
    period_label: str
    period_index: int
    consumption_with_system: float = Field(default=0.0, ge=0.0)
    consumption_without_system: float = Field(default=0.0, ge=0.0)


class PeriodComparison(BaseModel):
    """With-system vs without-system within ONE period (not against the prior period)."""

    percent_change: float = 0.0
    current_value: float = 0.0  # with system
    previous_value: float = 0.0  # without system


class ConsumptionSummary(BaseModel):
    entity_id: str
    period_kind: PeriodKind
    period_index: int
    points: list[ConsumptionPoint] = Field(default_factory=list)
    total_consumption: float = 0.0
    total_economy: float = 0.0
    economy_rate: float = 0.0  # 0–100
    selected_consumption: float = 0.0
    activation_hours: float = 0.0
    comparison: PeriodComparison = Field(default_factory=PeriodComparison)


class DeviceData(BaseModel):
    """Raw per-device arrays as returned by the remote metrics API.

    Wire names are kept as aliases. Null elements stay None (absent), other
    non-numeric measurements become 0.0, and fields that are missing or not
    arrays become empty lists. In the goal arrays any non-numeric element is
    absent.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    monthly_consumption: list[float | None] = Field(default_factory=list, alias="consumo_mensal")
    daily_consumption: list[float | None] = Field(default_factory=list, alias="consumo_diario_mes_corrente")
    monthly_without_system: list[float | None] = Field(default_factory=list, alias="consumo_sem_sistema_mensal")
    daily_without_system: list[float | None] = Field(default_factory=list, alias="consumo_sem_sistema_diario")
    monthly_downtime_minutes: list[float | None] = Field(default_factory=list, alias="minutos_desligado_mensal")
    daily_downtime_minutes: list[float | None] = Field(default_factory=list, alias="minutos_desligado_diario")
    monthly_occupancy: list[float | None] = Field(default_factory=list, alias="ocupacao_mensal")
    daily_occupancy: list[float | None] = Field(default_factory=list, alias="ocupacao_diaria")

    # Optional remote goal defaults
    monthly_consumption_goals: list[float | None] = Field(default_factory=list, alias="meta_consumo_mensal")
    daily_consumption_goals: list[float | None] = Field(default_factory=list, alias="meta_consumo_diaria")
    monthly_activation_goals: list[float | None] = Field(default_factory=list, alias="meta_tempo_atuacao_mensal")
    daily_activation_goals: list[float | None] = Field(default_factory=list, alias="meta_tempo_atuacao_diaria")

    @field_validator(
        "monthly_consumption",
        "daily_consumption",
        "monthly_without_system",
        "daily_without_system",
        "monthly_downtime_minutes",
        "daily_downtime_minutes",
        "monthly_occupancy",
        "daily_occupancy",
        mode="before",
    )
    @classmethod
    def _coerce_arrays(cls, value: Any) -> list[float | None]:
        return coerce_series(value)

    @field_validator(
        "monthly_consumption_goals",
        "daily_consumption_goals",
        "monthly_activation_goals",
        "daily_activation_goals",
        mode="before",
    )
    @classmethod
    def _coerce_goal_arrays(cls, value: Any) -> list[float | None]:
        return coerce_goal_series(value)

    def consumption(self, kind: PeriodKind) -> list[float | None]:
        return self.monthly_consumption if kind == PeriodKind.monthly else self.daily_consumption

    def without_system(self, kind: PeriodKind) -> list[float | None]:
        return self.monthly_without_system if kind == PeriodKind.monthly else self.daily_without_system

    def downtime_minutes(self, kind: PeriodKind) -> list[float | None]:
        return self.monthly_downtime_minutes if kind == PeriodKind.monthly else self.daily_downtime_minutes

    def consumption_goals(self, kind: PeriodKind) -> list[float | None]:
        return self.monthly_consumption_goals if kind == PeriodKind.monthly else self.daily_consumption_goals

    def activation_goals(self, kind: PeriodKind) -> list[float | None]:
        return self.monthly_activation_goals if kind == PeriodKind.monthly else self.daily_activation_goals


class GoalValue(BaseModel):
    """Request body for goal saves; kept loose so validation failures map to `saved: false`."""

    value: Any = None


class SaveResult(BaseModel):
    saved: bool


class EffectiveGoals(BaseModel):
    entity_id: str
    period_kind: PeriodKind
    period_index: int
    consumption_goal: float
    activation_goal: float
    remote_defaults_available: bool = False


class StoredGoal(BaseModel):
    goal_type: str  # "consumption" | "activation"
    period_kind: PeriodKind
    period_index: int
    value: float
    updated_at: datetime


class DeviceValidation(BaseModel):
    device_id: int | str
    valid: bool = True
    issues: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ValidationSummary(BaseModel):
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    total: int = 0
    valid: int = 0
    invalid: int = 0
    with_warnings: int = 0
    devices: list[DeviceValidation] = Field(default_factory=list)
