"""Static goal configuration: namespaces and fallback constants.

Each GoalDefinition ties a goal type to its storage namespace, the remote
arrays that may carry a default, and the constant used when nothing else
resolves.
"""

from __future__ import annotations

from dataclasses import dataclass

from ecoar.metering.models import DeviceData, PeriodKind

CONSUMPTION = "consumption"
ACTIVATION = "activation"

CONSUMPTION_NAMESPACE = "goal"
ACTIVATION_NAMESPACE = "activation-goal"

DEFAULT_CONSUMPTION_GOAL = 10000.0
DEFAULT_ACTIVATION_GOAL_DAILY = 24.0
DEFAULT_ACTIVATION_GOAL_MONTHLY = 720.0


@dataclass(frozen=True, slots=True)
class GoalDefinition:
    goal_type: str
    namespace: str
    fallback_monthly: float
    fallback_daily: float
    remote_accessor: str  # DeviceData method returning the per-kind defaults array
    label: str = ""
    unit: str = ""

    def fallback(self, kind: PeriodKind) -> float:
        return self.fallback_monthly if kind == PeriodKind.monthly else self.fallback_daily

    def remote_series(self, data: DeviceData, kind: PeriodKind) -> list[float | None]:
        return getattr(data, self.remote_accessor)(kind)


def build_goal_definitions(
    consumption_fallback: float = DEFAULT_CONSUMPTION_GOAL,
    activation_fallback_daily: float = DEFAULT_ACTIVATION_GOAL_DAILY,
    activation_fallback_monthly: float = DEFAULT_ACTIVATION_GOAL_MONTHLY,
) -> dict[str, GoalDefinition]:
    return {
        CONSUMPTION: GoalDefinition(
            goal_type=CONSUMPTION,
            namespace=CONSUMPTION_NAMESPACE,
            fallback_monthly=consumption_fallback,
            fallback_daily=consumption_fallback,
            remote_accessor="consumption_goals",
            label="Consumption goal",
            unit="kWh",
        ),
        ACTIVATION: GoalDefinition(
            goal_type=ACTIVATION,
            namespace=ACTIVATION_NAMESPACE,
            fallback_monthly=activation_fallback_monthly,
            fallback_daily=activation_fallback_daily,
            remote_accessor="activation_goals",
            label="Activation time goal",
            unit="h",
        ),
    }


GOALS_BY_TYPE: dict[str, GoalDefinition] = build_goal_definitions()


def get_goal(goal_type: str) -> GoalDefinition | None:
    return GOALS_BY_TYPE.get(goal_type)


def list_goals() -> list[GoalDefinition]:
    return list(GOALS_BY_TYPE.values())
