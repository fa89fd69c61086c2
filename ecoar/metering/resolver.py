"""Effective goal resolution.

A goal resolves through an ordered chain of strategies; the first one that
returns a value wins:

1. stored override (the user's own save, always authoritative)
2. remote default shipped in the device payload
3. configured fallback constant

Saves validate locally and report success as a bool; nothing here raises
for bad input.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Awaitable, Callable, Iterable, Mapping

from pydantic import ValidationError

from ecoar.metering.extractor import coerce_number, series_value
from ecoar.metering.goals_config import (
    ACTIVATION,
    CONSUMPTION,
    GoalDefinition,
    build_goal_definitions,
)
from ecoar.metering.models import DeviceData, PeriodKind, StoredGoal, canonical_entity_id, period_count
from ecoar.metering.store import KeyedValueStore

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GoalQuery:
    entity_id: str
    period_kind: PeriodKind
    period_index: int
    remote_defaults: DeviceData | None = None


Strategy = Callable[[GoalQuery], Awaitable[float | None]]


async def first_present(strategies: Iterable[Strategy], query: GoalQuery) -> float | None:
    for strategy in strategies:
        value = await strategy(query)
        if value is not None:
            return value
    return None


def stored_override(store: KeyedValueStore, namespace: str) -> Strategy:
    async def _resolve(query: GoalQuery) -> float | None:
        return await store.get(namespace, query.entity_id, query.period_kind, query.period_index)

    return _resolve


def remote_default(definition: GoalDefinition) -> Strategy:
    async def _resolve(query: GoalQuery) -> float | None:
        if query.remote_defaults is None:
            return None
        series = definition.remote_series(query.remote_defaults, query.period_kind)
        # any defined number wins, zero included
        return series_value(series, query.period_index)

    return _resolve


def fallback_constant(definition: GoalDefinition) -> Strategy:
    async def _resolve(query: GoalQuery) -> float | None:
        return definition.fallback(query.period_kind)

    return _resolve


def _as_device_data(remote: DeviceData | Mapping[str, Any] | None) -> DeviceData | None:
    if remote is None or isinstance(remote, DeviceData):
        return remote
    try:
        return DeviceData.model_validate(remote)
    except ValidationError:
        _LOGGER.warning("Ignoring unusable remote defaults")
        return None


def _parse_index(kind: PeriodKind, period_index: Any, today: date) -> int | None:
    if isinstance(period_index, bool):
        return None
    try:
        index = int(period_index)
    except (TypeError, ValueError):
        return None
    if index < 0 or index >= period_count(kind, today):
        return None
    return index


class GoalResolver:
    def __init__(
        self,
        store: KeyedValueStore,
        definitions: Mapping[str, GoalDefinition] | None = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self._store = store
        self._clock = clock
        self._definitions = dict(definitions) if definitions is not None else build_goal_definitions()
        self._chains: dict[str, list[Strategy]] = {
            goal_type: [
                stored_override(store, definition.namespace),
                remote_default(definition),
                fallback_constant(definition),
            ]
            for goal_type, definition in self._definitions.items()
        }

    def definition(self, goal_type: str) -> GoalDefinition:
        return self._definitions[goal_type]

    async def resolve(
        self,
        goal_type: str,
        entity_id: str | int,
        period_kind: PeriodKind | str,
        period_index: int,
        remote_defaults: DeviceData | Mapping[str, Any] | None = None,
    ) -> float:
        kind = PeriodKind(period_kind)
        query = GoalQuery(
            entity_id=canonical_entity_id(entity_id),
            period_kind=kind,
            period_index=int(period_index),
            remote_defaults=_as_device_data(remote_defaults),
        )
        value = await first_present(self._chains[goal_type], query)
        if value is None:
            value = self._definitions[goal_type].fallback(kind)
        _LOGGER.debug("Resolved %s goal for %s/%s/%s = %s", goal_type, entity_id, kind.value, period_index, value)
        return value

    async def save(
        self,
        goal_type: str,
        entity_id: str | int,
        period_kind: PeriodKind | str,
        period_index: int,
        value: Any,
    ) -> bool:
        try:
            kind = PeriodKind(period_kind)
        except ValueError:
            _LOGGER.warning("Rejected %s goal save: unknown period kind %r", goal_type, period_kind)
            return False
        index = _parse_index(kind, period_index, self._clock())
        if index is None:
            _LOGGER.warning("Rejected %s goal save: index %r outside %s range", goal_type, period_index, kind.value)
            return False
        number = coerce_number(value)
        if number is None or number <= 0:
            _LOGGER.warning("Rejected %s goal save: value %r must be a positive number", goal_type, value)
            return False
        namespace = self._definitions[goal_type].namespace
        return await self._store.put(namespace, entity_id, kind, index, number)

    async def delete(
        self,
        goal_type: str,
        entity_id: str | int,
        period_kind: PeriodKind | str,
        period_index: int,
    ) -> None:
        namespace = self._definitions[goal_type].namespace
        await self._store.delete(namespace, entity_id, period_kind, period_index)

    # Named entry points used by the dashboard

    async def resolve_consumption_goal(
        self,
        entity_id: str | int,
        period_kind: PeriodKind | str,
        period_index: int,
        remote_defaults: DeviceData | Mapping[str, Any] | None = None,
    ) -> float:
        return await self.resolve(CONSUMPTION, entity_id, period_kind, period_index, remote_defaults)

    async def resolve_activation_goal(
        self,
        entity_id: str | int,
        period_kind: PeriodKind | str,
        period_index: int,
        remote_defaults: DeviceData | Mapping[str, Any] | None = None,
    ) -> float:
        return await self.resolve(ACTIVATION, entity_id, period_kind, period_index, remote_defaults)

    async def save_consumption_goal(self, entity_id, period_kind, period_index, value) -> bool:
        return await self.save(CONSUMPTION, entity_id, period_kind, period_index, value)

    async def save_activation_goal(self, entity_id, period_kind, period_index, value) -> bool:
        return await self.save(ACTIVATION, entity_id, period_kind, period_index, value)

    async def delete_consumption_goal(self, entity_id, period_kind, period_index) -> None:
        await self.delete(CONSUMPTION, entity_id, period_kind, period_index)

    async def delete_activation_goal(self, entity_id, period_kind, period_index) -> None:
        await self.delete(ACTIVATION, entity_id, period_kind, period_index)

    async def list_goals(self, entity_id: str | int) -> list[StoredGoal]:
        """Stored overrides of every goal type for one entity, newest first."""
        goals: list[StoredGoal] = []
        for goal_type, definition in self._definitions.items():
            for record in await self._store.list_all(definition.namespace, entity_id):
                goals.append(
                    StoredGoal(
                        goal_type=goal_type,
                        period_kind=record.key.period_kind,
                        period_index=record.key.period_index,
                        value=record.value,
                        updated_at=record.updated_at,
                    )
                )
        goals.sort(key=lambda g: g.updated_at, reverse=True)
        return goals
