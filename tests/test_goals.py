"""Tests for goals config and the goal resolution cascade."""

from __future__ import annotations

from datetime import date

import pytest

from ecoar.metering.backends import MemoryBackend
from ecoar.metering.goals_config import (
    ACTIVATION,
    ACTIVATION_NAMESPACE,
    CONSUMPTION,
    CONSUMPTION_NAMESPACE,
    build_goal_definitions,
    get_goal,
    list_goals,
)
from ecoar.metering.models import DeviceData, PeriodKind
from ecoar.metering.resolver import (
    GoalQuery,
    GoalResolver,
    fallback_constant,
    first_present,
    remote_default,
    stored_override,
)
from ecoar.metering.store import KeyedValueStore


REMOTE = {
    "meta_consumo_mensal": [3000, 3100, None, 0, "abc"],
    "meta_consumo_diaria": [140],
    "meta_tempo_atuacao_mensal": [600, 650],
    "meta_tempo_atuacao_diaria": [20, "18.5"],
}


# ---------------------------------------------------------------------------
# Goals config
# ---------------------------------------------------------------------------

class TestGoalsConfig:
    def test_two_goal_types(self):
        assert {g.goal_type for g in list_goals()} == {CONSUMPTION, ACTIVATION}

    def test_namespaces_distinct(self):
        assert get_goal(CONSUMPTION).namespace == CONSUMPTION_NAMESPACE == "goal"
        assert get_goal(ACTIVATION).namespace == ACTIVATION_NAMESPACE == "activation-goal"

    def test_consumption_fallback(self):
        g = get_goal(CONSUMPTION)
        assert g.fallback(PeriodKind.monthly) == 10000.0
        assert g.fallback(PeriodKind.daily) == 10000.0

    def test_activation_fallbacks(self):
        g = get_goal(ACTIVATION)
        assert g.fallback(PeriodKind.daily) == 24.0
        assert g.fallback(PeriodKind.monthly) == 720.0

    def test_unknown_goal(self):
        assert get_goal("cost") is None

    def test_fallbacks_configurable(self):
        defs = build_goal_definitions(consumption_fallback=500.0, activation_fallback_daily=12.0)
        assert defs[CONSUMPTION].fallback(PeriodKind.monthly) == 500.0
        assert defs[ACTIVATION].fallback(PeriodKind.daily) == 12.0
        assert defs[ACTIVATION].fallback(PeriodKind.monthly) == 720.0


# ---------------------------------------------------------------------------
# Strategy chain
# ---------------------------------------------------------------------------

class TestStrategies:
    @pytest.mark.asyncio
    async def test_first_present_order(self):
        async def none(_q):
            return None

        async def one(_q):
            return 1.0

        async def two(_q):
            return 2.0

        query = GoalQuery(entity_id="33", period_kind=PeriodKind.monthly, period_index=0)
        assert await first_present([none, one, two], query) == 1.0
        assert await first_present([two, one], query) == 2.0
        assert await first_present([none], query) is None
        assert await first_present([], query) is None

    @pytest.mark.asyncio
    async def test_first_present_keeps_zero(self):
        async def zero(_q):
            return 0.0

        async def one(_q):
            return 1.0

        query = GoalQuery(entity_id="33", period_kind=PeriodKind.monthly, period_index=0)
        assert await first_present([zero, one], query) == 0.0

    @pytest.mark.asyncio
    async def test_stored_override(self, store):
        await store.put("goal", 33, "monthly", 2, 42.0)
        strategy = stored_override(store, "goal")
        assert await strategy(GoalQuery("33", PeriodKind.monthly, 2)) == 42.0
        assert await strategy(GoalQuery("33", PeriodKind.monthly, 3)) is None

    @pytest.mark.asyncio
    async def test_remote_default(self):
        strategy = remote_default(get_goal(CONSUMPTION))
        data = DeviceData.model_validate(REMOTE)
        assert await strategy(GoalQuery("33", PeriodKind.monthly, 1, data)) == 3100.0
        assert await strategy(GoalQuery("33", PeriodKind.monthly, 2, data)) is None  # null
        assert await strategy(GoalQuery("33", PeriodKind.monthly, 3, data)) == 0.0  # zero
        assert await strategy(GoalQuery("33", PeriodKind.monthly, 4, data)) is None  # garbage
        assert await strategy(GoalQuery("33", PeriodKind.monthly, 9, data)) is None  # out of range
        assert await strategy(GoalQuery("33", PeriodKind.monthly, 0, None)) is None

    @pytest.mark.asyncio
    async def test_fallback_constant(self):
        strategy = fallback_constant(get_goal(ACTIVATION))
        assert await strategy(GoalQuery("33", PeriodKind.daily, 0)) == 24.0


# ---------------------------------------------------------------------------
# Resolution cascade
# ---------------------------------------------------------------------------

class TestResolveConsumptionGoal:
    @pytest.mark.asyncio
    async def test_fallback_without_anything(self, resolver):
        assert await resolver.resolve_consumption_goal(33, PeriodKind.monthly, 5, None) == 10000.0

    @pytest.mark.asyncio
    async def test_fallback_daily(self, resolver):
        assert await resolver.resolve_consumption_goal(33, PeriodKind.daily, 5, None) == 10000.0

    @pytest.mark.asyncio
    async def test_remote_default_used(self, resolver):
        assert await resolver.resolve_consumption_goal(33, PeriodKind.monthly, 0, REMOTE) == 3000.0

    @pytest.mark.asyncio
    async def test_remote_missing_index_falls_back(self, resolver):
        assert await resolver.resolve_consumption_goal(33, PeriodKind.monthly, 11, REMOTE) == 10000.0

    @pytest.mark.asyncio
    async def test_remote_null_falls_back(self, resolver):
        assert await resolver.resolve_consumption_goal(33, PeriodKind.monthly, 2, REMOTE) == 10000.0

    @pytest.mark.asyncio
    async def test_stored_override_beats_remote(self, resolver):
        assert await resolver.save_consumption_goal(33, PeriodKind.monthly, 0, 1234.0) is True
        assert await resolver.resolve_consumption_goal(33, PeriodKind.monthly, 0, REMOTE) == 1234.0

    @pytest.mark.asyncio
    async def test_stored_override_beats_changed_remote(self, resolver):
        await resolver.save_consumption_goal(33, PeriodKind.monthly, 0, 1234.0)
        changed = {"meta_consumo_mensal": [9999]}
        assert await resolver.resolve_consumption_goal(33, PeriodKind.monthly, 0, changed) == 1234.0

    @pytest.mark.asyncio
    async def test_accepts_device_data(self, resolver):
        data = DeviceData.model_validate(REMOTE)
        assert await resolver.resolve_consumption_goal("33", "daily", 0, data) == 140.0

    @pytest.mark.asyncio
    async def test_remote_zero_is_used(self, resolver):
        assert await resolver.resolve_consumption_goal(33, PeriodKind.monthly, 3, REMOTE) == 0.0

    @pytest.mark.asyncio
    async def test_delete_reverts_to_remote(self, resolver):
        await resolver.save_consumption_goal(33, PeriodKind.monthly, 1, 50.0)
        await resolver.delete_consumption_goal(33, PeriodKind.monthly, 1)
        assert await resolver.resolve_consumption_goal(33, PeriodKind.monthly, 1, REMOTE) == 3100.0

    @pytest.mark.asyncio
    async def test_configured_fallback(self, store):
        resolver = GoalResolver(store, build_goal_definitions(consumption_fallback=777.0))
        assert await resolver.resolve_consumption_goal(33, PeriodKind.monthly, 0) == 777.0


class TestResolveActivationGoal:
    @pytest.mark.asyncio
    async def test_daily_fallback(self, resolver):
        assert await resolver.resolve_activation_goal(33, PeriodKind.daily, 10) == 24.0

    @pytest.mark.asyncio
    async def test_monthly_fallback(self, resolver):
        assert await resolver.resolve_activation_goal(33, PeriodKind.monthly, 10) == 720.0

    @pytest.mark.asyncio
    async def test_remote_string_value(self, resolver):
        assert await resolver.resolve_activation_goal(33, PeriodKind.daily, 1, REMOTE) == 18.5

    @pytest.mark.asyncio
    async def test_remote_monthly(self, resolver):
        assert await resolver.resolve_activation_goal(33, PeriodKind.monthly, 1, REMOTE) == 650.0

    @pytest.mark.asyncio
    async def test_remote_zero_is_used(self, resolver):
        remote = {"meta_tempo_atuacao_diaria": [0]}
        assert await resolver.resolve_activation_goal(33, PeriodKind.daily, 0, remote) == 0.0

    @pytest.mark.asyncio
    async def test_remote_negative_is_used(self, resolver):
        remote = {"meta_tempo_atuacao_mensal": [-5]}
        assert await resolver.resolve_activation_goal(33, PeriodKind.monthly, 0, remote) == -5.0

    @pytest.mark.asyncio
    async def test_remote_garbage_falls_back(self, resolver):
        remote = {"meta_tempo_atuacao_diaria": ["n/a", None]}
        assert await resolver.resolve_activation_goal(33, PeriodKind.daily, 0, remote) == 24.0
        assert await resolver.resolve_activation_goal(33, PeriodKind.daily, 1, remote) == 24.0

    @pytest.mark.asyncio
    async def test_override_wins(self, resolver):
        await resolver.save_activation_goal(33, PeriodKind.daily, 0, 16)
        assert await resolver.resolve_activation_goal(33, PeriodKind.daily, 0, REMOTE) == 16.0

    @pytest.mark.asyncio
    async def test_namespaces_do_not_collide(self, resolver):
        await resolver.save_consumption_goal(33, PeriodKind.daily, 0, 500)
        assert await resolver.resolve_activation_goal(33, PeriodKind.daily, 0) == 24.0
        await resolver.save_activation_goal(33, PeriodKind.daily, 0, 10)
        assert await resolver.resolve_consumption_goal(33, PeriodKind.daily, 0) == 500.0

    @pytest.mark.asyncio
    async def test_delete_reverts_to_fallback(self, resolver):
        await resolver.save_activation_goal(33, PeriodKind.monthly, 3, 100)
        await resolver.delete_activation_goal(33, PeriodKind.monthly, 3)
        assert await resolver.resolve_activation_goal(33, PeriodKind.monthly, 3) == 720.0


# ---------------------------------------------------------------------------
# Saves
# ---------------------------------------------------------------------------

class TestSaveGoals:
    @pytest.mark.asyncio
    async def test_negative_rejected_and_absent(self, resolver, store):
        assert await resolver.save_consumption_goal(33, PeriodKind.monthly, 5, -10) is False
        assert await store.get("goal", 33, PeriodKind.monthly, 5) is None

    @pytest.mark.asyncio
    async def test_zero_rejected(self, resolver):
        assert await resolver.save_consumption_goal(33, PeriodKind.monthly, 5, 0) is False
        assert await resolver.save_activation_goal(33, PeriodKind.monthly, 5, 0) is False

    @pytest.mark.asyncio
    async def test_non_numeric_rejected(self, resolver):
        assert await resolver.save_consumption_goal(33, PeriodKind.monthly, 5, "a lot") is False
        assert await resolver.save_consumption_goal(33, PeriodKind.monthly, 5, None) is False
        assert await resolver.save_consumption_goal(33, PeriodKind.monthly, 5, float("nan")) is False

    @pytest.mark.asyncio
    async def test_numeric_string_accepted(self, resolver):
        assert await resolver.save_consumption_goal(33, PeriodKind.monthly, 5, "2500.5") is True
        assert await resolver.resolve_consumption_goal(33, PeriodKind.monthly, 5) == 2500.5

    @pytest.mark.asyncio
    async def test_index_out_of_range_rejected(self, store):
        resolver = GoalResolver(store, clock=lambda: date(2026, 1, 15))
        assert await resolver.save_consumption_goal(33, PeriodKind.monthly, 12, 10) is False
        assert await resolver.save_consumption_goal(33, PeriodKind.daily, 31, 10) is False
        assert await resolver.save_consumption_goal(33, PeriodKind.daily, -1, 10) is False

    @pytest.mark.asyncio
    async def test_index_bounds_accepted(self, store):
        resolver = GoalResolver(store, clock=lambda: date(2026, 1, 15))
        assert await resolver.save_consumption_goal(33, PeriodKind.monthly, 11, 10) is True
        assert await resolver.save_consumption_goal(33, PeriodKind.daily, 30, 10) is True

    @pytest.mark.asyncio
    async def test_daily_range_follows_current_month(self, store):
        resolver = GoalResolver(store, clock=lambda: date(2026, 2, 10))
        assert await resolver.save_activation_goal(33, PeriodKind.daily, 27, 10) is True
        assert await resolver.save_activation_goal(33, PeriodKind.daily, 28, 10) is False
        assert await resolver.save_activation_goal(33, PeriodKind.daily, 30, 10) is False

    @pytest.mark.asyncio
    async def test_leap_february(self, store):
        resolver = GoalResolver(store, clock=lambda: date(2028, 2, 1))
        assert await resolver.save_activation_goal(33, PeriodKind.daily, 28, 10) is True

    @pytest.mark.asyncio
    async def test_numeric_entity_spellings_share_goal(self, resolver):
        assert await resolver.save_consumption_goal("033", PeriodKind.monthly, 5, 123) is True
        assert await resolver.resolve_consumption_goal(33, PeriodKind.monthly, 5) == 123.0
        assert await resolver.resolve_consumption_goal(" 33", PeriodKind.monthly, 5) == 123.0
        assert len(await resolver.list_goals("33")) == 1

    @pytest.mark.asyncio
    async def test_unknown_kind_rejected(self, resolver):
        assert await resolver.save_activation_goal(33, "weekly", 1, 10) is False

    @pytest.mark.asyncio
    async def test_idempotent_resave(self, resolver, store):
        await resolver.save_consumption_goal(33, PeriodKind.monthly, 5, 800)
        await resolver.save_consumption_goal(33, PeriodKind.monthly, 5, 800)
        assert await resolver.resolve_consumption_goal(33, PeriodKind.monthly, 5) == 800.0
        assert len(await store.list_all("goal", 33)) == 1

    @pytest.mark.asyncio
    async def test_storage_failure_reports_false(self):
        resolver = GoalResolver(KeyedValueStore(MemoryBackend(capacity=0)))
        assert await resolver.save_consumption_goal(33, PeriodKind.monthly, 5, 800) is False
        assert await resolver.resolve_consumption_goal(33, PeriodKind.monthly, 5) == 10000.0


class TestListGoals:
    @pytest.mark.asyncio
    async def test_lists_both_types(self, resolver):
        await resolver.save_consumption_goal(33, PeriodKind.monthly, 5, 800)
        await resolver.save_activation_goal(33, PeriodKind.daily, 2, 20)
        await resolver.save_activation_goal(36, PeriodKind.daily, 2, 20)

        goals = await resolver.list_goals(33)
        assert sorted((g.goal_type, g.period_kind.value, g.period_index, g.value) for g in goals) == [
            ("activation", "daily", 2, 20.0),
            ("consumption", "monthly", 5, 800.0),
        ]

    @pytest.mark.asyncio
    async def test_empty(self, resolver):
        assert await resolver.list_goals("all") == []
