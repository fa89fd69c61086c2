"""Dashboard HTTP router: goals."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import JSONResponse

from ecoar.auth import verify_api_key
from ecoar.db import get_resolver
from ecoar.metering.connector import MetricsApiError, MetricsClient, get_metrics_client
from ecoar.metering.devices import DEVICE_ID_ALL, get_device
from ecoar.metering.goals_config import ACTIVATION, CONSUMPTION
from ecoar.metering.models import (
    DeviceData,
    EffectiveGoals,
    GoalValue,
    PeriodKind,
    SaveResult,
    StoredGoal,
    period_count,
)
from ecoar.metering.resolver import GoalResolver

_LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", tags=["goals"])


def _check_entity(entity_id: str) -> str:
    """Roster id as a string (`033` becomes `33`); 404 for unknown devices."""
    device = get_device(entity_id)
    if device is None:
        raise HTTPException(status_code=404, detail=f"Unknown device: {entity_id}")
    return str(device.id)


def _check_index(period_kind: PeriodKind, period_index: int) -> None:
    if not 0 <= period_index < period_count(period_kind):
        raise HTTPException(
            status_code=422,
            detail=f"Index {period_index} outside {period_kind.value} range 0-{period_count(period_kind) - 1}",
        )


async def _remote_defaults(client: MetricsClient, entity_id: str) -> DeviceData | None:
    """Device payload for remote goal defaults; None when unavailable."""
    if entity_id == DEVICE_ID_ALL:
        return None
    try:
        return await client.fetch_device(entity_id)
    except MetricsApiError as exc:
        _LOGGER.warning("Resolving goals without remote defaults: %s", exc)
        return None


async def _save(
    resolver: GoalResolver,
    goal_type: str,
    entity_id: str,
    period_kind: PeriodKind,
    period_index: int,
    body: GoalValue,
) -> SaveResult | JSONResponse:
    entity_id = _check_entity(entity_id)
    saved = await resolver.save(goal_type, entity_id, period_kind, period_index, body.value)
    if not saved:
        return JSONResponse(status_code=422, content={"saved": False})
    return SaveResult(saved=True)


# ---------------------------------------------------------------------------
# /dashboard/goals
# ---------------------------------------------------------------------------


@router.get("/goals/{entity_id}", response_model=list[StoredGoal])
async def goals_list(
    entity_id: str,
    resolver: GoalResolver = Depends(get_resolver),
    _: str = Depends(verify_api_key),
) -> list[StoredGoal]:
    entity_id = _check_entity(entity_id)
    return await resolver.list_goals(entity_id)


@router.get("/goals/{entity_id}/{period_kind}/{period_index}", response_model=EffectiveGoals)
async def goals_effective(
    entity_id: str,
    period_kind: PeriodKind,
    period_index: int,
    resolver: GoalResolver = Depends(get_resolver),
    client: MetricsClient = Depends(get_metrics_client),
    _: str = Depends(verify_api_key),
) -> EffectiveGoals:
    entity_id = _check_entity(entity_id)
    _check_index(period_kind, period_index)

    remote = await _remote_defaults(client, entity_id)
    return EffectiveGoals(
        entity_id=entity_id,
        period_kind=period_kind,
        period_index=period_index,
        consumption_goal=await resolver.resolve_consumption_goal(entity_id, period_kind, period_index, remote),
        activation_goal=await resolver.resolve_activation_goal(entity_id, period_kind, period_index, remote),
        remote_defaults_available=remote is not None,
    )


@router.put("/goals/{entity_id}/{period_kind}/{period_index}", response_model=SaveResult)
async def consumption_goal_save(
    entity_id: str,
    period_kind: PeriodKind,
    period_index: int,
    body: GoalValue,
    resolver: GoalResolver = Depends(get_resolver),
    _: str = Depends(verify_api_key),
):
    return await _save(resolver, CONSUMPTION, entity_id, period_kind, period_index, body)


@router.delete("/goals/{entity_id}/{period_kind}/{period_index}", status_code=204)
async def consumption_goal_delete(
    entity_id: str,
    period_kind: PeriodKind,
    period_index: int,
    resolver: GoalResolver = Depends(get_resolver),
    _: str = Depends(verify_api_key),
) -> Response:
    entity_id = _check_entity(entity_id)
    _check_index(period_kind, period_index)
    await resolver.delete_consumption_goal(entity_id, period_kind, period_index)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# /dashboard/activation-goals
# ---------------------------------------------------------------------------


@router.put("/activation-goals/{entity_id}/{period_kind}/{period_index}", response_model=SaveResult)
async def activation_goal_save(
    entity_id: str,
    period_kind: PeriodKind,
    period_index: int,
    body: GoalValue,
    resolver: GoalResolver = Depends(get_resolver),
    _: str = Depends(verify_api_key),
):
    return await _save(resolver, ACTIVATION, entity_id, period_kind, period_index, body)


@router.delete("/activation-goals/{entity_id}/{period_kind}/{period_index}", status_code=204)
async def activation_goal_delete(
    entity_id: str,
    period_kind: PeriodKind,
    period_index: int,
    resolver: GoalResolver = Depends(get_resolver),
    _: str = Depends(verify_api_key),
) -> Response:
    entity_id = _check_entity(entity_id)
    _check_index(period_kind, period_index)
    await resolver.delete_activation_goal(entity_id, period_kind, period_index)
    return Response(status_code=204)
