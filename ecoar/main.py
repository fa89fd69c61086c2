import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from ecoar.config import settings
from ecoar.db import create_engine, create_sessionmaker
from ecoar.metering.backends import SqlBackend
from ecoar.metering.connector import MetricsClient
from ecoar.metering.data_router import router as data_router
from ecoar.metering.goals_config import build_goal_definitions
from ecoar.metering.resolver import GoalResolver
from ecoar.metering.router import router as goals_router
from ecoar.metering.store import KeyedValueStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=settings.log_level)

    engine = create_engine(settings.database_url)
    backend = SqlBackend(create_sessionmaker(engine))
    await backend.create_schema()

    app.state.store = KeyedValueStore(backend)
    app.state.resolver = GoalResolver(
        app.state.store,
        build_goal_definitions(
            consumption_fallback=settings.goals_consumption_fallback,
            activation_fallback_daily=settings.goals_activation_fallback_daily,
            activation_fallback_monthly=settings.goals_activation_fallback_monthly,
        ),
    )
    async with httpx.AsyncClient() as http:
        app.state.metrics_client = MetricsClient(
            http,
            settings.metrics_api_url,
            include_history=settings.metrics_include_history,
            timeout=settings.metrics_api_timeout,
        )
        yield
    await engine.dispose()


app = FastAPI(title="Ecoar Dashboard", version="0.1.0", lifespan=lifespan)
app.include_router(goals_router)
app.include_router(data_router)


@app.get("/")
async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "dashboard": {
            "devices": "/dashboard/devices",
            "consumption": "/dashboard/consumption/{entity_id}",
            "validation": "/dashboard/validation",
            "goals": "/dashboard/goals/{entity_id}",
            "goals_effective": "/dashboard/goals/{entity_id}/{kind}/{index}",
            "activation_goals": "/dashboard/activation-goals/{entity_id}/{kind}/{index}",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
