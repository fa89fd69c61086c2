"""Shared fixtures for the test suite."""

from __future__ import annotations

from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from ecoar.db import get_resolver, get_store
from ecoar.main import app
from ecoar.metering.backends import MemoryBackend
from ecoar.metering.connector import MetricsApiError, MetricsClient, get_metrics_client
from ecoar.metering.resolver import GoalResolver
from ecoar.metering.store import KeyedValueStore


# ---------------------------------------------------------------------------
# Fake remote API (no network needed)
# ---------------------------------------------------------------------------

class FakeMetricsClient(MetricsClient):
    """MetricsClient serving canned payloads keyed by str(device_id)."""

    def __init__(
        self,
        payloads: dict[str, dict[str, Any]] | None = None,
        failing: tuple[str, ...] = (),
    ):
        super().__init__(http=None, base_url="http://fake/dados")  # type: ignore[arg-type]
        self.payloads = payloads or {}
        self.failing = set(failing)
        self.calls: list[str] = []

    async def fetch_raw(self, device_id):
        key = str(device_id)
        self.calls.append(key)
        if key in self.failing or key not in self.payloads:
            raise MetricsApiError(f"Device {key}: API returned status 500")
        return self.payloads[key]


def make_payload(**overrides: Any) -> dict[str, Any]:
    """Helper to build a complete remote payload; unspecified arrays are zeros."""
    payload: dict[str, Any] = {
        "consumo_mensal": [0.0] * 12,
        "consumo_diario_mes_corrente": [0.0] * 31,
        "consumo_sem_sistema_mensal": [0.0] * 12,
        "consumo_sem_sistema_diario": [0.0] * 31,
        "minutos_desligado_mensal": [0] * 12,
        "minutos_desligado_diario": [0] * 31,
        "ocupacao_mensal": [0] * 12,
        "ocupacao_diaria": [0] * 31,
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def backend():
    return MemoryBackend()


@pytest.fixture()
def store(backend):
    return KeyedValueStore(backend)


@pytest.fixture()
def resolver(store):
    return GoalResolver(store)


@pytest.fixture()
def fake_client():
    """FakeMetricsClient with no payloads (set .payloads in tests as needed)."""
    return FakeMetricsClient()


@pytest.fixture()
def override_deps(store, resolver, fake_client):
    """Override the FastAPI dependencies so no database or network is needed."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_resolver] = lambda: resolver
    app.dependency_overrides[get_metrics_client] = lambda: fake_client
    yield fake_client
    app.dependency_overrides.clear()


@pytest.fixture()
async def client(override_deps):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
