"""Tests for the liveness and readiness checks."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from routers.health import router, set_health_dependencies


@pytest.fixture
def client():
    app = FastAPI()
    app.include_router(router)
    yield TestClient(app)
    set_health_dependencies()


def event_store_with(conn):
    acquire = MagicMock()
    acquire.__aenter__ = AsyncMock(return_value=conn)
    acquire.__aexit__ = AsyncMock(return_value=False)
    store = MagicMock()
    store.pool.acquire = MagicMock(return_value=acquire)
    return store


def test_health_always_ok(client):
    assert client.get("/health").json()["status"] == "ok"


def test_not_ready_without_event_store(client):
    set_health_dependencies()

    response = client.get("/ready")

    assert response.status_code == 503
    assert response.json()["checks"]["event_store"]["status"] == "not_configured"


def test_ready_without_cache(client):
    conn = AsyncMock()
    conn.fetchval = AsyncMock(return_value=1)
    set_health_dependencies(event_store=event_store_with(conn))

    response = client.get("/ready")

    assert response.status_code == 200
    assert response.json()["checks"]["state_cache"]["status"] == "not_configured"


def test_cache_failure_reported_but_ready(client):
    conn = AsyncMock()
    conn.fetchval = AsyncMock(return_value=1)
    cache = MagicMock()
    cache.redis.ping = AsyncMock(side_effect=ConnectionError("refused"))
    set_health_dependencies(event_store=event_store_with(conn), state_cache=cache)

    body = client.get("/ready").json()

    assert body["status"] == "ok"
    assert body["checks"]["state_cache"]["status"] == "error"


def test_database_failure_not_ready(client):
    conn = AsyncMock()
    conn.fetchval = AsyncMock(side_effect=OSError("connection refused"))
    set_health_dependencies(event_store=event_store_with(conn))

    assert client.get("/ready").status_code == 503
