"""
Tests for service endpoints and request middleware.
"""

import pytest
from httpx import AsyncClient
from structlog.testing import capture_logs


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["cache"] == {"status": "disabled"}


@pytest.mark.asyncio
async def test_root(client: AsyncClient):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["docs"] == "/docs"


@pytest.mark.asyncio
async def test_request_id_headers(client: AsyncClient):
    response = await client.get("/", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"
    assert response.headers["X-Response-Time"].endswith("ms")


@pytest.mark.asyncio
async def test_metrics_count_registration_outcomes(client: AsyncClient, sql_store, add_event, add_users):
    event = await add_event(sql_store, capacity=1)
    first, second = await add_users(sql_store, count=2)
    await client.post(f"/api/v1/events/{event.id}/register", json={"user_id": first.id})
    await client.post(f"/api/v1/events/{event.id}/register", json={"user_id": second.id})

    response = await client.get("/metrics")

    assert response.status_code == 200
    assert 'registration_attempts_total{outcome="admitted"}' in response.text
    assert 'registration_attempts_total{outcome="event_full"}' in response.text


@pytest.mark.asyncio
async def test_request_log_skips_health_and_metrics(client: AsyncClient):
    with capture_logs() as logs:
        await client.get("/health", headers={"X-Request-ID": "health-1"})
        await client.get("/", headers={"X-Request-ID": "root-1"})

    completed = [entry for entry in logs if entry["event"] == "request_completed"]
    assert [entry["path"] for entry in completed] == ["/"]
    assert completed[0]["status_code"] == 200
