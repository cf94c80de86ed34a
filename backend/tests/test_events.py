"""
Tests for event endpoints: creation, detail, upcoming listing and stats.
"""

import pytest
from datetime import datetime, timezone, timedelta
from httpx import AsyncClient


def future_iso(days: int) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


@pytest.mark.asyncio
async def test_create_event(client: AsyncClient):
    response = await client.post(
        "/api/v1/events/",
        json={
            "title": "Python Conference 2027",
            "date": future_iso(days=30),
            "location": "Convention Center",
            "capacity": 500,
        },
    )
    assert response.status_code == 201
    data = response.json()
    assert data["title"] == "Python Conference 2027"
    assert data["capacity"] == 500
    assert "id" in data


@pytest.mark.asyncio
@pytest.mark.parametrize("capacity", [0, -5, 1001])
async def test_create_event_invalid_capacity(client: AsyncClient, capacity):
    response = await client.post(
        "/api/v1/events/",
        json={"title": "Bad", "date": future_iso(days=1), "location": "Nowhere", "capacity": capacity},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_event_missing_location(client: AsyncClient):
    response = await client.post(
        "/api/v1/events/",
        json={"title": "No Venue", "date": future_iso(days=1), "capacity": 10},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_event_naive_date_is_utc(client: AsyncClient):
    response = await client.post(
        "/api/v1/events/",
        json={"title": "Naive", "date": "2030-01-01T10:00:00", "location": "Oslo", "capacity": 5},
    )
    assert response.status_code == 201
    date = datetime.fromisoformat(response.json()["date"].replace("Z", "+00:00"))
    assert date == datetime(2030, 1, 1, 10, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_get_event_with_registrations(client: AsyncClient, sql_store, add_event, add_users):
    event = await add_event(sql_store, capacity=5)
    users = await add_users(sql_store, count=2)
    for user in users:
        response = await client.post(f"/api/v1/events/{event.id}/register", json={"user_id": user.id})
        assert response.status_code == 201

    response = await client.get(f"/api/v1/events/{event.id}")

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == event.id
    assert data["title"] == "Test Concert"
    assert [r["email"] for r in data["registrations"]] == [u.email for u in users]


@pytest.mark.asyncio
async def test_get_event_not_found(client: AsyncClient):
    response = await client.get("/api/v1/events/99999")
    assert response.status_code == 404
    assert response.json()["error"]["reason"] == "event_not_found"


@pytest.mark.asyncio
async def test_upcoming_events_ordering(client: AsyncClient, sql_store, add_event):
    base = datetime.now(timezone.utc).replace(microsecond=0) + timedelta(days=10)
    await add_event(sql_store, date=base + timedelta(days=31), location="Berlin")
    await add_event(sql_store, date=base, location="Boston")
    await add_event(sql_store, date=base, location="Austin")
    await add_event(sql_store, date=datetime.now(timezone.utc) - timedelta(days=1), location="Past")

    response = await client.get("/api/v1/events/upcoming")

    assert response.status_code == 200
    assert [e["location"] for e in response.json()] == ["Austin", "Boston", "Berlin"]


@pytest.mark.asyncio
async def test_event_stats(client: AsyncClient, sql_store, add_event, add_users):
    event = await add_event(sql_store, capacity=4)
    for user in await add_users(sql_store, count=3):
        await client.post(f"/api/v1/events/{event.id}/register", json={"user_id": user.id})

    response = await client.get(f"/api/v1/events/{event.id}/stats")

    assert response.status_code == 200
    assert response.json() == {
        "total_registrations": 3,
        "remaining_capacity": 1,
        "capacity_used_percentage": "75.00%",
    }


@pytest.mark.asyncio
async def test_event_stats_not_found(client: AsyncClient):
    response = await client.get("/api/v1/events/4242/stats")
    assert response.status_code == 404
