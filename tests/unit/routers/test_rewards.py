"""
Tests for rewards router endpoints
"""
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient, ASGITransport

from ducklingo.core.exceptions import AttemptRetrievalError
from ducklingo.gamification import StatsAggregator
from ducklingo.gamification.store import InMemoryAttemptStore
from ducklingo.main import app
from ducklingo.routers import rewards


@pytest.fixture
def store(make_attempt):
    store = InMemoryAttemptStore()
    store.add_user("ana", email="ana@example.com", full_name="Ana")
    store.add_user("bo", email="bo@example.com")
    store.add_attempts(*(make_attempt(user_id="ana", xp=10, days_ago=n % 8) for n in range(12)))
    store.add_attempts(make_attempt(user_id="bo", xp=10), make_attempt(user_id="bo", correct=False, xp=0))
    return store


@pytest.fixture
async def client(store, evaluator, now) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client with the store swapped for an in-memory one"""
    app.dependency_overrides[rewards.get_store] = lambda: store
    app.dependency_overrides[rewards.get_aggregator] = lambda: StatsAggregator(
        store, evaluator, clock=lambda: now
    )

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def failing_client(evaluator) -> AsyncGenerator[AsyncClient, None]:
    """Client whose store is unreachable"""
    store = AsyncMock()
    store.fetch_history = AsyncMock(side_effect=AttemptRetrievalError("down"))
    store.fetch_all_histories = AsyncMock(side_effect=AttemptRetrievalError("down"))
    store.list_users = AsyncMock(return_value=[])

    app.dependency_overrides[rewards.get_store] = lambda: store
    app.dependency_overrides[rewards.get_aggregator] = lambda: StatsAggregator(store, evaluator)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_get_rewards(client: AsyncClient):
    """12 correct answers, 120 XP, 8-day streak"""
    response = await client.get("/api/rewards?user_id=ana")
    assert response.status_code == 200

    data = response.json()
    assert data["success"] is True
    assert data["medal_type"] == "bronze"
    assert data["next_medal"] == "silver"
    assert data["total_xp"] == 120
    assert data["questions_answered"] == 12
    assert data["correct_answers"] == 12
    assert data["accuracy_percentage"] == 100.0
    assert data["current_streak"] == 8
    assert data["longest_streak"] == 8
    assert [a["id"] for a in data["achievements"]] == ["week_streak"]
    assert data["medal_display"]["emoji"] == "🥉"


@pytest.mark.asyncio
async def test_get_rewards_new_learner(client: AsyncClient):
    response = await client.get("/api/rewards?user_id=newbie")
    assert response.status_code == 200

    data = response.json()
    assert data["medal_type"] == "none"
    assert data["total_xp"] == 0
    assert data["accuracy_percentage"] == 0
    assert data["progress_to_next"] == 0
    assert data["achievements"] == []


@pytest.mark.asyncio
async def test_get_rewards_missing_user(client: AsyncClient):
    response = await client.get("/api/rewards")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_rewards_store_down(failing_client: AsyncClient):
    """Store failures are reported as such, never as 'no medal'"""
    response = await failing_client.get("/api/rewards?user_id=ana")

    assert response.status_code == 503
    assert response.json() == {"detail": "Could not compute your progress"}


@pytest.mark.asyncio
async def test_get_leaderboard(client: AsyncClient):
    response = await client.get("/api/rewards/leaderboard")
    assert response.status_code == 200

    data = response.json()
    assert data["total_entries"] == 2
    assert [e["user_id"] for e in data["leaderboard"]] == ["ana", "bo"]
    assert data["leaderboard"][0]["rank"] == 1
    assert data["leaderboard"][0]["display_name"] == "Ana"
    assert data["leaderboard"][0]["medal_type"] == "bronze"
    assert data["leaderboard"][1]["accuracy_percentage"] == 50.0


@pytest.mark.asyncio
async def test_get_leaderboard_limit(client: AsyncClient):
    response = await client.get("/api/rewards/leaderboard?limit=1")
    assert response.status_code == 200
    assert [e["user_id"] for e in response.json()["leaderboard"]] == ["ana"]


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [0, -3, 101])
async def test_get_leaderboard_invalid_limit(client: AsyncClient, limit):
    response = await client.get(f"/api/rewards/leaderboard?limit={limit}")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_leaderboard_store_down(failing_client: AsyncClient):
    response = await failing_client.get("/api/rewards/leaderboard")
    assert response.status_code == 503


@pytest.mark.asyncio
async def test_get_medals(client: AsyncClient):
    response = await client.get("/api/rewards/medals")
    assert response.status_code == 200

    data = response.json()
    assert data["requirements"]["bronze"] == {"xp": 50, "questions": 10, "accuracy": 60.0}
    assert data["display"]["none"]["name"] == "Ingen Medalje"


@pytest.mark.asyncio
async def test_root(client: AsyncClient):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "Ducklingo API"
