"""
Unit test conftest - minimal fixtures for isolated unit tests.

These tests don't require a running database.
"""

import os

# Set minimal test environment
os.environ["TESTING"] = "true"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_LEVEL"] = "DEBUG"

import pytest
from datetime import datetime, timedelta, timezone

from ducklingo.core.config import DEFAULT_MEDAL_REQUIREMENTS
from ducklingo.gamification import (
    AttemptRecord,
    MedalEvaluator,
    MedalRequirements,
    StatsAggregator,
)
from ducklingo.gamification.store import InMemoryAttemptStore


# Friday 2026-10-16, noon in Copenhagen
FIXED_NOW = datetime(2026, 10, 16, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def requirements():
    return MedalRequirements.from_mapping(DEFAULT_MEDAL_REQUIREMENTS)


@pytest.fixture
def evaluator(requirements):
    return MedalEvaluator(requirements)


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def store():
    return InMemoryAttemptStore()


@pytest.fixture
def aggregator(store, evaluator):
    return StatsAggregator(store, evaluator, timezone_name="Europe/Copenhagen", clock=lambda: FIXED_NOW)


@pytest.fixture
def make_attempt():
    """Factory for attempts relative to FIXED_NOW"""
    def _make(user_id="user-1", correct=True, xp=10, days_ago=0, hours=0):
        return AttemptRecord(
            user_id=user_id,
            is_correct=correct,
            xp_awarded=xp,
            answered_at=FIXED_NOW - timedelta(days=days_ago, hours=hours),
        )
    return _make
