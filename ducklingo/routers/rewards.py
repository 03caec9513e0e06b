"""
Rewards API Endpoints
Medal, stats, achievements and leaderboard for the dashboard
"""
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ducklingo.core.config import settings
from ducklingo.core.database import get_db
from ducklingo.core.exceptions import InvalidTimezoneConfiguration
from ducklingo.gamification import (
    AchievementEvaluator,
    LeaderboardRanker,
    MedalEvaluator,
    MedalRequirements,
    MEDAL_DISPLAY,
    StatsAggregator,
)
from ducklingo.gamification.progress import XPRules
from ducklingo.gamification.store import AttemptStore, SQLAlchemyAttemptStore

router = APIRouter()


@lru_cache
def get_medal_requirements() -> MedalRequirements:
    """Requirement table, validated once per process"""
    return MedalRequirements.from_mapping(settings.MEDAL_REQUIREMENTS)


@lru_cache
def get_streak_timezone() -> ZoneInfo:
    """Day boundary for streaks, resolved once per process"""
    try:
        return ZoneInfo(settings.STREAK_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidTimezoneConfiguration(
            f"Unknown STREAK_TIMEZONE {settings.STREAK_TIMEZONE!r}"
        ) from e


def get_medal_evaluator() -> MedalEvaluator:
    return MedalEvaluator(get_medal_requirements())


def get_store(db: AsyncSession = Depends(get_db)) -> AttemptStore:
    return SQLAlchemyAttemptStore(
        db,
        XPRules(per_correct=settings.XP_PER_CORRECT, perfect_bonus=settings.PERFECT_SCORE_BONUS_XP),
    )


def get_aggregator(
    store: AttemptStore = Depends(get_store),
    evaluator: MedalEvaluator = Depends(get_medal_evaluator),
) -> StatsAggregator:
    return StatsAggregator(store, evaluator, timezone_name=get_streak_timezone().key)


@router.get("")
async def get_rewards(
    user_id: str,
    aggregator: StatsAggregator = Depends(get_aggregator),
):
    """
    Current medal, progress towards the next one, streaks and achievements
    """
    stats = await aggregator.user_stats(user_id)
    achievements = AchievementEvaluator().evaluate(stats)

    return {
        "success": True,
        "user_id": user_id,
        "medal_type": stats.current_medal.value,
        "next_medal": stats.next_medal.value if stats.next_medal else None,
        "progress_to_next": stats.progress_to_next,
        "total_xp": stats.total_xp,
        "current_streak": stats.current_streak,
        "longest_streak": stats.longest_streak,
        "questions_answered": stats.questions_answered,
        "correct_answers": stats.correct_answers,
        "accuracy_percentage": round(stats.accuracy_percentage, 1),
        "achievements": [a.model_dump(mode="json") for a in achievements],
        "medal_display": MEDAL_DISPLAY[stats.current_medal],
        "stats": stats.to_dict(),
    }


@router.get("/leaderboard")
async def get_leaderboard(
    limit: int = Query(settings.LEADERBOARD_DEFAULT_LIMIT, ge=1, le=settings.LEADERBOARD_MAX_LIMIT),
    aggregator: StatsAggregator = Depends(get_aggregator),
    store: AttemptStore = Depends(get_store),
):
    """Top learners by XP"""
    ranker = LeaderboardRanker(aggregator, store)
    entries = await ranker.top(limit)

    return {
        "success": True,
        "leaderboard": [entry.to_dict() for entry in entries],
        "total_entries": len(entries),
    }


@router.get("/medals")
async def get_medal_requirements_table(
    evaluator: MedalEvaluator = Depends(get_medal_evaluator),
):
    """Requirement table behind the medals"""
    return {
        "requirements": evaluator.requirements.to_dict(),
        "display": {medal.value: display for medal, display in MEDAL_DISPLAY.items()},
    }
