"""
Leaderboard Ranker
Orders every learner by total XP and returns the top N.

Ordering is total: XP descending, then user id ascending, so learners with
equal XP always come out in the same relative order. Ranks are the 1-based
positions in that order. Truncation happens after the full ordering.
"""
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from loguru import logger

from ducklingo.gamification.achievements import AchievementEvaluator
from ducklingo.gamification.medals import MedalType
from ducklingo.gamification.stats import StatsAggregator, UserStats
from ducklingo.gamification.store import AttemptStore, LearnerProfile


@dataclass
class LeaderboardEntry:
    """Single entry in a leaderboard"""
    rank: int
    user_id: str
    email: str
    display_name: str
    medal_type: MedalType
    total_xp: int
    current_streak: int
    longest_streak: int
    questions_answered: int
    correct_answers: int
    accuracy_percentage: float
    achievements_count: int
    percentile: float  # 0-100

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["medal_type"] = self.medal_type.value
        data["accuracy_percentage"] = round(self.accuracy_percentage, 1)
        data["percentile"] = round(self.percentile, 1)
        return data


def ranking_key(user_id: str, stats: UserStats):
    return (-stats.total_xp, user_id)


def rank_entries(
    stats_by_user: Mapping[str, UserStats],
    profiles: Sequence[LearnerProfile],
    limit: int,
    achievements: AchievementEvaluator,
) -> List[LeaderboardEntry]:
    """
    Rank the given profiles. Every profile needs an entry in stats_by_user.
    """
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")

    ordered = sorted(profiles, key=lambda p: ranking_key(p.user_id, stats_by_user[p.user_id]))
    total = len(ordered)

    entries = []
    for index, profile in enumerate(ordered[:limit]):
        stats = stats_by_user[profile.user_id]
        entries.append(LeaderboardEntry(
            rank=index + 1,
            user_id=profile.user_id,
            email=profile.email or "Anonymous",
            display_name=profile.display_name,
            medal_type=stats.current_medal,
            total_xp=stats.total_xp,
            current_streak=stats.current_streak,
            longest_streak=stats.longest_streak,
            questions_answered=stats.questions_answered,
            correct_answers=stats.correct_answers,
            accuracy_percentage=stats.accuracy_percentage,
            achievements_count=len(achievements.evaluate(stats)),
            percentile=(1 - index / total) * 100,
        ))

    return entries


class LeaderboardRanker:
    """Computes stats for all learners in one snapshot, then ranks them"""

    def __init__(
        self,
        aggregator: StatsAggregator,
        store: AttemptStore,
        achievements: Optional[AchievementEvaluator] = None,
    ):
        self.aggregator = aggregator
        self.store = store
        self.achievements = achievements or AchievementEvaluator()

    async def top(self, limit: int) -> List[LeaderboardEntry]:
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")

        profiles = await self.store.list_users()
        known = {profile.user_id for profile in profiles}
        stats_by_user = await self.aggregator.all_user_stats([p.user_id for p in profiles])

        # Progress rows whose learner is missing from the directory still rank
        profiles = list(profiles) + [
            LearnerProfile(user_id=user_id) for user_id in sorted(stats_by_user) if user_id not in known
        ]

        entries = rank_entries(stats_by_user, profiles, limit, self.achievements)
        logger.debug(f"Leaderboard ranked {len(profiles)} learners, returning {len(entries)}")
        return entries
