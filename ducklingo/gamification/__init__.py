"""
Rewards engine: stats, medals, achievements and leaderboard
"""
from .medals import MedalType, MedalTier, MedalRequirements, MedalEvaluator, MEDAL_DISPLAY
from .stats import AttemptRecord, LearnerHistory, UserStats, StatsAggregator, aggregate, calculate_streaks
from .achievements import Achievement, AchievementType, AchievementRules, AchievementEvaluator
from .leaderboard import LeaderboardEntry, LeaderboardRanker, rank_entries

__all__ = [
    "MedalType",
    "MedalTier",
    "MedalRequirements",
    "MedalEvaluator",
    "MEDAL_DISPLAY",
    "AttemptRecord",
    "LearnerHistory",
    "UserStats",
    "StatsAggregator",
    "aggregate",
    "calculate_streaks",
    "Achievement",
    "AchievementType",
    "AchievementRules",
    "AchievementEvaluator",
    "LeaderboardEntry",
    "LeaderboardRanker",
    "rank_entries",
]
