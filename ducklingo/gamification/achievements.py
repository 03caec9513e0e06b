"""
Achievements
Independent unlock rules evaluated against a UserStats snapshot
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from pydantic import BaseModel

from ducklingo.gamification.stats import UserStats


class AchievementType(str, Enum):
    """Types of achievements"""
    STREAK = "streak"
    ACCURACY = "accuracy"
    QUESTIONS = "questions"
    PERFECT_SCORE = "perfect_score"
    LEVEL_MASTER = "level_master"


class Achievement(BaseModel):
    """Earned achievement"""
    id: str
    name: str
    description: str
    icon: str
    type: AchievementType


CEFR_LEVELS: Tuple[str, ...] = ("A1", "A2", "B1", "B2", "C1", "C2")


@dataclass(frozen=True)
class AchievementRules:
    """Unlock thresholds"""
    week_streak_days: int = 7
    month_streak_days: int = 30
    perfectionist_accuracy: float = 95
    perfectionist_min_questions: int = 100
    question_master_count: int = 1000
    perfect_scores_required: int = 1
    levels: Tuple[str, ...] = CEFR_LEVELS


class AchievementEvaluator:
    """
    Each rule is checked on its own; the result is the list of every
    achievement whose condition holds, in a fixed order.
    """

    def __init__(self, rules: AchievementRules = AchievementRules()):
        self.rules = rules

    def evaluate(self, stats: UserStats) -> List[Achievement]:
        rules = self.rules
        earned = []

        if stats.current_streak >= rules.week_streak_days:
            earned.append(Achievement(
                id="week_streak",
                name="Ugens Kriger",
                description=f"Holdt en streak på {rules.week_streak_days} dage",
                icon="🔥",
                type=AchievementType.STREAK,
            ))

        if stats.current_streak >= rules.month_streak_days:
            earned.append(Achievement(
                id="month_streak",
                name="Månedens Mester",
                description=f"Holdt en streak på {rules.month_streak_days} dage",
                icon="🏆",
                type=AchievementType.STREAK,
            ))

        if (
            stats.accuracy_percentage >= rules.perfectionist_accuracy
            and stats.questions_answered >= rules.perfectionist_min_questions
        ):
            earned.append(Achievement(
                id="perfectionist",
                name="Perfektionist",
                description=(
                    f"{rules.perfectionist_accuracy:g}%+ nøjagtighed med "
                    f"{rules.perfectionist_min_questions}+ spørgsmål"
                ),
                icon="💎",
                type=AchievementType.ACCURACY,
            ))

        if stats.questions_answered >= rules.question_master_count:
            earned.append(Achievement(
                id="thousand_questions",
                name="Spørgsmålsmester",
                description=f"Besvaret {rules.question_master_count}+ spørgsmål",
                icon="🧠",
                type=AchievementType.QUESTIONS,
            ))

        if stats.perfect_scores >= rules.perfect_scores_required:
            earned.append(Achievement(
                id="perfect_score",
                name="Fejlfri",
                description="Gennemført en øvelse uden fejl",
                icon="⭐",
                type=AchievementType.PERFECT_SCORE,
            ))

        for level in rules.levels:
            if level in stats.completed_levels:
                earned.append(Achievement(
                    id=f"level_master_{level.lower()}",
                    name=f"{level} Mester",
                    description=f"Gennemført niveau {level}",
                    icon="🎓",
                    type=AchievementType.LEVEL_MASTER,
                ))

        return earned
