"""
Medal Evaluator
Maps a learner's stats snapshot to one of six ordered medal tiers.

A tier is awarded only when all three of its thresholds (XP, correct answers,
accuracy) are met. Tiers are checked from emerald down to bronze and the first
fully satisfied tier wins; a learner who misses any single threshold of a tier
gets nothing from that tier.
"""
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, Mapping, Optional, Tuple
import math

from loguru import logger

from ducklingo.core.exceptions import InvalidMedalConfiguration

if TYPE_CHECKING:
    from ducklingo.gamification.stats import UserStats


class MedalType(str, Enum):
    """Medal tiers, lowest first"""
    NONE = "none"
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    DIAMOND = "diamond"
    EMERALD = "emerald"

    @property
    def tier(self) -> int:
        """Position in the tier order, 0 for none"""
        return list(MedalType).index(self)


# Awardable tiers in ascending order
MEDAL_ORDER: Tuple[MedalType, ...] = (
    MedalType.BRONZE,
    MedalType.SILVER,
    MedalType.GOLD,
    MedalType.DIAMOND,
    MedalType.EMERALD,
)

MEDAL_DISPLAY: Dict[MedalType, Dict[str, str]] = {
    MedalType.NONE: {"emoji": "⚪", "name": "Ingen Medalje"},
    MedalType.BRONZE: {"emoji": "🥉", "name": "Bronze"},
    MedalType.SILVER: {"emoji": "🥈", "name": "Sølv"},
    MedalType.GOLD: {"emoji": "🥇", "name": "Guld"},
    MedalType.DIAMOND: {"emoji": "💎", "name": "Diamant"},
    MedalType.EMERALD: {"emoji": "💚", "name": "Smaragd"},
}


@dataclass(frozen=True)
class MedalTier:
    """Thresholds for a single tier"""
    medal: MedalType
    xp: int
    questions: int
    accuracy: float

    def is_met_by(self, stats: "UserStats") -> bool:
        return (
            stats.total_xp >= self.xp
            and stats.correct_answers >= self.questions
            and stats.accuracy_percentage >= self.accuracy
        )


def _whole_number(value) -> int:
    number = _finite(value)
    if not number.is_integer():
        raise ValueError(f"{value!r} is not a whole number")
    return int(number)


def _finite(value) -> float:
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"{value!r} is not a finite number")
    return number


class MedalRequirements:
    """
    Validated, read-only medal requirement table.

    Holds exactly one tier per awardable medal, with every threshold strictly
    increasing from bronze to emerald.
    """

    def __init__(self, tiers):
        tiers = tuple(tiers)
        self._validate(tiers)
        self._tiers = tiers
        self._by_medal = {tier.medal: tier for tier in tiers}

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Mapping[str, float]]) -> "MedalRequirements":
        """
        Build from {"bronze": {"xp": .., "questions": .., "accuracy": ..}, ...}
        """
        unknown = set(mapping) - {medal.value for medal in MEDAL_ORDER}
        if unknown:
            raise InvalidMedalConfiguration(f"Unknown medal tiers: {sorted(unknown)}")

        tiers = []
        for medal in MEDAL_ORDER:
            if medal.value not in mapping:
                raise InvalidMedalConfiguration(f"Missing requirements for {medal.value}")
            row = mapping[medal.value]
            try:
                tiers.append(MedalTier(
                    medal=medal,
                    xp=_whole_number(row["xp"]),
                    questions=_whole_number(row["questions"]),
                    accuracy=_finite(row["accuracy"]),
                ))
            except (KeyError, TypeError, ValueError, OverflowError) as e:
                raise InvalidMedalConfiguration(
                    f"Malformed requirements for {medal.value}: {e}"
                ) from e

        return cls(tiers)

    @staticmethod
    def _validate(tiers: Tuple[MedalTier, ...]) -> None:
        if tuple(tier.medal for tier in tiers) != MEDAL_ORDER:
            raise InvalidMedalConfiguration(
                "Requirement table must list bronze, silver, gold, diamond, emerald in order"
            )

        first = tiers[0]
        if first.xp < 0 or first.questions < 0 or first.accuracy < 0:
            raise InvalidMedalConfiguration("Thresholds must be non-negative")
        if tiers[-1].accuracy > 100:
            raise InvalidMedalConfiguration("Accuracy threshold cannot exceed 100")

        for lower, upper in zip(tiers, tiers[1:]):
            if not (
                upper.xp > lower.xp
                and upper.questions > lower.questions
                and upper.accuracy > lower.accuracy
            ):
                raise InvalidMedalConfiguration(
                    f"Thresholds for {upper.medal.value} must exceed {lower.medal.value}"
                )

    def __iter__(self):
        return iter(self._tiers)

    def __len__(self):
        return len(self._tiers)

    def __getitem__(self, medal: MedalType) -> MedalTier:
        return self._by_medal[medal]

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {
            tier.medal.value: {
                "xp": tier.xp,
                "questions": tier.questions,
                "accuracy": tier.accuracy,
            }
            for tier in self._tiers
        }


class MedalEvaluator:
    """Evaluates stats snapshots against an injected requirement table"""

    def __init__(self, requirements: MedalRequirements):
        self.requirements = requirements

    def evaluate(self, stats: "UserStats") -> MedalType:
        """
        Highest tier whose thresholds are all met, or none.

        Zero-attempt learners have accuracy 0 and fall through every tier.
        """
        for tier in reversed(tuple(self.requirements)):
            if tier.is_met_by(stats):
                logger.debug(
                    f"Medal {tier.medal.value} awarded: xp={stats.total_xp} "
                    f"correct={stats.correct_answers} accuracy={stats.accuracy_percentage}"
                )
                return tier.medal

        return MedalType.NONE

    @staticmethod
    def next_medal(medal: MedalType) -> Optional[MedalType]:
        """Tier above the given one, None at the top"""
        if medal == MedalType.EMERALD:
            return None
        return list(MedalType)[medal.tier + 1]

    def progress_to_next(self, stats: "UserStats", next_medal: Optional[MedalType]) -> int:
        """
        Percentage progress towards next_medal, limited by the weakest of the
        three requirements. 100 once there is nothing left to earn.
        """
        if next_medal is None:
            return 100

        tier = self.requirements[next_medal]

        def ratio(value: float, threshold: float) -> float:
            if threshold <= 0:
                return 100.0
            return min(value / threshold * 100, 100.0)

        return math.floor(min(
            ratio(stats.total_xp, tier.xp),
            ratio(stats.correct_answers, tier.questions),
            ratio(stats.accuracy_percentage, tier.accuracy),
        ))
