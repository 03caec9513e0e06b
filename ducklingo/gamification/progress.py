"""
Conversion of stored exercise progress into attempt records.

A user_progress row covers one exercise. Newer rows keep a list of per-question
results; older rows hold a single result object; the oldest only have a score.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, List, Optional

from ducklingo.gamification.stats import AttemptRecord


PASSING_SCORE = 70
PERFECT_SCORE = 100


@dataclass(frozen=True)
class XPRules:
    """XP awarded for answers"""
    per_correct: int = 10
    perfect_bonus: int = 50


@dataclass(frozen=True)
class ProgressRecord:
    """One user_progress row"""
    user_id: str
    exercise_id: int
    created_at: datetime
    score: Optional[int] = None
    question_results: Any = None


def _parse_timestamp(value: Any, fallback: datetime) -> datetime:
    if value is None:
        return fallback
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        # Python < 3.11 does not accept the "Z" suffix
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    raise ValueError(f"Unreadable timestamp: {value!r}")


def _question_results(record: ProgressRecord) -> Optional[List[dict]]:
    results = record.question_results
    if isinstance(results, list):
        return results
    if isinstance(results, dict):
        return [results]
    if results is None:
        return None
    raise ValueError(
        f"Malformed question_results for exercise {record.exercise_id}: {type(results).__name__}"
    )


def attempts_from_progress(record: ProgressRecord, xp_rules: XPRules = XPRules()) -> List[AttemptRecord]:
    """
    Expand a progress row into one attempt per answered question.

    Correct answers earn xp_rules.per_correct. The perfect-score bonus belongs
    to the exercise, not to an attempt, and is added by perfect_bonus_xp. Rows
    without question results count as one correct answer when they passed, and
    nothing otherwise.
    """
    results = _question_results(record)

    if results is None:
        if (record.score or 0) < PASSING_SCORE:
            return []
        outcomes = [(True, record.created_at)]
    else:
        outcomes = []
        for result in results:
            if not isinstance(result, dict):
                raise ValueError(f"Malformed question result in exercise {record.exercise_id}")
            outcomes.append((
                bool(result.get("correct")),
                _parse_timestamp(result.get("timestamp"), record.created_at),
            ))

    attempts = []
    for correct, answered_at in outcomes:
        attempts.append(AttemptRecord(
            user_id=record.user_id,
            is_correct=correct,
            xp_awarded=xp_rules.per_correct if correct else 0,
            answered_at=answered_at,
            exercise_id=record.exercise_id,
        ))

    return attempts


def count_perfect_scores(records: Iterable[ProgressRecord]) -> int:
    return sum(1 for record in records if record.score == PERFECT_SCORE)


def perfect_bonus_xp(records: Iterable[ProgressRecord], xp_rules: XPRules = XPRules()) -> int:
    """Bonus XP for every exercise scored 100, whatever its question results hold"""
    return count_perfect_scores(records) * xp_rules.perfect_bonus
