"""
Stats Aggregator
Folds a learner's attempt history into a single UserStats snapshot.

Totals are additive folds; accuracy is derived after the fold and is 0 for a
learner with no attempts. Streaks are counted over calendar days in a fixed
reference timezone (naive timestamps are read as UTC).
"""
from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from loguru import logger

from ducklingo.core.exceptions import AttemptRetrievalError
from ducklingo.gamification.medals import MedalEvaluator, MedalType


@dataclass(frozen=True)
class AttemptRecord:
    """One answered question. Immutable once recorded."""
    user_id: str
    is_correct: bool
    xp_awarded: int
    answered_at: datetime
    exercise_id: Optional[int] = None

    def __post_init__(self):
        if self.xp_awarded < 0:
            raise ValueError(f"xp_awarded must be >= 0, got {self.xp_awarded}")
        if not isinstance(self.answered_at, datetime):
            raise ValueError(f"answered_at must be a datetime, got {self.answered_at!r}")


@dataclass(frozen=True)
class LearnerHistory:
    """Everything read from the store for one learner, at one point in time"""
    user_id: str
    attempts: Tuple[AttemptRecord, ...] = ()
    perfect_scores: int = 0
    completed_levels: Tuple[str, ...] = ()
    bonus_xp: int = 0


@dataclass(frozen=True)
class UserStats:
    """Derived progress snapshot. Recomputed on every read, never stored."""
    total_xp: int = 0
    questions_answered: int = 0
    correct_answers: int = 0
    accuracy_percentage: float = 0.0
    current_streak: int = 0
    longest_streak: int = 0
    current_medal: MedalType = MedalType.NONE
    next_medal: Optional[MedalType] = MedalType.BRONZE
    progress_to_next: int = 0
    perfect_scores: int = 0
    completed_levels: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["current_medal"] = self.current_medal.value
        data["next_medal"] = self.next_medal.value if self.next_medal else None
        data["completed_levels"] = list(self.completed_levels)
        return data


def to_local_date(moment: datetime, tz: ZoneInfo) -> date:
    """Calendar day of moment in tz; naive datetimes are UTC"""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz).date()


def calculate_streaks(active_days: Iterable[date], today: date) -> Tuple[int, int]:
    """
    Returns (current_streak, longest_streak).

    The current streak is the run of consecutive days ending at the most
    recent active day, and stays alive while that day is today or yesterday.
    """
    days = sorted(set(active_days))
    if not days:
        return 0, 0

    longest = 1
    run = 1
    for previous, current in zip(days, days[1:]):
        if current - previous == timedelta(days=1):
            run += 1
        else:
            run = 1
        longest = max(longest, run)

    # run now holds the length of the final run
    if days[-1] >= today - timedelta(days=1):
        current_streak = run
    else:
        current_streak = 0

    return current_streak, longest


def aggregate(
    history: LearnerHistory,
    evaluator: MedalEvaluator,
    today: date,
    tz: ZoneInfo,
) -> UserStats:
    """Pure fold of one learner's history into UserStats"""
    total_xp = history.bonus_xp
    questions_answered = 0
    correct_answers = 0
    active_days = set()

    for attempt in history.attempts:
        total_xp += attempt.xp_awarded
        questions_answered += 1
        if attempt.is_correct:
            correct_answers += 1
        active_days.add(to_local_date(attempt.answered_at, tz))

    if questions_answered > 0:
        accuracy = correct_answers / questions_answered * 100
    else:
        accuracy = 0.0

    current_streak, longest_streak = calculate_streaks(active_days, today)

    stats = UserStats(
        total_xp=total_xp,
        questions_answered=questions_answered,
        correct_answers=correct_answers,
        accuracy_percentage=accuracy,
        current_streak=current_streak,
        longest_streak=longest_streak,
        perfect_scores=history.perfect_scores,
        completed_levels=tuple(sorted(history.completed_levels)),
    )

    medal = evaluator.evaluate(stats)
    next_medal = evaluator.next_medal(medal)
    return replace(
        stats,
        current_medal=medal,
        next_medal=next_medal,
        progress_to_next=evaluator.progress_to_next(stats, next_medal),
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StatsAggregator:
    """
    Reads attempt histories from a store and folds them into UserStats.

    Holds no per-user state; safe to share across concurrent requests.
    """

    def __init__(
        self,
        store,
        evaluator: MedalEvaluator,
        timezone_name: str = "Europe/Copenhagen",
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.evaluator = evaluator
        self.tz = ZoneInfo(timezone_name)
        self.clock = clock

    def today(self) -> date:
        return to_local_date(self.clock(), self.tz)

    def compute(self, history: LearnerHistory) -> UserStats:
        return aggregate(history, self.evaluator, self.today(), self.tz)

    async def user_stats(self, user_id: str) -> UserStats:
        """
        Stats for one learner.

        Raises AttemptRetrievalError if the history cannot be read; a learner
        with no attempts gets zero stats instead.
        """
        try:
            history = await self.store.fetch_history(user_id)
        except AttemptRetrievalError as e:
            logger.error(f"Attempt history unavailable for user {user_id}: {e.detail}")
            raise

        return self.compute(history)

    async def all_user_stats(self, user_ids: Sequence[str] = ()) -> Dict[str, UserStats]:
        """
        Stats for every learner in one snapshot of the store.

        Learners listed in user_ids but absent from the store get zero stats.
        """
        try:
            histories = await self.store.fetch_all_histories()
        except AttemptRetrievalError as e:
            logger.error(f"Attempt histories unavailable: {e.detail}")
            raise

        today = self.today()
        stats = {
            user_id: aggregate(history, self.evaluator, today, self.tz)
            for user_id, history in histories.items()
        }
        for user_id in user_ids:
            if user_id not in stats:
                stats[user_id] = aggregate(LearnerHistory(user_id=user_id), self.evaluator, today, self.tz)

        return stats

