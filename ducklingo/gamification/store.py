"""
Attempt stores
Read-only access to learners, their exercise progress and completed levels.
"""
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ducklingo.core.exceptions import AttemptRetrievalError
from ducklingo.gamification.progress import (
    ProgressRecord,
    XPRules,
    attempts_from_progress,
    count_perfect_scores,
    perfect_bonus_xp,
)
from ducklingo.gamification.stats import AttemptRecord, LearnerHistory
from ducklingo.models.progress import User, UserLevelProgress, UserProgress


@dataclass(frozen=True)
class LearnerProfile:
    """Identity fields shown on the leaderboard"""
    user_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or "Anonymous"


class AttemptStore(ABC):
    """Source of attempt histories"""

    @abstractmethod
    async def fetch_history(self, user_id: str) -> LearnerHistory:
        """History of one learner; empty history if they never answered"""

    @abstractmethod
    async def fetch_all_histories(self) -> Dict[str, LearnerHistory]:
        """Histories of every learner with progress"""

    @abstractmethod
    async def list_users(self) -> List[LearnerProfile]:
        """Every registered learner"""


def build_history(
    user_id: str,
    records: List[ProgressRecord],
    completed_levels,
    xp_rules: XPRules,
    extra_attempts: List[AttemptRecord] = (),
) -> LearnerHistory:
    attempts = [attempt for record in records for attempt in attempts_from_progress(record, xp_rules)]
    attempts.extend(extra_attempts)
    return LearnerHistory(
        user_id=user_id,
        attempts=tuple(attempts),
        perfect_scores=count_perfect_scores(records),
        completed_levels=tuple(sorted(set(completed_levels))),
        bonus_xp=perfect_bonus_xp(records, xp_rules),
    )


class InMemoryAttemptStore(AttemptStore):
    """Dict-backed store for tests and local development"""

    def __init__(self, xp_rules: XPRules = XPRules()):
        self.xp_rules = xp_rules
        self.profiles: Dict[str, LearnerProfile] = {}
        self.progress: Dict[str, List[ProgressRecord]] = defaultdict(list)
        self.attempts: Dict[str, List[AttemptRecord]] = defaultdict(list)
        self.completed_levels: Dict[str, set] = defaultdict(set)

    def add_user(self, user_id: str, email: str = None, full_name: str = None) -> LearnerProfile:
        profile = LearnerProfile(user_id=user_id, email=email, full_name=full_name)
        self.profiles[user_id] = profile
        return profile

    def add_progress(self, record: ProgressRecord):
        self.progress[record.user_id].append(record)

    def add_attempts(self, *attempts: AttemptRecord):
        for attempt in attempts:
            self.attempts[attempt.user_id].append(attempt)

    def complete_level(self, user_id: str, level: str):
        self.completed_levels[user_id].add(level)

    def _history(self, user_id: str) -> LearnerHistory:
        return build_history(
            user_id,
            list(self.progress.get(user_id, [])),
            self.completed_levels.get(user_id, set()),
            self.xp_rules,
            list(self.attempts.get(user_id, [])),
        )

    async def fetch_history(self, user_id: str) -> LearnerHistory:
        return self._history(user_id)

    async def fetch_all_histories(self) -> Dict[str, LearnerHistory]:
        user_ids = set(self.progress) | set(self.attempts) | set(self.completed_levels)
        return {user_id: self._history(user_id) for user_id in sorted(user_ids)}

    async def list_users(self) -> List[LearnerProfile]:
        return sorted(self.profiles.values(), key=lambda p: p.user_id)


def _to_record(row: UserProgress) -> ProgressRecord:
    return ProgressRecord(
        user_id=row.user_id,
        exercise_id=row.exercise_id,
        created_at=row.created_at,
        score=row.score,
        question_results=row.question_results,
    )


class SQLAlchemyAttemptStore(AttemptStore):
    """
    Reads user_progress, user_level_progress and users through one session.
    Database errors and rows that cannot be interpreted are reported as
    AttemptRetrievalError.
    """

    def __init__(self, db: AsyncSession, xp_rules: XPRules = XPRules()):
        self.db = db
        self.xp_rules = xp_rules

    async def fetch_history(self, user_id: str) -> LearnerHistory:
        try:
            progress = await self.db.execute(
                select(UserProgress).where(UserProgress.user_id == user_id)
            )
            rows = progress.scalars().all()

            levels = await self.db.execute(
                select(UserLevelProgress.level).where(
                    UserLevelProgress.user_id == user_id,
                    UserLevelProgress.completed_at.is_not(None),
                )
            )
            completed = levels.scalars().all()

            return build_history(user_id, [_to_record(r) for r in rows], completed, self.xp_rules)
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch progress for user {user_id}: {e}")
            raise AttemptRetrievalError("Progress store unavailable", user_id=user_id) from e
        except (ValueError, TypeError) as e:
            logger.error(f"Malformed progress data for user {user_id}: {e}")
            raise AttemptRetrievalError("Malformed progress data", user_id=user_id) from e

    async def fetch_all_histories(self) -> Dict[str, LearnerHistory]:
        try:
            progress = await self.db.execute(
                select(UserProgress).order_by(UserProgress.user_id, UserProgress.id)
            )
            records: Dict[str, List[ProgressRecord]] = defaultdict(list)
            for row in progress.scalars().all():
                records[row.user_id].append(_to_record(row))

            levels = await self.db.execute(
                select(UserLevelProgress.user_id, UserLevelProgress.level).where(
                    UserLevelProgress.completed_at.is_not(None)
                )
            )
            completed: Dict[str, List[str]] = defaultdict(list)
            for user_id, level in levels.all():
                completed[user_id].append(level)

            return {
                user_id: build_history(user_id, records.get(user_id, []), completed.get(user_id, []), self.xp_rules)
                for user_id in sorted(set(records) | set(completed))
            }
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch progress for leaderboard: {e}")
            raise AttemptRetrievalError("Progress store unavailable") from e
        except (ValueError, TypeError) as e:
            logger.error(f"Malformed progress data: {e}")
            raise AttemptRetrievalError("Malformed progress data") from e

    async def list_users(self) -> List[LearnerProfile]:
        try:
            result = await self.db.execute(select(User).order_by(User.id))
            return [
                LearnerProfile(user_id=user.id, email=user.email, full_name=user.full_name)
                for user in result.scalars().all()
            ]
        except SQLAlchemyError as e:
            logger.error(f"Failed to list users: {e}")
            raise AttemptRetrievalError("User directory unavailable") from e
