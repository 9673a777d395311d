"""Shared plumbing for vocabulary mini-games.

Every game stores its state on a ``VocabularyGameSession`` row and feeds each
answer through ``VocabularyStatsService.apply_game_result`` plus the daily
counters, so XP from games and reviews lands in the same place.
"""
from __future__ import annotations

import random
import uuid
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from vocabquiz.db.models.game import VocabularyGameSession, empty_game_result
from vocabquiz.db.models.user import User
from vocabquiz.schemas.stats import SessionMeta, ensure_aware
from vocabquiz.services.daily_stats import DailyStatService
from vocabquiz.services.vocabulary_stats import VocabularyStatsService
from vocabquiz.utils.exceptions import NotFoundError, commit_or_conflict


def expire_stale_sessions(db: Session, *, now: datetime) -> int:
    """Mark active sessions past ``expires_at`` as expired; return the count."""

    outcome = db.execute(
        update(VocabularyGameSession)
        .where(VocabularyGameSession.status == "active")
        .where(VocabularyGameSession.expires_at < now)
        .values(status="expired")
        .execution_options(synchronize_session=False)
    )
    return outcome.rowcount or 0


def score_answer(result: dict[str, int] | None, *, correct: bool, score: int, xp: int) -> dict[str, int]:
    """Return updated result counters for one answer."""

    result = {**empty_game_result(), **(result or {})}
    if correct:
        result["correct"] += 1
        result["score"] += score
        result["combo"] += 1
        result["maxCombo"] = max(result["maxCombo"], result["combo"])
        result["xpEarned"] += xp
    else:
        result["incorrect"] += 1
        result["combo"] = 0
    return result


class GameService:
    """Base class for a mini-game bound to one ``game_type``."""

    game_type: str

    def __init__(
        self,
        db: Session,
        *,
        stats_service: VocabularyStatsService | None = None,
        daily_stats: DailyStatService | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.db = db
        self.stats_service = stats_service or VocabularyStatsService()
        self.daily_stats = daily_stats or DailyStatService(db)
        self.rng = rng or random.Random()

    def _commit(self) -> None:
        commit_or_conflict(self.db)

    def _opening_meta(self, user: User, now: datetime) -> SessionMeta:
        snapshot = self.stats_service.load(user, now=now)
        if snapshot.modified:
            self.stats_service.persist(user, snapshot.stats)
        return self.stats_service.session_meta(snapshot.stats)

    def _get_session(self, *, user: User, session_id: uuid.UUID) -> VocabularyGameSession:
        session = self.db.scalars(
            select(VocabularyGameSession).where(
                VocabularyGameSession.id == session_id,
                VocabularyGameSession.user_id == user.id,
                VocabularyGameSession.game_type == self.game_type,
            )
        ).first()
        if session is None:
            raise NotFoundError("Game session not found", {"sessionId": str(session_id)})
        return session

    def is_playable(self, session: VocabularyGameSession, now: datetime) -> bool:
        return session.status == "active" and ensure_aware(session.expires_at) > now

    def _close_if_unplayable(self, session: VocabularyGameSession, now: datetime) -> bool:
        """Return ``True`` when the session can no longer be played."""

        if self.is_playable(session, now):
            return False
        if session.status == "active":
            session.status = "expired"
            self._commit()
        return True

    def _new_session(
        self, *, user: User, now: datetime, lifetime: timedelta, payload: dict[str, Any]
    ) -> VocabularyGameSession:
        session = VocabularyGameSession(
            user_id=user.id,
            game_type=self.game_type,
            status="active",
            started_at=now,
            expires_at=now + lifetime,
            payload=payload,
            result=empty_game_result(),
            events=[],
        )
        self.db.add(session)
        return session

    def _record_play(
        self,
        user: User,
        *,
        now: datetime,
        xp: int,
        correct: bool,
        points: int = 0,
        quizzes_completed: int = 0,
    ) -> SessionMeta:
        """Feed one answer into the learner stats and the daily counters."""

        snapshot = self.stats_service.load(user, now=now)
        self.stats_service.apply_game_result(
            snapshot.stats,
            now=now,
            xp=xp,
            correct=correct,
            goal=self.stats_service.resolve_daily_goal(user),
        )
        self.stats_service.persist(user, snapshot.stats)
        if xp or points or quizzes_completed:
            self.daily_stats.increment(
                user_id=user.id,
                stat_date=self.stats_service.local_date(now),
                streak_active=snapshot.stats.streak > 0,
                xp_earned=xp,
                points_earned=points,
                quizzes_completed=quizzes_completed,
            )
        return self.stats_service.session_meta(snapshot.stats)

    def _finish_commit(self, user: User) -> None:
        self._commit()
        self.daily_stats.invalidate(user.id)
