"""Vocabulary review orchestration.

Binds the scheduler, the stats aggregator, the daily counters and the audit
log into one transaction per request.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from loguru import logger
from sqlalchemy import case, not_, or_, select, update
from sqlalchemy.orm import Session, joinedload

from vocabquiz.config import settings
from vocabquiz.core.srs import REVIEW_RESULTS, ScheduleState, schedule_review
from vocabquiz.core.srs.sm2 import round_half_up
from vocabquiz.db.models.progress import VocabularyProgress
from vocabquiz.db.models.user import User
from vocabquiz.db.models.vocabulary import VocabularyCategory, WordEntry
from vocabquiz.schemas.review import (
    ProgressRead,
    ReviewEventRead,
    ReviewItem,
    WordEntryRead,
    review_history_payload,
)
from vocabquiz.schemas.stats import ReviewReward, SessionMeta
from vocabquiz.services.daily_stats import DailyStatService
from vocabquiz.services.review_log import ReviewLogEvent, ReviewLogPublisher, review_action
from vocabquiz.services.vocabulary_stats import VocabularyStatsService
from vocabquiz.utils.exceptions import InvalidArgumentError, NotFoundError, commit_or_conflict

REVIEW_MODES = ("learn", "review")

DIFFICULTY_ORDER = case(
    {"easy": 0, "medium": 1, "hard": 2},
    value=WordEntry.difficulty,
    else_=3,
)


@dataclass(slots=True)
class ReviewBatch:
    """Items for the client to study plus the current session snapshot."""

    mode: str
    items: list[ReviewItem] | list[WordEntryRead]
    session: SessionMeta


@dataclass(slots=True)
class ReviewSubmission:
    """Outcome of a submitted review."""

    progress: ProgressRead
    reward: ReviewReward
    session: SessionMeta
    audit_logged: bool


def parse_limit(value: Any) -> int:
    """Default missing or non-positive limits and cap large ones."""

    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return settings.REVIEW_BATCH_DEFAULT_LIMIT
    if parsed <= 0:
        return settings.REVIEW_BATCH_DEFAULT_LIMIT
    return min(parsed, settings.REVIEW_BATCH_MAX_LIMIT)


def resolve_category_id(db: Session, category: str | int | None) -> int | None:
    """Accept a numeric id or a slug; unknown slugs resolve to ``None``."""

    if category is None or category == "":
        return None
    if isinstance(category, int) or str(category).isdigit():
        return int(category)
    return db.scalar(
        select(VocabularyCategory.id).where(VocabularyCategory.slug == str(category))
    )


def progress_view(progress: VocabularyProgress) -> ProgressRead:
    return ProgressRead(
        id=progress.id,
        word_id=progress.word_id,
        category_id=progress.category_id,
        deck=progress.deck or "learn",
        status=progress.status or "new",
        ease_factor=progress.ease_factor,
        interval=progress.interval,
        repetition=progress.repetition,
        last_reviewed_at=progress.last_reviewed_at,
        next_review_at=progress.next_review_at,
        review_history=[
            ReviewEventRead.model_validate(entry)
            for entry in review_history_payload(progress.review_history)
        ],
    )


class VocabularyReviewService:
    """Serve review batches and apply review outcomes for a learner."""

    def __init__(
        self,
        db: Session,
        *,
        stats_service: VocabularyStatsService | None = None,
        daily_stats: DailyStatService | None = None,
        review_log: ReviewLogPublisher | None = None,
    ) -> None:
        self.db = db
        self.stats_service = stats_service or VocabularyStatsService()
        self.daily_stats = daily_stats or DailyStatService(db)
        self.review_log = review_log or ReviewLogPublisher(db)

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------
    def _find_progress(
        self, *, user: User, word: WordEntry, progress_id: uuid.UUID | None
    ) -> VocabularyProgress | None:
        if progress_id is not None:
            progress = self.db.scalars(
                select(VocabularyProgress).where(
                    VocabularyProgress.id == progress_id,
                    VocabularyProgress.user_id == user.id,
                )
            ).first()
            if progress is not None and progress.word_id == word.id:
                return progress
        return self.db.scalars(
            select(VocabularyProgress).where(
                VocabularyProgress.user_id == user.id,
                VocabularyProgress.word_id == word.id,
            )
        ).first()

    def _new_progress(
        self, *, user: User, word: WordEntry, category_id: int | None
    ) -> VocabularyProgress:
        progress = VocabularyProgress(
            user_id=user.id,
            word_id=word.id,
            category_id=category_id or word.category_id,
            deck="learn",
            status="new",
            ease_factor=2.5,
            interval=0,
            repetition=0,
            review_history=[],
        )
        self.db.add(progress)
        return progress

    def _commit(self) -> None:
        commit_or_conflict(self.db)

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------
    def list_due(
        self,
        *,
        user: User,
        mode: str = "learn",
        limit: Any = None,
        category: str | int | None = None,
        reset_session: bool = False,
        now: datetime | None = None,
    ) -> ReviewBatch:
        """Return new words (``learn``) or due progress records (``review``)."""

        if mode not in REVIEW_MODES:
            raise InvalidArgumentError("mode must be learn or review", {"mode": mode})
        now = now or datetime.now(timezone.utc)
        limit = parse_limit(limit)

        snapshot = self.stats_service.load(user, now=now, reset_session=reset_session)
        if snapshot.modified:
            self.stats_service.persist(user, snapshot.stats)
            self._commit()
        session_meta = self.stats_service.session_meta(snapshot.stats)

        category_id = resolve_category_id(self.db, category)
        if mode == "review":
            items: list[Any] = self._due_items(user=user, limit=limit, category_id=category_id, now=now)
        else:
            items = self._learn_items(user=user, limit=limit, category_id=category_id)
        return ReviewBatch(mode=mode, items=items, session=session_meta)

    def _due_items(
        self, *, user: User, limit: int, category_id: int | None, now: datetime
    ) -> list[ReviewItem]:
        stmt = (
            select(VocabularyProgress)
            .options(joinedload(VocabularyProgress.word))
            .where(VocabularyProgress.user_id == user.id)
            .where(VocabularyProgress.status != "mastered")
            .where(
                or_(
                    VocabularyProgress.next_review_at.is_(None),
                    VocabularyProgress.next_review_at <= now,
                )
            )
        )
        if category_id is not None:
            stmt = stmt.where(VocabularyProgress.category_id == category_id)
        stmt = stmt.order_by(
            VocabularyProgress.next_review_at.asc().nullsfirst(),
            VocabularyProgress.created_at.asc(),
        ).limit(limit)

        return [
            ReviewItem(
                progress_id=progress.id,
                word=WordEntryRead.model_validate(progress.word),
                status=progress.status,
                next_review_at=progress.next_review_at,
                last_reviewed_at=progress.last_reviewed_at,
                ease_factor=progress.ease_factor,
                interval=progress.interval,
                repetition=progress.repetition,
            )
            for progress in self.db.scalars(stmt).unique()
        ]

    def _learn_items(
        self, *, user: User, limit: int, category_id: int | None
    ) -> list[WordEntryRead]:
        studied = select(VocabularyProgress.word_id).where(VocabularyProgress.user_id == user.id)
        stmt = (
            select(WordEntry)
            .where(WordEntry.status == "published")
            .where(not_(WordEntry.id.in_(studied)))
        )
        if category_id is not None:
            stmt = stmt.where(WordEntry.category_id == category_id)
        stmt = stmt.order_by(DIFFICULTY_ORDER, WordEntry.term.asc()).limit(limit)
        return [WordEntryRead.model_validate(word) for word in self.db.scalars(stmt).unique()]

    def progress_detail(self, *, user: User, word_id: int) -> ProgressRead:
        """Return the learner's progress for ``word_id`` or its default state."""

        word = self.db.get(WordEntry, word_id)
        if word is None:
            raise NotFoundError("Word not found", {"wordId": word_id})
        progress = self._find_progress(user=user, word=word, progress_id=None)
        if progress is None:
            return ProgressRead(word_id=word.id, category_id=word.category_id)
        return progress_view(progress)

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------
    def submit_review(
        self,
        *,
        user: User,
        word_id: int | None,
        result: str | None,
        progress_id: uuid.UUID | None = None,
        duration_ms: int | None = None,
        category_id: int | None = None,
        now: datetime | None = None,
    ) -> ReviewSubmission:
        """Apply one review outcome and return the updated state."""

        if not word_id or int(word_id) <= 0:
            raise InvalidArgumentError("Valid wordId is required")
        if result not in REVIEW_RESULTS:
            raise InvalidArgumentError(
                "result must be success, failure or skipped", {"result": result}
            )
        if duration_ms is not None and duration_ms < 0:
            raise InvalidArgumentError("durationMs must not be negative")

        word = self.db.get(WordEntry, word_id)
        if word is None:
            raise NotFoundError("Word not found", {"wordId": word_id})

        now = now or datetime.now(timezone.utc)
        snapshot = self.stats_service.load(user, now=now)
        stats = snapshot.stats

        progress = self._find_progress(user=user, word=word, progress_id=progress_id)
        if progress is None:
            progress = self._new_progress(user=user, word=word, category_id=category_id)
        previous_status = progress.status or "new"

        outcome = schedule_review(
            ScheduleState(
                ease_factor=progress.ease_factor,
                interval=progress.interval,
                repetition=progress.repetition,
                status=previous_status,
                next_review_at=progress.next_review_at,
            ),
            result,
            now,
        )
        progress.status = outcome.status
        progress.ease_factor = outcome.ease_factor
        progress.interval = outcome.interval
        progress.repetition = outcome.repetition
        progress.last_reviewed_at = outcome.last_reviewed_at
        progress.next_review_at = outcome.next_review_at
        if not progress.deck:
            progress.deck = "review" if outcome.status == "review" else "learn"
        if progress.category_id is None:
            progress.category_id = word.category_id
        progress.append_review(reviewed_at=now, result=result, duration_ms=duration_ms)

        counts_as_attempt = result != "skipped"
        is_success = result == "success"
        newly_mastered = previous_status != "mastered" and outcome.status == "mastered"

        if counts_as_attempt:
            self.db.execute(
                update(WordEntry)
                .where(WordEntry.id == word.id)
                .values(
                    total_reviews=WordEntry.total_reviews + 1,
                    success_count=WordEntry.success_count + (1 if is_success else 0),
                    fail_count=WordEntry.fail_count + (0 if is_success else 1),
                )
                .execution_options(synchronize_session=False)
            )

        goal = self.stats_service.resolve_daily_goal(user)
        xp_awarded = self.stats_service.apply_review(stats, result=result, now=now, goal=goal)
        self.stats_service.persist(user, stats)
        user.record_study(reviewed=counts_as_attempt, newly_mastered=newly_mastered)

        self.daily_stats.increment(
            user_id=user.id,
            stat_date=self.stats_service.local_date(now),
            streak_active=stats.streak > 0,
            words_reviewed=1 if counts_as_attempt else 0,
            words_mastered=1 if newly_mastered else 0,
            xp_earned=xp_awarded,
            points_earned=xp_awarded,
        )

        self._commit()
        self.daily_stats.invalidate(user.id)
        logger.info(
            "Vocabulary review recorded",
            user_id=str(user.id),
            word_id=word.id,
            result=result,
            status=outcome.status,
            interval=outcome.interval,
        )

        audit_logged = self.review_log.publish(
            ReviewLogEvent(
                user_id=user.id,
                word_id=word.id,
                action=review_action(result, previous_status, outcome.status),
                before_status=previous_status,
                after_status=outcome.status,
                interval_days=outcome.interval,
                ease_factor=outcome.ease_factor,
                correct=is_success,
                time_spent_sec=round_half_up(duration_ms / 1000) if duration_ms else 0,
                reviewed_at=now,
            )
        )

        session_meta = self.stats_service.session_meta(stats)
        reward = ReviewReward(
            xp=xp_awarded,
            streak=stats.streak,
            combo=stats.session.combo if stats.session else 0,
            daily_progress=stats.daily.reviews if stats.daily else 0,
        )
        return ReviewSubmission(
            progress=progress_view(progress),
            reward=reward,
            session=session_meta,
            audit_logged=audit_logged,
        )
