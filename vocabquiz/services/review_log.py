"""Best-effort audit trail for review actions.

Audit entries are published only after the review itself has committed and
live in their own failure domain: a failed write is logged and reported back
as ``False``, never raised into the review flow.
"""
from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Callable

from loguru import logger
from sqlalchemy.orm import Session

from vocabquiz.config import settings
from vocabquiz.db.models.progress import ReviewLog


@dataclass(slots=True)
class ReviewLogEvent:
    """Audit payload describing one review submission."""

    user_id: uuid.UUID
    word_id: int
    action: str
    before_status: str
    after_status: str
    interval_days: int
    ease_factor: float
    correct: bool
    time_spent_sec: int
    reviewed_at: datetime

    def to_payload(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["user_id"] = str(self.user_id)
        payload["reviewed_at"] = self.reviewed_at.isoformat()
        return payload

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ReviewLogEvent":
        data = dict(payload)
        data["user_id"] = uuid.UUID(str(data["user_id"]))
        data["reviewed_at"] = datetime.fromisoformat(data["reviewed_at"])
        return cls(**data)


def review_action(result: str, before_status: str, after_status: str) -> str:
    """Classify a review for the audit log."""

    if result == "success":
        if after_status == "mastered" and before_status != "mastered":
            return "promote"
        return "review"
    if result == "failure":
        return "demote"
    return "review"


def write_review_log(db: Session, event: ReviewLogEvent) -> ReviewLog:
    """Insert the audit row and commit it in its own transaction."""

    entry = ReviewLog(
        user_id=event.user_id,
        item_type="word",
        ref_id=event.word_id,
        action=event.action,
        before_status=event.before_status,
        after_status=event.after_status,
        interval_days=event.interval_days,
        ease_factor=event.ease_factor,
        correct=event.correct,
        time_spent_sec=event.time_spent_sec,
        reviewed_at=event.reviewed_at,
    )
    db.add(entry)
    db.commit()
    return entry


class ReviewLogPublisher:
    """Emit review audit events inline or through the Celery outbox task."""

    def __init__(
        self,
        db: Session,
        *,
        dispatch_async: bool | None = None,
        writer: Callable[[Session, ReviewLogEvent], ReviewLog] = write_review_log,
    ) -> None:
        self.db = db
        self.dispatch_async = settings.REVIEW_LOG_ASYNC if dispatch_async is None else dispatch_async
        self.writer = writer

    def publish(self, event: ReviewLogEvent) -> bool:
        """Record ``event``; return ``False`` instead of raising on failure."""

        if self.dispatch_async:
            return self._dispatch(event)
        try:
            self.writer(self.db, event)
        except Exception:  # the review is already committed
            self.db.rollback()
            logger.exception(
                "Review log write failed", user_id=str(event.user_id), word_id=event.word_id
            )
            return False
        return True

    def _dispatch(self, event: ReviewLogEvent) -> bool:
        from vocabquiz.tasks.review_logs import record_review_log

        try:
            record_review_log.delay(event.to_payload())
        except Exception:  # broker errors come from several client libraries
            logger.exception(
                "Review log dispatch failed", user_id=str(event.user_id), word_id=event.word_id
            )
            return False
        return True
