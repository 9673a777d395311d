"""Celery outbox task writing review audit entries."""
from __future__ import annotations

from typing import Any

from loguru import logger
from sqlalchemy.exc import OperationalError

from vocabquiz.celery_app import celery_app
from vocabquiz.db.session import SessionLocal
from vocabquiz.services.review_log import ReviewLogEvent, write_review_log


@celery_app.task(
    name="vocabquiz.tasks.review_logs.record_review_log",
    autoretry_for=(OperationalError,),
    retry_backoff=True,
    max_retries=5,
)
def record_review_log(payload: dict[str, Any]) -> str:
    """Persist one audit entry produced by a committed review."""

    event = ReviewLogEvent.from_payload(payload)
    db = SessionLocal()
    try:
        entry = write_review_log(db, event)
        logger.debug(
            "Review log written",
            user_id=str(event.user_id),
            word_id=event.word_id,
            action=event.action,
        )
        return str(entry.id)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
