"""Celery tasks for mini-game housekeeping."""
from __future__ import annotations

from datetime import datetime, timezone

from loguru import logger

from vocabquiz.celery_app import celery_app
from vocabquiz.db.session import SessionLocal
from vocabquiz.services.games import expire_stale_sessions


@celery_app.task(name="vocabquiz.tasks.games.expire_game_sessions")
def expire_game_sessions() -> dict[str, int]:
    """Mark active game sessions past their expiry as expired (periodic task)."""

    db = SessionLocal()
    try:
        expired = expire_stale_sessions(db, now=datetime.now(timezone.utc))
        db.commit()
        logger.info("Expired stale game sessions", expired=expired)
        return {"expired": expired}
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
