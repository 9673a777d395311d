"""Celery application instance and configuration."""
from __future__ import annotations

from celery import Celery
from celery.schedules import crontab

from vocabquiz.config import settings

_DEFAULT_BROKER = "redis://localhost:6379/0"


def _resolve_broker_url() -> str:
    if settings.CELERY_BROKER_URL is not None:
        return str(settings.CELERY_BROKER_URL)
    if settings.REDIS_URL is not None:
        return str(settings.REDIS_URL)
    return _DEFAULT_BROKER


def _resolve_result_backend() -> str:
    if settings.CELERY_RESULT_BACKEND is not None:
        return str(settings.CELERY_RESULT_BACKEND)
    return _resolve_broker_url()


celery_app = Celery(
    "vocabquiz",
    broker=_resolve_broker_url(),
    backend=_resolve_result_backend(),
    include=[
        "vocabquiz.tasks.review_logs",
        "vocabquiz.tasks.games",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.STATS_TIMEZONE,
    enable_utc=True,
    task_track_started=True,
    task_time_limit=5 * 60,
    task_soft_time_limit=4 * 60,
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
)

celery_app.conf.beat_schedule = {
    "expire-game-sessions": {
        "task": "vocabquiz.tasks.games.expire_game_sessions",
        "schedule": crontab(minute="*/15"),
    },
}

__all__ = ["celery_app"]
