"""Celery tasks package."""

from vocabquiz.tasks import games, review_logs

__all__ = ["games", "review_logs"]
