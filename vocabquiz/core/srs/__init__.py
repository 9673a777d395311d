"""Spaced repetition scheduling."""
from vocabquiz.core.srs.sm2 import (
    DEFAULT_EASE_FACTOR,
    MAX_EASE_FACTOR,
    MIN_EASE_FACTOR,
    REVIEW_RESULTS,
    ScheduleOutcome,
    ScheduleState,
    schedule_review,
    status_for_interval,
)

__all__ = [
    "DEFAULT_EASE_FACTOR",
    "MAX_EASE_FACTOR",
    "MIN_EASE_FACTOR",
    "REVIEW_RESULTS",
    "ScheduleOutcome",
    "ScheduleState",
    "schedule_review",
    "status_for_interval",
]
