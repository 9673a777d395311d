"""SM-2 style spaced repetition scheduler for vocabulary reviews.

The scheduler is a pure function of the stored progress state and the review
result. It never touches the database and never raises for results inside
``REVIEW_RESULTS``; callers are expected to validate input first.
"""
from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass

MIN_EASE_FACTOR = 1.3
MAX_EASE_FACTOR = 3.0
DEFAULT_EASE_FACTOR = 2.5

EASE_BONUS = 0.05
EASE_PENALTY = 0.2

FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6
LAPSE_INTERVAL_DAYS = 1

REVIEW_THRESHOLD_DAYS = 7
MASTERED_THRESHOLD_DAYS = 30

REVIEW_RESULTS = ("success", "failure", "skipped")


@dataclass(slots=True)
class ScheduleState:
    """Spaced-repetition fields of a progress record."""

    ease_factor: float = DEFAULT_EASE_FACTOR
    interval: int = 0
    repetition: int = 0
    status: str = "new"
    next_review_at: dt.datetime | None = None


@dataclass(slots=True)
class ScheduleOutcome:
    """Next scheduling state after a review."""

    ease_factor: float
    interval: int
    repetition: int
    status: str
    last_reviewed_at: dt.datetime
    next_review_at: dt.datetime


def clamp_ease(ease_factor: float | None) -> float:
    if ease_factor is None or not math.isfinite(ease_factor):
        ease_factor = DEFAULT_EASE_FACTOR
    return max(MIN_EASE_FACTOR, min(MAX_EASE_FACTOR, ease_factor))


def round_half_up(value: float) -> int:
    """Round like ``Math.round``: halves go up instead of to even."""

    return int(math.floor(value + 0.5))


def status_for_interval(interval_days: int) -> str:
    """Map an interval to the learner-facing status."""

    if interval_days >= MASTERED_THRESHOLD_DAYS:
        return "mastered"
    if interval_days >= REVIEW_THRESHOLD_DAYS:
        return "review"
    return "learning"


def _success(state: ScheduleState) -> tuple[float, int, int, str]:
    ease = clamp_ease(state.ease_factor)
    repetition = max(0, state.repetition or 0)
    if repetition == 0:
        interval = FIRST_INTERVAL_DAYS
    elif repetition == 1:
        interval = SECOND_INTERVAL_DAYS
    else:
        interval = round_half_up(max(0, state.interval or 0) * ease)
    return clamp_ease(ease + EASE_BONUS), interval, repetition + 1, status_for_interval(interval)


def _failure(state: ScheduleState) -> tuple[float, int, int, str]:
    ease = clamp_ease(state.ease_factor)
    repetition = max(0, (state.repetition or 0) - 1)
    return clamp_ease(ease - EASE_PENALTY), LAPSE_INTERVAL_DAYS, repetition, "learning"


def schedule_review(state: ScheduleState, result: str, now: dt.datetime) -> ScheduleOutcome:
    """Return the next schedule for ``state`` given a review ``result``.

    ``skipped`` leaves ease, interval, repetition and status untouched and only
    refreshes ``last_reviewed_at``; the previous due date is echoed back (or
    ``now`` when the record was never scheduled).
    """

    if result not in REVIEW_RESULTS:
        raise ValueError(f"Unknown review result: {result}")

    if result == "skipped":
        return ScheduleOutcome(
            ease_factor=state.ease_factor,
            interval=state.interval,
            repetition=state.repetition,
            status=state.status,
            last_reviewed_at=now,
            next_review_at=state.next_review_at or now,
        )

    if result == "success":
        ease, interval, repetition, status = _success(state)
    else:
        ease, interval, repetition, status = _failure(state)

    return ScheduleOutcome(
        ease_factor=round(ease, 2),
        interval=interval,
        repetition=repetition,
        status=status,
        last_reviewed_at=now,
        next_review_at=now + dt.timedelta(days=interval),
    )
