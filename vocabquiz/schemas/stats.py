"""Typed views of the per-user vocabulary stats document.

The document is stored as JSON on ``User.vocabulary_stats``. Loading goes
through these models so a missing or garbled counter is indistinguishable from
zero, and a malformed ``daily``/``session``/``lastAward`` sub-record is dropped
(and later recreated) instead of failing the request.
"""
from __future__ import annotations

import datetime as dt
import math
from typing import Any

from pydantic import Field, ValidationError, field_validator

from vocabquiz.schemas.base import CamelModel


def coerce_count(value: Any) -> int:
    """Return ``value`` as a non-negative integer, treating garbage as zero."""

    if isinstance(value, bool):
        return int(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return max(0, int(number))


def ensure_aware(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value


class DailyStats(CamelModel):
    """Counters for the current calendar day."""

    date: dt.date
    reviews: int = 0
    successes: int = 0
    xp: int = 0
    goal: int = 0

    @field_validator("reviews", "successes", "xp", "goal", mode="before")
    @classmethod
    def _coerce_counter(cls, value: Any) -> int:
        return coerce_count(value)


class SessionStats(CamelModel):
    """Transient counters for a bounded window of continuous activity."""

    started_at: dt.datetime
    last_activity_at: dt.datetime
    xp: int = 0
    combo: int = 0
    max_combo: int = 0
    achievements: list[str] = Field(default_factory=list)

    @field_validator("xp", "combo", "max_combo", mode="before")
    @classmethod
    def _coerce_counter(cls, value: Any) -> int:
        return coerce_count(value)

    @field_validator("started_at", "last_activity_at")
    @classmethod
    def _aware(cls, value: dt.datetime) -> dt.datetime:
        return ensure_aware(value)

    @field_validator("achievements", mode="before")
    @classmethod
    def _achievement_list(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [str(item) for item in value]

    @classmethod
    def fresh(cls, now: dt.datetime) -> "SessionStats":
        return cls(started_at=now, last_activity_at=now)


class LastAward(CamelModel):
    """Most recent XP grant, shown by the client as a toast."""

    type: str
    label: str
    xp: int
    awarded_at: dt.datetime


COUNTER_FIELDS = (
    "xp",
    "streak",
    "longest_streak",
    "combo",
    "max_combo",
    "total_reviews",
    "success_count",
    "failure_count",
    "skip_count",
)


class VocabularyStats(CamelModel):
    """Aggregate gamification state for one learner."""

    xp: int = 0
    streak: int = 0
    longest_streak: int = 0
    combo: int = 0
    max_combo: int = 0
    total_reviews: int = 0
    success_count: int = 0
    failure_count: int = 0
    skip_count: int = 0
    unlocked_decks: list[str] = Field(default_factory=list)
    daily: DailyStats | None = None
    session: SessionStats | None = None
    cooldown_until: dt.datetime | None = None
    last_award: LastAward | None = None

    @field_validator(*COUNTER_FIELDS, mode="before")
    @classmethod
    def _coerce_counter(cls, value: Any) -> int:
        return coerce_count(value)

    @field_validator("unlocked_decks", mode="before")
    @classmethod
    def _deck_list(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [str(item) for item in value]

    @field_validator("daily", "session", "last_award", "cooldown_until", mode="wrap")
    @classmethod
    def _drop_malformed(cls, value: Any, handler: Any) -> Any:
        try:
            return handler(value)
        except ValidationError:
            return None

    @classmethod
    def from_document(cls, document: Any) -> "VocabularyStats":
        """Build stats from the stored JSON document, repairing it as needed."""

        if not isinstance(document, dict):
            return cls()
        return cls.model_validate(document)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class SessionMeta(CamelModel):
    """Session snapshot returned alongside every review response."""

    xp_earned: int = 0
    streak: int = 0
    combo: int = 0
    max_combo: int = 0
    daily_progress: int = 0
    daily_goal: int | None = None
    unlocked_decks: list[str] = Field(default_factory=list)
    achievements: list[str] = Field(default_factory=list)
    cooldown_until: dt.datetime | None = None
    last_award: LastAward | None = None


class ReviewReward(CamelModel):
    """What a single review submission granted."""

    xp: int
    streak: int
    combo: int
    daily_progress: int


class DailyStatRead(CamelModel):
    """One day of persisted activity counters."""

    date: dt.date
    quizzes_completed: int = 0
    words_reviewed: int = 0
    words_mastered: int = 0
    xp_earned: int = 0
    points_earned: int = 0
    streak_active: bool = False
