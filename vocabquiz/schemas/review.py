"""Pydantic models for the vocabulary review endpoints."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import Field, field_validator

from vocabquiz.schemas.base import CamelModel
from vocabquiz.schemas.stats import ReviewReward, SessionMeta

ReviewResult = Literal["success", "failure", "skipped"]
ReviewMode = Literal["learn", "review"]


class CategoryRead(CamelModel):
    id: int
    name: str
    slug: str
    color: str | None = None


class WordEntryRead(CamelModel):
    """Catalog entry as shown to learners."""

    id: int
    term: str
    translation: str | None = None
    definition: str | None = None
    language: str
    examples: list[str] = Field(default_factory=list)
    level: str
    difficulty: str
    status: str
    tags: list[str] = Field(default_factory=list)
    category: CategoryRead | None = None

    @field_validator("examples", "tags", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class ReviewItem(CamelModel):
    """Due progress record in a review batch."""

    progress_id: uuid.UUID
    word: WordEntryRead
    status: str
    next_review_at: datetime | None = None
    last_reviewed_at: datetime | None = None
    ease_factor: float
    interval: int
    repetition: int


class ReviewBatchResponse(CamelModel):
    mode: ReviewMode
    items: list[ReviewItem] | list[WordEntryRead]
    session: SessionMeta


class ReviewSubmitRequest(CamelModel):
    """Payload for submitting a review outcome."""

    word_id: int = Field(..., ge=1)
    result: ReviewResult
    progress_id: uuid.UUID | None = None
    duration_ms: int | None = Field(None, ge=0)
    category_id: int | None = Field(None, ge=1)


class ReviewEventRead(CamelModel):
    reviewed_at: datetime
    result: str
    ease_factor: float | None = None
    interval: int | None = None
    duration_ms: int | None = None


class ProgressRead(CamelModel):
    """A learner's scheduling state for one word."""

    id: uuid.UUID | None = None
    word_id: int
    category_id: int | None = None
    deck: str = "learn"
    status: str = "new"
    ease_factor: float = 2.5
    interval: int = 0
    repetition: int = 0
    last_reviewed_at: datetime | None = None
    next_review_at: datetime | None = None
    review_history: list[ReviewEventRead] = Field(default_factory=list)


class ReviewSubmitResponse(CamelModel):
    success: bool = True
    progress: ProgressRead
    reward: ReviewReward
    session: SessionMeta
    meta: SessionMeta


def review_history_payload(history: Any) -> list[dict[str, Any]]:
    """Stored history entries, skipping anything that is not a mapping."""

    if not isinstance(history, list):
        return []
    return [entry for entry in history if isinstance(entry, dict)]
