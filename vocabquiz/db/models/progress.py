"""Vocabulary progress models."""
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func

from vocabquiz.db.base import Base
from vocabquiz.db.types import JSONDocument

PROGRESS_STATUSES = ("new", "learning", "review", "mastered")
PROGRESS_DECKS = ("learn", "review", "custom")
REVIEW_LOG_ACTIONS = ("review", "promote", "demote", "master")


class VocabularyProgress(Base):
    """Track per-user spaced-repetition state for a catalog word."""

    __tablename__ = "vocabulary_progress"
    __table_args__ = (UniqueConstraint("user_id", "word_id", name="uq_vocabulary_progress_user_word"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    word_id = Column(
        Integer, ForeignKey("word_entries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category_id = Column(
        Integer, ForeignKey("vocabulary_categories.id", ondelete="SET NULL"), nullable=True, index=True
    )

    deck = Column(String(20), nullable=False, default="learn")
    status = Column(String(20), nullable=False, default="new")
    ease_factor = Column(Float, nullable=False, default=2.5)
    interval = Column("interval_days", Integer, nullable=False, default=0)
    repetition = Column(Integer, nullable=False, default=0)

    last_reviewed_at = Column(DateTime(timezone=True))
    next_review_at = Column(DateTime(timezone=True), index=True)

    review_history = Column(JSONDocument, nullable=False, default=list)

    version_id = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    word = relationship("WordEntry", lazy="joined")

    __mapper_args__ = {"version_id_col": version_id}

    @validates("status")
    def _validate_status(self, key: str, value: str) -> str:
        if value not in PROGRESS_STATUSES:
            raise ValueError(f"Unknown progress status: {value}")
        return value

    @validates("deck")
    def _validate_deck(self, key: str, value: str) -> str:
        if value not in PROGRESS_DECKS:
            raise ValueError(f"Unknown deck: {value}")
        return value

    def append_review(
        self,
        *,
        reviewed_at: datetime,
        result: str,
        duration_ms: int | None,
    ) -> dict[str, Any]:
        """Append an entry to the review history and return it."""

        entry = {
            "reviewedAt": reviewed_at.isoformat(),
            "result": result,
            "easeFactor": self.ease_factor,
            "interval": self.interval,
            "durationMs": duration_ms,
        }
        # Reassign so the JSON column is flagged dirty
        self.review_history = [*(self.review_history or []), entry]
        return entry


class ReviewLog(Base):
    """Append-only audit entry for a single review action."""

    __tablename__ = "review_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_type = Column(String(20), nullable=False, default="word")
    ref_id = Column(Integer, nullable=False, index=True)
    action = Column(String(20), nullable=False)
    before_status = Column(String(20))
    after_status = Column(String(20))
    interval_days = Column(Integer)
    ease_factor = Column(Float)
    correct = Column(Boolean, nullable=False, default=False)
    time_spent_sec = Column(Integer, nullable=False, default=0)
    reviewed_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @validates("action")
    def _validate_action(self, key: str, value: str) -> str:
        if value not in REVIEW_LOG_ACTIONS:
            raise ValueError(f"Unknown review log action: {value}")
        return value
