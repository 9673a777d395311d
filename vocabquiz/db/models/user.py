"""User database model."""
import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from vocabquiz.db.base import Base
from vocabquiz.db.types import JSONDocument


class User(Base):
    """Represents an application user.

    Credentials live with the identity provider; this record only holds what
    the review subsystem reads and mutates.
    """

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255))

    # Settings
    daily_vocabulary_goal = Column(Integer, nullable=True)

    # Gamification document, see ``vocabquiz.schemas.stats.VocabularyStats``
    vocabulary_stats = Column(JSONDocument, nullable=True)

    # Study totals
    total_reviews = Column(Integer, default=0, nullable=False)
    words_mastered = Column(Integer, default=0, nullable=False)

    version_id = Column(Integer, nullable=False, default=1)

    # Metadata
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    is_active = Column(Boolean, default=True)

    __mapper_args__ = {"version_id_col": version_id}

    def record_study(self, *, reviewed: bool, newly_mastered: bool) -> None:
        """Bump lifetime study counters after a review."""

        if reviewed:
            self.total_reviews = (self.total_reviews or 0) + 1
        if newly_mastered:
            self.words_mastered = (self.words_mastered or 0) + 1
