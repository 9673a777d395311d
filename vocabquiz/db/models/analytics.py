"""Daily statistics model."""
import uuid

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from vocabquiz.db.base import Base


class DailyUserStat(Base):
    """Per-user activity counters for a single calendar day."""

    __tablename__ = "daily_user_stats"
    __table_args__ = (UniqueConstraint("user_id", "stat_date", name="uq_daily_user_stats_user_date"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    stat_date = Column(Date, nullable=False, index=True)

    quizzes_completed = Column(Integer, nullable=False, default=0)
    words_reviewed = Column(Integer, nullable=False, default=0)
    words_mastered = Column(Integer, nullable=False, default=0)
    xp_earned = Column(Integer, nullable=False, default=0)
    points_earned = Column(Integer, nullable=False, default=0)
    streak_active = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
