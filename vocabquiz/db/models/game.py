"""Mini-game session models."""
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import validates
from sqlalchemy.sql import func

from vocabquiz.db.base import Base
from vocabquiz.db.types import JSONDocument

GAME_TYPES = ("speed-challenge", "flashcard-battle", "word-hunt")
GAME_STATUSES = ("active", "completed", "expired")


def empty_game_result() -> dict[str, int]:
    return {
        "correct": 0,
        "incorrect": 0,
        "skipped": 0,
        "score": 0,
        "combo": 0,
        "maxCombo": 0,
        "xpEarned": 0,
    }


class VocabularyGameSession(Base):
    """A single play-through of a vocabulary mini-game."""

    __tablename__ = "vocabulary_game_sessions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    game_type = Column(String(30), nullable=False)
    status = Column(String(20), nullable=False, default="active", index=True)

    started_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    completed_at = Column(DateTime(timezone=True))

    payload = Column(JSONDocument, nullable=False, default=dict)
    result = Column(JSONDocument, nullable=False, default=empty_game_result)
    events = Column(JSONDocument, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @validates("game_type")
    def _validate_game_type(self, key: str, value: str) -> str:
        if value not in GAME_TYPES:
            raise ValueError(f"Unknown game type: {value}")
        return value

    @validates("status")
    def _validate_status(self, key: str, value: str) -> str:
        if value not in GAME_STATUSES:
            raise ValueError(f"Unknown game status: {value}")
        return value

    def add_event(self, event_type: str, at: datetime, **data: Any) -> None:
        """Append an event; the list is reassigned so the change is tracked."""

        self.events = [
            *(self.events or []),
            {"type": event_type, "at": at.isoformat(), "data": data},
        ]
