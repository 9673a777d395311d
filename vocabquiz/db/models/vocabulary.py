"""Vocabulary catalog models."""
import re

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func

from vocabquiz.db.base import Base
from vocabquiz.db.types import StringList

WORD_LEVELS = ("A1", "A2", "B1", "B2", "C1", "C2", "unknown")
WORD_DIFFICULTIES = ("easy", "medium", "hard")
WORD_STATUSES = ("draft", "published", "archived")

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_term(term: str) -> str:
    """Return the lookup form of a term: trimmed, lower-cased, single-spaced."""

    return _WHITESPACE_RE.sub(" ", term.strip().lower())


class VocabularyCategory(Base):
    """Named grouping of catalog words."""

    __tablename__ = "vocabulary_categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    color = Column(String(20))

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<VocabularyCategory slug={self.slug!r}>"


class WordEntry(Base):
    """Represents a vocabulary word in the catalog."""

    __tablename__ = "word_entries"
    __table_args__ = (
        UniqueConstraint("normalized_term", "language", name="uq_word_entries_term_language"),
    )

    id = Column(Integer, primary_key=True)
    term = Column(String(255), nullable=False)
    normalized_term = Column(String(255), nullable=False, index=True)
    language = Column(String(10), nullable=False, default="en")

    translation = Column(Text)
    definition = Column(Text)
    examples = Column(StringList, nullable=True)
    notes = Column(Text)

    level = Column(String(10), nullable=False, default="unknown")
    difficulty = Column(String(10), nullable=False, default="easy", index=True)
    status = Column(String(20), nullable=False, default="draft", index=True)

    category_id = Column(
        Integer, ForeignKey("vocabulary_categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    tags = Column(StringList, nullable=True)

    # Catalog-wide counters, incremented atomically by the review flow
    total_reviews = Column(Integer, nullable=False, default=0)
    success_count = Column(Integer, nullable=False, default=0)
    fail_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    category = relationship("VocabularyCategory", lazy="joined")

    @validates("term")
    def _validate_term(self, key: str, value: str) -> str:
        if value is None or not str(value).strip():
            raise ValueError("term must not be empty")
        value = str(value).strip()
        self.normalized_term = normalize_term(value)
        return value

    @validates("level")
    def _validate_level(self, key: str, value: str) -> str:
        if value not in WORD_LEVELS:
            raise ValueError(f"Unknown level: {value}")
        return value

    @validates("difficulty")
    def _validate_difficulty(self, key: str, value: str) -> str:
        if value not in WORD_DIFFICULTIES:
            raise ValueError(f"Unknown difficulty: {value}")
        return value

    @validates("status")
    def _validate_status(self, key: str, value: str) -> str:
        if value not in WORD_STATUSES:
            raise ValueError(f"Unknown status: {value}")
        return value

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<WordEntry term={self.term!r} language={self.language!r}>"
