"""API endpoint modules for v1."""

from vocabquiz.api.v1.endpoints import games, stats, vocabulary_review

__all__ = ["games", "stats", "vocabulary_review"]
