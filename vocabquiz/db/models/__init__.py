"""Database models package."""
from vocabquiz.db.models.user import User
from vocabquiz.db.models.vocabulary import VocabularyCategory, WordEntry
from vocabquiz.db.models.progress import ReviewLog, VocabularyProgress
from vocabquiz.db.models.analytics import DailyUserStat
from vocabquiz.db.models.game import VocabularyGameSession

__all__ = [
    "User",
    "VocabularyCategory",
    "WordEntry",
    "VocabularyProgress",
    "ReviewLog",
    "DailyUserStat",
    "VocabularyGameSession",
]
