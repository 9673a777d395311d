"""Service layer package."""

from vocabquiz.services.daily_stats import DailyStatService
from vocabquiz.services.flashcard_battle import FlashcardBattleService
from vocabquiz.services.review import VocabularyReviewService
from vocabquiz.services.review_log import ReviewLogPublisher
from vocabquiz.services.speed_challenge import SpeedChallengeService
from vocabquiz.services.vocabulary_stats import VocabularyStatsService
from vocabquiz.services.word_hunt import WordHuntService

__all__ = [
    "DailyStatService",
    "FlashcardBattleService",
    "ReviewLogPublisher",
    "SpeedChallengeService",
    "VocabularyReviewService",
    "VocabularyStatsService",
    "WordHuntService",
]
