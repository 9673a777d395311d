"""Pydantic schemas package."""

from vocabquiz.schemas.auth import TokenPayload
from vocabquiz.schemas.game import (
    BattleAnswer,
    BattleCard,
    BattleHp,
    BattleRound,
    FlashcardBattleRequest,
    FlashcardBattleResponse,
    FlashcardBattleSessionRead,
    FlashcardBattleStartResponse,
    GameAnswer,
    GameCard,
    GameResult,
    GameSessionRead,
    GridPosition,
    SpeedChallengeRequest,
    SpeedChallengeResponse,
    SpeedChallengeStartResponse,
    WordHuntRequest,
    WordHuntResponse,
    WordHuntSessionRead,
    WordHuntStartResponse,
    WordHuntWord,
)
from vocabquiz.schemas.review import (
    CategoryRead,
    ProgressRead,
    ReviewBatchResponse,
    ReviewEventRead,
    ReviewItem,
    ReviewSubmitRequest,
    ReviewSubmitResponse,
    WordEntryRead,
)
from vocabquiz.schemas.stats import (
    DailyStatRead,
    DailyStats,
    LastAward,
    ReviewReward,
    SessionMeta,
    SessionStats,
    VocabularyStats,
)

__all__ = [
    "TokenPayload",
    "BattleAnswer",
    "BattleCard",
    "BattleHp",
    "BattleRound",
    "FlashcardBattleRequest",
    "FlashcardBattleResponse",
    "FlashcardBattleSessionRead",
    "FlashcardBattleStartResponse",
    "GameAnswer",
    "GameCard",
    "GameResult",
    "GameSessionRead",
    "GridPosition",
    "SpeedChallengeRequest",
    "SpeedChallengeResponse",
    "SpeedChallengeStartResponse",
    "WordHuntRequest",
    "WordHuntResponse",
    "WordHuntSessionRead",
    "WordHuntStartResponse",
    "WordHuntWord",
    "CategoryRead",
    "ProgressRead",
    "ReviewBatchResponse",
    "ReviewEventRead",
    "ReviewItem",
    "ReviewSubmitRequest",
    "ReviewSubmitResponse",
    "WordEntryRead",
    "DailyStatRead",
    "DailyStats",
    "LastAward",
    "ReviewReward",
    "SessionMeta",
    "SessionStats",
    "VocabularyStats",
]
