"""Pydantic models for vocabulary mini-games."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import Field

from vocabquiz.schemas.base import CamelModel
from vocabquiz.schemas.review import CategoryRead
from vocabquiz.schemas.stats import SessionMeta


class GameCard(CamelModel):
    id: str
    word_id: int
    term: str
    translation: str
    level: str | None = None
    category: CategoryRead | None = None
    options: list[str] = Field(default_factory=list)


class GameAnswer(CamelModel):
    card_id: str
    answer: str | None = None
    is_correct: bool
    at: datetime


class GameResult(CamelModel):
    correct: int = 0
    incorrect: int = 0
    skipped: int = 0
    score: int = 0
    combo: int = 0
    max_combo: int = 0
    xp_earned: int = 0


class GameSessionRead(CamelModel):
    """Client view of a game session."""

    session_id: uuid.UUID
    status: str
    cards: list[GameCard] = Field(default_factory=list)
    answered: list[GameAnswer] = Field(default_factory=list)
    duration_ms: int
    started_at: datetime
    expires_at: datetime
    completed_at: datetime | None = None
    result: GameResult


class SpeedChallengeStartResponse(CamelModel):
    mode: Literal["speed-challenge"] = "speed-challenge"
    session: GameSessionRead | None = None
    session_meta: SessionMeta | None = None
    message: str | None = None


class SpeedChallengeRequest(CamelModel):
    """Answer a card or finish the run."""

    session_id: uuid.UUID
    card_id: str | None = None
    answer: str | None = None
    finish: bool = False
    elapsed_ms: int | None = Field(None, ge=0)


class SpeedChallengeResponse(CamelModel):
    mode: Literal["speed-challenge"] = "speed-challenge"
    session: GameSessionRead
    success: bool | None = None
    remaining: int | None = None
    completed: bool = False
    already_answered: bool = False
    session_meta: SessionMeta | None = None


class BattleCard(CamelModel):
    """One side of a battle round; ``translation`` is hidden until the round is played."""

    id: str
    word_id: int
    term: str
    translation: str | None = None


class BattleRound(CamelModel):
    id: str
    player: BattleCard
    opponent: BattleCard


class BattleAnswer(CamelModel):
    round_id: str
    answer: str | None = None
    is_correct: bool
    at: datetime


class BattleHp(CamelModel):
    player: int = 100
    opponent: int = 100


class FlashcardBattleSessionRead(CamelModel):
    session_id: uuid.UUID
    status: str
    rounds: list[BattleRound] = Field(default_factory=list)
    answers: list[BattleAnswer] = Field(default_factory=list)
    hp: BattleHp = Field(default_factory=BattleHp)
    current_round: int = 0
    total_rounds: int = 0
    victory: bool | None = None
    started_at: datetime
    expires_at: datetime
    completed_at: datetime | None = None
    result: GameResult


class FlashcardBattleStartResponse(CamelModel):
    mode: Literal["flashcard-battle"] = "flashcard-battle"
    session: FlashcardBattleSessionRead | None = None
    session_meta: SessionMeta | None = None
    message: str | None = None


class FlashcardBattleRequest(CamelModel):
    session_id: uuid.UUID
    round_id: str | None = None
    answer: str | None = None


class FlashcardBattleResponse(CamelModel):
    mode: Literal["flashcard-battle"] = "flashcard-battle"
    session: FlashcardBattleSessionRead
    success: bool | None = None
    completed: bool = False
    already_answered: bool = False
    session_meta: SessionMeta | None = None


class GridPosition(CamelModel):
    row: int = Field(ge=0)
    col: int = Field(ge=0)


class WordHuntWord(CamelModel):
    """A hidden word; its solution is only shown once found or after the game ends."""

    id: str
    term: str
    length: int
    translation: str | None = None
    orientation: Literal["horizontal", "vertical"] | None = None
    positions: list[GridPosition] = Field(default_factory=list)


class WordHuntSessionRead(CamelModel):
    session_id: uuid.UUID
    status: str
    board: list[list[str]] = Field(default_factory=list)
    words: list[WordHuntWord] = Field(default_factory=list)
    found_word_ids: list[str] = Field(default_factory=list)
    lives_remaining: int
    started_at: datetime
    expires_at: datetime
    completed_at: datetime | None = None
    result: GameResult


class WordHuntStartResponse(CamelModel):
    mode: Literal["word-hunt"] = "word-hunt"
    session: WordHuntSessionRead | None = None
    session_meta: SessionMeta | None = None
    message: str | None = None


class WordHuntRequest(CamelModel):
    """Claim a word by the grid cells it occupies, in reading order."""

    session_id: uuid.UUID
    word_id: str | None = None
    positions: list[GridPosition] = Field(default_factory=list)


class WordHuntResponse(CamelModel):
    mode: Literal["word-hunt"] = "word-hunt"
    session: WordHuntSessionRead
    success: bool | None = None
    completed: bool = False
    already_found: bool = False
    remaining_lives: int | None = None
    session_meta: SessionMeta | None = None
