"""Endpoints for vocabulary mini-games."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from vocabquiz.api.deps import get_current_user, get_db
from vocabquiz.db.models.user import User
from vocabquiz.schemas import (
    FlashcardBattleRequest,
    FlashcardBattleResponse,
    FlashcardBattleStartResponse,
    SpeedChallengeRequest,
    SpeedChallengeResponse,
    SpeedChallengeStartResponse,
    WordHuntRequest,
    WordHuntResponse,
    WordHuntStartResponse,
)
from vocabquiz.services.flashcard_battle import FlashcardBattleService, serialize_battle
from vocabquiz.services.speed_challenge import SpeedChallengeService, serialize_session
from vocabquiz.services.word_hunt import WordHuntService, serialize_hunt

router = APIRouter(prefix="/vocabulary/games", tags=["games"])


@router.get("/speed-challenge", response_model=SpeedChallengeStartResponse)
def start_speed_challenge(
    *,
    category: str | None = Query(None, description="Category id or slug"),
    limit: int | None = Query(None, description="Number of cards (5-25)"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SpeedChallengeStartResponse:
    """Start a new speed challenge from due and catalog words."""

    service = SpeedChallengeService(db)
    session, meta = service.start(user=current_user, category=category, limit=limit)
    if session is None:
        return SpeedChallengeStartResponse(session_meta=meta, message="Not enough words to play")
    return SpeedChallengeStartResponse(session=serialize_session(session), session_meta=meta)


@router.post("/speed-challenge", response_model=SpeedChallengeResponse)
def play_speed_challenge(
    *,
    payload: SpeedChallengeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SpeedChallengeResponse:
    """Answer a card, or finish the run when ``finish`` is set."""

    service = SpeedChallengeService(db)
    if payload.finish:
        session = service.finish(
            user=current_user, session_id=payload.session_id, elapsed_ms=payload.elapsed_ms
        )
        return SpeedChallengeResponse(session=serialize_session(session), completed=True)

    outcome = service.answer(
        user=current_user,
        session_id=payload.session_id,
        card_id=payload.card_id,
        answer=payload.answer,
    )
    session = outcome.pop("session")
    return SpeedChallengeResponse(session=serialize_session(session), **outcome)


@router.get("/flashcard-battle", response_model=FlashcardBattleStartResponse)
def start_flashcard_battle(
    *,
    category: str | None = Query(None, description="Category id or slug for your cards"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FlashcardBattleStartResponse:
    """Start a five-round battle."""

    session, meta = FlashcardBattleService(db).start(user=current_user, category=category)
    if session is None:
        return FlashcardBattleStartResponse(session_meta=meta, message="Not enough cards to battle")
    return FlashcardBattleStartResponse(session=serialize_battle(session), session_meta=meta)


@router.post("/flashcard-battle", response_model=FlashcardBattleResponse)
def play_flashcard_battle(
    *,
    payload: FlashcardBattleRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FlashcardBattleResponse:
    """Answer the translation for one round."""

    outcome = FlashcardBattleService(db).answer(
        user=current_user,
        session_id=payload.session_id,
        round_id=payload.round_id,
        answer=payload.answer,
    )
    session = outcome.pop("session")
    return FlashcardBattleResponse(session=serialize_battle(session), **outcome)


@router.get("/word-hunt", response_model=WordHuntStartResponse)
def start_word_hunt(
    *,
    category: str | None = Query(None, description="Category id or slug"),
    limit: int | None = Query(None, description="Number of hidden words (2-8)"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> WordHuntStartResponse:
    """Start a word hunt built from words the learner has not studied yet."""

    session, meta = WordHuntService(db).start(user=current_user, category=category, limit=limit)
    if session is None:
        return WordHuntStartResponse(session_meta=meta, message="No suitable words found")
    return WordHuntStartResponse(session=serialize_hunt(session), session_meta=meta)


@router.post("/word-hunt", response_model=WordHuntResponse)
def play_word_hunt(
    *,
    payload: WordHuntRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> WordHuntResponse:
    """Claim a hidden word by its grid cells."""

    outcome = WordHuntService(db).claim(
        user=current_user,
        session_id=payload.session_id,
        word_id=payload.word_id,
        positions=[(cell.row, cell.col) for cell in payload.positions],
    )
    session = outcome.pop("session")
    return WordHuntResponse(session=serialize_hunt(session), **outcome)
