"""Speed-challenge mini-game: timed multiple-choice translation cards."""
from __future__ import annotations

import random
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from loguru import logger
from sqlalchemy import or_, select
from sqlalchemy.orm import joinedload

from vocabquiz.db.models.game import VocabularyGameSession, empty_game_result
from vocabquiz.db.models.progress import VocabularyProgress
from vocabquiz.db.models.user import User
from vocabquiz.db.models.vocabulary import WordEntry
from vocabquiz.schemas.game import (
    GameAnswer,
    GameCard,
    GameResult,
    GameSessionRead,
)
from vocabquiz.schemas.review import CategoryRead
from vocabquiz.schemas.stats import SessionMeta
from vocabquiz.services.games import GameService, score_answer
from vocabquiz.services.review import DIFFICULTY_ORDER, resolve_category_id
from vocabquiz.utils.exceptions import InvalidArgumentError, NotFoundError

GAME_TYPE = "speed-challenge"
DEFAULT_CARD_COUNT = 12
MIN_CARD_COUNT = 5
MAX_CARD_COUNT = 25
OPTION_COUNT = 4
SESSION_DURATION_MS = 30 * 1000
SESSION_EXPIRY = timedelta(minutes=60)
SCORE_PER_CORRECT = 15
XP_PER_CORRECT = 6


def card_limit(value: Any) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        parsed = 0
    if parsed <= 0:
        parsed = DEFAULT_CARD_COUNT
    return min(max(parsed, MIN_CARD_COUNT), MAX_CARD_COUNT)


def _card(card_id: str, word: WordEntry) -> dict[str, Any]:
    category = CategoryRead.model_validate(word.category) if word.category else None
    return GameCard(
        id=card_id,
        word_id=word.id,
        term=word.term,
        translation=word.translation,
        level=word.level,
        category=category,
    ).model_dump(mode="json", by_alias=True)


def build_options(cards: list[dict[str, Any]], rng: random.Random) -> list[dict[str, Any]]:
    """Give every card four shuffled choices, one of them correct."""

    pool = list(dict.fromkeys(card["translation"] for card in cards))
    for card in cards:
        answer = card["translation"]
        distractors = [item for item in pool if item != answer]
        options = [answer, *rng.sample(distractors, min(OPTION_COUNT - 1, len(distractors)))]
        while len(options) < OPTION_COUNT:
            options.append(f"{answer}-{len(options)}")
        rng.shuffle(options)
        card["options"] = options
    return cards


def serialize_session(session: VocabularyGameSession) -> GameSessionRead:
    payload = session.payload or {}
    return GameSessionRead(
        session_id=session.id,
        status=session.status,
        cards=[GameCard.model_validate(card) for card in payload.get("cards", [])],
        answered=[GameAnswer.model_validate(entry) for entry in payload.get("answered", [])],
        duration_ms=payload.get("durationMs", SESSION_DURATION_MS),
        started_at=session.started_at,
        expires_at=session.expires_at,
        completed_at=session.completed_at,
        result=GameResult.model_validate(session.result or empty_game_result()),
    )


class SpeedChallengeService(GameService):
    """Create, play and finish speed-challenge sessions."""

    game_type = GAME_TYPE

    def select_cards(
        self, *, user: User, category_id: int | None, limit: int, now: datetime
    ) -> list[dict[str, Any]]:
        """Due words first, then published catalog words, all with a translation."""

        cards: list[dict[str, Any]] = []
        used: set[int] = set()

        due_stmt = (
            select(VocabularyProgress)
            .options(joinedload(VocabularyProgress.word))
            .where(VocabularyProgress.user_id == user.id)
            .where(VocabularyProgress.status != "mastered")
            .where(
                or_(
                    VocabularyProgress.next_review_at.is_(None),
                    VocabularyProgress.next_review_at <= now,
                )
            )
        )
        if category_id is not None:
            due_stmt = due_stmt.where(VocabularyProgress.category_id == category_id)
        due_stmt = due_stmt.order_by(VocabularyProgress.next_review_at.asc().nullsfirst()).limit(
            limit * 2
        )
        for progress in self.db.scalars(due_stmt).unique():
            word = progress.word
            if word is None or not word.translation or word.id in used:
                continue
            cards.append(_card(str(progress.id), word))
            used.add(word.id)
            if len(cards) >= limit:
                return cards

        fallback = (
            select(WordEntry)
            .where(WordEntry.status == "published")
            .where(WordEntry.translation.is_not(None))
            .where(WordEntry.translation != "")
        )
        if category_id is not None:
            fallback = fallback.where(WordEntry.category_id == category_id)
        if used:
            fallback = fallback.where(WordEntry.id.not_in(used))
        fallback = fallback.order_by(
            DIFFICULTY_ORDER,
            WordEntry.term.asc(),
        ).limit(limit - len(cards))
        for word in self.db.scalars(fallback).unique():
            cards.append(_card(str(word.id), word))
        return cards

    def start(
        self,
        *,
        user: User,
        category: str | int | None = None,
        limit: Any = None,
        now: datetime | None = None,
    ) -> tuple[VocabularyGameSession | None, SessionMeta]:
        """Open a new session; ``None`` when there are no playable words."""

        now = now or datetime.now(timezone.utc)
        meta = self._opening_meta(user, now)

        category_id = resolve_category_id(self.db, category)
        cards = self.select_cards(user=user, category_id=category_id, limit=card_limit(limit), now=now)
        if not cards:
            self._commit()
            return None, meta

        session = self._new_session(
            user=user,
            now=now,
            lifetime=SESSION_EXPIRY,
            payload={
                "cards": build_options(cards, self.rng),
                "answered": [],
                "durationMs": SESSION_DURATION_MS,
                "totalCards": len(cards),
            },
        )
        self._commit()
        logger.info(
            "Speed challenge started",
            user_id=str(user.id),
            session_id=str(session.id),
            cards=len(cards),
        )
        return session, meta

    def answer(
        self,
        *,
        user: User,
        session_id: uuid.UUID,
        card_id: str | None,
        answer: str | None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Score one answer. Returns the response fields for the endpoint."""

        now = now or datetime.now(timezone.utc)
        session = self._get_session(user=user, session_id=session_id)
        if self._close_if_unplayable(session, now):
            return {"session": session, "completed": True}

        if not card_id:
            raise InvalidArgumentError("cardId is required")
        payload = dict(session.payload or {})
        cards = payload.get("cards", [])
        answered = list(payload.get("answered", []))
        card = next((item for item in cards if item.get("id") == card_id), None)
        if card is None:
            raise NotFoundError("Card not found", {"cardId": card_id})
        if any(entry.get("cardId") == card_id for entry in answered):
            return {"session": session, "already_answered": True}

        is_correct = card.get("translation") == answer
        answered.append(
            {"cardId": card_id, "answer": answer, "isCorrect": is_correct, "at": now.isoformat()}
        )
        payload["answered"] = answered
        session.payload = payload
        session.result = score_answer(
            session.result, correct=is_correct, score=SCORE_PER_CORRECT, xp=XP_PER_CORRECT
        )
        session.add_event("correct" if is_correct else "incorrect", now, cardId=card_id, answer=answer)

        session_meta = self._record_play(
            user,
            now=now,
            xp=XP_PER_CORRECT if is_correct else 0,
            correct=is_correct,
            points=SCORE_PER_CORRECT if is_correct else 0,
        )
        self._finish_commit(user)

        return {
            "session": session,
            "success": is_correct,
            "remaining": len(cards) - len(answered),
            "session_meta": session_meta,
        }

    def finish(
        self,
        *,
        user: User,
        session_id: uuid.UUID,
        elapsed_ms: int | None = None,
        now: datetime | None = None,
    ) -> VocabularyGameSession:
        """Close the session. XP was granted per answer and is not granted again."""

        now = now or datetime.now(timezone.utc)
        session = self._get_session(user=user, session_id=session_id)
        if session.status == "completed":
            return session

        was_active = session.status == "active"
        session.status = "completed"
        session.completed_at = now
        session.payload = {
            **(session.payload or {}),
            "finishedAt": now.isoformat(),
            "elapsedMs": elapsed_ms,
        }
        session.add_event("finish", now, elapsedMs=elapsed_ms)
        if was_active:
            snapshot = self.stats_service.load(user, now=now)
            self.daily_stats.increment(
                user_id=user.id,
                stat_date=self.stats_service.local_date(now),
                streak_active=snapshot.stats.streak > 0,
                quizzes_completed=1,
            )
        self._finish_commit(user)
        logger.info(
            "Speed challenge finished",
            user_id=str(user.id),
            session_id=str(session.id),
            score=(session.result or {}).get("score", 0),
        )
        return session
