"""Flashcard battle: translate your card to hit the opponent before it hits you."""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import joinedload

from vocabquiz.db.models.game import VocabularyGameSession, empty_game_result
from vocabquiz.db.models.progress import VocabularyProgress
from vocabquiz.db.models.user import User
from vocabquiz.db.models.vocabulary import WordEntry
from vocabquiz.schemas.game import (
    BattleAnswer,
    BattleCard,
    BattleHp,
    BattleRound,
    FlashcardBattleSessionRead,
    GameResult,
)
from vocabquiz.schemas.stats import SessionMeta
from vocabquiz.services.games import GameService, score_answer
from vocabquiz.services.review import DIFFICULTY_ORDER, resolve_category_id
from vocabquiz.utils.exceptions import InvalidArgumentError, NotFoundError

GAME_TYPE = "flashcard-battle"
ROUND_COUNT = 5
STARTING_HP = 100
PLAYER_DAMAGE = 22
OPPONENT_DAMAGE = 18
XP_PER_ROUND = 8
XP_PER_VICTORY = 40
SESSION_EXPIRY = timedelta(minutes=90)


def normalize_answer(value: Any) -> str:
    return str(value or "").strip().casefold()


def _battle_card(card_id: str, word: WordEntry) -> dict[str, Any]:
    return {"id": card_id, "wordId": word.id, "term": word.term, "translation": word.translation}


def build_rounds(
    player_cards: list[dict[str, Any]], opponent_cards: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    count = min(len(player_cards), len(opponent_cards), ROUND_COUNT)
    return [
        {
            "id": f"{player_cards[index]['id']}:{opponent_cards[index]['id']}",
            "player": player_cards[index],
            "opponent": opponent_cards[index],
        }
        for index in range(count)
    ]


def serialize_battle(session: VocabularyGameSession) -> FlashcardBattleSessionRead:
    payload = session.payload or {}
    answered = {entry.get("roundId") for entry in payload.get("answers", [])}
    reveal_all = session.status != "active"

    rounds = []
    for item in payload.get("rounds", []):
        player = BattleCard.model_validate(item["player"])
        if not reveal_all and item["id"] not in answered:
            player.translation = None
        rounds.append(
            BattleRound(
                id=item["id"],
                player=player,
                opponent=BattleCard.model_validate(item["opponent"]),
            )
        )

    return FlashcardBattleSessionRead(
        session_id=session.id,
        status=session.status,
        rounds=rounds,
        answers=[BattleAnswer.model_validate(entry) for entry in payload.get("answers", [])],
        hp=BattleHp.model_validate(payload.get("hp") or {}),
        current_round=payload.get("currentRound", 0),
        total_rounds=payload.get("totalRounds", len(rounds)),
        victory=payload.get("victory"),
        started_at=session.started_at,
        expires_at=session.expires_at,
        completed_at=session.completed_at,
        result=GameResult.model_validate(session.result or empty_game_result()),
    )


class FlashcardBattleService(GameService):
    """Run five-round flashcard battles against a card drawn from the wider catalog."""

    game_type = GAME_TYPE

    def pick_cards(self, *, user: User, category_id: int | None, limit: int) -> list[dict[str, Any]]:
        """Words the learner has not mastered yet, topped up from the catalog."""

        cards: list[dict[str, Any]] = []
        used: set[int] = set()

        stmt = (
            select(VocabularyProgress)
            .options(joinedload(VocabularyProgress.word))
            .where(VocabularyProgress.user_id == user.id)
            .where(VocabularyProgress.status != "mastered")
        )
        if category_id is not None:
            stmt = stmt.where(VocabularyProgress.category_id == category_id)
        stmt = stmt.order_by(VocabularyProgress.next_review_at.asc().nullsfirst()).limit(limit * 4)
        for progress in self.db.scalars(stmt).unique():
            word = progress.word
            if word is None or not word.translation or word.id in used:
                continue
            cards.append(_battle_card(str(progress.id), word))
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
        fallback = fallback.order_by(DIFFICULTY_ORDER, WordEntry.term.asc()).limit(limit - len(cards))
        for word in self.db.scalars(fallback).unique():
            cards.append(_battle_card(str(word.id), word))
        return cards

    def start(
        self,
        *,
        user: User,
        category: str | int | None = None,
        now: datetime | None = None,
    ) -> tuple[VocabularyGameSession | None, SessionMeta]:
        """Open a battle; ``None`` when either side has no cards."""

        now = now or datetime.now(timezone.utc)
        meta = self._opening_meta(user, now)

        category_id = resolve_category_id(self.db, category)
        player_cards = self.pick_cards(user=user, category_id=category_id, limit=ROUND_COUNT)
        opponent_cards = self.pick_cards(user=user, category_id=None, limit=ROUND_COUNT)
        self.rng.shuffle(player_cards)
        self.rng.shuffle(opponent_cards)
        rounds = build_rounds(player_cards, opponent_cards)
        if not rounds:
            self._commit()
            return None, meta

        session = self._new_session(
            user=user,
            now=now,
            lifetime=SESSION_EXPIRY,
            payload={
                "rounds": rounds,
                "answers": [],
                "hp": {"player": STARTING_HP, "opponent": STARTING_HP},
                "currentRound": 0,
                "totalRounds": len(rounds),
            },
        )
        self._commit()
        logger.info(
            "Flashcard battle started",
            user_id=str(user.id),
            session_id=str(session.id),
            rounds=len(rounds),
        )
        return session, meta

    def answer(
        self,
        *,
        user: User,
        session_id: uuid.UUID,
        round_id: str | None,
        answer: str | None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Play one round. The battle ends after the last round or when either side reaches 0 HP."""

        now = now or datetime.now(timezone.utc)
        session = self._get_session(user=user, session_id=session_id)
        if self._close_if_unplayable(session, now):
            return {"session": session, "completed": True}

        if not round_id:
            raise InvalidArgumentError("roundId is required")
        payload = dict(session.payload or {})
        rounds = payload.get("rounds", [])
        target = next((item for item in rounds if item.get("id") == round_id), None)
        if target is None:
            raise NotFoundError("Round not found", {"roundId": round_id})
        answers = list(payload.get("answers", []))
        if any(entry.get("roundId") == round_id for entry in answers):
            return {"session": session, "already_answered": True}

        is_correct = normalize_answer(target["player"].get("translation")) == normalize_answer(answer)
        hp = {"player": STARTING_HP, "opponent": STARTING_HP, **(payload.get("hp") or {})}
        if is_correct:
            hp["opponent"] = max(0, hp["opponent"] - PLAYER_DAMAGE)
        else:
            hp["player"] = max(0, hp["player"] - OPPONENT_DAMAGE)
        result = score_answer(session.result, correct=is_correct, score=PLAYER_DAMAGE, xp=XP_PER_ROUND)

        answers.append(
            {"roundId": round_id, "answer": answer, "isCorrect": is_correct, "at": now.isoformat()}
        )
        payload.update(answers=answers, hp=hp, currentRound=len(answers))
        session.add_event("player-hit" if is_correct else "opponent-hit", now, roundId=round_id, answer=answer)

        finished = len(answers) >= len(rounds) or hp["player"] <= 0 or hp["opponent"] <= 0
        xp = XP_PER_ROUND if is_correct else 0
        if finished:
            victory = hp["opponent"] <= 0 and hp["player"] > 0
            session.status = "completed"
            session.completed_at = now
            payload.update(victory=victory, finishedAt=now.isoformat())
            if victory:
                xp += XP_PER_VICTORY
                result["xpEarned"] += XP_PER_VICTORY
        session.payload = payload
        session.result = result

        session_meta = self._record_play(
            user,
            now=now,
            xp=xp,
            correct=is_correct,
            points=PLAYER_DAMAGE if is_correct else 0,
            quizzes_completed=1 if finished else 0,
        )
        self._finish_commit(user)
        if finished:
            logger.info(
                "Flashcard battle finished",
                user_id=str(user.id),
                session_id=str(session.id),
                victory=payload["victory"],
            )

        return {
            "session": session,
            "success": is_correct,
            "completed": finished,
            "session_meta": session_meta,
        }
