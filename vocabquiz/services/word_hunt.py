"""Word hunt: find the translations hidden in a letter grid."""
from __future__ import annotations

import random
import string
import unicodedata
import uuid
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from typing import Any

from loguru import logger
from sqlalchemy import select

from vocabquiz.db.models.game import VocabularyGameSession, empty_game_result
from vocabquiz.db.models.progress import VocabularyProgress
from vocabquiz.db.models.user import User
from vocabquiz.db.models.vocabulary import WordEntry
from vocabquiz.schemas.game import GameResult, WordHuntSessionRead, WordHuntWord
from vocabquiz.schemas.stats import SessionMeta
from vocabquiz.services.games import GameService, score_answer
from vocabquiz.services.review import DIFFICULTY_ORDER, resolve_category_id
from vocabquiz.utils.exceptions import InvalidArgumentError, NotFoundError

GAME_TYPE = "word-hunt"
BOARD_SIZE = 6
DEFAULT_WORD_COUNT = 6
MIN_WORD_COUNT = 2
MAX_WORD_COUNT = 8
MIN_WORD_LENGTH = 4
SCORE_PER_HIT = 10
XP_PER_HIT = SCORE_PER_HIT // 2
XP_FOR_CLEAR = SCORE_PER_HIT
MAX_LIVES = 3
SESSION_EXPIRY = timedelta(minutes=30)
FILL_ALPHABET = string.ascii_uppercase
ORIENTATIONS = ("horizontal", "vertical")


def grid_word(value: Any) -> str:
    """Upper-case letters of ``value`` with accents stripped, as placed on the grid."""

    decomposed = unicodedata.normalize("NFKD", str(value or ""))
    return "".join(char for char in decomposed if char.isalpha()).upper()


def word_limit(value: Any) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        parsed = 0
    if parsed <= 0:
        parsed = DEFAULT_WORD_COUNT
    return min(max(parsed, MIN_WORD_COUNT), MAX_WORD_COUNT)


def _cells(orientation: str, row: int, col: int, length: int) -> list[tuple[int, int]]:
    if orientation == "horizontal":
        return [(row, col + offset) for offset in range(length)]
    return [(row + offset, col) for offset in range(length)]


def can_place(board: list[list[str | None]], word: str, row: int, col: int, orientation: str) -> bool:
    size = len(board)
    cells = _cells(orientation, row, col, len(word))
    if any(r >= size or c >= size for r, c in cells):
        return False
    return all(board[r][c] in (None, letter) for (r, c), letter in zip(cells, word))


def place_word(board: list[list[str | None]], word: str, rng: random.Random) -> dict[str, Any] | None:
    """Try random spots until ``word`` fits; shared cells must carry the same letter."""

    size = len(board)
    for _ in range(size * size):
        orientation = rng.choice(ORIENTATIONS)
        row = rng.randint(0, size - 1)
        col = rng.randint(0, size - 1)
        if not can_place(board, word, row, col, orientation):
            continue
        cells = _cells(orientation, row, col, len(word))
        for (r, c), letter in zip(cells, word):
            board[r][c] = letter
        return {"orientation": orientation, "positions": [{"row": r, "col": c} for r, c in cells]}
    return None


def fill_board(board: list[list[str | None]], rng: random.Random) -> list[list[str]]:
    return [[cell or rng.choice(FILL_ALPHABET) for cell in row] for row in board]


def serialize_hunt(session: VocabularyGameSession) -> WordHuntSessionRead:
    payload = session.payload or {}
    found = list(payload.get("foundWordIds", []))
    reveal_all = session.status != "active"

    words = []
    for item in payload.get("words", []):
        solved = reveal_all or item["id"] in found
        words.append(
            WordHuntWord(
                id=item["id"],
                term=item["term"],
                length=len(item.get("normalized", "")),
                translation=item.get("translation") if solved else None,
                orientation=item.get("orientation") if solved else None,
                positions=item.get("positions", []) if solved else [],
            )
        )

    return WordHuntSessionRead(
        session_id=session.id,
        status=session.status,
        board=payload.get("board", []),
        words=words,
        found_word_ids=found,
        lives_remaining=payload.get("livesRemaining", MAX_LIVES),
        started_at=session.started_at,
        expires_at=session.expires_at,
        completed_at=session.completed_at,
        result=GameResult.model_validate(session.result or empty_game_result()),
    )


class WordHuntService(GameService):
    """Build word-hunt grids from unstudied words and score claimed placements."""

    game_type = GAME_TYPE

    def select_words(self, *, user: User, category_id: int | None, limit: int) -> list[WordEntry]:
        """Published words the learner has not studied whose grid form fits the board."""

        studied = select(VocabularyProgress.word_id).where(VocabularyProgress.user_id == user.id)
        stmt = (
            select(WordEntry)
            .where(WordEntry.status == "published")
            .where(WordEntry.translation.is_not(None))
            .where(WordEntry.translation != "")
            .where(WordEntry.id.not_in(studied))
        )
        if category_id is not None:
            stmt = stmt.where(WordEntry.category_id == category_id)
        stmt = stmt.order_by(DIFFICULTY_ORDER, WordEntry.term.asc()).limit(limit * 2)

        selected = []
        for word in self.db.scalars(stmt).unique():
            if MIN_WORD_LENGTH <= len(grid_word(word.translation)) <= BOARD_SIZE:
                selected.append(word)
            if len(selected) >= limit:
                break
        return selected

    def build_board(self, words: Iterable[WordEntry]) -> tuple[list[list[str]], list[dict[str, Any]]]:
        board: list[list[str | None]] = [[None] * BOARD_SIZE for _ in range(BOARD_SIZE)]
        placed = []
        for word in words:
            normalized = grid_word(word.translation)
            placement = place_word(board, normalized, self.rng)
            if placement is None:
                logger.debug("Word hunt placement skipped", word_id=word.id, word=normalized)
                continue
            placed.append(
                {
                    "id": str(word.id),
                    "term": word.term,
                    "translation": word.translation,
                    "normalized": normalized,
                    **placement,
                }
            )
        return fill_board(board, self.rng), placed

    def start(
        self,
        *,
        user: User,
        category: str | int | None = None,
        limit: Any = None,
        now: datetime | None = None,
    ) -> tuple[VocabularyGameSession | None, SessionMeta]:
        """Open a new grid; ``None`` when no suitable word could be placed."""

        now = now or datetime.now(timezone.utc)
        meta = self._opening_meta(user, now)

        category_id = resolve_category_id(self.db, category)
        board, placed = self.build_board(
            self.select_words(user=user, category_id=category_id, limit=word_limit(limit))
        )
        if not placed:
            self._commit()
            return None, meta

        session = self._new_session(
            user=user,
            now=now,
            lifetime=SESSION_EXPIRY,
            payload={
                "board": board,
                "words": placed,
                "foundWordIds": [],
                "livesRemaining": MAX_LIVES,
                "totalWords": len(placed),
            },
        )
        self._commit()
        logger.info(
            "Word hunt started",
            user_id=str(user.id),
            session_id=str(session.id),
            words=len(placed),
        )
        return session, meta

    def claim(
        self,
        *,
        user: User,
        session_id: uuid.UUID,
        word_id: str | None,
        positions: Iterable[tuple[int, int]],
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Check a claimed word. A miss costs a life; the game ends when all words are found or lives run out."""

        now = now or datetime.now(timezone.utc)
        session = self._get_session(user=user, session_id=session_id)
        if self._close_if_unplayable(session, now):
            return {"session": session, "completed": True}

        if not word_id:
            raise InvalidArgumentError("wordId is required")
        payload = dict(session.payload or {})
        words = payload.get("words", [])
        target = next((item for item in words if item.get("id") == word_id), None)
        if target is None:
            raise NotFoundError("Word not found", {"wordId": word_id})
        found = list(payload.get("foundWordIds", []))
        if word_id in found:
            return {"session": session, "already_found": True}

        expected = [(cell["row"], cell["col"]) for cell in target.get("positions", [])]
        submitted = [(int(row), int(col)) for row, col in positions]
        is_match = bool(expected) and expected == submitted

        lives = payload.get("livesRemaining", MAX_LIVES)
        result = score_answer(session.result, correct=is_match, score=SCORE_PER_HIT, xp=XP_PER_HIT)
        xp = 0
        if is_match:
            found.append(word_id)
            xp = XP_PER_HIT
            session.add_event("correct", now, wordId=word_id)
        else:
            lives = max(0, lives - 1)
            session.add_event("incorrect", now, wordId=word_id, positions=[list(cell) for cell in submitted])
        payload.update(foundWordIds=found, livesRemaining=lives)

        all_found = len(found) >= payload.get("totalWords", len(words))
        finished = all_found or lives == 0
        if finished:
            session.status = "completed"
            session.completed_at = now
            payload.update(success=all_found, finishedAt=now.isoformat())
            if all_found:
                xp += XP_FOR_CLEAR
                result["xpEarned"] += XP_FOR_CLEAR
        session.payload = payload
        session.result = result

        session_meta = self._record_play(
            user,
            now=now,
            xp=xp,
            correct=is_match,
            points=SCORE_PER_HIT if is_match else 0,
            quizzes_completed=1 if finished else 0,
        )
        self._finish_commit(user)

        return {
            "session": session,
            "success": is_match,
            "completed": finished,
            "remaining_lives": lives,
            "session_meta": session_meta,
        }
