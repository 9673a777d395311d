"""Tests for the flashcard battle mini-game."""
from __future__ import annotations

import random
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from vocabquiz.db.models import DailyUserStat, VocabularyGameSession, WordEntry
from vocabquiz.services.flashcard_battle import (
    FlashcardBattleService,
    build_rounds,
    normalize_answer,
    serialize_battle,
)
from vocabquiz.utils.exceptions import InvalidArgumentError, NotFoundError

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_service(db_session) -> FlashcardBattleService:
    return FlashcardBattleService(db_session, rng=random.Random(3))


@pytest.fixture()
def fifth_word(db_session, catalog_words) -> WordEntry:
    word = WordEntry(
        term="Gate", translation="Flugsteig", level="A1", difficulty="easy", status="published"
    )
    db_session.add(word)
    db_session.commit()
    return word


def play_round(service, learner, session, index, *, correct=True, now=NOW):
    round_ = session.payload["rounds"][index]
    answer = round_["player"]["translation"] if correct else "falsch"
    return service.answer(
        user=learner, session_id=session.id, round_id=round_["id"], answer=answer, now=now
    )


def test_normalize_answer() -> None:
    assert normalize_answer("  Flughafen ") == "flughafen"
    assert normalize_answer(None) == ""


def test_build_rounds_pairs_cards_up_to_five() -> None:
    player = [{"id": f"p{n}"} for n in range(7)]
    opponent = [{"id": f"o{n}"} for n in range(3)]

    rounds = build_rounds(player, opponent)

    assert [item["id"] for item in rounds] == ["p0:o0", "p1:o1", "p2:o2"]
    assert len(build_rounds(player, player)) == 5


def test_start_builds_rounds_from_catalog(db_session, learner, catalog_words) -> None:
    session, meta = make_service(db_session).start(user=learner, now=NOW)

    rounds = session.payload["rounds"]
    assert session.game_type == "flashcard-battle"
    assert session.status == "active"
    assert len(rounds) == 4
    assert {item["player"]["term"] for item in rounds} == {"Airport", "Ticket", "Luggage", "Boarding pass"}
    assert session.payload["hp"] == {"player": 100, "opponent": 100}
    assert session.expires_at.replace(tzinfo=None) == (NOW + timedelta(minutes=90)).replace(tzinfo=None)
    assert meta.xp_earned == 0


def test_serialized_battle_hides_unplayed_answers(db_session, learner, catalog_words) -> None:
    service = make_service(db_session)
    session, _ = service.start(user=learner, now=NOW)
    play_round(service, learner, session, 0)

    view = serialize_battle(session)

    assert view.rounds[0].player.translation == session.payload["rounds"][0]["player"]["translation"]
    assert all(item.player.translation is None for item in view.rounds[1:])
    assert all(item.opponent.translation for item in view.rounds)
    assert view.current_round == 1
    assert view.hp.opponent == 78


def test_start_without_words_returns_no_session(db_session, learner) -> None:
    session, meta = make_service(db_session).start(user=learner, now=NOW)

    assert session is None
    assert meta.streak == 0
    assert db_session.scalars(select(VocabularyGameSession)).all() == []


def test_winning_battle_grants_victory_bonus(db_session, learner, fifth_word) -> None:
    service = make_service(db_session)
    session, _ = service.start(user=learner, now=NOW)
    assert len(session.payload["rounds"]) == 5

    outcomes = [play_round(service, learner, session, index) for index in range(5)]

    assert [outcome["success"] for outcome in outcomes] == [True] * 5
    assert [outcome["completed"] for outcome in outcomes] == [False] * 4 + [True]
    db_session.refresh(session)
    assert session.status == "completed"
    assert session.payload["victory"] is True
    assert session.payload["hp"] == {"player": 100, "opponent": 0}
    assert session.result["score"] == 110
    assert session.result["maxCombo"] == 5
    assert session.result["xpEarned"] == 5 * 8 + 40
    assert [event["type"] for event in session.events] == ["player-hit"] * 5

    db_session.refresh(learner)
    assert learner.vocabulary_stats["xp"] == 80
    row = db_session.scalars(select(DailyUserStat)).one()
    assert (row.xp_earned, row.points_earned, row.quizzes_completed) == (80, 110, 1)


def test_losing_every_round_ends_without_bonus(db_session, learner, catalog_words) -> None:
    service = make_service(db_session)
    session, _ = service.start(user=learner, now=NOW)

    for index in range(4):
        outcome = play_round(service, learner, session, index, correct=False)

    assert outcome["completed"] is True
    db_session.refresh(session)
    assert session.payload["victory"] is False
    assert session.payload["hp"] == {"player": 28, "opponent": 100}
    assert session.result["incorrect"] == 4
    assert session.result["xpEarned"] == 0

    db_session.refresh(learner)
    assert learner.vocabulary_stats["xp"] == 0
    row = db_session.scalars(select(DailyUserStat)).one()
    assert (row.xp_earned, row.quizzes_completed) == (0, 1)


def test_answer_is_case_and_space_insensitive(db_session, learner, catalog_words) -> None:
    service = make_service(db_session)
    session, _ = service.start(user=learner, now=NOW)
    round_ = session.payload["rounds"][0]

    outcome = service.answer(
        user=learner,
        session_id=session.id,
        round_id=round_["id"],
        answer=f"  {round_['player']['translation'].upper()} ",
        now=NOW,
    )

    assert outcome["success"] is True
    assert outcome["session_meta"].xp_earned == 8


def test_round_cannot_be_replayed(db_session, learner, catalog_words) -> None:
    service = make_service(db_session)
    session, _ = service.start(user=learner, now=NOW)
    play_round(service, learner, session, 0)

    repeat = play_round(service, learner, session, 0)

    assert repeat["already_answered"] is True
    db_session.refresh(session)
    assert session.result["correct"] == 1


def test_bad_round_and_session_ids(db_session, learner, catalog_words) -> None:
    service = make_service(db_session)
    session, _ = service.start(user=learner, now=NOW)

    with pytest.raises(InvalidArgumentError):
        service.answer(user=learner, session_id=session.id, round_id=None, answer="x", now=NOW)
    with pytest.raises(NotFoundError):
        service.answer(user=learner, session_id=session.id, round_id="nope", answer="x", now=NOW)
    with pytest.raises(NotFoundError):
        service.answer(user=learner, session_id=uuid.uuid4(), round_id="nope", answer="x", now=NOW)


def test_expired_battle_cannot_be_played(db_session, learner, catalog_words) -> None:
    service = make_service(db_session)
    session, _ = service.start(user=learner, now=NOW)

    outcome = play_round(service, learner, session, 0, now=NOW + timedelta(minutes=91))

    assert outcome == {"session": session, "completed": True}
    db_session.refresh(session)
    assert session.status == "expired"


def test_flashcard_battle_api_flow(client: TestClient, auth_headers, catalog_words, db_session) -> None:
    started = client.get("/api/v1/vocabulary/games/flashcard-battle", headers=auth_headers)

    assert started.status_code == 200
    payload = started.json()
    assert payload["mode"] == "flashcard-battle"
    session_id = payload["session"]["sessionId"]
    assert payload["session"]["rounds"][0]["player"]["translation"] is None

    stored = db_session.get(VocabularyGameSession, uuid.UUID(session_id))
    round_ = stored.payload["rounds"][0]
    answered = client.post(
        "/api/v1/vocabulary/games/flashcard-battle",
        json={"sessionId": session_id, "roundId": round_["id"], "answer": round_["player"]["translation"]},
        headers=auth_headers,
    )

    assert answered.status_code == 200
    body = answered.json()
    assert body["success"] is True
    assert body["session"]["hp"] == {"player": 100, "opponent": 78}
    assert body["session"]["result"]["xpEarned"] == 8
    assert body["sessionMeta"]["xpEarned"] == 8


def test_flashcard_battle_unknown_round(client: TestClient, auth_headers, catalog_words) -> None:
    started = client.get("/api/v1/vocabulary/games/flashcard-battle", headers=auth_headers).json()

    response = client.post(
        "/api/v1/vocabulary/games/flashcard-battle",
        json={"sessionId": started["session"]["sessionId"], "roundId": "missing", "answer": "x"},
        headers=auth_headers,
    )

    assert response.status_code == 404
    assert response.json()["error"]["category"] == "not_found"
