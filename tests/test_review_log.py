"""Tests for the review audit trail."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from vocabquiz.db.models import ReviewLog
from vocabquiz.services.review_log import ReviewLogEvent, ReviewLogPublisher, review_action
from vocabquiz.tasks import review_logs as review_log_tasks

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_event(learner, **overrides) -> ReviewLogEvent:
    data = dict(
        user_id=learner.id,
        word_id=7,
        action="review",
        before_status="learning",
        after_status="learning",
        interval_days=6,
        ease_factor=2.6,
        correct=True,
        time_spent_sec=4,
        reviewed_at=NOW,
    )
    data.update(overrides)
    return ReviewLogEvent(**data)


@pytest.mark.parametrize(
    ("result", "before", "after", "expected"),
    [
        ("success", "review", "mastered", "promote"),
        ("success", "mastered", "mastered", "review"),
        ("success", "new", "learning", "review"),
        ("failure", "review", "learning", "demote"),
        ("skipped", "learning", "learning", "review"),
    ],
)
def test_review_action(result, before, after, expected) -> None:
    assert review_action(result, before, after) == expected


def test_payload_round_trip(learner) -> None:
    event = make_event(learner)

    payload = event.to_payload()

    assert payload["user_id"] == str(learner.id)
    assert payload["reviewed_at"] == NOW.isoformat()
    assert ReviewLogEvent.from_payload(payload) == event


def test_inline_publish_writes_entry(db_session, learner) -> None:
    publisher = ReviewLogPublisher(db_session, dispatch_async=False)

    assert publisher.publish(make_event(learner)) is True

    entry = db_session.scalars(select(ReviewLog)).one()
    assert entry.item_type == "word"
    assert entry.ref_id == 7
    assert entry.interval_days == 6


def test_async_dispatch_failure_is_reported(db_session, learner, monkeypatch) -> None:
    class BrokenTask:
        def delay(self, payload):
            raise ConnectionError("broker unreachable")

    monkeypatch.setattr(review_log_tasks, "record_review_log", BrokenTask())
    publisher = ReviewLogPublisher(db_session, dispatch_async=True)

    assert publisher.publish(make_event(learner)) is False
    assert db_session.scalars(select(ReviewLog)).all() == []


def test_async_dispatch_sends_payload(db_session, learner, monkeypatch) -> None:
    sent = []

    class RecordingTask:
        def delay(self, payload):
            sent.append(payload)

    monkeypatch.setattr(review_log_tasks, "record_review_log", RecordingTask())
    publisher = ReviewLogPublisher(db_session, dispatch_async=True)

    assert publisher.publish(make_event(learner, action="promote")) is True
    assert sent[0]["action"] == "promote"


def test_outbox_task_writes_entry(db_engine, db_session, learner, monkeypatch) -> None:
    monkeypatch.setattr(
        review_log_tasks, "SessionLocal", sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    )

    entry_id = review_log_tasks.record_review_log(make_event(learner, action="demote").to_payload())

    entry = db_session.scalars(select(ReviewLog)).one()
    assert str(entry.id) == entry_id
    assert entry.action == "demote"
