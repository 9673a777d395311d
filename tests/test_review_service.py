"""Tests for the review orchestration service."""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import insert, select, text
from sqlalchemy.exc import OperationalError

from vocabquiz.db.models import DailyUserStat, ReviewLog, VocabularyProgress
from vocabquiz.services.review import VocabularyReviewService, parse_limit
from vocabquiz.services.review_log import ReviewLogPublisher
from vocabquiz.utils.exceptions import ConflictError, InvalidArgumentError, NotFoundError

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def test_first_review_creates_progress(db_session, learner, catalog_words) -> None:
    word = catalog_words[0]
    service = VocabularyReviewService(db_session)

    submission = service.submit_review(
        user=learner, word_id=word.id, result="success", duration_ms=2500, now=NOW
    )

    progress = submission.progress
    assert progress.id is not None
    assert progress.status == "learning"
    assert progress.interval == 1
    assert progress.repetition == 1
    assert progress.ease_factor == 2.55
    assert progress.category_id == word.category_id
    assert len(progress.review_history) == 1
    assert progress.review_history[0].duration_ms == 2500
    assert submission.reward.xp == 10
    assert submission.reward.streak == 1
    assert submission.reward.daily_progress == 1
    assert submission.session.xp_earned == 10
    assert submission.audit_logged is True

    db_session.refresh(word)
    assert (word.total_reviews, word.success_count, word.fail_count) == (1, 1, 0)
    db_session.refresh(learner)
    assert learner.total_reviews == 1
    assert learner.vocabulary_stats["xp"] == 10

    log = db_session.scalars(select(ReviewLog)).one()
    assert log.action == "review"
    assert log.before_status == "new"
    assert log.after_status == "learning"
    assert log.time_spent_sec == 3
    assert log.correct is True


def test_failure_counts_against_catalog_word(db_session, learner, catalog_words) -> None:
    word = catalog_words[1]
    service = VocabularyReviewService(db_session)

    submission = service.submit_review(user=learner, word_id=word.id, result="failure", now=NOW)

    assert submission.reward.xp == 2
    assert submission.progress.status == "learning"
    db_session.refresh(word)
    assert (word.total_reviews, word.success_count, word.fail_count) == (1, 0, 1)
    log = db_session.scalars(select(ReviewLog)).one()
    assert log.action == "demote"


def test_skip_echoes_schedule_and_counts_nothing(db_session, learner, catalog_words) -> None:
    word = catalog_words[0]
    service = VocabularyReviewService(db_session)
    first = service.submit_review(user=learner, word_id=word.id, result="success", now=NOW)

    later = NOW + timedelta(hours=2)
    skipped = service.submit_review(
        user=learner, word_id=word.id, result="skipped", progress_id=first.progress.id, now=later
    )

    assert skipped.progress.id == first.progress.id
    assert skipped.progress.interval == first.progress.interval
    assert skipped.progress.ease_factor == first.progress.ease_factor
    assert skipped.progress.next_review_at.replace(tzinfo=None) == (NOW + timedelta(days=1)).replace(
        tzinfo=None
    )
    assert skipped.progress.last_reviewed_at.replace(tzinfo=None) == later.replace(tzinfo=None)
    assert len(skipped.progress.review_history) == 2
    assert skipped.reward.xp == 0
    assert skipped.reward.streak == 1

    db_session.refresh(word)
    assert word.total_reviews == 1
    row = db_session.scalars(select(DailyUserStat)).one()
    assert row.words_reviewed == 1


def test_repeated_success_promotes_to_mastered(db_session, learner, catalog_words) -> None:
    word = catalog_words[0]
    service = VocabularyReviewService(db_session)

    moment = NOW
    statuses = []
    for _ in range(4):
        submission = service.submit_review(user=learner, word_id=word.id, result="success", now=moment)
        statuses.append(submission.progress.status)
        moment += timedelta(minutes=5)

    assert statuses == ["learning", "learning", "review", "mastered"]
    db_session.refresh(learner)
    assert learner.words_mastered == 1
    actions = [log.action for log in db_session.scalars(select(ReviewLog).order_by(ReviewLog.reviewed_at))]
    assert actions == ["review", "review", "review", "promote"]
    row = db_session.scalars(select(DailyUserStat)).one()
    assert row.words_mastered == 1
    assert row.words_reviewed == 4
    assert row.xp_earned == 40


def test_daily_stat_upsert_accumulates(db_session, learner, catalog_words) -> None:
    service = VocabularyReviewService(db_session)

    service.submit_review(user=learner, word_id=catalog_words[0].id, result="success", now=NOW)
    service.submit_review(user=learner, word_id=catalog_words[1].id, result="failure", now=NOW)
    service.submit_review(
        user=learner, word_id=catalog_words[2].id, result="success", now=NOW + timedelta(days=1)
    )

    rows = db_session.scalars(select(DailyUserStat).order_by(DailyUserStat.stat_date)).all()
    assert [row.stat_date for row in rows] == [date(2026, 3, 1), date(2026, 3, 2)]
    assert rows[0].words_reviewed == 2
    assert rows[0].xp_earned == 12
    assert rows[0].streak_active is False
    assert rows[1].streak_active is True


def test_progress_id_for_another_word_is_ignored(db_session, learner, catalog_words) -> None:
    service = VocabularyReviewService(db_session)
    other = service.submit_review(user=learner, word_id=catalog_words[1].id, result="success", now=NOW)

    submission = service.submit_review(
        user=learner,
        word_id=catalog_words[0].id,
        result="success",
        progress_id=other.progress.id,
        now=NOW,
    )

    assert submission.progress.id != other.progress.id
    assert submission.progress.word_id == catalog_words[0].id


def test_category_override_is_used_for_new_progress(
    db_session, learner, catalog_words, travel_category
) -> None:
    service = VocabularyReviewService(db_session)

    submission = service.submit_review(
        user=learner,
        word_id=catalog_words[3].id,
        result="success",
        category_id=travel_category.id,
        now=NOW,
    )

    assert submission.progress.category_id == travel_category.id


def test_submit_validates_input(db_session, learner, catalog_words) -> None:
    service = VocabularyReviewService(db_session)

    with pytest.raises(InvalidArgumentError):
        service.submit_review(user=learner, word_id=catalog_words[0].id, result="maybe", now=NOW)
    with pytest.raises(InvalidArgumentError):
        service.submit_review(user=learner, word_id=None, result="success", now=NOW)
    with pytest.raises(NotFoundError):
        service.submit_review(user=learner, word_id=999_999, result="success", now=NOW)

    assert db_session.scalars(select(VocabularyProgress)).all() == []


def test_audit_failure_does_not_fail_review(db_session, learner, catalog_words) -> None:
    def broken_writer(db, event):
        raise OperationalError("INSERT INTO review_logs", {}, Exception("disk full"))

    service = VocabularyReviewService(
        db_session,
        review_log=ReviewLogPublisher(db_session, dispatch_async=False, writer=broken_writer),
    )

    submission = service.submit_review(
        user=learner, word_id=catalog_words[0].id, result="success", now=NOW
    )

    assert submission.audit_logged is False
    assert submission.progress.status == "learning"
    assert db_session.scalars(select(ReviewLog)).all() == []
    assert len(db_session.scalars(select(VocabularyProgress)).all()) == 1


def test_concurrent_update_raises_conflict(db_session, learner, catalog_words) -> None:
    word = catalog_words[0]
    service = VocabularyReviewService(db_session)
    first = service.submit_review(user=learner, word_id=word.id, result="success", now=NOW)

    original_increment = service.daily_stats.increment

    def racing_increment(**kwargs):
        db_session.execute(
            text("UPDATE vocabulary_progress SET version_id = version_id + 1 WHERE id = :id"),
            {"id": first.progress.id.hex},
        )
        original_increment(**kwargs)

    service.daily_stats.increment = racing_increment

    with pytest.raises(ConflictError):
        service.submit_review(
            user=learner, word_id=word.id, result="success", now=NOW + timedelta(minutes=1)
        )

    progress = db_session.scalars(select(VocabularyProgress)).one()
    assert progress.repetition == 1
    assert len(progress.review_history) == 1


def insert_competing_progress(db_session, user, word):
    db_session.execute(
        insert(VocabularyProgress.__table__).values(
            user_id=user.id,
            word_id=word.id,
            deck="learn",
            status="new",
            ease_factor=2.5,
            interval_days=0,
            repetition=0,
            review_history=[],
            version_id=1,
        )
    )


def test_duplicate_first_review_raises_conflict(db_session, learner, catalog_words, monkeypatch) -> None:
    word = catalog_words[0]
    service = VocabularyReviewService(db_session)

    def racing_find_progress(*, user, word, progress_id):
        insert_competing_progress(db_session, user, word)
        return None

    monkeypatch.setattr(service, "_find_progress", racing_find_progress)

    with pytest.raises(ConflictError):
        service.submit_review(user=learner, word_id=word.id, result="success", now=NOW)

    assert db_session.scalars(select(VocabularyProgress)).all() == []
    db_session.refresh(word)
    assert word.total_reviews == 0
    assert db_session.scalars(select(DailyUserStat)).all() == []


def test_audit_writer_bug_does_not_fail_review(db_session, learner, catalog_words) -> None:
    def broken_writer(db, event):
        raise KeyError("reviewed_at")

    service = VocabularyReviewService(
        db_session,
        review_log=ReviewLogPublisher(db_session, dispatch_async=False, writer=broken_writer),
    )

    submission = service.submit_review(
        user=learner, word_id=catalog_words[0].id, result="failure", now=NOW
    )

    assert submission.audit_logged is False
    assert len(db_session.scalars(select(VocabularyProgress)).all()) == 1


def test_learn_mode_lists_unstudied_published_words(db_session, learner, catalog_words) -> None:
    service = VocabularyReviewService(db_session)
    service.submit_review(user=learner, word_id=catalog_words[1].id, result="success", now=NOW)

    batch = service.list_due(user=learner, mode="learn", now=NOW)

    assert batch.mode == "learn"
    assert [item.term for item in batch.items] == ["Airport", "Ticket", "Boarding pass"]


def test_learn_mode_filters_by_category_slug(db_session, learner, catalog_words) -> None:
    service = VocabularyReviewService(db_session)

    batch = service.list_due(user=learner, mode="learn", category="travel", limit=2, now=NOW)

    assert [item.term for item in batch.items] == ["Airport", "Luggage"]


def test_review_mode_lists_only_due_records(db_session, learner, catalog_words) -> None:
    service = VocabularyReviewService(db_session)
    service.submit_review(user=learner, word_id=catalog_words[0].id, result="success", now=NOW)

    assert service.list_due(user=learner, mode="review", now=NOW).items == []

    batch = service.list_due(user=learner, mode="review", now=NOW + timedelta(days=2))
    assert len(batch.items) == 1
    assert batch.items[0].word.term == "Airport"
    assert batch.items[0].status == "learning"


def test_list_due_rejects_unknown_mode(db_session, learner) -> None:
    service = VocabularyReviewService(db_session)

    with pytest.raises(InvalidArgumentError):
        service.list_due(user=learner, mode="cram", now=NOW)


def test_list_due_reset_session(db_session, learner, catalog_words) -> None:
    service = VocabularyReviewService(db_session)
    service.submit_review(user=learner, word_id=catalog_words[0].id, result="success", now=NOW)

    kept = service.list_due(user=learner, mode="learn", now=NOW + timedelta(minutes=1))
    reset = service.list_due(
        user=learner, mode="learn", reset_session=True, now=NOW + timedelta(minutes=2)
    )

    assert kept.session.xp_earned == 10
    assert reset.session.xp_earned == 0
    assert reset.session.streak == 1


@pytest.mark.parametrize(
    ("value", "expected"),
    [(None, 10), ("", 10), ("abc", 10), (0, 10), (-3, 10), (5, 5), ("25", 25), (500, 40)],
)
def test_parse_limit(value, expected) -> None:
    assert parse_limit(value) == expected


def test_progress_detail_defaults_to_new_state(db_session, learner, catalog_words) -> None:
    service = VocabularyReviewService(db_session)

    detail = service.progress_detail(user=learner, word_id=catalog_words[0].id)

    assert detail.id is None
    assert detail.status == "new"
    assert detail.ease_factor == 2.5
    assert detail.review_history == []


def test_progress_detail_unknown_word(db_session, learner) -> None:
    service = VocabularyReviewService(db_session)

    with pytest.raises(NotFoundError):
        service.progress_detail(user=learner, word_id=424242)
