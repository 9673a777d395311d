"""Tests for the SM-2 style scheduler."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from vocabquiz.core.srs import ScheduleState, schedule_review, status_for_interval
from vocabquiz.core.srs.sm2 import round_half_up

NOW = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


def test_first_success_schedules_one_day_out() -> None:
    outcome = schedule_review(ScheduleState(), "success", NOW)

    assert outcome.repetition == 1
    assert outcome.interval == 1
    assert outcome.ease_factor == 2.55
    assert outcome.status == "learning"
    assert outcome.last_reviewed_at == NOW
    assert outcome.next_review_at == NOW + timedelta(days=1)


def test_second_success_uses_six_day_interval() -> None:
    state = ScheduleState(ease_factor=2.55, interval=1, repetition=1, status="learning")

    outcome = schedule_review(state, "success", NOW)

    assert outcome.interval == 6
    assert outcome.repetition == 2
    assert outcome.ease_factor == 2.6


def test_later_successes_multiply_interval_by_ease() -> None:
    state = ScheduleState(ease_factor=2.6, interval=6, repetition=2, status="learning")

    outcome = schedule_review(state, "success", NOW)

    # 6 * 2.6 = 15.6
    assert outcome.interval == 16
    assert outcome.status == "review"
    assert outcome.ease_factor == 2.65


def test_consecutive_successes_reach_mastery() -> None:
    state = ScheduleState()
    statuses = []
    for _ in range(4):
        outcome = schedule_review(state, "success", NOW)
        statuses.append(outcome.status)
        state = ScheduleState(
            ease_factor=outcome.ease_factor,
            interval=outcome.interval,
            repetition=outcome.repetition,
            status=outcome.status,
            next_review_at=outcome.next_review_at,
        )

    assert statuses == ["learning", "learning", "review", "mastered"]
    assert state.interval == 42


def test_zero_interval_with_repetitions_stays_zero() -> None:
    state = ScheduleState(ease_factor=2.5, interval=0, repetition=3, status="learning")

    outcome = schedule_review(state, "success", NOW)

    assert outcome.interval == 0
    assert outcome.repetition == 4
    assert outcome.status == "learning"
    assert outcome.next_review_at == NOW


def test_failure_resets_interval_and_lowers_ease() -> None:
    state = ScheduleState(ease_factor=2.5, interval=16, repetition=3, status="review")

    outcome = schedule_review(state, "failure", NOW)

    assert outcome.interval == 1
    assert outcome.repetition == 2
    assert outcome.ease_factor == 2.3
    assert outcome.status == "learning"
    assert outcome.next_review_at == NOW + timedelta(days=1)


def test_failure_never_drops_below_minimum_ease() -> None:
    state = ScheduleState(ease_factor=1.35, interval=1, repetition=0, status="learning")

    outcome = schedule_review(state, "failure", NOW)

    assert outcome.ease_factor == 1.3
    assert outcome.repetition == 0


def test_success_caps_ease_factor() -> None:
    state = ScheduleState(ease_factor=3.0, interval=40, repetition=6, status="mastered")

    outcome = schedule_review(state, "success", NOW)

    assert outcome.ease_factor == 3.0
    assert outcome.interval == 120


def test_skipped_echoes_previous_schedule() -> None:
    due = NOW + timedelta(days=4)
    state = ScheduleState(ease_factor=2.2, interval=6, repetition=2, status="learning", next_review_at=due)

    outcome = schedule_review(state, "skipped", NOW)

    assert (outcome.ease_factor, outcome.interval, outcome.repetition) == (2.2, 6, 2)
    assert outcome.status == "learning"
    assert outcome.next_review_at == due
    assert outcome.last_reviewed_at == NOW


def test_skipped_without_schedule_falls_back_to_now() -> None:
    outcome = schedule_review(ScheduleState(), "skipped", NOW)

    assert outcome.next_review_at == NOW
    assert outcome.status == "new"


def test_unknown_result_is_rejected() -> None:
    with pytest.raises(ValueError):
        schedule_review(ScheduleState(), "maybe", NOW)


def test_corrupt_ease_factor_falls_back_to_default() -> None:
    state = ScheduleState(ease_factor=float("nan"), interval=0, repetition=0)

    outcome = schedule_review(state, "success", NOW)

    assert outcome.ease_factor == 2.55


@pytest.mark.parametrize(
    ("interval", "expected"),
    [(0, "learning"), (6, "learning"), (7, "review"), (29, "review"), (30, "mastered")],
)
def test_status_for_interval_thresholds(interval: int, expected: str) -> None:
    assert status_for_interval(interval) == expected


def test_round_half_up_rounds_halves_upward() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.49) == 2
