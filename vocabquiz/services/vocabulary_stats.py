"""Session, streak and daily-goal bookkeeping for vocabulary activity.

Every review and mini-game answer flows through :class:`VocabularyStatsService`.
The service works on :class:`~vocabquiz.schemas.stats.VocabularyStats` value
objects; persisting them back onto the user is a separate, explicit step.
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from zoneinfo import ZoneInfo

from loguru import logger

from vocabquiz.config import settings
from vocabquiz.db.models.user import User
from vocabquiz.schemas.stats import (
    DailyStats,
    LastAward,
    SessionMeta,
    SessionStats,
    VocabularyStats,
)

XP_REWARD = {
    "success": 10,
    "failure": 2,
    "skipped": 0,
}

AWARD_LABELS = {
    "success": "Correct answer",
    "failure": "Try again",
}

COMBO_MILESTONES = (5, 10, 25)
DAILY_GOAL_ACHIEVEMENT = "daily_goal"


@dataclass(slots=True)
class StatsSnapshot:
    """Loaded stats plus what loading had to change."""

    stats: VocabularyStats
    modified: bool
    session_reset: bool


class VocabularyStatsService:
    """Maintain XP, streak, combo, daily and session counters."""

    def __init__(
        self,
        *,
        timezone_name: str | None = None,
        session_timeout: dt.timedelta | None = None,
        default_daily_goal: int | None = None,
    ) -> None:
        self.tz = ZoneInfo(timezone_name or settings.STATS_TIMEZONE)
        self.session_timeout = session_timeout or dt.timedelta(
            minutes=settings.VOCABULARY_SESSION_TIMEOUT_MINUTES
        )
        self.default_daily_goal = default_daily_goal or settings.VOCABULARY_DEFAULT_DAILY_GOAL

    # ------------------------------------------------------------------
    # Calendar helpers
    # ------------------------------------------------------------------
    def local_date(self, moment: dt.datetime) -> dt.date:
        """Calendar day of ``moment`` in the configured stats timezone."""

        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=dt.timezone.utc)
        return moment.astimezone(self.tz).date()

    def resolve_daily_goal(self, user: User) -> int:
        goal = user.daily_vocabulary_goal
        if goal is not None and goal > 0:
            return int(goal)
        return self.default_daily_goal

    def has_session_expired(self, session: SessionStats | None, now: dt.datetime) -> bool:
        """A session expires after the idle timeout or when the day changes."""

        if session is None:
            return True
        if now - session.last_activity_at > self.session_timeout:
            return True
        return self.local_date(session.started_at) != self.local_date(now)

    # ------------------------------------------------------------------
    # Load / persist
    # ------------------------------------------------------------------
    def load(self, user: User, *, now: dt.datetime, reset_session: bool = False) -> StatsSnapshot:
        """Return the user's stats with daily rollover and session expiry applied."""

        document = user.vocabulary_stats
        stats = VocabularyStats.from_document(document)
        modified = stats.to_document() != document
        if modified:
            logger.debug("Repaired vocabulary stats document", user_id=str(user.id))
        session_reset = False

        today = self.local_date(now)
        if stats.daily is None or stats.daily.date != today:
            stats.daily = DailyStats(date=today, goal=self.resolve_daily_goal(user))
            modified = True
        elif stats.daily.goal <= 0:
            stats.daily.goal = self.resolve_daily_goal(user)
            modified = True

        if reset_session or self.has_session_expired(stats.session, now):
            stats.session = SessionStats.fresh(now)
            modified = True
            session_reset = True

        return StatsSnapshot(stats=stats, modified=modified, session_reset=session_reset)

    def persist(self, user: User, stats: VocabularyStats) -> None:
        user.vocabulary_stats = stats.to_document()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def _roll_daily(self, stats: VocabularyStats, event_day: dt.date, goal: int) -> DailyStats:
        daily = stats.daily
        if daily is None or daily.date != event_day:
            daily = DailyStats(date=event_day, goal=goal)
            stats.daily = daily
        if daily.goal <= 0:
            daily.goal = goal
        return daily

    def _touch_session(self, stats: VocabularyStats, now: dt.datetime) -> SessionStats:
        if stats.session is None:
            stats.session = SessionStats.fresh(now)
        stats.session.last_activity_at = now
        return stats.session

    def _unlock(self, session: SessionStats, key: str) -> None:
        if key not in session.achievements:
            session.achievements.append(key)

    def _check_achievements(self, stats: VocabularyStats) -> None:
        session = stats.session
        if session is None:
            return
        for milestone in COMBO_MILESTONES:
            if session.combo >= milestone:
                self._unlock(session, f"combo_{milestone}")
        daily = stats.daily
        if daily is not None and daily.goal > 0 and daily.reviews >= daily.goal:
            self._unlock(session, DAILY_GOAL_ACHIEVEMENT)

    def apply_review(
        self,
        stats: VocabularyStats,
        *,
        result: str,
        now: dt.datetime,
        goal: int,
    ) -> int:
        """Apply a review outcome and return the XP it granted."""

        counts_as_attempt = result != "skipped"
        is_success = result == "success"
        xp_awarded = XP_REWARD.get(result, 0)

        if counts_as_attempt:
            stats.total_reviews += 1
            if is_success:
                stats.success_count += 1
            else:
                stats.failure_count += 1
        else:
            stats.skip_count += 1

        stats.xp += xp_awarded

        if is_success:
            stats.streak += 1
            stats.combo += 1
        elif counts_as_attempt:
            stats.streak = 0
            stats.combo = 0
        stats.longest_streak = max(stats.longest_streak, stats.streak)

        session = self._touch_session(stats, now)
        session.xp += xp_awarded
        if is_success:
            session.combo += 1
        elif counts_as_attempt:
            session.combo = 0
        session.max_combo = max(session.max_combo, session.combo)
        stats.max_combo = max(stats.max_combo, stats.combo, session.max_combo)

        daily = self._roll_daily(stats, self.local_date(now), goal)
        if counts_as_attempt:
            daily.reviews += 1
            if is_success:
                daily.successes += 1
        daily.xp += xp_awarded

        if xp_awarded > 0:
            stats.last_award = LastAward(
                type=result,
                label=AWARD_LABELS.get(result, result),
                xp=xp_awarded,
                awarded_at=now,
            )

        self._check_achievements(stats)
        return xp_awarded

    def apply_game_result(
        self,
        stats: VocabularyStats,
        *,
        now: dt.datetime,
        xp: int,
        correct: bool,
        goal: int,
    ) -> None:
        """Apply a single mini-game answer.

        Games feed XP, success/failure counters, the session combo and the
        daily counters; the review streak is left alone.
        """

        xp = max(0, xp)
        stats.xp += xp
        stats.total_reviews += 1
        if correct:
            stats.success_count += 1
        else:
            stats.failure_count += 1

        session = self._touch_session(stats, now)
        session.xp += xp
        session.combo = session.combo + 1 if correct else 0
        session.max_combo = max(session.max_combo, session.combo)
        stats.max_combo = max(stats.max_combo, session.max_combo)

        daily = self._roll_daily(stats, self.local_date(now), goal)
        daily.reviews += 1
        if correct:
            daily.successes += 1
        daily.xp += xp

        self._check_achievements(stats)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    @staticmethod
    def session_meta(stats: VocabularyStats) -> SessionMeta:
        session = stats.session
        daily = stats.daily
        return SessionMeta(
            xp_earned=session.xp if session else 0,
            streak=stats.streak,
            combo=session.combo if session else 0,
            max_combo=max(session.max_combo if session else 0, stats.max_combo),
            daily_progress=daily.reviews if daily else 0,
            daily_goal=daily.goal if daily else None,
            unlocked_decks=list(stats.unlocked_decks),
            achievements=list(session.achievements) if session else [],
            cooldown_until=stats.cooldown_until,
            last_award=stats.last_award,
        )
