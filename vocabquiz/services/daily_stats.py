"""Per-day activity counters."""
from __future__ import annotations

import uuid
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from vocabquiz.db.models.analytics import DailyUserStat
from vocabquiz.schemas.stats import DailyStatRead
from vocabquiz.utils.cache import build_cache_key, cache_backend

_COUNTER_COLUMNS = (
    "quizzes_completed",
    "words_reviewed",
    "words_mastered",
    "xp_earned",
    "points_earned",
)

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class DailyStatService:
    """Create-or-increment daily counters keyed by (user, date)."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def increment(
        self,
        *,
        user_id: uuid.UUID,
        stat_date: date,
        streak_active: bool,
        quizzes_completed: int = 0,
        words_reviewed: int = 0,
        words_mastered: int = 0,
        xp_earned: int = 0,
        points_earned: int = 0,
    ) -> None:
        """Add the given deltas to the day's row, creating it when missing.

        The update happens in a single ``INSERT ... ON CONFLICT DO UPDATE`` so
        two requests on the same day never lose each other's increments.
        """

        deltas = {
            "quizzes_completed": quizzes_completed,
            "words_reviewed": words_reviewed,
            "words_mastered": words_mastered,
            "xp_earned": xp_earned,
            "points_earned": points_earned,
        }
        dialect = self.db.get_bind().dialect.name
        insert = _INSERTS.get(dialect)
        if insert is None:
            self._increment_orm(user_id, stat_date, streak_active, deltas)
        else:
            table = DailyUserStat.__table__
            stmt = insert(table).values(
                id=uuid.uuid4(),
                user_id=user_id,
                stat_date=stat_date,
                streak_active=streak_active,
                **deltas,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[table.c.user_id, table.c.stat_date],
                set_={
                    **{name: table.c[name] + stmt.excluded[name] for name in _COUNTER_COLUMNS},
                    "streak_active": stmt.excluded.streak_active,
                },
            )
            self.db.execute(stmt)

    def invalidate(self, user_id: uuid.UUID) -> None:
        """Drop cached windows for ``user_id``; call once the increment is committed."""

        cache_backend.invalidate("stats:daily", prefix=f"{user_id}:")

    def _increment_orm(
        self, user_id: uuid.UUID, stat_date: date, streak_active: bool, deltas: dict[str, int]
    ) -> None:
        row = self.db.scalars(
            select(DailyUserStat).where(
                DailyUserStat.user_id == user_id, DailyUserStat.stat_date == stat_date
            )
        ).first()
        if row is None:
            row = DailyUserStat(user_id=user_id, stat_date=stat_date, **deltas)
            self.db.add(row)
        else:
            for name, delta in deltas.items():
                setattr(row, name, (getattr(row, name) or 0) + delta)
        row.streak_active = streak_active
        self.db.flush([row])

    def recent(self, *, user_id: uuid.UUID, days: int, today: date) -> list[DailyStatRead]:
        """Return the last ``days`` days, oldest first, with empty days zero-filled."""

        cache_key = f"{user_id}:{build_cache_key(days=days, today=today)}"
        cached = cache_backend.get("stats:daily", cache_key)
        if cached is not None:
            return [DailyStatRead.model_validate(item) for item in cached]

        start = today - timedelta(days=days - 1)
        rows = self.db.scalars(
            select(DailyUserStat)
            .where(DailyUserStat.user_id == user_id)
            .where(DailyUserStat.stat_date >= start)
            .where(DailyUserStat.stat_date <= today)
        ).all()
        by_date = {row.stat_date: row for row in rows}

        result: list[DailyStatRead] = []
        for offset in range(days):
            day = start + timedelta(days=offset)
            row = by_date.get(day)
            if row is None:
                result.append(DailyStatRead(date=day))
                continue
            result.append(
                DailyStatRead(
                    date=day,
                    quizzes_completed=row.quizzes_completed or 0,
                    words_reviewed=row.words_reviewed or 0,
                    words_mastered=row.words_mastered or 0,
                    xp_earned=row.xp_earned or 0,
                    points_earned=row.points_earned or 0,
                    streak_active=bool(row.streak_active),
                )
            )

        cache_backend.set(
            "stats:daily",
            cache_key,
            [item.model_dump(mode="json") for item in result],
            ttl_seconds=300,
        )
        return result
