"""Endpoints exposing per-day vocabulary activity."""
from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from vocabquiz.api.deps import get_current_user, get_db
from vocabquiz.db.models.user import User
from vocabquiz.schemas import DailyStatRead
from vocabquiz.services.daily_stats import DailyStatService
from vocabquiz.services.vocabulary_stats import VocabularyStatsService

router = APIRouter(prefix="/vocabulary/stats", tags=["stats"])


@router.get("/daily", response_model=list[DailyStatRead])
def get_daily_stats(
    *,
    days: int = Query(7, ge=1, le=90, description="Number of days to return"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[DailyStatRead]:
    today = VocabularyStatsService().local_date(datetime.now(timezone.utc))
    return DailyStatService(db).recent(user_id=current_user.id, days=days, today=today)
