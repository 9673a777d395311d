"""Endpoints for spaced-repetition vocabulary review."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from vocabquiz.api.deps import get_current_user, get_db
from vocabquiz.db.models.user import User
from vocabquiz.schemas import (
    ProgressRead,
    ReviewBatchResponse,
    ReviewSubmitRequest,
    ReviewSubmitResponse,
)
from vocabquiz.services.review import VocabularyReviewService

TRUTHY_VALUES = {"1", "true", "yes", "reset", "y"}

router = APIRouter(prefix="/vocabulary", tags=["vocabulary"])


def is_truthy(value: str | None) -> bool:
    return value is not None and value.strip().lower() in TRUTHY_VALUES


@router.get("/review", response_model=ReviewBatchResponse)
def get_review_batch(
    *,
    mode: str = Query("learn", description="learn for new words, review for due ones"),
    limit: str | None = Query(None, description="Batch size (defaults to 10, capped at 40)"),
    category: str | None = Query(None, description="Category id or slug"),
    reset_session: str | None = Query(None, alias="resetSession"),
    reset: str | None = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ReviewBatchResponse:
    """Return the next batch of words to study."""

    service = VocabularyReviewService(db)
    batch = service.list_due(
        user=current_user,
        mode=mode,
        limit=limit,
        category=category,
        reset_session=is_truthy(reset_session) or is_truthy(reset),
    )
    return ReviewBatchResponse(mode=batch.mode, items=batch.items, session=batch.session)


@router.post("/review", response_model=ReviewSubmitResponse)
def submit_review(
    *,
    payload: ReviewSubmitRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ReviewSubmitResponse:
    """Record a review outcome and reschedule the word."""

    service = VocabularyReviewService(db)
    submission = service.submit_review(
        user=current_user,
        word_id=payload.word_id,
        result=payload.result,
        progress_id=payload.progress_id,
        duration_ms=payload.duration_ms,
        category_id=payload.category_id,
    )
    return ReviewSubmitResponse(
        progress=submission.progress,
        reward=submission.reward,
        session=submission.session,
        meta=submission.session,
    )


@router.get("/progress/{word_id}", response_model=ProgressRead)
def get_word_progress(
    word_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ProgressRead:
    """Return the learner's scheduling state for a word."""

    service = VocabularyReviewService(db)
    return service.progress_detail(user=current_user, word_id=word_id)
