"""FastAPI application factory."""
from __future__ import annotations

from typing import List

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import OperationalError

from vocabquiz.api.v1 import api_router
from vocabquiz.config import settings
from vocabquiz.utils.exceptions import (
    VocabQuizError,
    handle_app_error,
    handle_database_unavailable,
    handle_request_validation_error,
)


tags_metadata: List[dict[str, str]] = [
    {"name": "vocabulary", "description": "Spaced-repetition review batches and outcomes."},
    {"name": "stats", "description": "Per-day vocabulary activity counters."},
    {"name": "games", "description": "Timed vocabulary mini-games."},
]


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Vocabulary review and practice service.",
        version="0.1.0",
        openapi_tags=tags_metadata,
        docs_url=f"{settings.API_V1_STR}/docs",
        redoc_url=f"{settings.API_V1_STR}/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(VocabQuizError, handle_app_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(OperationalError, handle_database_unavailable)

    app.include_router(api_router, prefix=settings.API_V1_STR)
    return app


app = create_app()
