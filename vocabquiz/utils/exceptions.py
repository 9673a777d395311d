"""Custom exception classes and error handling utilities."""
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError


class VocabQuizError(Exception):
    """Base exception for the application.

    ``category`` is a stable machine-readable code surfaced to clients next to
    the human-readable ``message``.
    """

    category = "internal"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFoundError(VocabQuizError):
    """Referenced word, progress record or game session does not exist."""

    category = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class InvalidArgumentError(VocabQuizError):
    """Missing or malformed request input."""

    category = "invalid_argument"
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(VocabQuizError):
    """Missing or invalid identity."""

    category = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class ConflictError(VocabQuizError):
    """A concurrent request updated the same record first."""

    category = "conflict"
    status_code = status.HTTP_409_CONFLICT


class ServiceUnavailableError(VocabQuizError):
    """Database or another backing service is unreachable."""

    category = "unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def error_payload(category: str, message: str, details: Optional[Dict[str, Any]] = None) -> dict:
    return {"error": {"category": category, "message": message, "details": details or {}}}


async def handle_app_error(request: Request, error: VocabQuizError) -> JSONResponse:
    """Render application errors with their category and status."""

    if error.status_code >= 500:
        logger.error(f"{error.category} error on {request.url.path}: {error.message}")
    else:
        logger.info(f"{error.category} error on {request.url.path}: {error.message}")
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(error, AuthenticationError) else None
    return JSONResponse(
        status_code=error.status_code,
        content=error_payload(error.category, error.message, error.details),
        headers=headers,
    )


async def handle_request_validation_error(
    request: Request, error: RequestValidationError
) -> JSONResponse:
    """Render body/query validation failures as ``invalid_argument``."""

    logger.warning(f"Validation error on {request.url.path}: {error.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_payload(
            InvalidArgumentError.category,
            "Validation failed",
            {"errors": jsonable_errors(error)},
        ),
    )


async def handle_database_unavailable(request: Request, error: OperationalError) -> JSONResponse:
    """Render database connectivity failures as ``unavailable``."""

    logger.error(f"Database error on {request.url.path}: {error}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=error_payload(
            ServiceUnavailableError.category,
            "Database operation failed. Please try again later.",
        ),
    )


def jsonable_errors(error: RequestValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": list(item.get("loc", ())), "msg": item.get("msg"), "type": item.get("type")}
        for item in error.errors()
    ]


def commit_or_conflict(db: Session) -> None:
    """Commit ``db``; lost updates and duplicate inserts become ``ConflictError``.

    The session is rolled back before the error is raised.
    """

    try:
        db.commit()
    except (StaleDataError, IntegrityError) as exc:
        db.rollback()
        logger.warning(f"Commit conflict: {exc.__class__.__name__}")
        raise ConflictError(
            "The record was updated by another request; please retry."
        ) from exc
