"""Shared API dependencies."""
from __future__ import annotations

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from pydantic import ValidationError
from sqlalchemy.orm import Session

from vocabquiz.config import settings
from vocabquiz.core.security import InvalidTokenError, decode_token
from vocabquiz.db.models.user import User
from vocabquiz.db.session import get_db
from vocabquiz.schemas import TokenPayload
from vocabquiz.utils.exceptions import AuthenticationError

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login", auto_error=False)

__all__ = ["get_current_user", "get_db", "oauth2_scheme"]


def get_current_user(
    token: str | None = Depends(oauth2_scheme), db: Session = Depends(get_db)
) -> User:
    """Resolve the authenticated user from the Authorization header."""

    if not token:
        raise AuthenticationError("Authorization required")

    try:
        payload = decode_token(token)
        if payload.get("type") != "access":
            raise InvalidTokenError("Token must be an access token")
        token_data = TokenPayload.model_validate(payload)
    except (InvalidTokenError, ValidationError) as exc:
        raise AuthenticationError("Could not validate credentials") from exc

    user = db.get(User, token_data.sub)
    if user is None or not user.is_active:
        raise AuthenticationError("User not found")
    return user
