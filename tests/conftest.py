"""Pytest fixtures for service and API tests."""

import os
from collections.abc import Generator

os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from vocabquiz.api.deps import get_db
from vocabquiz.core.security import create_access_token
from vocabquiz.db import models  # noqa: F401  # Imported for side effects
from vocabquiz.db.base import Base
from vocabquiz.db.models import User, VocabularyCategory, WordEntry
from vocabquiz.main import create_app
from vocabquiz.utils.cache import cache_backend


@pytest.fixture(scope="session")
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session(db_engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())
        db.commit()
        db.close()


@pytest.fixture(autouse=True)
def clear_cache() -> Generator[None, None, None]:
    cache_backend.clear()
    try:
        yield
    finally:
        cache_backend.clear()


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def learner(db_session: Session) -> User:
    user = User(email="learner@example.com", full_name="Test Learner")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture()
def auth_headers(learner: User) -> dict[str, str]:
    token = create_access_token(learner.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def travel_category(db_session: Session) -> VocabularyCategory:
    category = VocabularyCategory(name="Travel", slug="travel", color="#2f80ed")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture()
def catalog_words(db_session: Session, travel_category: VocabularyCategory) -> list[WordEntry]:
    words = [
        WordEntry(
            term="Airport",
            translation="Flughafen",
            level="A1",
            difficulty="easy",
            status="published",
            category_id=travel_category.id,
        ),
        WordEntry(
            term="Luggage",
            translation="Gepäck",
            level="A2",
            difficulty="medium",
            status="published",
            category_id=travel_category.id,
        ),
        WordEntry(
            term="Boarding pass",
            translation="Bordkarte",
            level="B1",
            difficulty="hard",
            status="published",
            category_id=travel_category.id,
        ),
        WordEntry(
            term="Ticket",
            translation="Fahrkarte",
            level="A1",
            difficulty="easy",
            status="published",
        ),
        WordEntry(
            term="Customs",
            translation="Zoll",
            level="B2",
            difficulty="hard",
            status="draft",
        ),
    ]
    db_session.add_all(words)
    db_session.commit()
    return words
