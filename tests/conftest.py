"""
Pytest configuration and fixtures for LearnChat API tests.
"""
import os

# Must be set before the application modules read settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("TRAINING_EPOCH_DELAY_SECONDS", "0")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from learnchat.database import Base, get_db, get_session_scope
from learnchat.limiter import limiter
from learnchat.main import app
from learnchat.models import User, TrainingExample, LearningPattern
from learnchat.auth import get_password_hash, create_user_token
from learnchat.worker.external_model import get_text_generator

# Disable rate limiting for tests
limiter.enabled = False

# Use in-memory SQLite for tests with shared connection
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Global session for sharing across requests
_test_session = None


def get_test_db():
    """Get the shared test database session."""
    global _test_session
    try:
        yield _test_session
    finally:
        pass


@contextmanager
def _shared_session_scope():
    """Background work reuses the shared session and leaves it open."""
    yield _test_session


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    global _test_session

    # Create all tables
    Base.metadata.create_all(bind=engine)

    # Create a session
    _test_session = TestingSessionLocal()

    # Override the database dependencies; no external model in tests
    app.dependency_overrides[get_db] = get_test_db
    app.dependency_overrides[get_session_scope] = lambda: _shared_session_scope
    app.dependency_overrides[get_text_generator] = lambda: None

    yield _test_session

    # Cleanup
    app.dependency_overrides.clear()
    _test_session.close()
    _test_session = None

    # Drop all tables
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Create a test client."""
    with TestClient(app) as c:
        yield c


def make_user(db, email="test@example.com", password="testpassword123"):
    user = User(
        email=email,
        hashed_password=get_password_hash(password),
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture(scope="function")
def test_user(db):
    """Create a test user."""
    return make_user(db)


@pytest.fixture(scope="function")
def other_user(db):
    """A second user, for ownership checks."""
    return make_user(db, email="other@example.com")


@pytest.fixture(scope="function")
def auth_token(test_user):
    """Get an auth token for the test user."""
    return create_user_token(test_user)


@pytest.fixture(scope="function")
def auth_headers(auth_token):
    """Get auth headers for the test user."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture(scope="function")
def other_headers(other_user):
    return {"Authorization": f"Bearer {create_user_token(other_user)}"}


@pytest.fixture(scope="function")
def make_examples(db):
    """Factory inserting training examples for a user."""
    def _make(user, count, quality_score=4.5, **fields):
        examples = []
        for i in range(count):
            example = TrainingExample(
                user_id=user.id,
                input=fields.get("input", f"How do I use feature number {i}?"),
                output=fields.get("output", f"Feature {i} is used like this."),
                category=fields.get("category", "programming"),
                quality_score=quality_score,
                tags=[],
                used_in_training=fields.get("used_in_training", False),
            )
            db.add(example)
            examples.append(example)
        db.commit()
        for example in examples:
            db.refresh(example)
        return examples

    return _make


@pytest.fixture(scope="function")
def make_pattern(db):
    """Factory inserting a learned pattern for a user."""
    def _make(user, input_pattern, response_pattern="Learned answer", confidence=0.5, **fields):
        pattern = LearningPattern(
            user_id=user.id,
            input_pattern=input_pattern,
            response_pattern=response_pattern,
            confidence=confidence,
            category=fields.get("category"),
            use_count=fields.get("use_count", 1),
            learned_from="manual",
        )
        db.add(pattern)
        db.commit()
        db.refresh(pattern)
        return pattern

    return _make
