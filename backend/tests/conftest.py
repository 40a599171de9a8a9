"""
Pytest configuration and fixtures for backend tests.
"""

import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Set test environment variables before importing config
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["CORS_ORIGINS"] = '["http://localhost:3000"]'
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("SENTRY_DSN", None)

from authentication.auth import create_access_token  # noqa: E402
from repositories.database import Base, get_db  # noqa: E402
import repositories.db_models as db_models  # noqa: E402

# Test database engine (in-memory SQLite)
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh in-memory database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db(db_session):
    """Alias for db_session."""
    return db_session


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with overridden database dependency."""
    from main import app
    from helpers.rate_limiter import limiter

    # Reset rate limiter storage before each test to prevent rate limit errors
    limiter.reset()

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _create_user(
    db_session,
    username: str,
    role: db_models.UserRole = db_models.UserRole.MEMBER,
    is_active: bool = True,
) -> db_models.User:
    user = db_models.User(
        email=f"{username}@example.com",
        username=username,
        display_name=username.capitalize(),
        role=role,
        is_active=is_active,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def _auth_headers(user: db_models.User) -> dict:
    token = create_access_token(data={"sub": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def test_user(db_session) -> db_models.User:
    """Create a member who sends messages."""
    return _create_user(db_session, "alice")


@pytest.fixture
def other_user(db_session) -> db_models.User:
    """Create a second member in the same conversation."""
    return _create_user(db_session, "bob")


@pytest.fixture
def outsider_user(db_session) -> db_models.User:
    """Create a member who is not in the conversation."""
    return _create_user(db_session, "carol")


@pytest.fixture
def moderator_user(db_session) -> db_models.User:
    """Create a moderator."""
    return _create_user(db_session, "mod", role=db_models.UserRole.MODERATOR)


@pytest.fixture
def second_moderator(db_session) -> db_models.User:
    """Create another moderator (for claim race tests)."""
    return _create_user(db_session, "mod2", role=db_models.UserRole.MODERATOR)


@pytest.fixture
def admin_user(db_session) -> db_models.User:
    """Create an admin."""
    return _create_user(db_session, "admin", role=db_models.UserRole.ADMIN)


@pytest.fixture
def auth_headers(test_user) -> dict:
    """Get authentication headers for test user."""
    return _auth_headers(test_user)


@pytest.fixture
def other_auth_headers(other_user) -> dict:
    return _auth_headers(other_user)


@pytest.fixture
def outsider_auth_headers(outsider_user) -> dict:
    return _auth_headers(outsider_user)


@pytest.fixture
def moderator_auth_headers(moderator_user) -> dict:
    """Get authentication headers for moderator."""
    return _auth_headers(moderator_user)


@pytest.fixture
def second_moderator_auth_headers(second_moderator) -> dict:
    return _auth_headers(second_moderator)


@pytest.fixture
def conversation(db_session, test_user, other_user) -> db_models.Conversation:
    """Create a private conversation between test_user and other_user."""
    conversation = db_models.Conversation(
        conversation_type=db_models.ConversationType.PRIVATE,
        created_by=test_user.id,
    )
    db_session.add(conversation)
    db_session.flush()
    db_session.add_all(
        [
            db_models.ConversationParticipant(
                conversation_id=conversation.id, user_id=test_user.id
            ),
            db_models.ConversationParticipant(
                conversation_id=conversation.id, user_id=other_user.id
            ),
        ]
    )
    db_session.commit()
    db_session.refresh(conversation)
    return conversation


@pytest.fixture
def make_term(db_session):
    """Factory fixture to add a flagged term."""

    def _make_term(
        term: str,
        category: str,
        severity: int,
        is_regex: bool = False,
        is_active: bool = True,
    ) -> db_models.FlaggedTerm:
        flagged_term = db_models.FlaggedTerm(
            term=term,
            category=category,
            severity=severity,
            is_regex=is_regex,
            is_active=is_active,
        )
        db_session.add(flagged_term)
        db_session.commit()
        db_session.refresh(flagged_term)
        return flagged_term

    return _make_term


@pytest.fixture
def make_message(db_session):
    """Factory fixture to insert a message row directly."""

    def _make_message(
        conversation_id: int,
        sender_id: int,
        content: str = "hello",
        **fields,
    ) -> db_models.Message:
        message = db_models.Message(
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
            **fields,
        )
        db_session.add(message)
        db_session.commit()
        db_session.refresh(message)
        return message

    return _make_message
