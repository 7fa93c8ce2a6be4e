# tests/conftest.py
from __future__ import annotations

import uuid
from collections.abc import Callable, Generator, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from duet.api.v1.dependencies import get_settings
from duet.core.settings import Settings
from duet.db.session import Base, build_engine
from duet.db.session import get_db as app_get_session
from duet.main import app as fastapi_app
from duet.models import Conversation, User
from duet.services.lifecycle import ConversationLifecycle
from tests.helpers import auth_headers, identity_of

TEST_DB_URL = "sqlite://"

_TEST_SETTINGS_INSTANCE = Settings()


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = build_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    # Commits inside the code under test release savepoints; the outer
    # transaction is rolled back once the test finishes.
    session = Session(
        bind=connection,
        join_transaction_mode="create_savepoint",
        autoflush=False,
        expire_on_commit=False,
    )
    try:
        yield session
    finally:
        session.close()
        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits escaped.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def test_settings() -> Settings:
    """Provide a Settings instance aligned with runtime configuration."""
    return _TEST_SETTINGS_INSTANCE.model_copy()


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI, db_session: Session, test_settings: Settings
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_settings] = lambda: test_settings
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_settings, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def user_factory(db_session: Session) -> Callable[..., User]:
    """Return a helper that persists users with fresh ids."""

    def _create(name: str, email: str | None = None) -> User:
        user = User(
            id=uuid.uuid4().hex,
            name=name,
            email=email or f"{name.lower()}-{uuid.uuid4().hex[:8]}@example.com",
            password_hash="not-a-real-hash",
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _create


@pytest.fixture()
def alice(user_factory: Callable[..., User]) -> User:
    return user_factory("Alice")


@pytest.fixture()
def bob(user_factory: Callable[..., User]) -> User:
    return user_factory("Bob")


@pytest.fixture()
def carol(user_factory: Callable[..., User]) -> User:
    return user_factory("Carol")


@pytest.fixture()
def alice_headers(alice: User) -> dict[str, str]:
    return auth_headers(alice)


@pytest.fixture()
def bob_headers(bob: User) -> dict[str, str]:
    return auth_headers(bob)


@pytest.fixture()
def carol_headers(carol: User) -> dict[str, str]:
    return auth_headers(carol)


@pytest.fixture()
def lifecycle(db_session: Session, test_settings: Settings) -> ConversationLifecycle:
    return ConversationLifecycle(db_session, test_settings)


@pytest.fixture()
def conversation(lifecycle: ConversationLifecycle, alice: User, bob: User) -> Conversation:
    """Create the Alice/Bob conversation."""
    return lifecycle.start_conversation(identity_of(alice), bob.id).view.conversation

