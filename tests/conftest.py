# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import UTC, datetime, timedelta
from itertools import count

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("HASH_SALT", "test-salt")
os.environ.setdefault("PASSWORD_HASH_ITERATIONS", "1000")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")

from usermanager.core.security import create_access_token, hash_password  # noqa: E402
from usermanager.db.session import Base  # noqa: E402
from usermanager.db.session import get_db as app_get_session  # noqa: E402
from usermanager.main import app as fastapi_app  # noqa: E402
from usermanager.models import Role, User  # noqa: E402

TEST_DB_URL = "sqlite://"
DEFAULT_PASSWORD = "Passw0rd!"

_USER_COUNTER = count(1)


class FakeClock:
    """Controllable replacement for ``utcnow`` in rating tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
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
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory that persists users with sensible defaults."""

    def _make_user(
        user_name: str | None = None,
        *,
        role: Role = Role.USER,
        rating: int = 0,
        password: str = DEFAULT_PASSWORD,
        last_rated_at: datetime | None = None,
    ) -> User:
        user = User(
            user_name=user_name or f"member{next(_USER_COUNTER):04d}",
            first_name="Test",
            last_name="User",
            password_hash=hash_password(password),
            role=role.value,
            rating=rating,
            last_rated_at=last_rated_at,
        )
        db_session.add(user)
        db_session.flush()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def test_user(make_user: Callable[..., User]) -> User:
    """Create and return the primary test user."""
    return make_user("testuser")


@pytest.fixture()
def other_user(make_user: Callable[..., User]) -> User:
    """Create and return a second persisted user."""
    return make_user("otheruser")


@pytest.fixture()
def moderator_user(make_user: Callable[..., User]) -> User:
    return make_user("moderator", role=Role.MODERATOR)


@pytest.fixture()
def admin_user(make_user: Callable[..., User]) -> User:
    return make_user("superadmin", role=Role.ADMIN)


def auth_headers(user: User) -> dict[str, str]:
    """Return bearer authorization headers for ``user``."""
    token = create_access_token(user.id, user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def auth_token(test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return auth_headers(test_user)


@pytest.fixture()
def other_auth_token(other_user: User) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    return auth_headers(other_user)


@pytest.fixture()
def moderator_auth_token(moderator_user: User) -> dict[str, str]:
    return auth_headers(moderator_user)


@pytest.fixture()
def admin_auth_token(admin_user: User) -> dict[str, str]:
    return auth_headers(admin_user)


@pytest.fixture()
def headers_for() -> Callable[[User], dict[str, str]]:
    """Expose ``auth_headers`` to tests that create users on the fly."""
    return auth_headers
