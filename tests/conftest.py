# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import UTC, datetime, timedelta
from itertools import count
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from threadvote.core.security import create_access_token
from threadvote.db.session import Base
from threadvote.db.session import get_db as app_get_session
from threadvote.main import app as fastapi_app
from threadvote.models import Comment, Post, User

TEST_DB_URL = "sqlite://"
BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

_USERNAME_COUNTER = count(1)


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
    # Service commits and rollbacks work on savepoints inside the outer transaction.
    connection = engine.connect()
    transaction = connection.begin()
    session = Session(
        bind=connection,
        autoflush=False,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )

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


@pytest.fixture()
def file_session_factory(tmp_path: Path) -> Iterator[Callable[[], Session]]:
    """Sessions on a file-backed database that several threads can share."""
    file_engine = create_engine(
        f"sqlite:///{tmp_path / 'threadvote.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=file_engine)
    try:
        yield sessionmaker(bind=file_engine, autoflush=False, expire_on_commit=False)
    finally:
        file_engine.dispose()


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


def make_user(session: Session, *, username: str | None = None, is_admin: bool = False) -> User:
    user = User(
        username=username or f"user{next(_USERNAME_COUNTER)}",
        is_admin=is_admin,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def make_post(
    session: Session,
    author: User,
    *,
    title: str = "Test post",
    community: str = "testing",
    created_at: datetime | None = None,
    score: int = 0,
    deleted: bool = False,
) -> Post:
    post = Post(
        author_id=author.id,
        community=community,
        title=title,
        kind="text",
        body="Test post content",
        score=score,
        deleted=deleted,
        created_at=created_at or BASE_TIME,
    )
    session.add(post)
    session.commit()
    session.refresh(post)
    return post


def make_comment(
    session: Session,
    post: Post,
    author: User,
    *,
    parent: Comment | None = None,
    body: str = "A comment",
    score: int = 0,
    created_at: datetime | None = None,
    deleted: bool = False,
) -> Comment:
    comment = Comment(
        post_id=post.id,
        parent_id=parent.id if parent is not None else None,
        author_id=author.id,
        body=body,
        score=score,
        deleted=deleted,
        created_at=created_at or BASE_TIME,
    )
    session.add(comment)
    session.commit()
    session.refresh(comment)
    return comment


def at(minutes: int) -> datetime:
    """Return a timestamp ``minutes`` after the fixed test epoch."""
    return BASE_TIME + timedelta(minutes=minutes)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def test_user(db_session: Session) -> User:
    """Create and return a persisted test user."""
    return make_user(db_session, username="alice")


@pytest.fixture()
def other_user(db_session: Session) -> User:
    """Create and return a second persisted user."""
    return make_user(db_session, username="bob")


@pytest.fixture()
def admin_user(db_session: Session) -> User:
    """Create and return an administrator."""
    return make_user(db_session, username="root", is_admin=True)


@pytest.fixture()
def auth_token(test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return auth_headers(test_user)


@pytest.fixture()
def other_auth_token(other_user: User) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    return auth_headers(other_user)


@pytest.fixture()
def admin_auth_token(admin_user: User) -> dict[str, str]:
    """Return authorization headers for the administrator."""
    return auth_headers(admin_user)


@pytest.fixture()
def test_post(db_session: Session, test_user: User) -> Post:
    """Create a baseline post authored by the primary test user."""
    return make_post(db_session, test_user)
