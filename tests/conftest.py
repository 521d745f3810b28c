# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from itertools import count
from typing import Any

os.environ.setdefault("SECRET_KEY", "parley-test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import fakeredis
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from nacl.signing import SigningKey
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from parley.api.v1.endpoints import auth as auth_endpoints
from parley.core.constants import AccessLevel, Archetype, Role
from parley.core.security import create_access_token, encode_b64
from parley.db.session import Base
from parley.db.session import get_db as app_get_session
from parley.main import app as fastapi_app
from parley.models import Category, Post, User
from parley.schemas.post import PostCreate
from parley.services.permissions import PermissionEvaluator
from parley.services.posts import create_post
from parley.services.replay import ReplayProtectionService

TEST_DB_URL = "sqlite://"

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
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture()
def db_session(engine: Engine, session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()

        # Services commit, so every test starts from empty tables instead.
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
def replay_service() -> ReplayProtectionService:
    return ReplayProtectionService(fakeredis.FakeRedis())


@pytest.fixture(autouse=True)
def mock_replay_service(app: FastAPI, replay_service: ReplayProtectionService) -> Iterator[None]:
    """Back challenge replay protection with an in-memory redis."""
    app.dependency_overrides[auth_endpoints.get_replay_service_dep] = lambda: replay_service
    try:
        yield
    finally:
        app.dependency_overrides.pop(auth_endpoints.get_replay_service_dep, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def evaluator() -> PermissionEvaluator:
    return PermissionEvaluator()


def generate_identity() -> dict[str, Any]:
    """Return a fresh Ed25519 signing key with its encoded public key."""
    signing_key = SigningKey.generate()
    pubkey_bytes = signing_key.verify_key.encode()
    return {
        "private_key": signing_key,
        "pubkey_bytes": pubkey_bytes,
        "pubkey_b64": encode_b64(pubkey_bytes),
    }


def auth_headers_for(user: User) -> dict[str, str]:
    token = create_access_token(user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory persisting users with the given role."""

    def _make_user(username: str | None = None, role: Role = Role.REGULAR) -> User:
        user = User(
            username=username or f"user{next(_USERNAME_COUNTER)}",
            pubkey=generate_identity()["pubkey_bytes"],
            role=role.value,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def test_user(make_user: Callable[..., User]) -> User:
    return make_user("alice")


@pytest.fixture()
def other_user(make_user: Callable[..., User]) -> User:
    return make_user("bob")


@pytest.fixture()
def third_user(make_user: Callable[..., User]) -> User:
    return make_user("carol")


@pytest.fixture()
def moderator(make_user: Callable[..., User]) -> User:
    return make_user("mod_mia", Role.MODERATOR)


@pytest.fixture()
def admin(make_user: Callable[..., User]) -> User:
    return make_user("admin_ann", Role.ADMIN)


@pytest.fixture()
def auth_token(test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return auth_headers_for(test_user)


@pytest.fixture()
def other_auth_token(other_user: User) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    return auth_headers_for(other_user)


@pytest.fixture()
def moderator_auth_token(moderator: User) -> dict[str, str]:
    return auth_headers_for(moderator)


@pytest.fixture()
def admin_auth_token(admin: User) -> dict[str, str]:
    return auth_headers_for(admin)


@pytest.fixture()
def category(db_session: Session) -> Category:
    """An open category: no permission rows means everyone has full access."""
    category = Category(name="General", slug="general", description="Anything goes")
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture()
def staff_category(db_session: Session) -> Category:
    """A category only staff can read or post in."""
    category = Category(name="Staff Lounge", slug="staff-lounge")
    category.set_permissions(staff=AccessLevel.FULL)
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture()
def readonly_category(db_session: Session) -> Category:
    """Everyone may read and reply; only staff may start topics."""
    category = Category(name="Announcements", slug="announcements")
    category.set_permissions(everyone=AccessLevel.CREATE_POST, staff=AccessLevel.FULL)
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture()
def public_post(
    db_session: Session,
    test_user: User,
    category: Category,
    evaluator: PermissionEvaluator,
) -> Post:
    """Opening post of a regular topic in the open category."""
    return create_post(
        db_session,
        test_user,
        PostCreate(
            raw="This is the body of a public topic",
            title="A public topic for everyone",
            category=category.id,
        ),
        evaluator=evaluator,
    )


@pytest.fixture()
def private_post(
    db_session: Session,
    test_user: User,
    other_user: User,
    evaluator: PermissionEvaluator,
) -> Post:
    """Opening post of a private message from test_user to other_user."""
    return create_post(
        db_session,
        test_user,
        PostCreate(
            raw="This is a private message body",
            title="A private conversation topic",
            archetype=Archetype.PRIVATE_MESSAGE,
            target_usernames=other_user.username,
        ),
        evaluator=evaluator,
    )


@pytest.fixture()
def headers_for() -> Callable[[User], dict[str, str]]:
    """Return a helper building bearer headers for any user."""
    return auth_headers_for


@pytest.fixture()
def identity() -> dict[str, Any]:
    """Return a fresh signing identity for auth flows."""
    return generate_identity()
