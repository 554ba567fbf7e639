"""
tests/conftest.py -- Shared fixtures for the account service tests.

This module provides:
  - store: a CredentialStore over a private in-memory SQLite database
  - make_user(): registers (and optionally verifies) an account in one call
  - api_client: TestClient over the real FastAPI app with a patched lifespan

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: databases are per-connection and would show each worker thread a
blank schema. Each api_client gets a unique name so tests stay isolated.

DEBUG must be set before any core/api import so get_settings() falls back to
the development database instead of raising for a missing DATABASE_URL.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# Set DEBUG before any core/api import.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from accounts.models import NewUser, User
from accounts.store import CredentialStore, build_engine
from accounts.workflow import AuthWorkflow
from api.main import app


@pytest.fixture
def store() -> Generator[CredentialStore, None, None]:
    s = CredentialStore(build_engine("sqlite:///:memory:"))
    yield s
    s.close()


def _register(
    store: CredentialStore,
    username: str,
    password: str = "correct-horse",
    *,
    verified: bool = False,
    email: str | None = None,
) -> User:
    store.create(
        NewUser(
            username=username,
            email=email or f"{username}@example.com",
            first_name=username.title(),
            last_name_1="Tester",
            password=password,
        )
    )
    if verified:
        store.bulk_verify({username})
    user = store.find_by_username(username)
    assert user is not None
    return user


@pytest.fixture
def make_user(store: CredentialStore) -> Callable[..., User]:
    """Return a factory: make_user("alice", "pw", verified=True) -> User."""

    def factory(username: str, password: str = "correct-horse", **kwargs) -> User:
        return _register(store, username, password, **kwargs)

    return factory


def _patch_lifespan(store: CredentialStore):
    """Return a lifespan that wires the given test store into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.store = store
        app.state.workflow = AuthWorkflow(store)
        yield

    return test_lifespan


@pytest.fixture
def api_client() -> Generator[tuple[TestClient, CredentialStore], None, None]:
    """Yield (client, store) backed by a fresh shared-memory database."""
    db_url = f"sqlite:///file:test_accounts_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    api_store = CredentialStore(build_engine(db_url))
    app.router.lifespan_context = _patch_lifespan(api_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, api_store

    api_store.close()


@pytest.fixture
def register(api_client) -> Callable[..., User]:
    """make_user() equivalent bound to the api_client's store."""
    _, api_store = api_client

    def factory(username: str, password: str = "correct-horse", **kwargs) -> User:
        return _register(api_store, username, password, **kwargs)

    return factory
