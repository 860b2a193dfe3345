"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

from vriksha.database.models import Base
from vriksha.engine.entities import Location, Role
from vriksha.engine.store import EntityStore

START = datetime(2025, 6, 1, 9, 0, tzinfo=UTC)


class FixedClock:
    """Deterministic clock; call :meth:`advance` to move time forward."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def store(clock: FixedClock) -> EntityStore:
    """Empty store on the fixed clock."""
    return EntityStore(clock=clock)


@pytest.fixture
def community(store: EntityStore):
    """Store with two volunteers and an admin.

    Returns ``(store, alice, bob, admin)``.
    """
    alice = store.register_user("Alice", user_id="alice")
    bob = store.register_user("Bob", user_id="bob")
    admin = store.register_user("Admin", Role.ADMIN, user_id="admin")
    return store, alice, bob, admin


@pytest.fixture
def here() -> Location:
    return Location(12.97, 77.59)


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with all snapshot tables.

    Uses StaticPool so every thread (``asyncio.to_thread`` in ``run_db``)
    shares the same in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def client(store: EntityStore, db_engine: Engine):
    """FastAPI TestClient wired to the test store and database."""
    from fastapi.testclient import TestClient

    from vriksha.api.deps import get_config, get_engine, get_store
    from vriksha.api.main import app
    from vriksha.config import VrikshaConfig

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_config] = lambda: VrikshaConfig()
    app.dependency_overrides[get_engine] = lambda: db_engine
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
