"""
Shared pytest fixtures.

Uses an in-memory SQLite database (one connection shared through
StaticPool) so no file is written during tests.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from streakflame.db.base import Base, get_db
from streakflame.main import app
from streakflame.services.reminders import ReminderRegistry
from streakflame.services.storage import KeyValueStore
from streakflame.services.streak_engine import StreakEngine

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def store(db):
    return KeyValueStore(db)


@pytest.fixture()
def reminders():
    registry = ReminderRegistry()
    registry.start()
    yield registry
    registry.stop()


@pytest.fixture()
def streak_engine(store, reminders):
    """Engine booted on an empty store."""
    eng = StreakEngine(store, reminders=reminders)
    eng.boot(today="2026-02-01")
    return eng


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    app.state.boot_result = None
    app.state.reminders = ReminderRegistry()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    app.state.boot_result = None
