"""
Shared fixtures: an in-memory SQLite database used as the default database.
"""

from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cycletrack.database import session as session_module
from cycletrack.database.reminder_store import SQLAlchemyReminderStore
from cycletrack.database.session import DatabaseSession
from cycletrack.models import Base


@pytest.fixture(scope="function")
def engine():
    """SQLite in-memory engine with all tables created."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    engine.dispose()


@pytest.fixture(scope="function")
def database(engine, monkeypatch):
    """DatabaseSession bound to the test engine, also installed as the default."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    database = DatabaseSession(TestingSessionLocal)
    monkeypatch.setattr(session_module, '_default_session', database)
    return database


@pytest.fixture
def store(database):
    """Reminder store on the test database."""
    return SQLAlchemyReminderStore(database)


@pytest.fixture
def now():
    """Fixed current time (naive UTC)."""
    return datetime(2024, 1, 10, 12, 0, 0)
