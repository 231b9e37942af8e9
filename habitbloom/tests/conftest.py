"""
Shared fixtures: an isolated in-memory database per test and fixed days.
"""
import pytest
from datetime import date, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from habitbloom.database import Base, init_db
from habitbloom.services.habit_service import HabitService


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    init_db(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSession()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def user_id():
    return 1


@pytest.fixture
def other_user_id():
    return 2


@pytest.fixture
def today():
    # A Friday
    return date(2026, 1, 30)


@pytest.fixture
def yesterday(today):
    return today - timedelta(days=1)


@pytest.fixture
def make_habit(db_session, user_id, today):
    """Create a daily habit starting a month before today"""
    service = HabitService(db_session)

    def _make(title="Drink Water", owner=None, **fields):
        data = {"title": title, "start_date": today - timedelta(days=30)}
        data.update(fields)
        return service.create_habit(owner or user_id, data)

    return _make
