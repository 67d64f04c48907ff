"""
Pytest fixtures for testing
"""
import pytest
from sqlalchemy import create_engine, JSON
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from sqlalchemy.dialects.postgresql import JSONB

from nomi.config import Settings
from nomi.infrastructure.db.session import Base
from nomi.infrastructure.db.models import TimelineItemModel, HabitModel, ProfileModel
from nomi.infrastructure.timeline.repository import DETAIL_MODELS


@pytest.fixture
def db_engine():
    """In-memory SQLite engine shared across threads, with JSONB→JSON mapping."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    # SQLite doesn't support JSONB, remap to JSON for tests
    for table in Base.metadata.tables.values():
        for col in table.columns:
            if isinstance(col.type, JSONB):
                col.type = JSON()
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Session:
    """Create database session for tests"""
    SessionLocal = sessionmaker(bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def owner_id():
    return "user-a"


@pytest.fixture
def other_user_id():
    return "user-b"


@pytest.fixture
def profiles(db_session, owner_id, other_user_id):
    db_session.add_all([
        ProfileModel(user_id=owner_id, email="ann@example.com", display_name="Ann"),
        ProfileModel(user_id=other_user_id, email="bob@example.com", display_name="Bob"),
    ])
    db_session.commit()


@pytest.fixture
def add_item(db_session, owner_id):
    """
    Insert a timeline item and (unless detail is None) its detail row directly,
    bypassing the create use case.
    """
    def _add(item_id, kind, title, start_at=None, end_at=None, user_id=None, detail=None, **base):
        db_session.add(TimelineItemModel(
            id=item_id, user_id=user_id or owner_id, kind=kind,
            start_at=start_at, end_at=end_at, title=title, meta={}, **base,
        ))
        if detail is not None:
            db_session.add(DETAIL_MODELS[kind](timeline_item_id=item_id, **detail))
        db_session.commit()
        return item_id
    return _add


@pytest.fixture
def add_habit(db_session, owner_id):
    def _add(habit_id, title, schedule=None, active=True, user_id=None):
        db_session.add(HabitModel(
            id=habit_id, user_id=user_id or owner_id, title=title,
            schedule=schedule or {}, active=active,
        ))
        db_session.commit()
        return habit_id
    return _add
