import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TIMEZONE"] = "UTC"

from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from timetracker.core.clock import FrozenClock, get_clock  # noqa: E402
from timetracker.core.manual_entry import ManualEntryValidator  # noqa: E402
from timetracker.core.store import IntervalStore  # noqa: E402
from timetracker.core.timer_session import TimerSession  # noqa: E402
from timetracker.db.base import Base  # noqa: E402
from timetracker.db.session import get_db  # noqa: E402
from timetracker.main import app  # noqa: E402
from timetracker.models.activity import Activity  # noqa: E402

# Tuesday 09:00 UTC; "yesterday" starts 2026-03-09T00:00Z
T0 = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FrozenClock(T0)


@pytest.fixture
def store(db):
    return IntervalStore(db)


@pytest.fixture
def timers(store, clock):
    return TimerSession(store, clock)


@pytest.fixture
def manual(store, clock):
    return ManualEntryValidator(store, clock, tz=timezone.utc)


def make_activity(db, name="Reading", color="#112233") -> Activity:
    activity = Activity(name=name, color=color)
    db.add(activity)
    db.commit()
    return activity


@pytest.fixture
def activity(db):
    return make_activity(db)


@pytest.fixture
def client(session_factory, clock):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def activity_id(client):
    res = client.post("/activities", json={"name": "Deep Work", "color": "#ff0000"})
    assert res.status_code == 201
    return res.json()["id"]
