import os
from datetime import date, time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from hms_scheduler.database import Base  # noqa: E402
from hms_scheduler.models import appointment, schedule  # noqa: E402,F401
from hms_scheduler.services.booking import BookingCoordinator  # noqa: E402
from hms_scheduler.services.events import BookingEvents  # noqa: E402

SCHEDULE_DATE = date(2026, 3, 2)


@pytest.fixture
def db_session():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(tmp_path):
    """Sessions on a shared file database, for tests that need two independent clients."""
    engine = create_engine(f"sqlite:///{tmp_path / 'scheduling.db'}")
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


@pytest.fixture
def booking_events() -> BookingEvents:
    return BookingEvents()


@pytest.fixture
def coordinator(db_session, booking_events) -> BookingCoordinator:
    return BookingCoordinator(db_session, booking_events)


@pytest.fixture
def morning_schedule(coordinator):
    """09:00-11:00 in 30 minute steps: 9:00, 9:30, 10:00 and 10:30 AM."""
    result = coordinator.define_schedule('doctor-1', SCHEDULE_DATE, time(9, 0), time(11, 0), 30)
    assert result.ok
    return result.value
