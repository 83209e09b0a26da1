from datetime import datetime, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.pool import StaticPool

from dental_booking import db
from dental_booking.identity import Caller
from dental_booking.models import Booking
from dental_booking.services import BookingService

ADMIN = Caller(user_id="admin@example.com", is_admin=True)


class FrozenClock:
    """Callable clock whose time only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def engine():
    engine = db.create_engine_for(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    db.init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def factory(engine):
    return db.make_session_factory(engine)


@pytest.fixture
def session(factory):
    session = factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FrozenClock(datetime(2030, 1, 10, 8, 0))


@pytest.fixture
def service(session, clock):
    return BookingService(session, clock=clock)


@pytest.fixture
def admin():
    return ADMIN


@pytest.fixture
def providers(service, admin):
    sarah = service.create_provider(admin, "Dr. Sarah Johnson", 12, "General Dentistry")
    michael = service.create_provider(admin, "Dr. Michael Chen", 8, "Orthodontics")
    return sarah, michael


@pytest.fixture
def day():
    """Appointment day well outside the lockout window of the frozen clock."""
    return datetime(2030, 1, 15)


@pytest.fixture
def booking_invariants(session):
    """Check one booking per user and no overlapping slots per provider."""

    def check() -> None:
        session.expire_all()
        bookings = session.scalars(select(Booking)).all()
        users = [b.user_id for b in bookings]
        assert len(users) == len(set(users))
        for a in bookings:
            for b in bookings:
                if a.id < b.id and a.provider_id == b.provider_id:
                    assert not (a.appointment_date < b.end and a.end > b.appointment_date), (a, b)

    return check


@pytest.fixture
def file_factory(tmp_path):
    """Session factory on a file database, for tests that need independent sessions."""
    engine = db.create_engine_for(f"sqlite:///{tmp_path / 'bookings.db'}")
    db.init_db(engine)
    yield db.make_session_factory(engine)
    engine.dispose()
