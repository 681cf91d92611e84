import importlib
import os

# Configure before the app is imported: in-memory database, no Redis lookups
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("SESSION_DATABASE_URL", None)
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ADMIN_NOTIFICATION_EMAIL"] = ""

from datetime import date, time, timedelta  # noqa: E402
from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from daycare import identity  # noqa: E402
from daycare.database import Base, engine, get_db, get_user_db  # noqa: E402
from daycare.identity import IdentityUser  # noqa: E402
from daycare.main import app  # noqa: E402
from daycare.models import (  # noqa: E402
    Client,
    Field,
    Pet,
    Profile,
    Service,
    ServiceAvailability,
    Site,
    Staff,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Bearer token -> signed-in user
TOKENS = {
    "admin-token": IdentityUser(id="admin-uid", email="admin@example.com"),
    "staff-token": IdentityUser(id="staff-uid", email="staff@example.com"),
    "client-token": IdentityUser(id="client-uid", email="client@example.com"),
    "other-client-token": IdentityUser(id="other-client-uid", email="other@example.com"),
    "nobody-token": IdentityUser(id="nobody-uid", email="nobody@example.com"),
}


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(identity, "verify_id_token", lambda token: TOKENS.get(token))
    monkeypatch.setattr(identity, "verify_session_cookie", lambda cookie: TOKENS.get(cookie))
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_user_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def headers():
    def _headers(role: str) -> dict:
        return {"Authorization": f"Bearer {role}-token"}

    return _headers


@pytest.fixture
def users(db):
    """An admin, a staff member and a client assigned to that staff member"""
    admin = Staff(user_id="admin-uid", role="admin")
    staff = Staff(user_id="staff-uid", role="staff")
    db.add_all([admin, staff])
    db.commit()

    client_row = Client(user_id="client-uid", email="client@example.com", default_staff_id=staff.id)
    other_client = Client(user_id="other-client-uid", email="other@example.com")
    db.add_all(
        [
            client_row,
            other_client,
            Profile(user_id="client-uid", first_name="Casey", last_name="Jones"),
            Profile(user_id="staff-uid", first_name="Sam", last_name="Walker"),
        ]
    )
    db.commit()
    return SimpleNamespace(admin=admin, staff=staff, client=client_row, other_client=other_client)


@pytest.fixture
def booking_day():
    """A date comfortably in the future, so slots on it are offered"""
    return date.today() + timedelta(days=7)


@pytest.fixture
def daycare_setup(db, users, booking_day):
    """Site with one 2-pet field, a Daycare service open 08:00-17:00 on booking_day's weekday"""
    site = Site(name="Meadow Farm")
    db.add(site)
    db.commit()

    field = Field(site_id=site.id, name="Top Field", capacity=2)
    service = Service(name="Daycare", default_price=25.0)
    db.add_all([field, service])
    db.commit()

    rule = ServiceAvailability(
        service_id=service.id,
        field_ids=[field.id],
        start_time=time(8, 0),
        end_time=time(17, 0),
        days_of_week=[booking_day.isoweekday()],
    )
    pets = [
        Pet(client_id=users.client.id, name="Rex", is_confirmed=True),
        Pet(client_id=users.client.id, name="Bella", is_confirmed=True),
        Pet(client_id=users.client.id, name="Pip", is_confirmed=False),
    ]
    db.add_all([rule, *pets])
    db.commit()
    return SimpleNamespace(site=site, field=field, service=service, rule=rule, pets=pets)


@pytest.fixture
def notifications(monkeypatch):
    """Record booking emails queued as background tasks instead of sending them"""
    sent = []
    # the package re-exports its APIRouter as `router`, hiding the submodule
    bookings_router = importlib.import_module("daycare.domain.bookings.router")

    def recorder(kind):
        def record(*args, **kwargs):
            sent.append((kind, args, kwargs))

        return record

    for name in ("notify_booking_confirmed", "notify_booking_summary", "notify_booking_cancelled"):
        monkeypatch.setattr(bookings_router, name, recorder(name))
    return sent
