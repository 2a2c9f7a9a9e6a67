from datetime import date, datetime, time, timezone

import pytest
from fastapi.testclient import TestClient

import facility
from config import Settings
from database import create_db_and_tables, make_engine
from identity import DEFAULT_USERS
from main import create_app
from models import ReservationDraft
from persistence import SQLModelPersistence
from store import ReservationStore

ADMIN, STUDENT, FACULTY, FACILITY = DEFAULT_USERS

NOW = datetime(2024, 4, 30, 12, 0, 0, tzinfo=timezone.utc)
DAY = date(2024, 5, 1)


def make_draft(room_id="SST-CR1", start=time(9, 0), end=time(10, 0), booking_date=DAY,
               requester=STUDENT, **extra):
    return ReservationDraft(
        room_id=room_id,
        booking_date=booking_date,
        start_time=start,
        end_time=end,
        purpose=extra.pop("purpose", "Group study"),
        requester_id=requester.id,
        requester_name=requester.name,
        requester_email=requester.email,
        **extra,
    )


def as_user(user):
    return {"X-User-Id": user.id}


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def persistence(engine):
    return SQLModelPersistence(engine)


@pytest.fixture
def store(persistence):
    store = ReservationStore(persistence, clock=lambda: NOW)
    store.load()
    store.seed_rooms(facility.seed_rooms())
    return store


@pytest.fixture
def client():
    settings = Settings(DATABASE_URL="sqlite://", IDENTITY_PROVIDER="dev", SEED_ROOMS=True)
    with TestClient(create_app(settings)) as client:
        yield client
