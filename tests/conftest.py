"""
Test configuration and fixtures.

Environment variables are set before any application module is imported,
since settings and the database engine are created at import time.
"""

import os
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix="event-ticketing-tests-")
os.environ["SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["QR_CODE_DIR"] = os.path.join(_TEST_DIR, "qrs")
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from src.config import settings
from src.database import Base, SessionLocal, engine
from src.models import Event
from src.auth.schemas import UserCreate
from src.auth.service import UserService
from src.bookings.notifications import MemoryEmailSender, NotificationDispatcher
from src.bookings.ticket_service import ArtifactStore


@pytest.fixture(autouse=True)
def clean_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def artifact_store(tmp_path):
    return ArtifactStore(str(tmp_path / "qrs"))


@pytest.fixture
def email_sender():
    return MemoryEmailSender()


@pytest.fixture
def dispatcher(email_sender):
    dispatcher = NotificationDispatcher(sender=email_sender, maxsize=50)
    dispatcher.start()
    yield dispatcher
    dispatcher.stop()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(name="Alice", password="secret123", roles=None):
        counter["n"] += 1
        email = f"{name.lower()}{counter['n']}@example.com"
        return UserService.create_user(db, UserCreate(name=name, email=email, password=password), roles=roles)

    return _make_user


@pytest.fixture
def make_event(db):
    def _make_event(title="Summer Jazz Night", seat_capacity=10, booked_seats=0, **kwargs):
        event = Event(
            title=title,
            venue=kwargs.pop("venue", "Riverside Hall"),
            date=kwargs.pop("date", date.today() + timedelta(days=7)),
            time=kwargs.pop("time", "19:30"),
            category=kwargs.pop("category", "music"),
            seat_capacity=seat_capacity,
            booked_seats=booked_seats,
            **kwargs
        )
        db.add(event)
        db.commit()
        db.refresh(event)
        return event

    return _make_event


@pytest.fixture
def client(tmp_path, email_sender, monkeypatch):
    monkeypatch.setattr(settings, "QR_CODE_DIR", str(tmp_path / "api-qrs"))

    from src.main import app

    with TestClient(app) as test_client:
        app.state.notification_dispatcher.sender = email_sender
        yield test_client


@pytest.fixture
def auth_headers(client):
    def _auth_headers(email, password="secret123"):
        response = client.post(f"{settings.API_V1_STR}/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _auth_headers
