import uuid

import pytest
from sqlalchemy.exc import IntegrityError

from src.database import SessionLocal
from src.models import Booking, Event
from src.bookings.ledger import SeatLedger
from src.events.schemas import EventUpdate
from src.events.service import EventService


@pytest.fixture
def reserve_after_read(monkeypatch):
    """Make another session reserve seats right after the service reads the event"""
    def _install(quantity):
        original = EventService.get_event_by_id

        def get_then_reserve(db, event_id):
            event = original(db, event_id)
            session = SessionLocal()
            try:
                assert SeatLedger(session).try_reserve(event_id, quantity).granted
            finally:
                session.close()
            return event

        monkeypatch.setattr(EventService, "get_event_by_id", staticmethod(get_then_reserve))

    return _install


def test_update_event_changes_fields_and_capacity(db, make_event):
    event = make_event(seat_capacity=5, booked_seats=2)

    updated = EventService.update_event(db, event.id, EventUpdate(title="Late Show", seat_capacity=2))

    assert updated.title == "Late Show"
    assert updated.seat_capacity == 2
    assert updated.booked_seats == 2


def test_update_event_rejects_capacity_below_booked(db, make_event):
    event = make_event(seat_capacity=5, booked_seats=4)

    with pytest.raises(ValueError, match=r"below currently booked seats \(4\)"):
        EventService.update_event(db, event.id, EventUpdate(seat_capacity=3))

    db.refresh(event)
    assert event.seat_capacity == 5


def test_capacity_shrink_racing_a_reservation_is_rejected(db, make_event, reserve_after_read):
    event = make_event(seat_capacity=5)
    reserve_after_read(3)

    with pytest.raises(ValueError, match=r"below currently booked seats \(3\)"):
        EventService.update_event(db, event.id, EventUpdate(title="Renamed", seat_capacity=2))

    db.refresh(event)
    assert event.seat_capacity == 5
    assert event.booked_seats == 3
    assert event.title == "Summer Jazz Night"


def test_update_unknown_event(db):
    assert EventService.update_event(db, 4242, EventUpdate(title="Nothing")) is None


def test_delete_event_without_bookings(db, make_event):
    event_id = make_event().id

    assert EventService.delete_event(db, event_id)
    assert db.query(Event).filter(Event.id == event_id).first() is None
    assert not EventService.delete_event(db, event_id)


def test_delete_racing_a_reservation_is_rejected(db, make_event, reserve_after_read):
    event_id = make_event(seat_capacity=5).id
    reserve_after_read(1)

    with pytest.raises(ValueError):
        EventService.delete_event(db, event_id)

    assert db.query(Event).filter(Event.id == event_id).first() is not None


def test_booking_for_deleted_event_violates_foreign_key(db, make_user, make_event):
    user = make_user()
    event_id = make_event().id
    EventService.delete_event(db, event_id)

    db.add(Booking(id=str(uuid.uuid4()), user_id=user.id, event_id=event_id, quantity=1, status="confirmed"))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()
