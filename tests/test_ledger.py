import threading

import pytest

from src.database import SessionLocal
from src.bookings.ledger import SeatLedger, RejectionReason


def test_reserve_within_capacity(db, make_event):
    event = make_event(seat_capacity=5)
    ledger = SeatLedger(db)

    reservation = ledger.try_reserve(event.id, 3)

    assert reservation.granted
    assert reservation.reason is None
    db.refresh(event)
    assert event.booked_seats == 3
    assert ledger.available_seats(event.id) == 2


def test_reserve_exactly_remaining_seats(db, make_event):
    event = make_event(seat_capacity=5, booked_seats=3)

    assert SeatLedger(db).try_reserve(event.id, 2).granted
    db.refresh(event)
    assert event.booked_seats == 5


def test_reserve_beyond_capacity_is_rejected(db, make_event):
    event = make_event(seat_capacity=5, booked_seats=4)

    reservation = SeatLedger(db).try_reserve(event.id, 2)

    assert not reservation.granted
    assert reservation.reason == RejectionReason.INSUFFICIENT_SEATS
    db.refresh(event)
    assert event.booked_seats == 4


def test_reserve_unknown_event(db):
    reservation = SeatLedger(db).try_reserve(9999, 1)

    assert not reservation.granted
    assert reservation.reason == RejectionReason.EVENT_NOT_FOUND


def test_reserve_rejects_non_positive_quantity(db, make_event):
    event = make_event()
    with pytest.raises(ValueError):
        SeatLedger(db).try_reserve(event.id, 0)


def test_release_restores_seats(db, make_event):
    event = make_event(seat_capacity=5)
    ledger = SeatLedger(db)
    ledger.try_reserve(event.id, 2)

    assert ledger.release(event.id, 2)
    db.refresh(event)
    assert event.booked_seats == 0


def test_release_never_goes_negative(db, make_event):
    event = make_event(seat_capacity=5, booked_seats=1)

    assert not SeatLedger(db).release(event.id, 2)
    db.refresh(event)
    assert event.booked_seats == 1


def _reserve_concurrently(event_id, workers, quantity=1):
    barrier = threading.Barrier(workers)
    results = []
    lock = threading.Lock()

    def worker():
        session = SessionLocal()
        try:
            barrier.wait()
            reservation = SeatLedger(session).try_reserve(event_id, quantity)
            with lock:
                results.append(reservation)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results


def test_concurrent_reservations_never_exceed_capacity(db, make_event):
    event = make_event(seat_capacity=7)

    results = _reserve_concurrently(event.id, workers=20)

    granted = [r for r in results if r.granted]
    rejected = [r for r in results if not r.granted]
    assert len(granted) == 7
    assert len(rejected) == 13
    assert all(r.reason == RejectionReason.INSUFFICIENT_SEATS for r in rejected)
    db.refresh(event)
    assert event.booked_seats == 7


def test_last_seat_race_has_exactly_one_winner(db, make_event):
    event = make_event(seat_capacity=10, booked_seats=9)

    results = _reserve_concurrently(event.id, workers=2)

    assert sorted(r.granted for r in results) == [False, True]
    db.refresh(event)
    assert event.booked_seats == 10


def test_reservations_on_different_events_are_independent(db, make_event):
    first = make_event(title="First", seat_capacity=1)
    second = make_event(title="Second", seat_capacity=1)
    ledger = SeatLedger(db)

    assert ledger.try_reserve(first.id, 1).granted
    assert ledger.try_reserve(second.id, 1).granted
    assert not ledger.try_reserve(first.id, 1).granted
