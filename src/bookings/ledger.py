"""
Seat ledger: the only writer of ``events.booked_seats``.

Reservation is a single conditional UPDATE

    UPDATE events SET booked_seats = booked_seats + :q
    WHERE id = :event_id AND booked_seats + :q <= seat_capacity

committed immediately. The database row lock serializes concurrent
reservations on the same event while reservations on other events proceed
independently. Nothing else happens inside that transaction.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from src.models import Event

logger = logging.getLogger(__name__)


class RejectionReason(str, Enum):
    EVENT_NOT_FOUND = "EventNotFound"
    INSUFFICIENT_SEATS = "InsufficientSeats"


@dataclass(frozen=True)
class Reservation:
    event_id: int
    quantity: int
    granted: bool
    reason: Optional[RejectionReason] = None


class SeatLedger:
    """Atomic check-and-increment of booked seats per event"""

    def __init__(self, db: Session):
        self.db = db

    def try_reserve(self, event_id: int, quantity: int) -> Reservation:
        if quantity <= 0:
            raise ValueError("Quantity must be positive")

        result = self.db.execute(
            update(Event)
            .where(
                Event.id == event_id,
                Event.booked_seats + quantity <= Event.seat_capacity,
            )
            .values(booked_seats=Event.booked_seats + quantity)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 1:
            self.db.commit()
            logger.info("Reserved %s seat(s) on event %s", quantity, event_id)
            return Reservation(event_id=event_id, quantity=quantity, granted=True)

        self.db.rollback()

        exists = self.db.query(Event.id).filter(Event.id == event_id).first() is not None
        reason = RejectionReason.INSUFFICIENT_SEATS if exists else RejectionReason.EVENT_NOT_FOUND
        logger.info("Rejected %s seat(s) on event %s: %s", quantity, event_id, reason.value)
        return Reservation(event_id=event_id, quantity=quantity, granted=False, reason=reason)

    def release(self, event_id: int, quantity: int) -> bool:
        """Undo a reservation whose booking could not be recorded"""
        result = self.db.execute(
            update(Event)
            .where(Event.id == event_id, Event.booked_seats >= quantity)
            .values(booked_seats=Event.booked_seats - quantity)
            .execution_options(synchronize_session=False)
        )
        released = result.rowcount == 1
        self.db.commit()

        if released:
            logger.warning("Released %s seat(s) on event %s", quantity, event_id)
        else:
            logger.error("Could not release %s seat(s) on event %s", quantity, event_id)
        return released

    def available_seats(self, event_id: int) -> Optional[int]:
        row = (
            self.db.query(Event.seat_capacity, Event.booked_seats)
            .filter(Event.id == event_id)
            .first()
        )
        if row is None:
            return None
        return row.seat_capacity - row.booked_seats
