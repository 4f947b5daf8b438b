import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session, joinedload

from src.config import settings
from src.exceptions import ValidationFailedError
from src.models import Booking
from src.bookings.schemas import TicketSummary, TicketValidationResponse, ValidationReason
from src.bookings.ticket_service import parse_ticket_payload

logger = logging.getLogger(__name__)

INVALID_TICKET_MESSAGE = "Invalid or expired QR code"


class TicketValidationService:
    """Gate-side check of scanned ticket payloads.

    No capability token is required. Unknown and malformed payloads produce
    the same response. With single-use tickets the first successful scan
    marks the booking consumed and later scans are rejected.
    """

    def __init__(self, db: Session, single_use: Optional[bool] = None):
        self.db = db
        self.single_use = settings.TICKETS_SINGLE_USE if single_use is None else single_use

    def validate(self, scanned_payload: str) -> TicketValidationResponse:
        try:
            booking = self.find_booking(scanned_payload)
        except ValidationFailedError as e:
            logger.info("Rejected ticket scan: %s", e.message)
            return TicketValidationResponse(
                valid=False,
                reason=ValidationReason.NOT_FOUND,
                message=INVALID_TICKET_MESSAGE
            )

        if self.single_use and not self._consume(booking.id):
            logger.info("Rejected replayed ticket %s", booking.id)
            return TicketValidationResponse(
                valid=False,
                reason=ValidationReason.ALREADY_CONSUMED,
                message="Ticket has already been used"
            )

        return TicketValidationResponse(
            valid=True,
            booking=TicketSummary(
                id=booking.id,
                event=booking.event.title,
                user=booking.user.name,
                quantity=booking.quantity,
                date=booking.created_at,
                event_date=booking.event.date
            )
        )

    def find_booking(self, scanned_payload: str) -> Booking:
        """Resolve a scanned payload to its booking or raise ValidationFailedError"""
        booking_id = parse_ticket_payload(scanned_payload)
        if not booking_id:
            raise ValidationFailedError("Scanned payload is not a ticket")

        booking = (
            self.db.query(Booking)
            .options(joinedload(Booking.event), joinedload(Booking.user))
            .filter(Booking.id == booking_id)
            .first()
        )
        if booking is None:
            raise ValidationFailedError("No booking matches the scanned ticket")
        return booking

    def _consume(self, booking_id: str) -> bool:
        result = self.db.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.consumed_at.is_(None))
            .values(consumed_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1
