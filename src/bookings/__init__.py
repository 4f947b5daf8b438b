"""
Booking & Ticketing Module

Seat-limited booking for events with QR-coded tickets:

- ledger.py: atomic per-event seat reservation, never exceeding capacity
- booking_service.py: reservation engine (reserve, record, issue ticket, notify)
- ticket_service.py: QR artifact generation, private artifact store and sweeper
- tokens.py: signed capability tokens scoped to a subject and an action
- validation_service.py: gate-side validation of scanned QR payloads
- notifications.py: bounded background queue for confirmation emails
- router.py: FastAPI endpoints
- schemas.py: Pydantic models for bookings and validation results
"""

from .router import router
from .booking_service import BookingService
from .ledger import SeatLedger, Reservation, RejectionReason
from .ticket_service import TicketArtifactGenerator, ArtifactStore, ArtifactSweeper
from .tokens import CapabilityTokenService, TokenCheck, TokenStatus
from .validation_service import TicketValidationService
from .notifications import NotificationDispatcher
from .schemas import (
    BookingStatus, BookingCreateRequest, Booking, BookingConfirmation,
    RetrievalLink, TicketValidationResponse, ValidationReason
)

__all__ = [
    "router",
    "BookingService",
    "SeatLedger",
    "Reservation",
    "RejectionReason",
    "TicketArtifactGenerator",
    "ArtifactStore",
    "ArtifactSweeper",
    "CapabilityTokenService",
    "TokenCheck",
    "TokenStatus",
    "TicketValidationService",
    "NotificationDispatcher",
    "BookingStatus",
    "BookingCreateRequest",
    "Booking",
    "BookingConfirmation",
    "RetrievalLink",
    "TicketValidationResponse",
    "ValidationReason"
]
