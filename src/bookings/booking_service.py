import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from src.config import settings
from src.exceptions import (
    NotFoundError, CapacityExceededError, ForbiddenError, UnauthorizedError,
    ConflictError, ArtifactGenerationError, BookingPersistenceError, EncodingError
)
from src.models import Booking, Event, User
from src.bookings.ledger import SeatLedger, RejectionReason
from src.bookings.notifications import NotificationDispatcher, booking_confirmation_email
from src.bookings.schemas import (
    BookingStatus, Booking as BookingSchema, BookingConfirmation, EventSummary, RetrievalLink
)
from src.bookings.ticket_service import TicketArtifactGenerator, ArtifactStore, ticket_payload
from src.bookings.tokens import CapabilityTokenService, TokenStatus, RETRIEVE_ARTIFACT

logger = logging.getLogger(__name__)


class BookingService:
    """Reservation engine for event seats.

    A booking is created in four committed steps: seats are reserved on the
    ledger, the booking row is written, the QR artifact is generated and
    stored, and the booking is confirmed. Only then is a retrieval token
    minted and a confirmation email queued. Each side effect happens after
    the reservation commit, never inside it.
    """

    def __init__(
        self,
        db: Session,
        generator: Optional[TicketArtifactGenerator] = None,
        store: Optional[ArtifactStore] = None,
        tokens: Optional[CapabilityTokenService] = None,
        dispatcher: Optional[NotificationDispatcher] = None
    ):
        self.db = db
        self.ledger = SeatLedger(db)
        self.generator = generator or TicketArtifactGenerator()
        self.store = store or ArtifactStore()
        self.tokens = tokens or CapabilityTokenService()
        self.dispatcher = dispatcher
        self.token_ttl = timedelta(minutes=settings.TICKET_TOKEN_EXPIRE_MINUTES)

    def create_booking(self, user: User, event_id: int, quantity: int) -> BookingConfirmation:
        """Reserve seats and issue a ticket for them"""

        event = self.db.query(Event).filter(Event.id == event_id).first()
        if not event:
            raise NotFoundError("Event not found")

        reservation = self.ledger.try_reserve(event_id, quantity)
        if not reservation.granted:
            if reservation.reason == RejectionReason.EVENT_NOT_FOUND:
                raise NotFoundError("Event not found")
            raise CapacityExceededError("Not enough available seats")

        booking_id = str(uuid.uuid4())
        try:
            booking = self._persist_booking(booking_id, user.id, event_id, quantity)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Could not record booking %s, releasing seats: %s", booking_id, e)
            self.ledger.release(event_id, quantity)
            raise BookingPersistenceError("Booking could not be saved")

        self._attach_artifact(booking)

        logger.info("Booking %s confirmed: %s seat(s) on event %s for user %s",
                    booking.id, quantity, event_id, user.id)

        retrieval = self.issue_retrieval_link(booking.id)
        self._notify(user, booking, retrieval)

        return BookingConfirmation(booking=self.to_schema(booking), retrieval=retrieval)

    def retry_artifact(self, user: User, booking_id: str) -> BookingConfirmation:
        """Regenerate the ticket image of an existing booking without reserving seats"""

        booking = self.get_owned_booking(user, booking_id)

        if booking.status == BookingStatus.CONFIRMED.value and self.store.exists(booking.artifact_ref):
            raise ConflictError("Booking already has a ticket artifact")

        self._attach_artifact(booking)
        logger.info("Regenerated artifact for booking %s", booking.id)

        retrieval = self.issue_retrieval_link(booking.id)
        self._notify(user, booking, retrieval)

        return BookingConfirmation(booking=self.to_schema(booking), retrieval=retrieval)

    def reissue_retrieval_link(self, user: User, booking_id: str) -> RetrievalLink:
        booking = self.get_owned_booking(user, booking_id)
        if booking.status != BookingStatus.CONFIRMED.value:
            raise ConflictError("Booking has no ticket artifact")
        return self.issue_retrieval_link(booking.id)

    def issue_retrieval_link(self, booking_id: str) -> RetrievalLink:
        token = self.tokens.issue(booking_id, RETRIEVE_ARTIFACT, self.token_ttl)
        return RetrievalLink(
            booking_id=booking_id,
            token=token,
            url=f"{settings.ticket_retrieval_url}/{booking_id}?token={token}",
            expires_at=datetime.now(timezone.utc) + self.token_ttl
        )

    def retrieve_artifact(self, booking_id: str, token: Optional[str]) -> bytes:
        """Return the QR image for a booking given a retrieval token scoped to it"""

        if not token:
            raise UnauthorizedError("Token required")

        check = self.tokens.verify(token, booking_id, RETRIEVE_ARTIFACT)
        if check.status == TokenStatus.SUBJECT_MISMATCH:
            raise ForbiddenError("Invalid token")
        if not check.is_valid:
            raise UnauthorizedError("Invalid or expired token")

        booking = self.get_booking(booking_id)
        if not booking:
            raise NotFoundError("Booking not found")

        image = self.store.read(booking.artifact_ref) if booking.artifact_ref else None
        if image is None:
            raise NotFoundError("Ticket artifact not found")
        return image

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        return (
            self.db.query(Booking)
            .options(joinedload(Booking.event))
            .filter(Booking.id == booking_id)
            .first()
        )

    def get_owned_booking(self, user: User, booking_id: str) -> Booking:
        booking = self.get_booking(booking_id)
        if not booking:
            raise NotFoundError("Booking not found")
        if booking.user_id != user.id:
            raise ForbiddenError("Access denied")
        return booking

    def get_user_bookings(self, user: User) -> List[Booking]:
        return (
            self.db.query(Booking)
            .options(joinedload(Booking.event))
            .filter(Booking.user_id == user.id)
            .order_by(Booking.created_at.desc())
            .all()
        )

    def _persist_booking(self, booking_id: str, user_id: int, event_id: int, quantity: int) -> Booking:
        booking = Booking(
            id=booking_id,
            user_id=user_id,
            event_id=event_id,
            quantity=quantity,
            status=BookingStatus.PENDING_ARTIFACT.value,
            created_at=datetime.now(timezone.utc)
        )
        self.db.add(booking)
        self.db.commit()
        self.db.refresh(booking)
        return booking

    def _attach_artifact(self, booking: Booking):
        try:
            image = self.generator.generate(ticket_payload(booking.id))
            booking.artifact_ref = self.store.save(booking.id, image)
        except (EncodingError, OSError) as e:
            logger.error("Artifact generation failed for booking %s: %s", booking.id, e)
            booking.status = BookingStatus.FAILED_ARTIFACT.value
            self.db.commit()
            raise ArtifactGenerationError(booking_id=booking.id)

        booking.status = BookingStatus.CONFIRMED.value
        self.db.commit()
        self.db.refresh(booking)

    def _notify(self, user: User, booking: Booking, retrieval: RetrievalLink):
        if self.dispatcher is None:
            logger.warning("No notification dispatcher, skipping email for booking %s", booking.id)
            return
        try:
            email = booking_confirmation_email(user.email, booking.event, booking.quantity, retrieval.url)
            self.dispatcher.dispatch(email)
        except Exception:
            logger.exception("Could not queue confirmation for booking %s", booking.id)

    @staticmethod
    def to_schema(booking: Booking) -> BookingSchema:
        event = booking.event
        return BookingSchema(
            id=booking.id,
            user_id=booking.user_id,
            event_id=booking.event_id,
            quantity=booking.quantity,
            status=BookingStatus(booking.status),
            artifact_ref=booking.artifact_ref,
            consumed_at=booking.consumed_at,
            created_at=booking.created_at,
            event=EventSummary(
                id=event.id,
                title=event.title,
                venue=event.venue,
                date=event.date,
                time=event.time
            ) if event else None
        )
