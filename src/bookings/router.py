from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import List, Optional

from src.database import get_db
from src.auth.dependencies import get_current_user
from src.bookings.schemas import (
    Booking, BookingCreateRequest, BookingConfirmation, RetrievalLink,
    TicketValidationResponse, ValidationReason
)
from src.bookings.booking_service import BookingService
from src.bookings.validation_service import TicketValidationService

router = APIRouter()

def get_booking_service(request: Request, db: Session = Depends(get_db)) -> BookingService:
    """Booking engine wired to the process-wide artifact store and dispatcher"""
    state = request.app.state
    return BookingService(
        db,
        generator=getattr(state, "artifact_generator", None),
        store=getattr(state, "artifact_store", None),
        tokens=getattr(state, "token_service", None),
        dispatcher=getattr(state, "notification_dispatcher", None)
    )

@router.post("/", response_model=BookingConfirmation)
def create_booking(
    booking_request: BookingCreateRequest,
    current_user = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Book seats for an event and issue a QR ticket"""
    return booking_service.create_booking(current_user, booking_request.event_id, booking_request.quantity)

@router.get("/", response_model=List[Booking])
def get_my_bookings(
    current_user = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Get all bookings for the authenticated user"""
    return [BookingService.to_schema(b) for b in booking_service.get_user_bookings(current_user)]

@router.get("/qr/{booking_id}")
def get_ticket_qr_code(
    booking_id: str,
    token: Optional[str] = Query(None, description="Retrieval token from the confirmation email"),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Fetch the QR code image of a booking with its retrieval token"""
    image = booking_service.retrieve_artifact(booking_id, token)
    return Response(content=image, media_type="image/png")

@router.get("/validate/{qr}", response_model=TicketValidationResponse)
def validate_ticket(qr: str, db: Session = Depends(get_db)):
    """Validate a scanned QR code payload"""
    result = TicketValidationService(db).validate(qr)
    if not result.valid and result.reason == ValidationReason.NOT_FOUND:
        return JSONResponse(status_code=404, content=result.model_dump(mode="json", exclude_none=True))
    return result

@router.get("/{booking_id}", response_model=Booking)
def get_booking(
    booking_id: str,
    current_user = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Get one of the authenticated user's bookings"""
    return BookingService.to_schema(booking_service.get_owned_booking(current_user, booking_id))

@router.post("/{booking_id}/artifact", response_model=BookingConfirmation)
def retry_ticket_artifact(
    booking_id: str,
    current_user = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Regenerate the QR ticket of a booking whose artifact failed or was swept"""
    return booking_service.retry_artifact(current_user, booking_id)

@router.post("/{booking_id}/retrieval-token", response_model=RetrievalLink)
def reissue_retrieval_link(
    booking_id: str,
    current_user = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Mint a fresh QR retrieval link for a confirmed booking"""
    return booking_service.reissue_retrieval_link(current_user, booking_id)
