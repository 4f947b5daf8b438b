from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, date as date_type
from enum import Enum

class BookingStatus(str, Enum):
    """Booking status enumeration"""
    PENDING_ARTIFACT = "pending_artifact"
    CONFIRMED = "confirmed"
    FAILED_ARTIFACT = "failed_artifact"

class ValidationReason(str, Enum):
    NOT_FOUND = "NotFound"
    ALREADY_CONSUMED = "AlreadyConsumed"

class BookingCreateRequest(BaseModel):
    """Request to book seats for an event"""
    event_id: int = Field(..., alias="event")
    quantity: int = Field(..., gt=0, le=100)

    class Config:
        populate_by_name = True

class EventSummary(BaseModel):
    id: int
    title: str
    venue: str
    date: Optional[date_type] = None
    time: Optional[str] = None

class Booking(BaseModel):
    """A committed booking as returned to its owner"""
    id: str
    user_id: int
    event_id: int
    quantity: int
    status: BookingStatus
    artifact_ref: Optional[str] = None
    consumed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    event: Optional[EventSummary] = None

    class Config:
        from_attributes = True

class RetrievalLink(BaseModel):
    booking_id: str
    token: str
    url: str
    expires_at: datetime

class BookingConfirmation(BaseModel):
    """Result of a booking: the record plus a link to fetch its QR code"""
    booking: Booking
    retrieval: Optional[RetrievalLink] = None

class TicketSummary(BaseModel):
    id: str
    event: str
    user: str
    quantity: int
    date: Optional[datetime] = None
    event_date: Optional[date_type] = None

class TicketValidationResponse(BaseModel):
    valid: bool
    booking: Optional[TicketSummary] = None
    reason: Optional[ValidationReason] = None
    message: Optional[str] = None
