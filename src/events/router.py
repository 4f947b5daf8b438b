from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date
from src.database import get_db
from src.auth.dependencies import require_admin
from src.events.schemas import Event, EventCreate, EventUpdate, EventSearch, EventList
from src.events.service import EventService

router = APIRouter()

@router.get("/", response_model=EventList)
def get_events(
    skip: int = Query(0, ge=0, description="Number of events to skip"),
    limit: int = Query(50, ge=1, le=100, description="Number of events to return"),
    category: Optional[str] = Query(None, description="Filter by category"),
    venue: Optional[str] = Query(None, description="Filter by venue"),
    on_date: Optional[date] = Query(None, alias="date", description="Filter by event date"),
    db: Session = Depends(get_db)
):
    """List events with optional filters"""
    search = EventSearch(category=category, venue=venue, on_date=on_date)
    events, total = EventService.get_events(db, skip=skip, limit=limit, search=search)
    return EventList(events=[EventService.to_schema(e) for e in events], total=total)

@router.get("/{event_id}", response_model=Event)
def get_event(event_id: int, db: Session = Depends(get_db)):
    """Get event by ID"""
    event = EventService.get_event_by_id(db, event_id)
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found"
        )
    return EventService.to_schema(event)

@router.post("/", response_model=Event, status_code=status.HTTP_201_CREATED)
def create_event(
    event: EventCreate,
    db: Session = Depends(get_db),
    admin = Depends(require_admin)
):
    """Create a new event (admin only)"""
    return EventService.to_schema(EventService.create_event(db, event))

@router.put("/{event_id}", response_model=Event)
def update_event(
    event_id: int,
    event_update: EventUpdate,
    db: Session = Depends(get_db),
    admin = Depends(require_admin)
):
    """Update an event (admin only)"""
    try:
        event = EventService.update_event(db, event_id, event_update)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found"
        )
    return EventService.to_schema(event)

@router.delete("/{event_id}")
def delete_event(
    event_id: int,
    db: Session = Depends(get_db),
    admin = Depends(require_admin)
):
    """Delete an event without bookings (admin only)"""
    try:
        deleted = EventService.delete_event(db, event_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found"
        )
    return {"message": "Event deleted successfully"}
