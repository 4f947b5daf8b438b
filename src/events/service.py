import logging
from sqlalchemy import delete, exists, update
from sqlalchemy.orm import Session
from typing import List, Optional, Tuple
from src.models import Event, Booking
from src.events.schemas import EventCreate, EventUpdate, EventSearch, Event as EventSchema

logger = logging.getLogger(__name__)

class EventService:
    @staticmethod
    def get_event_by_id(db: Session, event_id: int) -> Optional[Event]:
        """Get event by ID"""
        return db.query(Event).filter(Event.id == event_id).first()

    @staticmethod
    def get_events(
        db: Session,
        skip: int = 0,
        limit: int = 50,
        search: Optional[EventSearch] = None
    ) -> Tuple[List[Event], int]:
        """Get events with optional category, venue and date filters"""
        query = db.query(Event)

        if search:
            if search.category:
                query = query.filter(Event.category == search.category)
            if search.venue:
                query = query.filter(Event.venue == search.venue)
            if search.on_date:
                query = query.filter(Event.date == search.on_date)

        total = query.count()
        events = query.order_by(Event.date, Event.id).offset(skip).limit(limit).all()
        return events, total

    @staticmethod
    def create_event(db: Session, event: EventCreate) -> Event:
        """Create a new event with no seats booked"""
        db_event = Event(**event.model_dump(), booked_seats=0)
        db.add(db_event)
        db.commit()
        db.refresh(db_event)
        logger.info("Created event %s with %s seats", db_event.id, db_event.seat_capacity)
        return db_event

    @staticmethod
    def update_event(db: Session, event_id: int, event_update: EventUpdate) -> Optional[Event]:
        """Update catalog fields of an event.

        Capacity may not drop below the seats already booked. The new capacity
        is applied with a conditional update against the booked count. Booked
        seats themselves are owned by the seat ledger and never written here.
        """
        db_event = EventService.get_event_by_id(db, event_id)
        if not db_event:
            return None

        update_data = event_update.model_dump(exclude_unset=True)
        new_capacity = update_data.pop("seat_capacity", None)

        for field, value in update_data.items():
            setattr(db_event, field, value)

        if new_capacity is not None:
            result = db.execute(
                update(Event)
                .where(Event.id == event_id, Event.booked_seats <= new_capacity)
                .values(seat_capacity=new_capacity)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                db.rollback()
                db.refresh(db_event)
                raise ValueError(
                    f"Cannot reduce seat capacity ({new_capacity}) below currently booked seats ({db_event.booked_seats})"
                )

        db.commit()
        db.refresh(db_event)
        return db_event

    @staticmethod
    def delete_event(db: Session, event_id: int) -> bool:
        """Delete an event; events with bookings or reserved seats cannot be deleted"""
        db_event = EventService.get_event_by_id(db, event_id)
        if not db_event:
            return False

        has_bookings = exists().where(Booking.event_id == event_id)
        result = db.execute(
            delete(Event)
            .where(Event.id == event_id, Event.booked_seats == 0, ~has_bookings)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            raise ValueError("Event has bookings and cannot be deleted")

        db.commit()
        logger.info("Deleted event %s", event_id)
        return True

    @staticmethod
    def to_schema(event: Event) -> EventSchema:
        return EventSchema(
            id=event.id,
            title=event.title,
            description=event.description,
            venue=event.venue,
            date=event.date,
            time=event.time,
            category=event.category,
            seat_capacity=event.seat_capacity,
            booked_seats=event.booked_seats,
            available_seats=event.seat_capacity - event.booked_seats,
            created_at=event.created_at,
            updated_at=event.updated_at
        )
