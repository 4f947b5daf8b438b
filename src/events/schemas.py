from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime, date as date_type

class EventBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    venue: str = Field(..., min_length=1, max_length=255)
    date: date_type
    time: Optional[str] = Field(None, max_length=20)
    category: Optional[str] = Field(None, max_length=100)

class EventCreate(EventBase):
    seat_capacity: int = Field(..., gt=0)

class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    venue: Optional[str] = Field(None, min_length=1, max_length=255)
    date: Optional[date_type] = None
    time: Optional[str] = Field(None, max_length=20)
    category: Optional[str] = Field(None, max_length=100)
    seat_capacity: Optional[int] = Field(None, gt=0)

class Event(EventBase):
    id: int
    seat_capacity: int
    booked_seats: int
    available_seats: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class EventSearch(BaseModel):
    category: Optional[str] = None
    venue: Optional[str] = None
    on_date: Optional[date_type] = None

class EventList(BaseModel):
    events: List[Event]
    total: int
