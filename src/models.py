from sqlalchemy import Column, Integer, BigInteger, String, DateTime, Date, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from src.database import Base

# SQLite only autoincrements INTEGER primary keys
IdType = BigInteger().with_variant(Integer, "sqlite")

# ================================
# Users & Roles
# ================================
class User(Base):
    __tablename__ = "users"

    id = Column(IdType, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    user_roles = relationship("UserHasRole", back_populates="user")
    bookings = relationship("Booking", back_populates="user")

class Role(Base):
    __tablename__ = "roles"

    id = Column(IdType, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    user_roles = relationship("UserHasRole", back_populates="role")

class UserHasRole(Base):
    __tablename__ = "user_has_roles"

    id = Column(IdType, primary_key=True, index=True)
    user_id = Column(IdType, ForeignKey("users.id"), nullable=False)
    role_id = Column(IdType, ForeignKey("roles.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="user_roles")
    role = relationship("Role", back_populates="user_roles")

# ================================
# Events
# ================================
class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("seat_capacity > 0", name="ck_events_capacity_positive"),
        CheckConstraint("booked_seats >= 0 AND booked_seats <= seat_capacity", name="ck_events_booked_within_capacity"),
    )

    id = Column(IdType, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    venue = Column(String(255), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    time = Column(String(20))
    category = Column(String(100), index=True)
    seat_capacity = Column(Integer, nullable=False)
    booked_seats = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    bookings = relationship("Booking", back_populates="event")

# ================================
# Bookings
# ================================
class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_bookings_quantity_positive"),
    )

    id = Column(String(36), primary_key=True)
    user_id = Column(IdType, ForeignKey("users.id"), nullable=False, index=True)
    event_id = Column(IdType, ForeignKey("events.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False)
    artifact_ref = Column(String(255))
    consumed_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="bookings")
    event = relationship("Event", back_populates="bookings")
