#!/usr/bin/env python3

from datetime import date, timedelta

from src.database import Base, SessionLocal, engine
from src.models import Booking, Event, Role, UserHasRole, User
from src.auth.schemas import UserCreate
from src.auth.service import UserService

ADMIN_EMAIL = "admin@events.local"
ADMIN_PASSWORD = "Admin123!"

def create_seed_data():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        print("🚀 Creating seed data for Event Ticketing System...")

        # Clear existing data (in reverse dependency order)
        print("Clearing existing data...")
        db.query(Booking).delete()
        db.query(Event).delete()
        db.query(UserHasRole).delete()
        db.query(User).delete()
        db.query(Role).delete()
        db.commit()

        # 1. Create Roles
        print("Creating roles...")
        roles = [Role(name="admin"), Role(name="user")]
        db.add_all(roles)
        db.commit()

        # 2. Create Admin User
        print("Creating admin user...")
        UserService.create_user(
            db,
            UserCreate(name="Event Administrator", email=ADMIN_EMAIL, password=ADMIN_PASSWORD),
            roles=["admin"]
        )

        # 3. Create Events
        print("Creating events...")
        today = date.today()
        events = [
            Event(title="Summer Jazz Night", venue="Riverside Hall", date=today + timedelta(days=14),
                  time="19:30", category="music", seat_capacity=200, booked_seats=0,
                  description="An evening of live jazz by the river"),
            Event(title="Python Meetup", venue="Tech Hub", date=today + timedelta(days=7),
                  time="18:00", category="tech", seat_capacity=50, booked_seats=0,
                  description="Talks and networking for Python developers"),
            Event(title="City Marathon Expo", venue="Convention Center", date=today + timedelta(days=30),
                  time="09:00", category="sports", seat_capacity=1000, booked_seats=0),
            Event(title="Stand-up Comedy Special", venue="Riverside Hall", date=today + timedelta(days=21),
                  time="21:00", category="comedy", seat_capacity=120, booked_seats=0),
        ]
        db.add_all(events)
        db.commit()

        print("✅ Successfully created seed data for Event Ticketing System!")
        print("Created:")
        print(f"  - {len(roles)} user roles")
        print(f"  - 1 admin user ({ADMIN_EMAIL})")
        print(f"  - {len(events)} events")

    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()
