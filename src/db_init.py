"""
Database initialization and seeding script for the clinic booking webhook.

This script:
1. Initializes the database connection
2. Creates all tables
3. Seeds the demo doctors and today's slots (idempotent)
"""
import sys
from datetime import date, time
from pathlib import Path
from typing import Iterable, List, Optional

# Add src directory to path for imports
src_path = Path(__file__).parent
sys.path.insert(0, str(src_path))

from dotenv import load_dotenv
from sqlalchemy.orm import Session

from models.database import (
    init_db,
    create_tables,
    get_db_session,
    Doctor,
    Schedule,
    SlotStatus,
)
from services.security import SecurityHasher


DEMO_DOCTORS = [
    {"name": "Dra. Ana Souza", "specialty": "Clínica Geral", "email": "ana.souza@clinica.example", "phone": "11987650001"},
    {"name": "Dr. Bruno Lima", "specialty": "Cardiologia", "email": "bruno.lima@clinica.example", "phone": "11987650002"},
    {"name": "Dra. Carla Mendes", "specialty": "Pediatria", "email": "carla.mendes@clinica.example", "phone": "11987650003"},
]

DEFAULT_SLOT_TIMES = [time(h, m) for h in range(8, 12) for m in (0, 30)] + \
    [time(h, m) for h in range(14, 17) for m in (0, 30)]


def seed_doctors(session: Session, hasher: Optional[SecurityHasher] = None) -> List[Doctor]:
    """
    Create the demo doctors that do not exist yet (matched by name).

    Contact fields are stored hashed, like patient data.

    Returns:
        All demo doctors, existing and new
    """
    hasher = hasher or SecurityHasher()
    doctors = []

    for data in DEMO_DOCTORS:
        doctor = session.query(Doctor).filter_by(name=data["name"]).first()
        if doctor:
            print(f"  ⊙ {doctor.name} already exists")
            doctors.append(doctor)
            continue

        doctor = Doctor(
            name=data["name"],
            specialty=data["specialty"],
            email=hasher.hash_email(data["email"]),
            phone=hasher.hash_phone(data["phone"]),
            active=True,
        )
        session.add(doctor)
        session.flush()
        doctors.append(doctor)
        print(f"  ✓ Created {doctor.name} ({doctor.specialty})")

    return doctors


def seed_schedules(
    session: Session,
    doctors: Iterable[Doctor],
    on_date: date,
    slot_times: Iterable[time] = DEFAULT_SLOT_TIMES,
) -> int:
    """
    Create the available slots missing for each doctor on a date.

    Returns:
        Number of slots created
    """
    slot_times = list(slot_times)
    created = 0

    for doctor in doctors:
        existing = {
            row.time
            for row in session.query(Schedule.time).filter_by(doctor_id=doctor.id, date=on_date)
        }
        for slot_time in slot_times:
            if slot_time in existing:
                continue
            session.add(Schedule(
                doctor_id=doctor.id,
                date=on_date,
                time=slot_time,
                status=SlotStatus.AVAILABLE,
            ))
            created += 1

    session.flush()
    return created


def initialize_database(database_url: str | None = None) -> None:
    """
    Initialize the database: create tables and seed initial data.

    Args:
        database_url: Optional database connection string. If not provided,
                     the configured DATABASE_URL is used.
    """
    try:
        print("Initializing database...")

        engine = init_db(database_url)
        print(f"✓ Connected to database: {engine.url.database}")

        print("\nCreating database tables...")
        create_tables()
        print("✓ Tables created successfully:")
        print("  - doctors")
        print("  - schedules")

        print("\nSeeding initial data...")
        with get_db_session() as session:
            doctors = seed_doctors(session)
            created = seed_schedules(session, doctors, date.today())
        print(f"✓ {created} slots created for today")

        print("\n" + "=" * 50)
        print("Database initialization complete!")
        print("=" * 50)

    except Exception as e:
        print(f"\n✗ Error during database initialization: {e}", file=sys.stderr)
        sys.exit(1)


def main():
    """
    Main entry point for database initialization script.
    """
    # Load environment variables from .env file
    load_dotenv()

    print("=" * 50)
    print("Clinic Booking Webhook - Database Setup")
    print("=" * 50 + "\n")

    initialize_database()


if __name__ == "__main__":
    main()
