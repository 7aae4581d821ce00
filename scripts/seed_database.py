#!/usr/bin/env python3
"""
Database seeding script for the clinic booking webhook.

This script:
- Creates the demo doctors
- Creates available slots for each doctor for the next N days
- Can be run multiple times (idempotent)

Usage:
    python scripts/seed_database.py [--reset] [--days N]

Options:
    --reset     Clear existing slots and doctors before seeding
    --days      Number of days to create slots for, starting today
"""
import sys
import argparse
from pathlib import Path
from datetime import date, timedelta

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dotenv import load_dotenv

from models.database import (
    init_db,
    create_tables,
    get_db_session,
    Doctor,
    Schedule,
)
from db_init import seed_doctors, seed_schedules


def reset_database(session):
    """
    Clear all data from the database.

    Args:
        session: Database session
    """
    print("\n⚠️  Resetting database...")

    # Delete in correct order (respecting foreign keys)
    schedule_count = session.query(Schedule).delete()
    print(f"  ✓ Deleted {schedule_count} slots")

    doctor_count = session.query(Doctor).delete()
    print(f"  ✓ Deleted {doctor_count} doctors")

    session.flush()
    print("  ✓ Database reset complete")


def main():
    """Main seeding function."""
    parser = argparse.ArgumentParser(
        description="Seed the clinic booking database with demo doctors and slots"
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Clear existing data before seeding"
    )
    parser.add_argument(
        "--days",
        type=int,
        default=1,
        help="Number of days to create slots for (default: 1, today only)"
    )

    args = parser.parse_args()
    load_dotenv()

    print("=" * 60)
    print("Clinic Booking Webhook - Database Seeding")
    print("=" * 60)

    try:
        print("\nInitializing database connection...")
        init_db()
        create_tables()
        print("  ✓ Database initialized")

        with get_db_session() as session:
            if args.reset:
                reset_database(session)

            print("\nCreating doctors...")
            doctors = seed_doctors(session)

            print(f"\nCreating slots for {args.days} day(s) starting {date.today()}...")
            for offset in range(args.days):
                on_date = date.today() + timedelta(days=offset)
                created = seed_schedules(session, doctors, on_date)
                print(f"  ✓ {on_date}: {created} new slots")

        print("\n" + "=" * 60)
        print("✓ Database seeding completed successfully!")
        print("=" * 60)

        return 0

    except Exception as e:
        print(f"\n✗ Error during seeding: {e}")
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
