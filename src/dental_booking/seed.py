"""Initial data seeding for the dental booking system.

Run ``python -m dental_booking.seed`` to import the sample providers, or with
``-d`` to wipe providers, bookings and the waitlist.
"""

from __future__ import annotations

import argparse

from sqlalchemy import delete
from sqlalchemy.orm import Session, sessionmaker

from dental_booking import db
from dental_booking.identity import Caller
from dental_booking.models import Booking, Provider, WaitlistEntry
from dental_booking.services import BookingService

SEED_CALLER = Caller(user_id="seed", is_admin=True)

PROVIDERS_SEED = [
    ("Dr. Sarah Johnson", 12, "General Dentistry"),
    ("Dr. Michael Chen", 8, "Orthodontics"),
    ("Dr. Lisa Smith", 15, "Periodontics"),
    ("Dr. Robert Williams", 10, "Endodontics"),
]


def seed(factory: sessionmaker[Session]) -> list[int]:
    """Insert the sample providers that are not present yet; returns their ids."""
    with db.session_scope(factory) as session:
        service = BookingService(session)
        existing = {p.name: p for p in service.list_providers()}
        providers = []
        for name, years, expertise in PROVIDERS_SEED:
            if name in existing:
                print(f"[provider] exists {name}")
                providers.append(existing[name].id)
                continue
            provider = service.create_provider(
                SEED_CALLER, name=name, years_of_experience=years, area_of_expertise=expertise
            )
            print(f"[provider] created {name} - {expertise}")
            providers.append(provider.id)
    return providers


def destroy(factory: sessionmaker[Session]) -> None:
    """Remove every booking, waitlist entry and provider."""
    with db.session_scope(factory) as session:
        for model in (Booking, WaitlistEntry, Provider):
            result = session.execute(delete(model))
            print(f"[{model.__tablename__}] deleted {result.rowcount} rows")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Seed or clear the dental booking database.")
    parser.add_argument("-d", "--destroy", action="store_true", help="delete all data instead")
    parser.add_argument("--database-url", default=None, help="overrides DENTAL_BOOKING_DB_URL")
    args = parser.parse_args(argv)

    engine = db.configure(args.database_url)
    db.init_db(engine)
    factory = db.get_session_factory()
    if args.destroy:
        destroy(factory)
        print("Data destroyed successfully")
    else:
        seed(factory)
        print("Data imported successfully")


if __name__ == "__main__":
    main()
