"""Data access layer built on SQLAlchemy sessions."""

from datetime import datetime
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from . import models
from .exceptions import BookingNotFoundError, ProviderNotFoundError, WaitlistEntryNotFoundError


class ProviderRepository:
    """CRUD operations for Provider."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self, name: str, years_of_experience: int, area_of_expertise: str
    ) -> models.Provider:
        provider = models.Provider(
            name=name,
            years_of_experience=years_of_experience,
            area_of_expertise=area_of_expertise,
        )
        self.session.add(provider)
        self.session.flush()
        return provider

    def get(self, provider_id: int) -> models.Provider:
        provider = self.session.get(models.Provider, provider_id)
        if provider is None:
            raise ProviderNotFoundError(f"Provider {provider_id} not found.")
        return provider

    def list(self) -> Sequence[models.Provider]:
        return self.session.scalars(select(models.Provider).order_by(models.Provider.name)).all()

    def update(self, provider: models.Provider, **fields) -> models.Provider:
        for key, value in fields.items():
            if value is not None:
                setattr(provider, key, value)
        self.session.flush()
        return provider

    def delete(self, provider: models.Provider) -> None:
        self.session.delete(provider)
        self.session.flush()


class BookingRepository:
    """CRUD operations for Booking."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        user_id: str,
        provider_id: int,
        appointment_date: datetime,
        created_at: datetime | None = None,
    ) -> models.Booking:
        booking = models.Booking(
            user_id=user_id,
            provider_id=provider_id,
            appointment_date=appointment_date,
        )
        if created_at is not None:
            booking.created_at = created_at
            booking.updated_at = created_at
        self.session.add(booking)
        self.session.flush()
        return booking

    def get(self, booking_id: int) -> models.Booking:
        booking = self.session.get(models.Booking, booking_id)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found.")
        return booking

    def find_for_user(self, user_id: str) -> models.Booking | None:
        return self.session.scalars(
            select(models.Booking).where(models.Booking.user_id == user_id)
        ).one_or_none()

    def get_for_user(self, user_id: str) -> models.Booking:
        booking = self.find_for_user(user_id)
        if booking is None:
            raise BookingNotFoundError("No booking found.")
        return booking

    def list_for_provider_between(
        self, provider_id: int, window_start: datetime, window_end: datetime
    ) -> Sequence[models.Booking]:
        """Bookings for the provider starting in [window_start, window_end)."""
        stmt = select(models.Booking).where(
            models.Booking.provider_id == provider_id,
            models.Booking.appointment_date >= window_start,
            models.Booking.appointment_date < window_end,
        )
        return self.session.scalars(stmt).all()

    def list(self) -> Sequence[models.Booking]:
        stmt = (
            select(models.Booking)
            .options(selectinload(models.Booking.provider))
            .order_by(models.Booking.appointment_date, models.Booking.id)
        )
        return self.session.scalars(stmt).all()

    def delete(self, booking: models.Booking) -> None:
        self.session.delete(booking)
        self.session.flush()


class WaitlistRepository:
    """CRUD operations for WaitlistEntry."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        user_id: str,
        provider_id: int,
        preferred_date: datetime,
        created_at: datetime | None = None,
    ) -> models.WaitlistEntry:
        entry = models.WaitlistEntry(
            user_id=user_id,
            provider_id=provider_id,
            preferred_date=preferred_date,
            notified=False,
        )
        if created_at is not None:
            entry.created_at = created_at
        self.session.add(entry)
        self.session.flush()
        return entry

    def get_for_user(self, entry_id: int, user_id: str) -> models.WaitlistEntry:
        entry = self.session.scalars(
            select(models.WaitlistEntry).where(
                models.WaitlistEntry.id == entry_id,
                models.WaitlistEntry.user_id == user_id,
            )
        ).one_or_none()
        if entry is None:
            raise WaitlistEntryNotFoundError("Waitlist entry not found.")
        return entry

    def find_pending(self, user_id: str, provider_id: int) -> models.WaitlistEntry | None:
        return self.session.scalars(
            select(models.WaitlistEntry).where(
                models.WaitlistEntry.user_id == user_id,
                models.WaitlistEntry.provider_id == provider_id,
                models.WaitlistEntry.notified.is_(False),
            )
        ).first()

    def list_pending_for_provider(self, provider_id: int) -> Sequence[models.WaitlistEntry]:
        """Pending entries for one provider, oldest first."""
        stmt = (
            select(models.WaitlistEntry)
            .where(
                models.WaitlistEntry.provider_id == provider_id,
                models.WaitlistEntry.notified.is_(False),
            )
            .order_by(models.WaitlistEntry.created_at, models.WaitlistEntry.id)
        )
        return self.session.scalars(stmt).all()

    def list_for_user(self, user_id: str) -> Sequence[models.WaitlistEntry]:
        stmt = (
            select(models.WaitlistEntry)
            .options(selectinload(models.WaitlistEntry.provider))
            .where(
                models.WaitlistEntry.user_id == user_id,
                models.WaitlistEntry.notified.is_(False),
            )
            .order_by(models.WaitlistEntry.created_at, models.WaitlistEntry.id)
        )
        return self.session.scalars(stmt).all()

    def list(self) -> Sequence[models.WaitlistEntry]:
        stmt = (
            select(models.WaitlistEntry)
            .options(selectinload(models.WaitlistEntry.provider))
            .order_by(models.WaitlistEntry.created_at, models.WaitlistEntry.id)
        )
        return self.session.scalars(stmt).all()

    def delete(self, entry: models.WaitlistEntry) -> None:
        self.session.delete(entry)
        self.session.flush()
