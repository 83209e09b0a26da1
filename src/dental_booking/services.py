"""Business logic layer for the dental booking system."""

from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Callable, Iterator, Sequence

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from .config import LOCKOUT_WINDOW, SLOT_DURATION
from .conflicts import ConflictChecker
from .exceptions import (
    AlreadyWaitlistedError,
    ConcurrentModificationError,
    DatabaseConnectionError,
    DuplicateBookingError,
    LockoutWindowViolation,
    PastDateError,
    SlotConflictError,
    StateConflictError,
    ValidationError,
)
from .identity import Caller, require_admin
from .logger import get_logger
from .models import Booking, Provider, WaitlistEntry
from .repositories import BookingRepository, ProviderRepository, WaitlistRepository
from .waitlist import WaitlistPromoter

logger = get_logger(__name__)

SECONDS_PER_HOUR = 3600


class BookingService:
    """Facade that encapsulates use cases and business rules.

    Every mutating call commits its own unit of work. Operations that free a
    provider slot commit first and then hand the slot to the waitlist
    promoter, whose failures never reach the caller.
    """

    def __init__(
        self,
        session: Session,
        clock: Callable[[], datetime] = datetime.now,
        slot_duration: timedelta = SLOT_DURATION,
        lockout_window: timedelta = LOCKOUT_WINDOW,
    ):
        self.session = session
        self.clock = clock
        self.lockout_window = lockout_window
        self.providers = ProviderRepository(session)
        self.bookings = BookingRepository(session)
        self.waitlist = WaitlistRepository(session)
        self.checker = ConflictChecker(self.bookings, slot_duration)
        self.promoter = WaitlistPromoter(session, self.checker, clock)

    @contextmanager
    def _writing(self, duplicate_user: str | None = None) -> Iterator[None]:
        """Commit the enclosed changes, rolling back on failure.

        ``duplicate_user`` marks a write that may collide with the unique
        ``bookings.user_id``; only then is an integrity error reported as a
        duplicate booking.
        """
        try:
            yield
            self.session.commit()
        except StaleDataError as exc:
            self.session.rollback()
            raise ConcurrentModificationError(
                "Booking was modified by another request, please reload and retry."
            ) from exc
        except IntegrityError as exc:
            self.session.rollback()
            if duplicate_user is None:
                raise
            raise DuplicateBookingError(f"User {duplicate_user} already has a booking.") from exc
        except OperationalError as exc:
            self.session.rollback()
            raise DatabaseConnectionError("Database rejected the write.") from exc
        except Exception:
            self.session.rollback()
            raise

    def _ensure_future(self, when: datetime) -> None:
        if when <= self.clock():
            raise PastDateError("Appointment date must be in the future.")

    def _ensure_outside_lockout(self, booking: Booking, action: str) -> None:
        hours_left = (booking.appointment_date - self.clock()).total_seconds() / SECONDS_PER_HOUR
        lockout_hours = self.lockout_window.total_seconds() / SECONDS_PER_HOUR
        if hours_left < lockout_hours:
            raise LockoutWindowViolation(
                f"Bookings can only be {action} at least {lockout_hours:g} hours "
                "before the appointment."
            )

    # Providers
    def list_providers(self) -> Sequence[Provider]:
        return self.providers.list()

    def get_provider(self, provider_id: int) -> Provider:
        return self.providers.get(provider_id)

    def create_provider(
        self, caller: Caller, name: str, years_of_experience: int, area_of_expertise: str
    ) -> Provider:
        require_admin(caller)
        if not name.strip() or not area_of_expertise.strip():
            raise ValidationError("Provider name and area of expertise cannot be empty.")
        if years_of_experience < 0:
            raise ValidationError("Years of experience cannot be negative.")
        with self._writing():
            provider = self.providers.create(
                name=name.strip(),
                years_of_experience=years_of_experience,
                area_of_expertise=area_of_expertise.strip(),
            )
        return provider

    def update_provider(
        self,
        caller: Caller,
        provider_id: int,
        name: str | None = None,
        years_of_experience: int | None = None,
        area_of_expertise: str | None = None,
    ) -> Provider:
        require_admin(caller)
        if years_of_experience is not None and years_of_experience < 0:
            raise ValidationError("Years of experience cannot be negative.")
        provider = self.providers.get(provider_id)
        with self._writing():
            self.providers.update(
                provider,
                name=name.strip() if name else None,
                years_of_experience=years_of_experience,
                area_of_expertise=area_of_expertise.strip() if area_of_expertise else None,
            )
        return provider

    def delete_provider(self, caller: Caller, provider_id: int) -> None:
        """Delete a provider and its pending waitlist; refused while bookings exist."""
        require_admin(caller)
        provider = self.providers.get(provider_id)
        if provider.bookings:
            raise StateConflictError(
                f"Provider {provider_id} still has bookings; move or delete them first."
            )
        with self._writing():
            self.providers.delete(provider)

    # Bookings
    def create_booking(
        self, caller: Caller, provider_id: int, appointment_date: datetime
    ) -> Booking:
        self.providers.get(provider_id)
        if self.bookings.find_for_user(caller.user_id) is not None:
            raise DuplicateBookingError(
                "You already have a booking. Please edit or delete it first."
            )
        self._ensure_future(appointment_date)
        if self.checker.has_conflict(provider_id, appointment_date):
            raise SlotConflictError("The provider is already booked at that time.")

        with self._writing(duplicate_user=caller.user_id):
            booking = self.bookings.create(
                user_id=caller.user_id,
                provider_id=provider_id,
                appointment_date=appointment_date,
                created_at=self.clock(),
            )
        logger.info(
            "Booking %s created for user %s with provider %s at %s",
            booking.id,
            booking.user_id,
            provider_id,
            appointment_date,
        )
        return booking

    def get_own_booking(self, caller: Caller) -> Booking:
        return self.bookings.get_for_user(caller.user_id)

    def list_bookings(self, caller: Caller) -> Sequence[Booking]:
        require_admin(caller)
        return self.bookings.list()

    def update_own_booking(
        self,
        caller: Caller,
        provider_id: int | None = None,
        appointment_date: datetime | None = None,
    ) -> Booking:
        booking = self.bookings.get_for_user(caller.user_id)
        self._ensure_outside_lockout(booking, "modified")
        return self._apply_update(booking, provider_id, appointment_date)

    def cancel_own_booking(self, caller: Caller) -> None:
        booking = self.bookings.get_for_user(caller.user_id)
        self._ensure_outside_lockout(booking, "canceled")
        self._delete_and_promote(booking)

    def admin_update_booking(
        self,
        caller: Caller,
        booking_id: int,
        provider_id: int | None = None,
        appointment_date: datetime | None = None,
        user_id: str | None = None,
    ) -> Booking:
        """Administrative edit: no ownership or lockout checks."""
        require_admin(caller)
        booking = self.bookings.get(booking_id)
        return self._apply_update(booking, provider_id, appointment_date, user_id)

    def admin_delete_booking(self, caller: Caller, booking_id: int) -> None:
        require_admin(caller)
        booking = self.bookings.get(booking_id)
        self._delete_and_promote(booking)

    def _apply_update(
        self,
        booking: Booking,
        provider_id: int | None,
        appointment_date: datetime | None,
        user_id: str | None = None,
    ) -> Booking:
        previous_provider_id = booking.provider_id
        previous_date = booking.appointment_date

        new_provider_id = provider_id if provider_id is not None else previous_provider_id
        new_date = appointment_date if appointment_date is not None else previous_date
        slot_changed = new_provider_id != previous_provider_id or new_date != previous_date

        if new_provider_id != previous_provider_id:
            self.providers.get(new_provider_id)
        if new_date != previous_date:
            self._ensure_future(new_date)
        reassigned_to = user_id if user_id is not None and user_id != booking.user_id else None
        if reassigned_to is not None and self.bookings.find_for_user(reassigned_to) is not None:
            raise DuplicateBookingError(f"User {reassigned_to} already has a booking.")
        if self.checker.has_conflict(new_provider_id, new_date, exclude_booking_id=booking.id):
            raise SlotConflictError("The provider is already booked at that time.")

        with self._writing(duplicate_user=reassigned_to):
            booking.provider_id = new_provider_id
            booking.appointment_date = new_date
            if user_id is not None:
                booking.user_id = user_id
            booking.updated_at = self.clock()
            self.session.flush()
        logger.info("Booking %s updated (provider %s at %s)", booking.id, new_provider_id, new_date)

        if slot_changed:
            self.promoter.promote(previous_provider_id, previous_date)
        return booking

    def _delete_and_promote(self, booking: Booking) -> None:
        booking_id = booking.id
        provider_id = booking.provider_id
        freed_slot = booking.appointment_date
        with self._writing():
            self.bookings.delete(booking)
        logger.info(
            "Booking %s deleted, slot %s freed for provider %s", booking_id, freed_slot, provider_id
        )
        self.promoter.promote(provider_id, freed_slot)

    # Waitlist
    def join_waitlist(
        self, caller: Caller, provider_id: int, preferred_date: datetime
    ) -> WaitlistEntry:
        self.providers.get(provider_id)
        if self.waitlist.find_pending(caller.user_id, provider_id) is not None:
            raise AlreadyWaitlistedError("You are already on the waitlist for this provider.")
        self._ensure_future(preferred_date)
        with self._writing():
            entry = self.waitlist.create(
                user_id=caller.user_id,
                provider_id=provider_id,
                preferred_date=preferred_date,
                created_at=self.clock(),
            )
        logger.info("User %s joined waitlist for provider %s", caller.user_id, provider_id)
        return entry

    def leave_waitlist(self, caller: Caller, entry_id: int) -> None:
        entry = self.waitlist.get_for_user(entry_id, caller.user_id)
        with self._writing():
            self.waitlist.delete(entry)

    def list_own_waitlist(self, caller: Caller) -> Sequence[WaitlistEntry]:
        return self.waitlist.list_for_user(caller.user_id)

    def list_waitlist(self, caller: Caller) -> Sequence[WaitlistEntry]:
        require_admin(caller)
        return self.waitlist.list()
