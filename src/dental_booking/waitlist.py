"""Waitlist promotion: hand a freed provider slot to the longest-waiting requester."""

from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from .conflicts import ConflictChecker
from .logger import get_logger
from .models import Booking
from .repositories import BookingRepository, WaitlistRepository

logger = get_logger(__name__)


class WaitlistPromoter:
    """Converts at most one pending waitlist entry into a booking per call.

    Entries are considered strictly in creation order. The booking is placed
    at the entry's own preferred date, which need not match the freed slot,
    so the usual conflict and one-booking-per-user rules are re-checked.
    """

    def __init__(
        self,
        session: Session,
        checker: ConflictChecker,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.session = session
        self.checker = checker
        self.clock = clock
        self.bookings = BookingRepository(session)
        self.waitlist = WaitlistRepository(session)

    def promote(self, provider_id: int, freed_slot: datetime) -> Booking | None:
        """Promote the first eligible entry for ``provider_id``.

        Must be called after the slot-freeing change is committed. Any failure
        is rolled back and logged; the freed slot then simply stays open.
        """
        try:
            booking = self._promote_first_eligible(provider_id)
            if booking is not None:
                self.session.commit()
            return booking
        except Exception:  # noqa: BLE001 - promotion never fails the triggering operation
            self.session.rollback()
            logger.exception(
                "Waitlist promotion failed for provider %s (freed slot %s)",
                provider_id,
                freed_slot,
            )
            return None

    def _promote_first_eligible(self, provider_id: int) -> Booking | None:
        now = self.clock()
        for entry in self.waitlist.list_pending_for_provider(provider_id):
            if self.bookings.find_for_user(entry.user_id) is not None:
                logger.debug("Skipping waitlist entry %s: user already booked", entry.id)
                continue
            if entry.preferred_date <= now:
                logger.debug("Skipping waitlist entry %s: preferred date has passed", entry.id)
                continue
            if self.checker.has_conflict(provider_id, entry.preferred_date):
                logger.debug("Skipping waitlist entry %s: preferred slot taken", entry.id)
                continue

            booking = self.bookings.create(
                user_id=entry.user_id,
                provider_id=provider_id,
                appointment_date=entry.preferred_date,
                created_at=now,
            )
            self.waitlist.delete(entry)
            logger.info(
                "Notifying user %s about booking %s with provider %s at %s",
                booking.user_id,
                booking.id,
                provider_id,
                booking.appointment_date,
            )
            return booking
        return None
