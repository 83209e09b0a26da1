"""Overlap detection for provider slots.

A slot is the half-open interval ``[start, start + slot_duration)``, so two
appointments that touch at an exact boundary (09:00 and 10:00 with a one hour
slot) do not conflict, while 09:00 and 09:59 do.
"""

from datetime import datetime, time, timedelta

from .config import SLOT_DURATION
from .logger import get_logger
from .repositories import BookingRepository

logger = get_logger(__name__)


def intervals_overlap(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    return a_start < b_end and a_end > b_start


class ConflictChecker:
    """Read-only check for overlapping bookings of one provider."""

    def __init__(self, bookings: BookingRepository, slot_duration: timedelta = SLOT_DURATION):
        self.bookings = bookings
        self.slot_duration = slot_duration

    def slot_end(self, start: datetime) -> datetime:
        return start + self.slot_duration

    def has_conflict(
        self,
        provider_id: int,
        candidate_start: datetime,
        exclude_booking_id: int | None = None,
    ) -> bool:
        """Return True when another booking of ``provider_id`` overlaps the candidate slot.

        Candidates are pre-filtered to the calendar day of ``candidate_start``,
        widened by one slot on each side so bookings that cross midnight are seen.
        The overlap test itself is the authoritative check.
        """
        candidate_end = self.slot_end(candidate_start)
        day_start = datetime.combine(candidate_start.date(), time.min)
        window_start = day_start - self.slot_duration
        window_end = day_start + timedelta(days=1) + self.slot_duration

        for booking in self.bookings.list_for_provider_between(
            provider_id, window_start, window_end
        ):
            if exclude_booking_id is not None and booking.id == exclude_booking_id:
                continue
            booking_end = self.slot_end(booking.appointment_date)
            if intervals_overlap(
                candidate_start, candidate_end, booking.appointment_date, booking_end
            ):
                logger.debug(
                    "Slot %s for provider %s overlaps booking %s",
                    candidate_start,
                    provider_id,
                    booking.id,
                )
                return True
        return False
