"""Dental appointment booking with waitlist promotion."""

from .config import LOCKOUT_WINDOW, SLOT_DURATION, Settings, load_settings
from .conflicts import ConflictChecker
from .db import Base, check_health, configure, init_db, session_scope
from .exceptions import (
    AlreadyWaitlistedError,
    AuthorizationError,
    BookingNotFoundError,
    BookingSystemError,
    ConcurrentModificationError,
    DatabaseConnectionError,
    DuplicateBookingError,
    LockoutWindowViolation,
    NotAuthorizedError,
    PastDateError,
    ProviderNotFoundError,
    ResourceNotFoundError,
    SlotConflictError,
    StateConflictError,
    ValidationError,
    WaitlistEntryNotFoundError,
)
from .identity import Caller
from .models import Booking, Provider, WaitlistEntry
from .services import BookingService
from .waitlist import WaitlistPromoter

__all__ = [
    "Base",
    "configure",
    "init_db",
    "check_health",
    "session_scope",
    "Settings",
    "load_settings",
    "SLOT_DURATION",
    "LOCKOUT_WINDOW",
    "BookingService",
    "ConflictChecker",
    "WaitlistPromoter",
    "Caller",
    "Provider",
    "Booking",
    "WaitlistEntry",
    "BookingSystemError",
    "DatabaseConnectionError",
    "ValidationError",
    "PastDateError",
    "ResourceNotFoundError",
    "ProviderNotFoundError",
    "BookingNotFoundError",
    "WaitlistEntryNotFoundError",
    "StateConflictError",
    "DuplicateBookingError",
    "SlotConflictError",
    "AlreadyWaitlistedError",
    "ConcurrentModificationError",
    "AuthorizationError",
    "NotAuthorizedError",
    "LockoutWindowViolation",
]
