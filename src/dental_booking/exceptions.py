"""Custom exceptions used across the dental booking package."""


class BookingSystemError(Exception):
    """Base class for every typed rejection raised by the core."""


class DatabaseConnectionError(BookingSystemError):
    """Raised when the database connection cannot be established."""


class ValidationError(BookingSystemError):
    """Raised when incoming data fails domain or business validation."""


class PastDateError(ValidationError):
    """Raised when an appointment time is not strictly in the future."""


class ResourceNotFoundError(BookingSystemError):
    """Raised when an entity lookup returns no result."""


class ProviderNotFoundError(ResourceNotFoundError):
    pass


class BookingNotFoundError(ResourceNotFoundError):
    pass


class WaitlistEntryNotFoundError(ResourceNotFoundError):
    pass


class StateConflictError(BookingSystemError):
    """Raised when the request clashes with existing state; pick other parameters."""


class DuplicateBookingError(StateConflictError):
    """Raised when the user already holds an active booking."""


class SlotConflictError(StateConflictError):
    """Raised when the provider already has a booking overlapping the requested slot."""


class AlreadyWaitlistedError(StateConflictError):
    """Raised when the user already has a pending waitlist entry for the provider."""


class ConcurrentModificationError(StateConflictError):
    """Raised when a booking was changed by another request mid-update."""


class AuthorizationError(BookingSystemError):
    """Raised when the caller may not perform the operation."""


class NotAuthorizedError(AuthorizationError):
    """Raised when an administrative operation is attempted by a regular user."""


class LockoutWindowViolation(AuthorizationError):
    """Raised when a booking is changed or cancelled inside the 24-hour lockout."""


__all__ = [
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
