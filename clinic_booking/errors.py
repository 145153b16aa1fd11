"""Exceptions raised by the clinic booking system."""

import sqlite3


class ClinicError(Exception):
    """Base class for all clinic booking errors."""


class ValidationError(ClinicError):
    """Raised when incoming data fails field or business validation."""


class DuplicateRecord(ValidationError):
    """Raised when a unique column (email, license number, name) is already taken."""


class BookingError(ClinicError):
    """Raised when an appointment cannot be booked."""


class InvalidReference(BookingError):
    """Raised when a referenced patient, doctor, type, staff member or record does not exist."""


class DoctorInactive(BookingError):
    """Raised when the doctor is not active."""


class CapabilityMismatch(BookingError):
    """Raised when the doctor cannot perform the requested appointment type."""


# Name used by the availability calculator
CapabilityError = CapabilityMismatch


class SlotConflict(BookingError):
    """Raised when the requested interval overlaps a scheduled appointment."""


class LifecycleError(ClinicError):
    """Raised when an appointment status change is not allowed."""


class InvalidTransition(LifecycleError):
    """Raised when moving out of a terminal status or into an unknown one."""


class LatePolicyViolation(LifecycleError):
    """Raised when a cancellation comes later than the cancellation policy allows."""


def translate_integrity_error(exc: sqlite3.IntegrityError) -> ClinicError:
    """Map a SQLite constraint failure onto the matching clinic error."""
    message = str(exc)
    if "UNIQUE constraint failed" in message:
        return DuplicateRecord(message)
    if "FOREIGN KEY constraint failed" in message:
        return InvalidReference(message)
    return ValidationError(message)


__all__ = [
    "ClinicError",
    "ValidationError",
    "DuplicateRecord",
    "BookingError",
    "InvalidReference",
    "DoctorInactive",
    "CapabilityMismatch",
    "CapabilityError",
    "SlotConflict",
    "LifecycleError",
    "InvalidTransition",
    "LatePolicyViolation",
    "translate_integrity_error",
]
