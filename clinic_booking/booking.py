"""Appointment booking with invariant checks.

All checks and the insert run inside one BEGIN IMMEDIATE transaction. SQLite
admits a single writer at a time, so two callers booking the same doctor
concurrently cannot both pass the overlap check.
"""

import logging
import sqlite3
import uuid
from datetime import datetime

from clinic_booking.availability import AvailabilityCalculator, intervals_overlap, require_naive
from clinic_booking.database.appointment_repository import (
    Appointment,
    AppointmentRepository,
    AppointmentStatus,
)
from clinic_booking.database.connection import transaction
from clinic_booking.errors import BookingError, InvalidReference, SlotConflict, ValidationError

logger = logging.getLogger(__name__)


def _require(conn: sqlite3.Connection, table: str, record_id: str, label: str) -> None:
    """Raise InvalidReference unless record_id exists in table."""
    row = conn.execute(f"SELECT 1 FROM {table} WHERE id = ?", (record_id,)).fetchone()
    if row is None:
        raise InvalidReference(f"{label} {record_id} does not exist")


class BookingEngine:
    """Validates and commits new appointments."""

    def __init__(
        self,
        availability: AvailabilityCalculator | None = None,
        appointments: AppointmentRepository | None = None,
    ):
        self.availability = availability or AvailabilityCalculator()
        self.appointments = appointments or self.availability.appointments

    def book(
        self,
        patient_id: str,
        doctor_id: str,
        type_id: str,
        requested_start: datetime,
        created_by: str,
        notes: str | None = None,
    ) -> Appointment:
        """Book an appointment starting at requested_start.

        The end time is requested_start plus the type's duration. References are
        resolved before the doctor's active flag and capability are checked.

        Raises:
            InvalidReference: patient, doctor, type or staff member is unknown
            DoctorInactive: the doctor is not active
            CapabilityMismatch: the doctor cannot perform the type
            ValidationError: requested_start carries a timezone, or the computed interval is empty
            SlotConflict: the interval overlaps a scheduled appointment
        """
        try:
            requested_start = require_naive(requested_start, "Requested start").replace(microsecond=0)
            with transaction() as conn:
                _require(conn, "patients", patient_id, "Patient")
                doctor, appointment_type = self.availability.resolve(doctor_id, type_id, conn=conn)
                _require(conn, "staff", created_by, "Staff member")
                self.availability.check_eligible(doctor, appointment_type, conn=conn)

                requested_end = requested_start + appointment_type.duration
                if requested_end <= requested_start:
                    raise ValidationError("Appointment must end after it starts")

                for existing in self.appointments.list_for_doctor(
                    doctor_id,
                    status=AppointmentStatus.SCHEDULED,
                    window_start=requested_start,
                    window_end=requested_end,
                    conn=conn,
                ):
                    if intervals_overlap(
                        requested_start, requested_end,
                        existing.scheduled_datetime, existing.end_datetime,
                    ):
                        raise SlotConflict(
                            f"Doctor {doctor_id} already has appointment {existing.id} "
                            f"from {existing.scheduled_datetime:%Y-%m-%d %H:%M} "
                            f"to {existing.end_datetime:%H:%M}"
                        )

                appointment = self.appointments.insert(conn, Appointment(
                    id=str(uuid.uuid4()),
                    patient_id=patient_id,
                    doctor_id=doctor_id,
                    type_id=type_id,
                    scheduled_datetime=requested_start,
                    end_datetime=requested_end,
                    created_by=created_by,
                    status=AppointmentStatus.SCHEDULED,
                    notes=notes,
                ))
        except (BookingError, ValidationError) as exc:
            logger.warning("Booking rejected for doctor %s at %s: %s", doctor_id, requested_start, exc)
            raise

        logger.info(
            "Booked appointment %s: doctor %s, patient %s, %s-%s",
            appointment.id, doctor_id, patient_id,
            appointment.scheduled_datetime, appointment.end_datetime,
        )
        return appointment
