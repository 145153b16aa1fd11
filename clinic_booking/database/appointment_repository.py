"""Appointment repository with query operations.

Write methods take an open connection so the booking engine and lifecycle
manager can run their checks and the write in one transaction.
"""

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from clinic_booking.errors import InvalidReference, translate_integrity_error

from .connection import get_connection


class AppointmentStatus(Enum):
    """Appointment lifecycle states."""
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    NO_SHOW = "No-Show"


def format_timestamp(value: datetime) -> str:
    """Format a datetime the way it is stored ("YYYY-MM-DD HH:MM:SS")."""
    return value.isoformat(sep=" ", timespec="seconds")


@dataclass
class Appointment:
    id: str
    patient_id: str
    doctor_id: str
    type_id: str
    scheduled_datetime: datetime
    end_datetime: datetime
    created_by: str
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    notes: str | None = None
    created_at: str | None = None


class AppointmentRepository:
    """Repository for appointment reads and transactional writes."""

    def insert(self, conn: sqlite3.Connection, appointment: Appointment) -> Appointment:
        """Insert an appointment using the caller's transaction."""
        appointment.created_at = appointment.created_at or format_timestamp(datetime.now())
        try:
            conn.execute(
                """INSERT INTO appointments
                   (id, patient_id, doctor_id, type_id, scheduled_datetime, end_datetime,
                    status, notes, created_at, created_by)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    appointment.id,
                    appointment.patient_id,
                    appointment.doctor_id,
                    appointment.type_id,
                    format_timestamp(appointment.scheduled_datetime),
                    format_timestamp(appointment.end_datetime),
                    appointment.status.value,
                    appointment.notes,
                    appointment.created_at,
                    appointment.created_by,
                ),
            )
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        return appointment

    def update_status(self, conn: sqlite3.Connection, appointment_id: str, status: AppointmentStatus) -> None:
        """Set the status of an appointment using the caller's transaction."""
        conn.execute(
            "UPDATE appointments SET status = ? WHERE id = ?",
            (status.value, appointment_id),
        )

    def update_notes(self, appointment_id: str, notes: str | None) -> Appointment:
        """Replace the free-text notes of an appointment."""
        conn = get_connection()
        try:
            cursor = conn.execute("UPDATE appointments SET notes = ? WHERE id = ?", (notes, appointment_id))
            conn.commit()
        finally:
            conn.close()
        if cursor.rowcount == 0:
            raise InvalidReference(f"Appointment {appointment_id} does not exist")
        return self.get_by_id(appointment_id)

    def get_by_id(self, appointment_id: str, conn: sqlite3.Connection | None = None) -> Appointment | None:
        """Get an appointment by ID."""
        own_conn = conn is None
        if own_conn:
            conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM appointments WHERE id = ?", (appointment_id,)).fetchone()
        finally:
            if own_conn:
                conn.close()
        return self._row_to_appointment(row) if row else None

    def list_for_doctor(
        self,
        doctor_id: str,
        status: AppointmentStatus | None = None,
        window_start: datetime | None = None,
        window_end: datetime | None = None,
        conn: sqlite3.Connection | None = None,
    ) -> list[Appointment]:
        """List a doctor's appointments, optionally only those intersecting [window_start, window_end)."""
        query = "SELECT * FROM appointments WHERE doctor_id = ?"
        params = [doctor_id]

        if status is not None:
            query += " AND status = ?"
            params.append(status.value)

        if window_end is not None:
            query += " AND scheduled_datetime < ?"
            params.append(format_timestamp(window_end))

        if window_start is not None:
            query += " AND end_datetime > ?"
            params.append(format_timestamp(window_start))

        query += " ORDER BY scheduled_datetime"

        own_conn = conn is None
        if own_conn:
            conn = get_connection()
        try:
            rows = conn.execute(query, params).fetchall()
        finally:
            if own_conn:
                conn.close()
        return [self._row_to_appointment(row) for row in rows]

    def list_for_patient(self, patient_id: str) -> list[Appointment]:
        """List a patient's appointments, most recent first."""
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM appointments WHERE patient_id = ? ORDER BY scheduled_datetime DESC",
                (patient_id,),
            ).fetchall()
        finally:
            conn.close()
        return [self._row_to_appointment(row) for row in rows]

    def _row_to_appointment(self, row) -> Appointment:
        """Convert a database row to an Appointment object."""
        return Appointment(
            id=row["id"],
            patient_id=row["patient_id"],
            doctor_id=row["doctor_id"],
            type_id=row["type_id"],
            scheduled_datetime=datetime.fromisoformat(row["scheduled_datetime"]),
            end_datetime=datetime.fromisoformat(row["end_datetime"]),
            created_by=row["created_by"],
            status=AppointmentStatus(row["status"]),
            notes=row["notes"],
            created_at=row["created_at"],
        )
