"""Appointment type repository."""

import sqlite3
import uuid
from dataclasses import asdict, dataclass
from datetime import timedelta

from clinic_booking.errors import translate_integrity_error
from clinic_booking.validation import AppointmentTypeFields, validate

from .connection import get_connection


@dataclass
class AppointmentType:
    id: str | None
    type_name: str
    duration_minutes: int
    base_price: float
    description: str | None = None

    @property
    def duration(self) -> timedelta:
        return timedelta(minutes=self.duration_minutes)


class AppointmentTypeRepository:
    """Repository for appointment types. Durations must be positive."""

    def create(self, appointment_type: AppointmentType) -> AppointmentType:
        """Create a new appointment type."""
        fields = validate(AppointmentTypeFields, asdict(appointment_type))

        appointment_type.id = appointment_type.id or str(uuid.uuid4())
        appointment_type.base_price = round(fields.base_price, 2)

        conn = get_connection()
        try:
            conn.execute(
                """INSERT INTO appointment_types (id, type_name, duration_minutes, description, base_price)
                   VALUES (?, ?, ?, ?, ?)""",
                (
                    appointment_type.id,
                    appointment_type.type_name,
                    appointment_type.duration_minutes,
                    appointment_type.description,
                    appointment_type.base_price,
                ),
            )
            conn.commit()
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        finally:
            conn.close()
        return appointment_type

    def get_by_id(self, type_id: str, conn: sqlite3.Connection | None = None) -> AppointmentType | None:
        """Get an appointment type by ID, optionally inside an open transaction."""
        own_conn = conn is None
        if own_conn:
            conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM appointment_types WHERE id = ?", (type_id,)).fetchone()
        finally:
            if own_conn:
                conn.close()
        return self._row_to_type(row) if row else None

    def get_by_name(self, type_name: str) -> AppointmentType | None:
        conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM appointment_types WHERE type_name = ?", (type_name,)).fetchone()
        finally:
            conn.close()
        return self._row_to_type(row) if row else None

    def list_all(self) -> list[AppointmentType]:
        conn = get_connection()
        try:
            rows = conn.execute("SELECT * FROM appointment_types ORDER BY type_name").fetchall()
        finally:
            conn.close()
        return [self._row_to_type(row) for row in rows]

    def _row_to_type(self, row) -> AppointmentType:
        """Convert a database row to an AppointmentType object."""
        return AppointmentType(
            id=row["id"],
            type_name=row["type_name"],
            duration_minutes=row["duration_minutes"],
            base_price=row["base_price"],
            description=row["description"],
        )
