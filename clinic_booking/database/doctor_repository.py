"""Doctor repository: doctors, their appointment-type capabilities and departments."""

import logging
import sqlite3
import uuid
from dataclasses import asdict, dataclass

from clinic_booking.errors import InvalidReference, translate_integrity_error
from clinic_booking.validation import DoctorFields, validate

from .connection import get_connection

logger = logging.getLogger(__name__)


@dataclass
class Doctor:
    id: str | None
    first_name: str
    last_name: str
    specialization: str
    phone: str
    email: str
    license_number: str
    hire_date: str
    active: bool = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class DoctorRepository:
    """Repository for doctor records and the doctor/appointment-type capability relation."""

    def create(self, doctor: Doctor) -> Doctor:
        """Create a new doctor."""
        fields = validate(DoctorFields, asdict(doctor))

        doctor.id = doctor.id or str(uuid.uuid4())
        doctor.hire_date = fields.hire_date.isoformat()
        doctor.email = fields.email

        conn = get_connection()
        try:
            conn.execute("""
                INSERT INTO doctors (
                    id, first_name, last_name, specialization, phone, email,
                    license_number, hire_date, active
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                doctor.id, doctor.first_name, doctor.last_name, doctor.specialization,
                doctor.phone, doctor.email, doctor.license_number, doctor.hire_date,
                int(doctor.active)
            ))
            conn.commit()
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        finally:
            conn.close()

        logger.info("Created doctor %s (%s)", doctor.id, doctor.full_name)
        return doctor

    def get_by_id(self, doctor_id: str, conn: sqlite3.Connection | None = None) -> Doctor | None:
        """Get a doctor by ID, optionally inside an open transaction."""
        own_conn = conn is None
        if own_conn:
            conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM doctors WHERE id = ?", (doctor_id,)).fetchone()
        finally:
            if own_conn:
                conn.close()
        return self._row_to_doctor(row) if row else None

    def list_active(self) -> list[Doctor]:
        """List active doctors ordered by name."""
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM doctors WHERE active = 1 ORDER BY last_name, first_name"
            ).fetchall()
        finally:
            conn.close()
        return [self._row_to_doctor(row) for row in rows]

    def set_active(self, doctor_id: str, active: bool) -> Doctor:
        """Activate or deactivate a doctor."""
        conn = get_connection()
        try:
            cursor = conn.execute("UPDATE doctors SET active = ? WHERE id = ?", (int(active), doctor_id))
            conn.commit()
        finally:
            conn.close()
        if cursor.rowcount == 0:
            raise InvalidReference(f"Doctor {doctor_id} does not exist")
        logger.info("Doctor %s is now %s", doctor_id, "active" if active else "inactive")
        return self.get_by_id(doctor_id)

    # Capability methods

    def add_capability(self, doctor_id: str, type_id: str) -> None:
        """Allow a doctor to perform an appointment type. Adding twice is a no-op."""
        conn = get_connection()
        try:
            conn.execute(
                "INSERT OR IGNORE INTO doctor_specializations (doctor_id, type_id) VALUES (?, ?)",
                (doctor_id, type_id),
            )
            conn.commit()
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        finally:
            conn.close()

    def remove_capability(self, doctor_id: str, type_id: str) -> None:
        """Withdraw a capability. Existing appointments are left untouched."""
        conn = get_connection()
        try:
            conn.execute(
                "DELETE FROM doctor_specializations WHERE doctor_id = ? AND type_id = ?",
                (doctor_id, type_id),
            )
            conn.commit()
        finally:
            conn.close()

    def capabilities(self, doctor_id: str) -> list[str]:
        """Get the appointment type IDs a doctor can perform."""
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT type_id FROM doctor_specializations WHERE doctor_id = ? ORDER BY type_id",
                (doctor_id,),
            ).fetchall()
        finally:
            conn.close()
        return [row["type_id"] for row in rows]

    def can_perform(self, doctor_id: str, type_id: str, conn: sqlite3.Connection | None = None) -> bool:
        """Check the capability relation, optionally inside an open transaction."""
        own_conn = conn is None
        if own_conn:
            conn = get_connection()
        try:
            row = conn.execute(
                "SELECT 1 FROM doctor_specializations WHERE doctor_id = ? AND type_id = ?",
                (doctor_id, type_id),
            ).fetchone()
        finally:
            if own_conn:
                conn.close()
        return row is not None

    # Department membership

    def add_to_department(self, doctor_id: str, department_id: str) -> None:
        """Add a doctor to a department. Adding twice is a no-op."""
        conn = get_connection()
        try:
            conn.execute(
                "INSERT OR IGNORE INTO doctor_departments (doctor_id, department_id) VALUES (?, ?)",
                (doctor_id, department_id),
            )
            conn.commit()
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        finally:
            conn.close()

    def departments_for(self, doctor_id: str) -> list[str]:
        """Get the department IDs a doctor belongs to."""
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT department_id FROM doctor_departments WHERE doctor_id = ? ORDER BY department_id",
                (doctor_id,),
            ).fetchall()
        finally:
            conn.close()
        return [row["department_id"] for row in rows]

    def _row_to_doctor(self, row) -> Doctor:
        """Convert a database row to a Doctor object."""
        return Doctor(
            id=row["id"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            specialization=row["specialization"],
            phone=row["phone"],
            email=row["email"],
            license_number=row["license_number"],
            hire_date=row["hire_date"],
            active=bool(row["active"]),
        )
