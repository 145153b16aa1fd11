"""Department repository."""

import sqlite3
import uuid
from dataclasses import asdict, dataclass

from clinic_booking.errors import InvalidReference, translate_integrity_error
from clinic_booking.validation import DepartmentFields, validate

from .connection import get_connection


@dataclass
class Department:
    id: str | None
    department_name: str
    location: str
    head_doctor_id: str | None = None


class DepartmentRepository:
    """Repository for departments and their doctor members."""

    def create(self, department: Department) -> Department:
        """Create a department. The head doctor, if given, must exist."""
        validate(DepartmentFields, asdict(department))
        department.id = department.id or str(uuid.uuid4())

        conn = get_connection()
        try:
            conn.execute(
                "INSERT INTO departments (id, department_name, location, head_doctor_id) VALUES (?, ?, ?, ?)",
                (department.id, department.department_name, department.location, department.head_doctor_id),
            )
            conn.commit()
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        finally:
            conn.close()
        return department

    def get_by_id(self, department_id: str) -> Department | None:
        """Get a department by ID."""
        conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM departments WHERE id = ?", (department_id,)).fetchone()
        finally:
            conn.close()
        return self._row_to_department(row) if row else None

    def set_head(self, department_id: str, doctor_id: str | None) -> Department:
        """Set or clear the head doctor of a department."""
        conn = get_connection()
        try:
            cursor = conn.execute(
                "UPDATE departments SET head_doctor_id = ? WHERE id = ?", (doctor_id, department_id)
            )
            conn.commit()
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        finally:
            conn.close()
        if cursor.rowcount == 0:
            raise InvalidReference(f"Department {department_id} does not exist")
        return self.get_by_id(department_id)

    def members(self, department_id: str) -> list[str]:
        """Get the IDs of doctors in a department."""
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT doctor_id FROM doctor_departments WHERE department_id = ? ORDER BY doctor_id",
                (department_id,),
            ).fetchall()
        finally:
            conn.close()
        return [row["doctor_id"] for row in rows]

    def _row_to_department(self, row) -> Department:
        return Department(
            id=row["id"],
            department_name=row["department_name"],
            location=row["location"],
            head_doctor_id=row["head_doctor_id"],
        )
