"""Staff repository. Staff members are recorded as the creators of appointments."""

import sqlite3
import uuid
from dataclasses import asdict, dataclass

from clinic_booking.errors import InvalidReference, translate_integrity_error
from clinic_booking.validation import StaffFields, validate

from .connection import get_connection


@dataclass
class Staff:
    id: str | None
    first_name: str
    last_name: str
    role: str
    phone: str
    email: str
    hire_date: str
    active: bool = True


class StaffRepository:
    """Repository for staff CRUD operations."""

    def create(self, staff: Staff) -> Staff:
        """Create a new staff member."""
        fields = validate(StaffFields, asdict(staff))

        staff.id = staff.id or str(uuid.uuid4())
        staff.hire_date = fields.hire_date.isoformat()
        staff.email = fields.email

        conn = get_connection()
        try:
            conn.execute("""
                INSERT INTO staff (id, first_name, last_name, role, phone, email, hire_date, active)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                staff.id, staff.first_name, staff.last_name, staff.role,
                staff.phone, staff.email, staff.hire_date, int(staff.active)
            ))
            conn.commit()
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        finally:
            conn.close()
        return staff

    def get_by_id(self, staff_id: str) -> Staff | None:
        """Get a staff member by ID."""
        conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM staff WHERE id = ?", (staff_id,)).fetchone()
        finally:
            conn.close()
        return self._row_to_staff(row) if row else None

    def list_active(self) -> list[Staff]:
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM staff WHERE active = 1 ORDER BY last_name, first_name"
            ).fetchall()
        finally:
            conn.close()
        return [self._row_to_staff(row) for row in rows]

    def set_active(self, staff_id: str, active: bool) -> Staff:
        conn = get_connection()
        try:
            cursor = conn.execute("UPDATE staff SET active = ? WHERE id = ?", (int(active), staff_id))
            conn.commit()
        finally:
            conn.close()
        if cursor.rowcount == 0:
            raise InvalidReference(f"Staff member {staff_id} does not exist")
        return self.get_by_id(staff_id)

    def _row_to_staff(self, row) -> Staff:
        """Convert a database row to a Staff object."""
        return Staff(
            id=row["id"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            role=row["role"],
            phone=row["phone"],
            email=row["email"],
            hire_date=row["hire_date"],
            active=bool(row["active"]),
        )
