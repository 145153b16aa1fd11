"""Patient repository with CRUD operations."""

import logging
import sqlite3
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime

from clinic_booking.errors import InvalidReference, ValidationError, translate_integrity_error
from clinic_booking.validation import ContactFields, PatientFields, validate

from .connection import get_connection

logger = logging.getLogger(__name__)


@dataclass
class Patient:
    id: str | None
    first_name: str
    last_name: str
    date_of_birth: str
    gender: str
    phone: str
    email: str | None = None
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None
    registration_date: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class PatientRepository:
    """Repository for patient records. Patients are never deleted."""

    # Fields that can be updated after registration
    CONTACT_FIELDS = ["phone", "email", "address", "city", "postal_code"]

    # Identity fields are fixed at registration
    IDENTITY_FIELDS = ["first_name", "last_name", "date_of_birth", "gender"]

    def create(self, patient: Patient) -> Patient:
        """Register a new patient."""
        fields = validate(PatientFields, asdict(patient))

        patient.id = patient.id or str(uuid.uuid4())
        patient.date_of_birth = fields.date_of_birth.isoformat()
        patient.email = fields.email
        now = datetime.now().isoformat(sep=" ", timespec="seconds")

        conn = get_connection()
        try:
            conn.execute("""
                INSERT INTO patients (
                    id, first_name, last_name, date_of_birth, gender, phone, email,
                    address, city, postal_code, registration_date
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                patient.id, patient.first_name, patient.last_name, patient.date_of_birth,
                patient.gender, patient.phone, patient.email, patient.address,
                patient.city, patient.postal_code, now
            ))
            conn.commit()
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        finally:
            conn.close()

        patient.registration_date = now
        logger.info("Registered patient %s (%s)", patient.id, patient.full_name)
        return patient

    def get_by_id(self, patient_id: str) -> Patient | None:
        """Get a patient by ID."""
        conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM patients WHERE id = ?", (patient_id,)).fetchone()
        finally:
            conn.close()
        return self._row_to_patient(row) if row else None

    def find_by_email(self, email: str) -> Patient | None:
        """Find a patient by their (unique) email address."""
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT * FROM patients WHERE email = ? COLLATE NOCASE", (email.strip(),)
            ).fetchone()
        finally:
            conn.close()
        return self._row_to_patient(row) if row else None

    def list_all(self) -> list[Patient]:
        """List patients ordered by last name, first name."""
        conn = get_connection()
        try:
            rows = conn.execute("SELECT * FROM patients ORDER BY last_name, first_name").fetchall()
        finally:
            conn.close()
        return [self._row_to_patient(row) for row in rows]

    def update_contact(self, patient_id: str, updates: dict) -> Patient:
        """Update mutable contact fields.

        Raises ValidationError for identity or unknown fields and
        InvalidReference if the patient does not exist.
        """
        fixed = set(updates) & set(self.IDENTITY_FIELDS)
        if fixed:
            raise ValidationError(f"Patient identity fields cannot change: {', '.join(sorted(fixed))}")
        unknown = set(updates) - set(self.CONTACT_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown patient fields: {', '.join(sorted(unknown))}")

        checked = validate(ContactFields, updates).model_dump(include=set(updates))

        if self.get_by_id(patient_id) is None:
            raise InvalidReference(f"Patient {patient_id} does not exist")

        if checked:
            set_clause = ", ".join(f"{field} = ?" for field in checked)
            values = list(checked.values()) + [patient_id]
            conn = get_connection()
            try:
                conn.execute(f"UPDATE patients SET {set_clause} WHERE id = ?", values)
                conn.commit()
            except sqlite3.IntegrityError as exc:
                raise translate_integrity_error(exc) from exc
            finally:
                conn.close()

        return self.get_by_id(patient_id)

    def _row_to_patient(self, row) -> Patient:
        """Convert a database row to a Patient object."""
        return Patient(
            id=row["id"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            date_of_birth=row["date_of_birth"],
            gender=row["gender"],
            phone=row["phone"],
            email=row["email"],
            address=row["address"],
            city=row["city"],
            postal_code=row["postal_code"],
            registration_date=row["registration_date"],
        )
