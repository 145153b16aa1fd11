"""Medical record repository."""

import sqlite3
import uuid
from dataclasses import dataclass
from datetime import datetime

from clinic_booking.errors import InvalidReference, ValidationError, translate_integrity_error

from .connection import get_connection


@dataclass
class MedicalRecord:
    id: str | None
    patient_id: str
    doctor_id: str
    appointment_id: str | None = None
    diagnosis: str | None = None
    treatment: str | None = None
    prescription: str | None = None
    notes: str | None = None
    record_date: str | None = None


class MedicalRecordRepository:
    """Repository for medical records. Content is stored as given."""

    def create(self, record: MedicalRecord) -> MedicalRecord:
        """Create a record. A linked appointment must belong to the same patient."""
        conn = get_connection()
        try:
            if record.appointment_id:
                row = conn.execute(
                    "SELECT patient_id FROM appointments WHERE id = ?", (record.appointment_id,)
                ).fetchone()
                if row is None:
                    raise InvalidReference(f"Appointment {record.appointment_id} does not exist")
                if row["patient_id"] != record.patient_id:
                    raise ValidationError(
                        f"Appointment {record.appointment_id} belongs to a different patient"
                    )

            record.id = record.id or str(uuid.uuid4())
            record.record_date = record.record_date or datetime.now().isoformat(sep=" ", timespec="seconds")
            conn.execute(
                """INSERT INTO medical_records
                   (id, patient_id, doctor_id, appointment_id, record_date,
                    diagnosis, treatment, prescription, notes)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    record.id, record.patient_id, record.doctor_id, record.appointment_id,
                    record.record_date, record.diagnosis, record.treatment,
                    record.prescription, record.notes,
                ),
            )
            conn.commit()
        except sqlite3.IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        finally:
            conn.close()
        return record

    def list_for_patient(self, patient_id: str, limit: int | None = None) -> list[MedicalRecord]:
        """Get a patient's records, most recent first."""
        query = "SELECT * FROM medical_records WHERE patient_id = ? ORDER BY record_date DESC"
        params = [patient_id]
        if limit:
            query += " LIMIT ?"
            params.append(limit)

        conn = get_connection()
        try:
            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()
        return [self._row_to_record(row) for row in rows]

    def _row_to_record(self, row) -> MedicalRecord:
        return MedicalRecord(
            id=row["id"],
            patient_id=row["patient_id"],
            doctor_id=row["doctor_id"],
            appointment_id=row["appointment_id"],
            diagnosis=row["diagnosis"],
            treatment=row["treatment"],
            prescription=row["prescription"],
            notes=row["notes"],
            record_date=row["record_date"],
        )
