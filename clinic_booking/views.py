"""Read-only views derived from current state: today's appointments and available slots."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from clinic_booking.availability import AvailabilityCalculator, DateRange, floor_to_slot
from clinic_booking.database.appointment_repository import AppointmentStatus
from clinic_booking.database.connection import get_connection


@dataclass
class TodaysAppointment:
    appointment_id: str
    patient_name: str
    doctor_name: str
    appointment_type: str
    scheduled_datetime: datetime
    status: AppointmentStatus


@dataclass
class AvailableSlot:
    doctor_id: str
    doctor_name: str
    type_id: str
    type_name: str
    duration_minutes: int
    next_slot_start: datetime
    next_slot_end: datetime


def todays_appointments(today: date | None = None) -> list[TodaysAppointment]:
    """All appointments on the given day (default today), earliest first, in any status."""
    today = today or date.today()
    day_start = datetime.combine(today, datetime.min.time())

    conn = get_connection()
    try:
        rows = conn.execute(
            """SELECT a.id AS appointment_id,
                      p.first_name || ' ' || p.last_name AS patient_name,
                      d.first_name || ' ' || d.last_name AS doctor_name,
                      t.type_name AS appointment_type,
                      a.scheduled_datetime,
                      a.status
               FROM appointments a
               JOIN patients p ON a.patient_id = p.id
               JOIN doctors d ON a.doctor_id = d.id
               JOIN appointment_types t ON a.type_id = t.id
               WHERE a.scheduled_datetime >= ? AND a.scheduled_datetime < ?
               ORDER BY a.scheduled_datetime""",
            (
                day_start.isoformat(sep=" ", timespec="seconds"),
                (day_start + timedelta(days=1)).isoformat(sep=" ", timespec="seconds"),
            ),
        ).fetchall()
    finally:
        conn.close()

    return [
        TodaysAppointment(
            appointment_id=row["appointment_id"],
            patient_name=row["patient_name"],
            doctor_name=row["doctor_name"],
            appointment_type=row["appointment_type"],
            scheduled_datetime=datetime.fromisoformat(row["scheduled_datetime"]),
            status=AppointmentStatus(row["status"]),
        )
        for row in rows
    ]


def available_slots(
    now: datetime | None = None,
    horizon_days: int = 1,
    calculator: AvailabilityCalculator | None = None,
) -> list[AvailableSlot]:
    """The next free slot for every active doctor and each type they can perform.

    The search starts at now rounded down to the slot boundary and covers
    horizon_days; pairs with no free slot in that window are left out.
    """
    calculator = calculator or AvailabilityCalculator()
    granularity = calculator.settings.slot_granularity
    anchor = floor_to_slot(now or datetime.now(), granularity)
    window = DateRange(anchor, anchor + timedelta(days=horizon_days))

    result = []
    for doctor in calculator.doctors.list_active():
        capable = set(calculator.doctors.capabilities(doctor.id))
        for appointment_type in calculator.types.list_all():
            if appointment_type.id not in capable:
                continue
            slot = calculator.free_slots(doctor.id, appointment_type.id, window).first()
            if slot is None:
                continue
            result.append(AvailableSlot(
                doctor_id=doctor.id,
                doctor_name=doctor.full_name,
                type_id=appointment_type.id,
                type_name=appointment_type.type_name,
                duration_minutes=appointment_type.duration_minutes,
                next_slot_start=slot.start,
                next_slot_end=slot.end,
            ))
    return result
