"""Free-slot computation for a doctor and appointment type.

Intervals are half-open: [start, end). Two intervals overlap when each one
starts before the other ends, so back-to-back appointments do not conflict.
"""

import logging
import math
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterator, NamedTuple

from clinic_booking.database.appointment_repository import AppointmentRepository, AppointmentStatus
from clinic_booking.database.appointment_type_repository import AppointmentType, AppointmentTypeRepository
from clinic_booking.database.doctor_repository import Doctor, DoctorRepository
from clinic_booking.errors import CapabilityMismatch, DoctorInactive, InvalidReference, ValidationError
from clinic_booking.settings import ClinicSettings, get_settings

logger = logging.getLogger(__name__)


def require_naive(moment: datetime, label: str) -> datetime:
    """Reject timezone-aware datetimes. Clinic times are naive local wall-clock times."""
    if moment.tzinfo is not None:
        raise ValidationError(f"{label} must be a local time without a timezone, got {moment.isoformat()}")
    return moment


class Slot(NamedTuple):
    start: datetime
    end: datetime


@dataclass(frozen=True)
class DateRange:
    """A half-open [start, end) window to search for slots in."""
    start: datetime
    end: datetime

    def __post_init__(self):
        require_naive(self.start, "Date range start")
        require_naive(self.end, "Date range end")
        if self.end <= self.start:
            raise ValidationError("Date range end must be after its start")

    @classmethod
    def for_days(cls, first_day: date, days: int = 1) -> "DateRange":
        """Whole calendar days starting at first_day."""
        start = datetime.combine(first_day, time.min)
        return cls(start, start + timedelta(days=days))


def intervals_overlap(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    """True if [start, end) and [other_start, other_end) share any instant."""
    return start < other_end and end > other_start


def floor_to_slot(moment: datetime, granularity_minutes: int) -> datetime:
    """Round down to the previous slot boundary, counted from midnight."""
    midnight = datetime.combine(moment.date(), time.min)
    step = timedelta(minutes=granularity_minutes)
    return midnight + ((moment - midnight) // step) * step


def ceil_to_slot(moment: datetime, granularity_minutes: int) -> datetime:
    """Round up to the next slot boundary, counted from midnight."""
    midnight = datetime.combine(moment.date(), time.min)
    step = timedelta(minutes=granularity_minutes)
    return midnight + math.ceil((moment - midnight) / step) * step


class FreeSlots:
    """Lazy, restartable sequence of free slots.

    Every iteration reads the doctor's scheduled appointments afresh, so it
    always reflects committed state.
    """

    def __init__(
        self,
        doctor_id: str,
        duration: timedelta,
        date_range: DateRange,
        granularity: int,
        buffer: timedelta,
        hours_start: time,
        hours_end: time,
        appointments: AppointmentRepository,
    ):
        self.doctor_id = doctor_id
        self.duration = duration
        self.date_range = date_range
        self.granularity = granularity
        self.buffer = buffer
        self.hours_start = hours_start
        self.hours_end = hours_end
        self.appointments = appointments

    def __iter__(self) -> Iterator[Slot]:
        busy = [
            (a.scheduled_datetime - self.buffer, a.end_datetime + self.buffer)
            for a in self.appointments.list_for_doctor(
                self.doctor_id,
                status=AppointmentStatus.SCHEDULED,
                window_start=self.date_range.start - self.buffer,
                window_end=self.date_range.end + self.buffer,
            )
        ]
        step = timedelta(minutes=self.granularity)

        day = self.date_range.start.date()
        while day <= self.date_range.end.date():
            opens = datetime.combine(day, self.hours_start)
            closes = min(datetime.combine(day, self.hours_end), self.date_range.end)

            start = ceil_to_slot(max(opens, self.date_range.start), self.granularity)
            while start + self.duration <= closes:
                end = start + self.duration
                if not any(intervals_overlap(start, end, b_start, b_end) for b_start, b_end in busy):
                    yield Slot(start, end)
                start += step

            day += timedelta(days=1)

    def first(self) -> Slot | None:
        """The earliest free slot, or None."""
        return next(iter(self), None)


class AvailabilityCalculator:
    """Computes free slots from doctors, capabilities and scheduled appointments."""

    def __init__(
        self,
        settings: ClinicSettings | None = None,
        doctors: DoctorRepository | None = None,
        types: AppointmentTypeRepository | None = None,
        appointments: AppointmentRepository | None = None,
    ):
        self._settings = settings
        self.doctors = doctors or DoctorRepository()
        self.types = types or AppointmentTypeRepository()
        self.appointments = appointments or AppointmentRepository()

    @property
    def settings(self) -> ClinicSettings:
        return self._settings or get_settings()

    def resolve(
        self,
        doctor_id: str,
        type_id: str,
        conn: sqlite3.Connection | None = None,
    ) -> tuple[Doctor, AppointmentType]:
        """Look up the doctor and appointment type, raising InvalidReference if either is missing."""
        doctor = self.doctors.get_by_id(doctor_id, conn=conn)
        if doctor is None:
            raise InvalidReference(f"Doctor {doctor_id} does not exist")
        appointment_type = self.types.get_by_id(type_id, conn=conn)
        if appointment_type is None:
            raise InvalidReference(f"Appointment type {type_id} does not exist")
        return doctor, appointment_type

    def check_eligible(
        self,
        doctor: Doctor,
        appointment_type: AppointmentType,
        conn: sqlite3.Connection | None = None,
    ) -> None:
        """Raise DoctorInactive or CapabilityMismatch unless the doctor may take this type."""
        if not doctor.active:
            raise DoctorInactive(f"Doctor {doctor.full_name} is not active")
        if not self.doctors.can_perform(doctor.id, appointment_type.id, conn=conn):
            raise CapabilityMismatch(
                f"Doctor {doctor.full_name} cannot perform {appointment_type.type_name}"
            )

    def check_bookable(
        self,
        doctor_id: str,
        type_id: str,
        conn: sqlite3.Connection | None = None,
    ) -> tuple[Doctor, AppointmentType]:
        """Resolve the doctor and type, then check the doctor may take this type.

        Raises InvalidReference, DoctorInactive or CapabilityMismatch, in that order.
        """
        doctor, appointment_type = self.resolve(doctor_id, type_id, conn=conn)
        self.check_eligible(doctor, appointment_type, conn=conn)
        return doctor, appointment_type

    def free_slots(
        self,
        doctor_id: str,
        type_id: str,
        date_range: DateRange,
        slot_granularity: int | None = None,
        buffer_minutes: int | None = None,
    ) -> FreeSlots:
        """Free slots for a doctor and appointment type inside date_range.

        Candidates start on slot_granularity boundaries (default from
        settings), fit inside business hours, and stay clear of scheduled
        appointments padded by buffer_minutes (default appointment_buffer).
        """
        _, appointment_type = self.check_bookable(doctor_id, type_id)

        settings = self.settings
        granularity = slot_granularity if slot_granularity is not None else settings.slot_granularity
        if granularity <= 0:
            raise ValidationError("Slot granularity must be positive")
        buffer = buffer_minutes if buffer_minutes is not None else settings.appointment_buffer
        if buffer < 0:
            raise ValidationError("Buffer must not be negative")

        return FreeSlots(
            doctor_id=doctor_id,
            duration=appointment_type.duration,
            date_range=date_range,
            granularity=granularity,
            buffer=timedelta(minutes=buffer),
            hours_start=settings.business_hours_start,
            hours_end=settings.business_hours_end,
            appointments=self.appointments,
        )
