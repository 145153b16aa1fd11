"""Tests for the BookingEngine."""

import random
import threading
from datetime import timedelta, timezone

import pytest

from clinic_booking.availability import AvailabilityCalculator, DateRange, Slot, intervals_overlap
from clinic_booking.booking import BookingEngine
from clinic_booking.database import AppointmentRepository, AppointmentTypeRepository, DoctorRepository
from clinic_booking.database.appointment_repository import Appointment, AppointmentStatus
from clinic_booking.database.appointment_type_repository import AppointmentType
from clinic_booking.database.connection import get_connection, transaction
from clinic_booking.errors import (
    CapabilityMismatch,
    DoctorInactive,
    InvalidReference,
    InvalidTransition,
    SlotConflict,
    ValidationError,
)
from clinic_booking.lifecycle import LifecycleManager


@pytest.fixture
def engine(no_buffer):
    return BookingEngine(AvailabilityCalculator(settings=no_buffer))


def count_appointments() -> int:
    conn = get_connection()
    count = conn.execute("SELECT COUNT(*) FROM appointments").fetchone()[0]
    conn.close()
    return count


class TestBookingSuccess:
    """Tests for successful bookings."""

    def test_book_creates_scheduled_appointment(self, engine, at, patient, doctor, consultation, staff_member):
        """Test that a booking is stored as Scheduled with the type's duration."""
        appointment = engine.book(patient.id, doctor.id, consultation.id, at(9, 0), staff_member.id)

        assert appointment.status == AppointmentStatus.SCHEDULED
        assert appointment.scheduled_datetime == at(9, 0)
        assert appointment.end_datetime == at(9, 30)
        assert appointment.created_by == staff_member.id

        stored = AppointmentRepository().get_by_id(appointment.id)
        assert stored is not None
        assert stored.status == AppointmentStatus.SCHEDULED
        assert stored.end_datetime == at(9, 30)

    def test_book_with_notes(self, engine, at, patient, doctor, consultation, staff_member):
        appointment = engine.book(
            patient.id, doctor.id, consultation.id, at(11, 0), staff_member.id, notes="Bring lab results"
        )
        assert AppointmentRepository().get_by_id(appointment.id).notes == "Bring lab results"

    def test_back_to_back_bookings_allowed(self, engine, at, patient, doctor, consultation, staff_member):
        """Test that an appointment may start exactly when the previous one ends."""
        engine.book(patient.id, doctor.id, consultation.id, at(9, 0), staff_member.id)
        engine.book(patient.id, doctor.id, consultation.id, at(9, 30), staff_member.id)
        engine.book(patient.id, doctor.id, consultation.id, at(8, 30), staff_member.id)
        assert count_appointments() == 3

    def test_same_time_different_doctor(self, engine, at, patient, doctor, other_doctor, consultation, staff_member):
        engine.book(patient.id, doctor.id, consultation.id, at(9, 0), staff_member.id)
        engine.book(patient.id, other_doctor.id, consultation.id, at(9, 0), staff_member.id)
        assert count_appointments() == 2

    def test_cancelled_slot_can_be_rebooked(self, engine, at, patient, doctor, consultation, staff_member):
        """Test that only Scheduled appointments block a slot."""
        first = engine.book(patient.id, doctor.id, consultation.id, at(9, 0), staff_member.id)
        LifecycleManager().cancel(first.id, now=at(9, 0) - timedelta(days=3))

        second = engine.book(patient.id, doctor.id, consultation.id, at(9, 0), staff_member.id)
        assert second.status == AppointmentStatus.SCHEDULED

    def test_microseconds_dropped(self, engine, at, patient, doctor, consultation, staff_member):
        appointment = engine.book(
            patient.id, doctor.id, consultation.id, at(9, 0).replace(microsecond=123456), staff_member.id
        )
        assert appointment.scheduled_datetime == at(9, 0)


class TestBookingRejections:
    """Tests for each rejection reason."""

    def test_overlap_raises_slot_conflict(self, engine, at, patient, doctor, consultation, staff_member):
        engine.book(patient.id, doctor.id, consultation.id, at(9, 0), staff_member.id)
        with pytest.raises(SlotConflict):
            engine.book(patient.id, doctor.id, consultation.id, at(9, 15), staff_member.id)
        with pytest.raises(SlotConflict):
            engine.book(patient.id, doctor.id, consultation.id, at(8, 45), staff_member.id)
        with pytest.raises(SlotConflict):
            engine.book(patient.id, doctor.id, consultation.id, at(9, 0), staff_member.id)

    def test_enclosing_interval_conflicts(self, engine, at, patient, doctor, consultation, physical, staff_member):
        """Test that a longer appointment covering an existing one is rejected."""
        DoctorRepository().add_capability(doctor.id, physical.id)
        engine.book(patient.id, doctor.id, consultation.id, at(9, 15), staff_member.id)
        with pytest.raises(SlotConflict):
            engine.book(patient.id, doctor.id, physical.id, at(9, 0), staff_member.id)

    def test_capability_mismatch(self, engine, at, patient, doctor, physical, staff_member):
        """Test that an uncapable doctor is rejected even when the slot is free."""
        with pytest.raises(CapabilityMismatch):
            engine.book(patient.id, doctor.id, physical.id, at(9, 0), staff_member.id)
        assert count_appointments() == 0

    def test_capability_checked_before_conflict(self, engine, at, patient, doctor, consultation, physical, staff_member):
        engine.book(patient.id, doctor.id, consultation.id, at(9, 0), staff_member.id)
        with pytest.raises(CapabilityMismatch):
            engine.book(patient.id, doctor.id, physical.id, at(9, 0), staff_member.id)

    def test_inactive_doctor(self, engine, at, patient, doctor, consultation, staff_member):
        DoctorRepository().set_active(doctor.id, False)
        with pytest.raises(DoctorInactive):
            engine.book(patient.id, doctor.id, consultation.id, at(9, 0), staff_member.id)

    def test_unknown_doctor(self, engine, at, patient, consultation, staff_member):
        with pytest.raises(InvalidReference):
            engine.book(patient.id, "no-such-doctor", consultation.id, at(9, 0), staff_member.id)

    def test_unknown_type(self, engine, at, patient, doctor, staff_member):
        with pytest.raises(InvalidReference):
            engine.book(patient.id, doctor.id, "no-such-type", at(9, 0), staff_member.id)

    def test_unknown_patient(self, engine, at, doctor, consultation, staff_member):
        with pytest.raises(InvalidReference):
            engine.book("no-such-patient", doctor.id, consultation.id, at(9, 0), staff_member.id)

    def test_unknown_staff(self, engine, at, patient, doctor, consultation):
        with pytest.raises(InvalidReference):
            engine.book(patient.id, doctor.id, consultation.id, at(9, 0), "no-such-staff")

    def test_rejection_writes_nothing(self, engine, at, patient, doctor, consultation, staff_member):
        engine.book(patient.id, doctor.id, consultation.id, at(9, 0), staff_member.id)
        with pytest.raises(SlotConflict):
            engine.book(patient.id, doctor.id, consultation.id, at(9, 10), staff_member.id)
        assert count_appointments() == 1

    def test_timezone_aware_start_rejected(self, engine, at, patient, doctor, consultation, staff_member):
        engine.book(patient.id, doctor.id, consultation.id, at(9, 0), staff_member.id)
        with pytest.raises(ValidationError):
            engine.book(
                patient.id, doctor.id, consultation.id, at(9, 15).replace(tzinfo=timezone.utc), staff_member.id
            )
        assert count_appointments() == 1

    def test_timezone_aware_start_never_stored(self, engine, no_buffer, at, day, patient, doctor, consultation,
                                               staff_member):
        """Test that availability keeps working after an aware start is refused on an empty day."""
        with pytest.raises(ValidationError):
            engine.book(
                patient.id, doctor.id, consultation.id, at(9, 0).replace(tzinfo=timezone.utc), staff_member.id
            )
        assert count_appointments() == 0

        slots = AvailabilityCalculator(settings=no_buffer).free_slots(
            doctor.id, consultation.id, DateRange.for_days(day)
        )
        assert slots.first() == Slot(at(8, 0), at(8, 30))


class TestValidationOrder:
    """Tests that references resolve before the active and capability checks."""

    def test_unknown_patient_before_inactive_doctor(self, engine, at, doctor, consultation, staff_member):
        DoctorRepository().set_active(doctor.id, False)
        with pytest.raises(InvalidReference):
            engine.book("no-such-patient", doctor.id, consultation.id, at(9, 0), staff_member.id)

    def test_unknown_staff_before_inactive_doctor(self, engine, at, patient, doctor, consultation):
        DoctorRepository().set_active(doctor.id, False)
        with pytest.raises(InvalidReference):
            engine.book(patient.id, doctor.id, consultation.id, at(9, 0), "no-such-staff")

    def test_unknown_type_before_inactive_doctor(self, engine, at, patient, doctor, staff_member):
        DoctorRepository().set_active(doctor.id, False)
        with pytest.raises(InvalidReference):
            engine.book(patient.id, doctor.id, "no-such-type", at(9, 0), staff_member.id)

    def test_unknown_staff_before_capability(self, engine, at, patient, doctor, physical):
        with pytest.raises(InvalidReference):
            engine.book(patient.id, doctor.id, physical.id, at(9, 0), "no-such-staff")

    def test_inactive_before_capability(self, engine, at, patient, doctor, physical, staff_member):
        DoctorRepository().set_active(doctor.id, False)
        with pytest.raises(DoctorInactive):
            engine.book(patient.id, doctor.id, physical.id, at(9, 0), staff_member.id)


class TestAppointmentTimeConstraint:
    """Tests that end_datetime must be strictly after scheduled_datetime."""

    def test_equal_start_and_end_rejected_by_storage(self, at, patient, doctor, consultation, staff_member):
        bad = Appointment(
            id="a-bad", patient_id=patient.id, doctor_id=doctor.id, type_id=consultation.id,
            scheduled_datetime=at(9, 0), end_datetime=at(9, 0), created_by=staff_member.id,
        )
        with pytest.raises(ValidationError):
            with transaction() as conn:
                AppointmentRepository().insert(conn, bad)
        assert count_appointments() == 0

    def test_inverted_interval_rejected_by_storage(self, at, patient, doctor, consultation, staff_member):
        bad = Appointment(
            id="a-bad", patient_id=patient.id, doctor_id=doctor.id, type_id=consultation.id,
            scheduled_datetime=at(10, 0), end_datetime=at(9, 0), created_by=staff_member.id,
        )
        with pytest.raises(ValidationError):
            with transaction() as conn:
                AppointmentRepository().insert(conn, bad)

    def test_zero_duration_type_rejected(self):
        with pytest.raises(ValidationError):
            AppointmentTypeRepository().create(AppointmentType(
                id=None, type_name="Instant", duration_minutes=0, base_price=0.0,
            ))


class TestNoOverlapProperty:
    """Randomized check that scheduled appointments of a doctor never overlap."""

    def test_random_bookings_never_overlap(self, engine, at, patient, doctor, consultation, staff_member):
        types = AppointmentTypeRepository()
        doctors = DoctorRepository()
        type_ids = [consultation.id]
        for minutes in (15, 45, 60):
            created = types.create(AppointmentType(
                id=f"t-{minutes}", type_name=f"Visit {minutes}", duration_minutes=minutes, base_price=10.0,
            ))
            doctors.add_capability(doctor.id, created.id)
            type_ids.append(created.id)
        durations = {type_id: types.get_by_id(type_id).duration for type_id in type_ids}

        rng = random.Random(20300115)
        accepted = []
        for _ in range(60):
            type_id = rng.choice(type_ids)
            start = at(8, 0) + timedelta(minutes=5 * rng.randrange(0, 110))
            end = start + durations[type_id]
            expect_conflict = any(intervals_overlap(start, end, s, e) for s, e in accepted)

            if expect_conflict:
                with pytest.raises(SlotConflict):
                    engine.book(patient.id, doctor.id, type_id, start, staff_member.id)
            else:
                engine.book(patient.id, doctor.id, type_id, start, staff_member.id)
                accepted.append((start, end))

        scheduled = AppointmentRepository().list_for_doctor(doctor.id, status=AppointmentStatus.SCHEDULED)
        assert len(scheduled) == len(accepted)
        for i, a in enumerate(scheduled):
            for b in scheduled[i + 1:]:
                assert not intervals_overlap(
                    a.scheduled_datetime, a.end_datetime, b.scheduled_datetime, b.end_datetime
                )


class TestConcurrentBooking:
    """Tests that the check-and-insert is atomic across threads."""

    def test_only_one_concurrent_booking_wins(self, engine, at, patient, doctor, consultation, staff_member):
        workers = 8
        barrier = threading.Barrier(workers)
        results = []
        lock = threading.Lock()

        def attempt(offset):
            barrier.wait()
            try:
                engine.book(
                    patient.id, doctor.id, consultation.id,
                    at(9, 0) + timedelta(minutes=offset), staff_member.id,
                )
                outcome = "booked"
            except SlotConflict:
                outcome = "conflict"
            with lock:
                results.append(outcome)

        # Every start lies within 9:00-9:25, so all requests overlap each other
        threads = [threading.Thread(target=attempt, args=(i * 3,)) for i in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count("booked") == 1
        assert results.count("conflict") == workers - 1
        assert count_appointments() == 1


class TestEndToEndScenario:
    """Book, conflict, book back-to-back, complete, then fail to cancel."""

    def test_booking_and_lifecycle_scenario(self, engine, at, patient, doctor, consultation, staff_member):
        lifecycle = LifecycleManager()
        first = engine.book(patient.id, doctor.id, consultation.id, at(9, 0), staff_member.id)

        with pytest.raises(SlotConflict):
            engine.book(patient.id, doctor.id, consultation.id, at(9, 15), staff_member.id)

        second = engine.book(patient.id, doctor.id, consultation.id, at(9, 30), staff_member.id)
        assert second.status == AppointmentStatus.SCHEDULED
        assert second.end_datetime == at(10, 0)

        completed = lifecycle.transition(first.id, AppointmentStatus.COMPLETED)
        assert completed.status == AppointmentStatus.COMPLETED

        with pytest.raises(InvalidTransition):
            lifecycle.transition(first.id, AppointmentStatus.CANCELLED)
        assert AppointmentRepository().get_by_id(first.id).status == AppointmentStatus.COMPLETED
