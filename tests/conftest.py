"""Shared pytest fixtures."""

from datetime import date, datetime, time

import pytest

from clinic_booking.database import (
    AppointmentTypeRepository,
    DoctorRepository,
    PatientRepository,
    StaffRepository,
    connection,
    init_database,
)
from clinic_booking.database.appointment_type_repository import AppointmentType
from clinic_booking.database.doctor_repository import Doctor
from clinic_booking.database.patient_repository import Patient
from clinic_booking.database.staff_repository import Staff
from clinic_booking.settings import ClinicSettings, get_settings

# A fixed future weekday so cancellation notice and "today" never interfere
DAY = date(2030, 1, 15)


@pytest.fixture(autouse=True)
def temp_database(tmp_path, monkeypatch):
    """Point every test at its own fresh SQLite file."""
    monkeypatch.setattr(connection, "DB_PATH", tmp_path / "clinic_test.db")
    for name in ClinicSettings.model_fields:
        monkeypatch.delenv("CLINIC_" + name.upper(), raising=False)
    init_database()
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def day():
    return DAY


@pytest.fixture
def at():
    """Build a datetime on the test day: at(9, 30) -> 2030-01-15 09:30."""
    def _at(hour: int, minute: int = 0, day: date = DAY) -> datetime:
        return datetime.combine(day, time(hour, minute))
    return _at


@pytest.fixture
def no_buffer():
    """Default settings without the appointment buffer."""
    return ClinicSettings(appointment_buffer=0)


@pytest.fixture
def staff_member():
    return StaffRepository().create(Staff(
        id="s-test",
        first_name="Grace",
        last_name="Wanjiru",
        role="Receptionist",
        phone="555-0301",
        email="grace@clinic.test",
        hire_date="2020-01-01",
    ))


@pytest.fixture
def patient():
    return PatientRepository().create(Patient(
        id="p-test",
        first_name="John",
        last_name="Smith",
        date_of_birth="1985-03-15",
        gender="Male",
        phone="555-0101",
        email="john.smith@clinic.test",
    ))


@pytest.fixture
def consultation():
    """A 30 minute appointment type."""
    return AppointmentTypeRepository().create(AppointmentType(
        id="t-consult",
        type_name="General Consultation",
        duration_minutes=30,
        base_price=50.0,
    ))


@pytest.fixture
def physical():
    """A 60 minute appointment type that the test doctor is not capable of by default."""
    return AppointmentTypeRepository().create(AppointmentType(
        id="t-physical",
        type_name="Annual Physical",
        duration_minutes=60,
        base_price=120.0,
    ))


@pytest.fixture
def doctor(consultation):
    """An active doctor capable of the consultation type."""
    repo = DoctorRepository()
    created = repo.create(Doctor(
        id="d-test",
        first_name="Sarah",
        last_name="Chen",
        specialization="Family Medicine",
        phone="555-0201",
        email="s.chen@clinic.test",
        license_number="MED-TEST-1",
        hire_date="2015-02-01",
    ))
    repo.add_capability(created.id, consultation.id)
    return created


@pytest.fixture
def other_doctor(consultation):
    repo = DoctorRepository()
    created = repo.create(Doctor(
        id="d-other",
        first_name="Michael",
        last_name="Roberts",
        specialization="Internal Medicine",
        phone="555-0202",
        email="m.roberts@clinic.test",
        license_number="MED-TEST-2",
        hire_date="2017-06-12",
    ))
    repo.add_capability(created.id, consultation.id)
    return created
