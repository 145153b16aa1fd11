"""Seed the database with demo staff, doctors, appointment types, patients and bookings."""

from datetime import date, datetime, time

from rich.console import Console
from rich.table import Table

from clinic_booking.booking import BookingEngine
from clinic_booking.database import (
    AppointmentTypeRepository,
    DepartmentRepository,
    DoctorRepository,
    PatientRepository,
    StaffRepository,
    init_database,
)
from clinic_booking.database.appointment_type_repository import AppointmentType
from clinic_booking.database.department_repository import Department
from clinic_booking.database.doctor_repository import Doctor
from clinic_booking.database.patient_repository import Patient
from clinic_booking.database.staff_repository import Staff
from clinic_booking.errors import SlotConflict
from clinic_booking.log import configure_logging
from clinic_booking.views import available_slots, todays_appointments

console = Console()


MOCK_STAFF = [
    Staff(id="s-001", first_name="Grace", last_name="Wanjiru", role="Receptionist",
          phone="555-0301", email="grace.w@cityhealth.com", hire_date="2019-04-01"),
    Staff(id="s-002", first_name="Peter", last_name="Otieno", role="Nurse",
          phone="555-0302", email="peter.o@cityhealth.com", hire_date="2021-09-15"),
]

MOCK_TYPES = [
    AppointmentType(id="t-001", type_name="General Consultation", duration_minutes=30,
                    base_price=50.00, description="Standard consultation"),
    AppointmentType(id="t-002", type_name="Follow-up", duration_minutes=15,
                    base_price=30.00, description="Review after treatment"),
    AppointmentType(id="t-003", type_name="Annual Physical", duration_minutes=60,
                    base_price=120.00, description="Full yearly check"),
    AppointmentType(id="t-004", type_name="Pediatric Checkup", duration_minutes=45,
                    base_price=70.00, description="Child growth and vaccines"),
]

MOCK_DOCTORS = [
    Doctor(id="d-001", first_name="Sarah", last_name="Chen", specialization="Family Medicine",
           phone="555-0201", email="s.chen@cityhealth.com", license_number="MED-1001",
           hire_date="2015-02-01"),
    Doctor(id="d-002", first_name="Michael", last_name="Roberts", specialization="Internal Medicine",
           phone="555-0202", email="m.roberts@cityhealth.com", license_number="MED-1002",
           hire_date="2017-06-12"),
    Doctor(id="d-003", first_name="Amina", last_name="Njoroge", specialization="Pediatrics",
           phone="555-0203", email="a.njoroge@cityhealth.com", license_number="MED-1003",
           hire_date="2020-01-20"),
]

# doctor_id -> appointment type IDs
MOCK_CAPABILITIES = {
    "d-001": ["t-001", "t-002", "t-003"],
    "d-002": ["t-001", "t-003"],
    "d-003": ["t-002", "t-004"],
}

MOCK_DEPARTMENTS = [
    (Department(id="dep-001", department_name="General Practice", location="Block A",
                head_doctor_id="d-001"), ["d-001", "d-002"]),
    (Department(id="dep-002", department_name="Pediatrics", location="Block B",
                head_doctor_id="d-003"), ["d-003"]),
]

MOCK_PATIENTS = [
    Patient(id="p-001", first_name="John", last_name="Smith", date_of_birth="1985-03-15",
            gender="Male", phone="555-0101", email="john.smith@email.com",
            address="123 Main St", city="Nairobi", postal_code="00100"),
    Patient(id="p-002", first_name="Sarah", last_name="Johnson", date_of_birth="1992-07-22",
            gender="Female", phone="555-0102", email="sarah.j@email.com"),
    Patient(id="p-003", first_name="Alex", last_name="Kim", date_of_birth="2016-11-08",
            gender="Other", phone="555-0103"),
]

# (patient_id, doctor_id, type_id, hour, minute) for today's bookings
MOCK_BOOKINGS = [
    ("p-001", "d-001", "t-001", 9, 0),
    ("p-002", "d-001", "t-002", 9, 30),
    ("p-003", "d-003", "t-004", 10, 0),
    ("p-002", "d-002", "t-003", 14, 0),
]


def _seed(repo, records, label):
    for record in records:
        if repo.get_by_id(record.id):
            console.print(f"  Skipping {label} {record.id} (already exists)")
        else:
            repo.create(record)
            console.print(f"  Created {label} {record.id}")


def seed_database(day: date | None = None):
    """Initialize and seed the database with demo data."""
    console.print("[bold]Initializing database...[/bold]")
    init_database()

    doctors = DoctorRepository()
    departments = DepartmentRepository()

    console.print("[bold]Creating staff, appointment types and doctors...[/bold]")
    _seed(StaffRepository(), MOCK_STAFF, "staff")
    _seed(AppointmentTypeRepository(), MOCK_TYPES, "appointment type")
    _seed(doctors, MOCK_DOCTORS, "doctor")

    for doctor_id, type_ids in MOCK_CAPABILITIES.items():
        for type_id in type_ids:
            doctors.add_capability(doctor_id, type_id)

    console.print("[bold]Creating departments...[/bold]")
    for department, member_ids in MOCK_DEPARTMENTS:
        _seed(departments, [department], "department")
        for doctor_id in member_ids:
            doctors.add_to_department(doctor_id, department.id)

    console.print("[bold]Creating patients...[/bold]")
    _seed(PatientRepository(), MOCK_PATIENTS, "patient")

    console.print("[bold]Booking today's appointments...[/bold]")
    day = day or date.today()
    engine = BookingEngine()
    for patient_id, doctor_id, type_id, hour, minute in MOCK_BOOKINGS:
        start = datetime.combine(day, time(hour, minute))
        try:
            engine.book(patient_id, doctor_id, type_id, start, created_by="s-001")
            console.print(f"  Booked {patient_id} with {doctor_id} at {start:%H:%M}")
        except SlotConflict:
            console.print(f"  Skipping {patient_id} with {doctor_id} at {start:%H:%M} (slot taken)")

    _print_today(day)
    _print_next_slots(datetime.combine(day, time(8, 0)))
    console.print("\n[bold green]Database seeded successfully![/bold green]")


def _print_today(day: date):
    table = Table(title=f"Appointments on {day:%Y-%m-%d}")
    for column in ("Time", "Patient", "Doctor", "Type", "Status"):
        table.add_column(column)
    for row in todays_appointments(day):
        table.add_row(
            f"{row.scheduled_datetime:%H:%M}", row.patient_name, row.doctor_name,
            row.appointment_type, row.status.value,
        )
    console.print(table)


def _print_next_slots(now: datetime):
    table = Table(title="Next available slots")
    for column in ("Doctor", "Type", "Start", "End"):
        table.add_column(column)
    for slot in available_slots(now=now, horizon_days=7):
        table.add_row(
            slot.doctor_name, slot.type_name,
            f"{slot.next_slot_start:%Y-%m-%d %H:%M}", f"{slot.next_slot_end:%H:%M}",
        )
    console.print(table)


if __name__ == "__main__":
    configure_logging()
    seed_database()
