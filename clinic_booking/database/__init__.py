from .connection import get_connection, init_database, transaction
from .patient_repository import PatientRepository
from .doctor_repository import DoctorRepository
from .staff_repository import StaffRepository
from .department_repository import DepartmentRepository
from .appointment_type_repository import AppointmentTypeRepository
from .appointment_repository import AppointmentRepository
from .record_repository import MedicalRecordRepository
from .invoice_repository import InvoiceRepository
from .settings_repository import SettingsRepository

__all__ = [
    "get_connection",
    "init_database",
    "transaction",
    "PatientRepository",
    "DoctorRepository",
    "StaffRepository",
    "DepartmentRepository",
    "AppointmentTypeRepository",
    "AppointmentRepository",
    "MedicalRecordRepository",
    "InvoiceRepository",
    "SettingsRepository",
]
