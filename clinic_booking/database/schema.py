"""
Clinic Booking Database Schema
Patients, doctors, staff, departments, appointment types, appointments,
medical records, invoicing and clinic settings.

Timestamps are stored as "YYYY-MM-DD HH:MM:SS" text and dates as "YYYY-MM-DD",
so string comparison orders them chronologically.
"""

SCHEMA = """
-- =============================================================================
-- 1. PATIENTS - Patient demographic information
-- =============================================================================
CREATE TABLE IF NOT EXISTS patients (
    id TEXT PRIMARY KEY,
    first_name TEXT NOT NULL,
    last_name TEXT NOT NULL,
    date_of_birth TEXT NOT NULL,
    gender TEXT NOT NULL CHECK (gender IN ('Male', 'Female', 'Other')),
    phone TEXT NOT NULL,
    email TEXT UNIQUE COLLATE NOCASE,
    address TEXT,
    city TEXT,
    postal_code TEXT,
    registration_date TEXT DEFAULT CURRENT_TIMESTAMP,
    CONSTRAINT chk_email CHECK (email LIKE '%@%.%')
);

CREATE INDEX IF NOT EXISTS idx_patients_name ON patients(last_name, first_name);


-- =============================================================================
-- 2. DOCTORS - Doctor information and specialties
-- =============================================================================
CREATE TABLE IF NOT EXISTS doctors (
    id TEXT PRIMARY KEY,
    first_name TEXT NOT NULL,
    last_name TEXT NOT NULL,
    specialization TEXT NOT NULL,
    phone TEXT NOT NULL,
    email TEXT UNIQUE NOT NULL COLLATE NOCASE,
    license_number TEXT UNIQUE NOT NULL,
    hire_date TEXT NOT NULL,
    active INTEGER DEFAULT 1,
    CONSTRAINT chk_doctor_email CHECK (email LIKE '%@%.%')
);


-- =============================================================================
-- 3. STAFF - Administrative and support staff
-- =============================================================================
CREATE TABLE IF NOT EXISTS staff (
    id TEXT PRIMARY KEY,
    first_name TEXT NOT NULL,
    last_name TEXT NOT NULL,
    role TEXT NOT NULL,
    phone TEXT NOT NULL,
    email TEXT UNIQUE NOT NULL COLLATE NOCASE,
    hire_date TEXT NOT NULL,
    active INTEGER DEFAULT 1
);


-- =============================================================================
-- 4. DEPARTMENTS - Clinic departments and doctor membership
-- =============================================================================
CREATE TABLE IF NOT EXISTS departments (
    id TEXT PRIMARY KEY,
    department_name TEXT NOT NULL UNIQUE,
    location TEXT NOT NULL,
    head_doctor_id TEXT,
    FOREIGN KEY (head_doctor_id) REFERENCES doctors(id)
);

CREATE TABLE IF NOT EXISTS doctor_departments (
    doctor_id TEXT NOT NULL,
    department_id TEXT NOT NULL,
    PRIMARY KEY (doctor_id, department_id),
    FOREIGN KEY (doctor_id) REFERENCES doctors(id),
    FOREIGN KEY (department_id) REFERENCES departments(id)
);


-- =============================================================================
-- 5. APPOINTMENT TYPES - Durations, prices and doctor capabilities
-- =============================================================================
CREATE TABLE IF NOT EXISTS appointment_types (
    id TEXT PRIMARY KEY,
    type_name TEXT NOT NULL UNIQUE,
    duration_minutes INTEGER NOT NULL,
    description TEXT,
    base_price REAL NOT NULL,
    CONSTRAINT chk_duration_positive CHECK (duration_minutes > 0)
);

CREATE TABLE IF NOT EXISTS doctor_specializations (
    doctor_id TEXT NOT NULL,
    type_id TEXT NOT NULL,
    PRIMARY KEY (doctor_id, type_id),
    FOREIGN KEY (doctor_id) REFERENCES doctors(id),
    FOREIGN KEY (type_id) REFERENCES appointment_types(id)
);


-- =============================================================================
-- 6. APPOINTMENTS - Bookings and their lifecycle status
-- =============================================================================
CREATE TABLE IF NOT EXISTS appointments (
    id TEXT PRIMARY KEY,
    patient_id TEXT NOT NULL,
    doctor_id TEXT NOT NULL,
    type_id TEXT NOT NULL,
    scheduled_datetime TEXT NOT NULL,
    end_datetime TEXT NOT NULL,

    -- Status: Scheduled, Completed, Cancelled, No-Show
    status TEXT DEFAULT 'Scheduled'
        CHECK (status IN ('Scheduled', 'Completed', 'Cancelled', 'No-Show')),

    notes TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    created_by TEXT NOT NULL,

    FOREIGN KEY (patient_id) REFERENCES patients(id),
    FOREIGN KEY (doctor_id) REFERENCES doctors(id),
    FOREIGN KEY (type_id) REFERENCES appointment_types(id),
    FOREIGN KEY (created_by) REFERENCES staff(id),
    CONSTRAINT chk_appointment_time CHECK (end_datetime > scheduled_datetime)
);

CREATE INDEX IF NOT EXISTS idx_appointment_datetime ON appointments(scheduled_datetime);
CREATE INDEX IF NOT EXISTS idx_appointments_doctor ON appointments(doctor_id, status);
CREATE INDEX IF NOT EXISTS idx_appointments_patient ON appointments(patient_id);


-- =============================================================================
-- 7. MEDICAL RECORDS - Patient medical history
-- =============================================================================
CREATE TABLE IF NOT EXISTS medical_records (
    id TEXT PRIMARY KEY,
    patient_id TEXT NOT NULL,
    doctor_id TEXT NOT NULL,
    appointment_id TEXT,
    record_date TEXT DEFAULT CURRENT_TIMESTAMP,
    diagnosis TEXT,
    treatment TEXT,
    prescription TEXT,
    notes TEXT,
    FOREIGN KEY (patient_id) REFERENCES patients(id),
    FOREIGN KEY (doctor_id) REFERENCES doctors(id),
    FOREIGN KEY (appointment_id) REFERENCES appointments(id)
);

CREATE INDEX IF NOT EXISTS idx_records_patient ON medical_records(patient_id);


-- =============================================================================
-- 8. INVOICES - Billing and line items
-- =============================================================================
CREATE TABLE IF NOT EXISTS invoices (
    id TEXT PRIMARY KEY,
    appointment_id TEXT,
    patient_id TEXT NOT NULL,
    issue_date TEXT NOT NULL,
    due_date TEXT NOT NULL,
    total_amount REAL NOT NULL,
    paid_amount REAL DEFAULT 0,
    status TEXT DEFAULT 'Pending' CHECK (status IN ('Pending', 'Paid', 'Cancelled')),
    payment_method TEXT,
    payment_date TEXT,
    FOREIGN KEY (appointment_id) REFERENCES appointments(id),
    FOREIGN KEY (patient_id) REFERENCES patients(id),
    CONSTRAINT chk_invoice_dates CHECK (due_date >= issue_date)
);

CREATE TABLE IF NOT EXISTS invoice_items (
    id TEXT PRIMARY KEY,
    invoice_id TEXT NOT NULL,
    description TEXT NOT NULL,
    quantity INTEGER NOT NULL DEFAULT 1,
    unit_price REAL NOT NULL,
    discount REAL DEFAULT 0,
    FOREIGN KEY (invoice_id) REFERENCES invoices(id),
    CONSTRAINT chk_positive_quantity CHECK (quantity > 0)
);


-- =============================================================================
-- 9. CLINIC SETTINGS - System configuration
-- =============================================================================
CREATE TABLE IF NOT EXISTS clinic_settings (
    setting_name TEXT PRIMARY KEY,
    setting_value TEXT NOT NULL,
    description TEXT,
    last_updated TEXT DEFAULT CURRENT_TIMESTAMP
);

INSERT OR IGNORE INTO clinic_settings (setting_name, setting_value, description) VALUES
    ('clinic_name', 'City Health Clinic', 'Name of the clinic'),
    ('business_hours_start', '08:00:00', 'Opening time'),
    ('business_hours_end', '17:00:00', 'Closing time'),
    ('appointment_buffer', '15', 'Minutes between appointments'),
    ('cancellation_policy', '24', 'Hours notice required for cancellation');
"""
