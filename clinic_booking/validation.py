"""Field validation for new records using Pydantic models.

Each model mirrors the CHECK / NOT NULL rules of the schema so bad input is
rejected before anything is written.
"""

import re
from datetime import date

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator, model_validator

from clinic_booking.errors import ValidationError

# Same shape as the schema's LIKE '%@%.%'
EMAIL_PATTERN = re.compile(r"^.*@.*\..*$")

GENDERS = ("Male", "Female", "Other")


def _check_email(v):
    if v is None:
        return v
    v = v.strip()
    if not EMAIL_PATTERN.match(v):
        raise ValueError("email must contain '@' followed by a '.'")
    return v


class PersonFields(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone: str = Field(min_length=1)


class PatientFields(PersonFields):
    date_of_birth: date
    gender: str
    email: str | None = None
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None

    @field_validator("gender")
    @classmethod
    def check_gender(cls, v):
        if v not in GENDERS:
            raise ValueError(f"gender must be one of {', '.join(GENDERS)}")
        return v

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return _check_email(v)

    @field_validator("date_of_birth")
    @classmethod
    def check_not_future(cls, v):
        if v > date.today():
            raise ValueError("date of birth cannot be in the future")
        return v


class ContactFields(BaseModel):
    """Mutable patient contact fields; every field is optional."""

    phone: str | None = Field(None, min_length=1)
    email: str | None = None
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return _check_email(v)


class DoctorFields(PersonFields):
    specialization: str = Field(min_length=1)
    email: str
    license_number: str = Field(min_length=1)
    hire_date: date

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return _check_email(v)


class StaffFields(PersonFields):
    role: str = Field(min_length=1)
    email: str
    hire_date: date

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return _check_email(v)


class DepartmentFields(BaseModel):
    department_name: str = Field(min_length=1)
    location: str = Field(min_length=1)
    head_doctor_id: str | None = None


class AppointmentTypeFields(BaseModel):
    type_name: str = Field(min_length=1)
    duration_minutes: int = Field(gt=0)
    base_price: float = Field(ge=0)
    description: str | None = None


class InvoiceFields(BaseModel):
    patient_id: str
    appointment_id: str | None = None
    issue_date: date
    due_date: date
    total_amount: float = Field(ge=0)
    paid_amount: float = Field(0.0, ge=0)

    @model_validator(mode="after")
    def check_dates(self):
        if self.due_date < self.issue_date:
            raise ValueError("due_date must be on or after issue_date")
        return self


class InvoiceItemFields(BaseModel):
    description: str = Field(min_length=1)
    quantity: int = Field(1, gt=0)
    unit_price: float = Field(ge=0)
    discount: float = Field(0.0, ge=0)


def validate(model: type[BaseModel], data: dict) -> BaseModel:
    """Validate a dict against a model, raising the clinic ValidationError on failure."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'record'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ValidationError(details) from exc
