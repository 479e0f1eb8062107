"""
Core clinical and financial data models for PediCare.

These Pydantic models define the internal representation of patients, their
growth history, appointments and the income ledger. The consistency rules
that tie appointments to ledger entries and growth records live in
`src.core.sync`; the models here only carry data and the growth-history
ordering rule.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


def generate_id() -> str:
    """Generate a unique identifier."""
    return str(uuid4())[:8]


# =============================================================================
# ENUMS
# =============================================================================


class Sex(str, Enum):
    MALE = "M"
    FEMALE = "F"


class AppointmentStatus(str, Enum):
    SCHEDULED = "Programada"
    COMPLETED = "Completada"
    CANCELLED = "Cancelada"
    IN_PROGRESS = "En curso"


class TransactionType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


# =============================================================================
# PATIENT
# =============================================================================


class GrowthRecord(BaseModel):
    """A single dated anthropometric measurement."""
    date: date
    weight: float = Field(gt=0, description="Weight in kilograms")
    height: float = Field(gt=0, description="Height/length in centimeters")
    head_circumference: float | None = Field(default=None, gt=0, description="Head circumference in centimeters")


class Patient(BaseModel):
    """
    A patient owned by exactly one doctor.

    `growth_history` is kept ascending by date. Records are only ever
    appended through `with_growth_record`.
    """
    id: str = Field(default_factory=generate_id)
    doctor_id: str
    name: str
    birth_date: date
    sex: Sex
    parent_name: str = ""
    parent_phone: str = ""
    email: str | None = None
    allergies: list[str] = Field(default_factory=list)
    blood_type: str = ""
    growth_history: list[GrowthRecord] = Field(default_factory=list)
    notes: str = ""
    photo: str | None = None

    @property
    def latest_growth(self) -> GrowthRecord | None:
        return self.growth_history[-1] if self.growth_history else None

    def with_growth_record(self, record: GrowthRecord) -> Patient:
        """
        Return a copy of this patient with `record` appended.

        The history is concatenated and then stably sorted by date, so a
        record dated earlier than existing ones still lands in order and
        same-day records keep their insertion order.
        """
        history = sorted([*self.growth_history, record], key=lambda r: r.date)
        return self.model_copy(update={"growth_history": history})


# =============================================================================
# APPOINTMENTS
# =============================================================================


class Appointment(BaseModel):
    """
    A scheduled or completed consultation.

    `patient_name` is a snapshot taken when the appointment is saved and is
    not refreshed when the patient is later renamed.
    `cost` and `patient_id` are optional here so that the synchronizer, not
    model parsing, decides how a missing value is reported.
    """
    id: str = Field(default_factory=generate_id)
    doctor_id: str
    patient_id: str | None = None
    patient_name: str = ""
    date_time: datetime
    reason: str = ""
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    cost: float | None = None

    # Clinical notes
    symptoms: str | None = None
    physical_exam: str | None = None
    diagnosis: str | None = None
    treatment: str | None = None

    # Measurements taken during the visit
    weight: float | None = None
    height: float | None = None

    @property
    def visit_date(self) -> date:
        return self.date_time.date()

    @property
    def has_measurements(self) -> bool:
        # A zero reading is treated as "not measured"
        return bool(self.weight) and bool(self.height)


# =============================================================================
# LEDGER
# =============================================================================


class Transaction(BaseModel):
    """A dated ledger entry, optionally linked to the appointment that produced it."""
    id: str = Field(default_factory=generate_id)
    doctor_id: str
    date: date
    type: TransactionType
    category: str
    description: str = ""
    amount: float
    related_appointment_id: str | None = None
