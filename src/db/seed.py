"""
Demo data for a fresh practice: one admin, two doctors and one patient with
a scheduled check-up already billed.
"""

from datetime import date, datetime, time

from src.db.memory import Snapshot
from src.models import (
  Appointment,
  AppointmentStatus,
  GrowthRecord,
  Patient,
  Sex,
  Transaction,
  TransactionType,
  User,
  UserRole,
)


def demo_snapshot(today: date | None = None) -> Snapshot:
  """Seed data; the demo appointment is scheduled for 09:00 on `today`."""
  today = today or date.today()

  users = [
    User(
      id="u-admin",
      name="Administrador General",
      email="admin@pedicare.com",
      role=UserRole.ADMIN,
      birth_date=date(1985, 4, 12),
      professional_id="ADM-001",
    ),
    User(
      id="u-doc-1",
      name="Dr. Rodrigo Paz",
      email="rodrigo@pedicare.com",
      role=UserRole.DOCTOR,
      specialty="Pediatría General",
      birth_date=date(1978, 8, 22),
      professional_id="CED-882910",
    ),
    User(
      id="u-doc-2",
      name="Dra. Elena Gómez",
      email="elena@pedicare.com",
      role=UserRole.DOCTOR,
      specialty="Neonatología",
      birth_date=date(1982, 11, 5),
      professional_id="CED-991022",
    ),
  ]

  patients = [
    Patient(
      id="1",
      doctor_id="u-doc-1",
      name="Mateo González",
      birth_date=date(2021, 5, 15),
      sex=Sex.MALE,
      parent_name="Laura Ruíz",
      parent_phone="+52 555-0101",
      email="laura@example.com",
      allergies=["Penicilina"],
      blood_type="O+",
      growth_history=[
        GrowthRecord(date=date(2021, 5, 15), weight=3.4, height=50),
        GrowthRecord(date=date(2021, 11, 15), weight=7.2, height=68),
      ],
      notes="Desarrollo normal.",
    ),
  ]

  appointments = [
    Appointment(
      id="101",
      doctor_id="u-doc-1",
      patient_id="1",
      patient_name="Mateo González",
      date_time=datetime.combine(today, time(9, 0)),
      reason="Control de crecimiento",
      status=AppointmentStatus.SCHEDULED,
      cost=800,
    ),
  ]

  transactions = [
    Transaction(
      id="t1",
      doctor_id="u-doc-1",
      date=date(2024, 5, 1),
      type=TransactionType.INCOME,
      category="Consulta",
      description="Consulta Mateo G.",
      amount=800,
      related_appointment_id="101",
    ),
  ]

  return Snapshot(
    users=users,
    patients=patients,
    appointments=appointments,
    transactions=transactions,
  )
