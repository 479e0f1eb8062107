"""
Ledger and dashboard aggregates.

Inputs are expected to be already narrowed by the access scope; nothing here
filters by viewer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

from src.models import Appointment, Patient, Transaction, TransactionType, User


@dataclass
class LedgerSummary:
    total_income: float = 0.0
    total_expense: float = 0.0
    count: int = 0

    @property
    def net_balance(self) -> float:
        return self.total_income - self.total_expense

    def to_dict(self) -> dict:
        return {
            "total_income": self.total_income,
            "total_expense": self.total_expense,
            "net_balance": self.net_balance,
            "count": self.count,
        }


@dataclass
class DoctorStats:
    doctor_id: str
    name: str
    patients: int = 0
    appointments: int = 0


@dataclass
class Dashboard:
    patients: int
    appointments: int
    today_appointments: list[Appointment] = field(default_factory=list)
    income: float = 0.0
    doctors: list[DoctorStats] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "patients": self.patients,
            "appointments": self.appointments,
            "today_appointments": [a.model_dump(mode="json") for a in self.today_appointments],
            "income": self.income,
            "doctors": [vars(d) for d in self.doctors],
        }


def filter_transactions(
    transactions: Iterable[Transaction],
    transaction_type: TransactionType | None = None,
) -> list[Transaction]:
    """Transactions of one type, or all of them when `transaction_type` is None."""
    return [t for t in transactions if transaction_type is None or t.type == transaction_type]


def ledger_summary(transactions: Iterable[Transaction]) -> LedgerSummary:
    """Income, expense and net balance over a set of transactions."""
    summary = LedgerSummary()
    for t in transactions:
        summary.count += 1
        if t.type == TransactionType.INCOME:
            summary.total_income += t.amount
        else:
            summary.total_expense += t.amount
    return summary


def build_dashboard(
    viewer: User,
    patients: list[Patient],
    appointments: list[Appointment],
    transactions: list[Transaction],
    users: list[User] | None = None,
    today: date | None = None,
) -> Dashboard:
    """
    Headline numbers for the landing screen.

    Doctors get today's agenda and their income; admins additionally get a
    per-doctor breakdown of patients and appointments.
    """
    today = today or date.today()
    dashboard = Dashboard(
        patients=len(patients),
        appointments=len(appointments),
        today_appointments=[a for a in appointments if a.visit_date == today],
        income=ledger_summary(filter_transactions(transactions, TransactionType.INCOME)).total_income,
    )

    if viewer.is_admin:
        for doctor in (u for u in users or [] if u.is_doctor):
            dashboard.doctors.append(DoctorStats(
                doctor_id=doctor.id,
                name=doctor.name,
                patients=sum(1 for p in patients if p.doctor_id == doctor.id),
                appointments=sum(1 for a in appointments if a.doctor_id == doctor.id),
            ))
    return dashboard
