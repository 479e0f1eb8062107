"""
Tests for access scope and the ledger/dashboard aggregates.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from datetime import date, datetime

from src.core.reports import build_dashboard, filter_transactions, ledger_summary
from src.core.scope import can_view, visible_to
from src.models import Appointment, Patient, Sex, Transaction, TransactionType, User, UserRole

ADMIN = User(id="u-admin", name="Admin", email="admin@pedicare.com", role=UserRole.ADMIN)
DOC_1 = User(id="u-doc-1", name="Dr. Rodrigo Paz", email="rodrigo@pedicare.com", role=UserRole.DOCTOR)
DOC_2 = User(id="u-doc-2", name="Dra. Elena Gómez", email="elena@pedicare.com", role=UserRole.DOCTOR)


def patient(pid, doctor_id):
    return Patient(id=pid, doctor_id=doctor_id, name=f"Patient {pid}", birth_date=date(2020, 1, 1), sex=Sex.FEMALE)


def appointment(aid, doctor_id, when=datetime(2024, 6, 1, 9, 0)):
    return Appointment(id=aid, doctor_id=doctor_id, patient_id="p", patient_name="P", date_time=when, cost=100)


def entry(tid, doctor_id, kind=TransactionType.INCOME, amount=100.0):
    return Transaction(id=tid, doctor_id=doctor_id, date=date(2024, 6, 1), type=kind, category="Consulta", amount=amount)


class TestScope:

    def test_admin_sees_everything(self):
        records = [patient("a", "u-doc-1"), patient("b", "u-doc-2")]
        assert visible_to(ADMIN, records) == records
        assert all(can_view(ADMIN, r) for r in records)

    def test_doctor_sees_own_records(self):
        records = [patient("a", "u-doc-1"), patient("b", "u-doc-2"), patient("c", "u-doc-1")]
        assert [p.id for p in visible_to(DOC_1, records)] == ["a", "c"]
        assert [p.id for p in visible_to(DOC_2, records)] == ["b"]

    def test_same_rule_for_every_collection(self):
        assert can_view(DOC_1, appointment("x", "u-doc-1"))
        assert not can_view(DOC_1, appointment("y", "u-doc-2"))
        assert can_view(DOC_2, entry("t", "u-doc-2"))
        assert not can_view(DOC_2, entry("t", "u-doc-1"))

    def test_doctor_with_nothing(self):
        assert visible_to(DOC_2, [patient("a", "u-doc-1")]) == []


class TestLedger:

    def test_summary(self):
        transactions = [
            entry("t1", "u-doc-1", amount=800),
            entry("t2", "u-doc-1", amount=500),
            entry("e1", "u-doc-1", TransactionType.EXPENSE, amount=300),
        ]

        summary = ledger_summary(transactions)

        assert summary.total_income == 1300
        assert summary.total_expense == 300
        assert summary.net_balance == 1000
        assert summary.count == 3

    def test_filter_by_type(self):
        transactions = [entry("t1", "u-doc-1"), entry("e1", "u-doc-1", TransactionType.EXPENSE)]

        assert [t.id for t in filter_transactions(transactions, TransactionType.EXPENSE)] == ["e1"]
        assert len(filter_transactions(transactions)) == 2


class TestDashboard:

    def test_doctor_dashboard(self):
        today = date(2024, 6, 1)
        appointments = [
            appointment("a1", "u-doc-1", datetime(2024, 6, 1, 9, 0)),
            appointment("a2", "u-doc-1", datetime(2024, 6, 2, 9, 0)),
        ]
        transactions = [
            entry("t1", "u-doc-1", amount=800),
            entry("e1", "u-doc-1", TransactionType.EXPENSE, amount=50),
        ]

        board = build_dashboard(DOC_1, [patient("a", "u-doc-1")], appointments, transactions, today=today)

        assert board.patients == 1
        assert board.appointments == 2
        assert [a.id for a in board.today_appointments] == ["a1"]
        assert board.income == 800
        assert board.doctors == []

    def test_admin_breakdown(self):
        patients = [patient("a", "u-doc-1"), patient("b", "u-doc-2"), patient("c", "u-doc-2")]
        appointments = [appointment("a1", "u-doc-2")]

        board = build_dashboard(ADMIN, patients, appointments, [], users=[ADMIN, DOC_1, DOC_2])

        stats = {d.doctor_id: (d.patients, d.appointments) for d in board.doctors}
        assert stats == {"u-doc-1": (1, 0), "u-doc-2": (2, 1)}
        assert board.to_dict()["doctors"][0]["name"] == "Dr. Rodrigo Paz"
