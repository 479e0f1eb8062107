"""
Tests for the HTTP API.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from datetime import date

from fastapi.testclient import TestClient

from server import app, get_assistant
from src.auth import create_token
from src.config import reset_config
from src.db import memory_repositories
from src.db.provider import get_repositories
from src.db.seed import demo_snapshot


class FakeAssistant:
    def run(self, text, mode):
        return f"{mode.value}: {text}"


@pytest.fixture
def repos(monkeypatch):
    monkeypatch.setenv("SUPABASE_JWT_SECRET", "test-secret")
    reset_config()
    repos = memory_repositories(demo_snapshot(today=date(2024, 6, 1)))
    app.dependency_overrides[get_repositories] = lambda: repos
    app.dependency_overrides[get_assistant] = FakeAssistant
    yield repos
    app.dependency_overrides.clear()
    reset_config()


@pytest.fixture
def client(repos):
    return TestClient(app)


def auth(user_id):
    return {"Authorization": f"Bearer {create_token(user_id)}"}


class TestAuth:

    def test_health(self, client):
        assert client.get("/api/health").json()["status"] == "healthy"

    def test_token_required(self, client):
        assert client.get("/api/patients").status_code == 401

    def test_unknown_user(self, client):
        assert client.get("/api/auth/me", headers=auth("u-ghost")).status_code == 401

    def test_bad_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_me(self, client):
        response = client.get("/api/auth/me", headers=auth("u-doc-1"))
        assert response.json()["role"] == "DOCTOR"

    def test_users_admin_only(self, client):
        assert client.get("/api/users", headers=auth("u-doc-1")).status_code == 403
        assert len(client.get("/api/users", headers=auth("u-admin")).json()["users"]) == 3


class TestPatients:

    def test_scoped_list(self, client):
        assert client.get("/api/patients", headers=auth("u-doc-1")).json()["total"] == 1
        assert client.get("/api/patients", headers=auth("u-doc-2")).json()["total"] == 0
        assert client.get("/api/patients", headers=auth("u-admin")).json()["total"] == 1

    def test_outside_scope(self, client):
        response = client.get("/api/patients/1", headers=auth("u-doc-2"))
        assert response.status_code == 403
        assert response.json()["error"] == "AccessDeniedError"

    def test_create_owned_by_doctor(self, client, repos):
        response = client.post(
            "/api/patients",
            headers=auth("u-doc-2"),
            json={"name": "Sofía Ramírez", "birth_date": "2023-02-01", "sex": "F"},
        )

        assert response.status_code == 201
        assert repos.patients.get(response.json()["id"]).doctor_id == "u-doc-2"

    def test_admin_must_name_doctor(self, client):
        response = client.post(
            "/api/patients",
            headers=auth("u-admin"),
            json={"name": "Sofía Ramírez", "birth_date": "2023-02-01", "sex": "F"},
        )
        assert response.status_code == 400

    def test_growth(self, client):
        body = client.get("/api/patients/1/growth", headers=auth("u-doc-1")).json()

        assert body["analysis"]["age_months"] == 6
        assert body["analysis"]["height_percentile"] == 97
        assert [p["age_months"] for p in body["series"]] == [0, 6]


class TestAppointments:

    def test_create_records_income(self, client, repos):
        response = client.post(
            "/api/appointments",
            headers=auth("u-doc-1"),
            json={
                "patient_id": "1",
                "date_time": "2024-06-03T10:00:00",
                "reason": "Consulta",
                "cost": 650,
                "weight": 12.5,
                "height": 88,
            },
        )

        assert response.status_code == 201
        appointment_id = response.json()["appointment"]["id"]
        entry = repos.transactions.get(f"t-{appointment_id}")
        assert entry.amount == 650
        assert entry.description == "Consulta: Mateo González"
        assert len(repos.patients.get("1").growth_history) == 3

    def test_missing_cost(self, client, repos):
        response = client.post(
            "/api/appointments",
            headers=auth("u-doc-1"),
            json={"patient_id": "1", "date_time": "2024-06-03T10:00:00"},
        )

        assert response.status_code == 400
        assert len(repos.appointments.all()) == 1

    def test_update_syncs_ledger(self, client, repos):
        response = client.put(
            "/api/appointments/101",
            headers=auth("u-doc-1"),
            json={"patient_id": "1", "date_time": "2024-06-01T09:00:00", "cost": 900},
        )

        assert response.status_code == 200
        assert repos.transactions.get("t1").amount == 900

    def test_delete_cascades(self, client, repos):
        response = client.delete("/api/appointments/101", headers=auth("u-doc-1"))

        assert response.status_code == 200
        assert response.json()["writes"] == ["delete appointments/101", "delete transactions/t1"]
        assert repos.transactions.get("t1") is None

    def test_delete_missing(self, client):
        assert client.delete("/api/appointments/nope", headers=auth("u-admin")).status_code == 404


class TestLedger:

    def test_filter_and_summary(self, client):
        headers = auth("u-doc-1")
        client.post(
            "/api/transactions",
            headers=headers,
            json={"date": "2024-06-02", "type": "EXPENSE", "category": "Insumos", "amount": 120},
        )

        expenses = client.get("/api/transactions", headers=headers, params={"type": "EXPENSE"}).json()
        summary = client.get("/api/ledger/summary", headers=headers).json()

        assert expenses["total"] == 1
        assert summary["total_income"] == 800
        assert summary["net_balance"] == 680

    def test_dashboard(self, client):
        body = client.get("/api/dashboard", headers=auth("u-admin")).json()
        assert body["patients"] == 1
        assert len(body["doctors"]) == 2


class TestAssistant:

    def test_assistant(self, client):
        response = client.post(
            "/api/assistant",
            headers=auth("u-doc-1"),
            json={"text": "tos y fiebre", "mode": "symptoms"},
        )
        assert response.json() == {"mode": "symptoms", "text": "symptoms: tos y fiebre"}


class TestAdminBooking:
    """Admins name no owner of their own; the patient's doctor owns the visit."""

    def owners(self, repos, appointment_id):
        appointment = repos.appointments.get(appointment_id)
        patient = repos.patients.get(appointment.patient_id)
        entries = [t for t in repos.transactions.all() if t.related_appointment_id == appointment_id]
        return appointment.doctor_id, patient.doctor_id, {t.doctor_id for t in entries}

    def add_second_patient(self, repos):
        from src.models import Patient, Sex

        repos.patients.add(Patient(
            id="2",
            doctor_id="u-doc-2",
            name="Sofía Ramírez",
            birth_date=date(2023, 2, 1),
            sex=Sex.FEMALE,
        ))

    def test_create_takes_patients_doctor(self, client, repos):
        response = client.post(
            "/api/appointments",
            headers=auth("u-admin"),
            json={"patient_id": "1", "date_time": "2024-06-03T10:00:00", "cost": 650},
        )

        assert response.status_code == 201
        appointment_id = response.json()["appointment"]["id"]
        assert self.owners(repos, appointment_id) == ("u-doc-1", "u-doc-1", {"u-doc-1"})

    def test_create_with_matching_doctor(self, client, repos):
        response = client.post(
            "/api/appointments",
            headers=auth("u-admin"),
            json={"patient_id": "1", "doctor_id": "u-doc-1", "date_time": "2024-06-03T10:00:00", "cost": 650},
        )

        assert response.status_code == 201
        assert response.json()["appointment"]["doctor_id"] == "u-doc-1"

    def test_create_with_other_doctor_refused(self, client, repos):
        response = client.post(
            "/api/appointments",
            headers=auth("u-admin"),
            json={"patient_id": "1", "doctor_id": "u-doc-2", "date_time": "2024-06-03T10:00:00", "cost": 650},
        )

        assert response.status_code == 400
        assert len(repos.appointments.all()) == 1
        assert len(repos.transactions.all()) == 1
        assert client.get("/api/transactions", headers=auth("u-doc-2")).json()["total"] == 0

    def test_update_keeps_owners_aligned(self, client, repos):
        response = client.put(
            "/api/appointments/101",
            headers=auth("u-admin"),
            json={"patient_id": "1", "date_time": "2024-06-01T09:00:00", "cost": 950},
        )

        assert response.status_code == 200
        assert self.owners(repos, "101") == ("u-doc-1", "u-doc-1", {"u-doc-1"})
        assert repos.transactions.get("t1").amount == 950

    def test_update_moving_to_other_doctors_patient_refused(self, client, repos):
        self.add_second_patient(repos)

        response = client.put(
            "/api/appointments/101",
            headers=auth("u-admin"),
            json={"patient_id": "2", "date_time": "2024-06-01T09:00:00", "cost": 950},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"
        assert repos.appointments.get("101").patient_id == "1"
        assert repos.transactions.get("t1").amount == 800


class TestUserAdmin:

    def test_update_profile(self, client, repos):
        doctor = repos.users.get("u-doc-2").model_dump(mode="json")
        doctor["specialty"] = "Pediatría General"

        response = client.put("/api/users/u-doc-2", headers=auth("u-admin"), json=doctor)

        assert response.status_code == 200
        assert repos.users.get("u-doc-2").specialty == "Pediatría General"

    def test_role_change_refused(self, client, repos):
        doctor = repos.users.get("u-doc-2").model_dump(mode="json")
        doctor["role"] = "ADMIN"

        response = client.put("/api/users/u-doc-2", headers=auth("u-admin"), json=doctor)

        assert response.status_code == 400
        assert repos.users.get("u-doc-2").is_doctor

    def test_doctors_cannot_edit_users(self, client, repos):
        doctor = repos.users.get("u-doc-1").model_dump(mode="json")

        assert client.put("/api/users/u-doc-1", headers=auth("u-doc-1"), json=doctor).status_code == 403
