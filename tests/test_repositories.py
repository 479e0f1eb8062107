"""
Tests for the repository contract: in-memory, JSON snapshot and Supabase.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from datetime import date
from unittest.mock import MagicMock

from postgrest.exceptions import APIError

from src.db import (
    InMemoryRepository,
    PatientRepository,
    TransactionRepository,
    load_snapshot,
    memory_repositories,
    save_snapshot,
)
from src.db.seed import demo_snapshot
from src.errors import DuplicateKeyError
from src.models import GrowthRecord, Patient, Sex, Transaction, TransactionType


def make_patient(pid="p1", name="Sofía Ramírez"):
    return Patient(id=pid, doctor_id="u-doc-2", name=name, birth_date=date(2023, 2, 1), sex=Sex.FEMALE)


class TestInMemory:

    def test_add_and_get(self):
        repo = InMemoryRepository(Patient)
        repo.add(make_patient())

        assert repo.get("p1").name == "Sofía Ramírez"
        assert repo.get("nope") is None

    def test_add_duplicate(self):
        repo = InMemoryRepository(Patient, [make_patient()])

        with pytest.raises(DuplicateKeyError):
            repo.add(make_patient())

    def test_put_replaces_in_place(self):
        repo = InMemoryRepository(Patient, [make_patient("p1"), make_patient("p2")])

        repo.put(make_patient("p1", name="Sofía R."))

        assert [p.id for p in repo.all()] == ["p1", "p2"]
        assert repo.get("p1").name == "Sofía R."

    def test_delete(self):
        repo = InMemoryRepository(Patient, [make_patient()])

        assert repo.delete("p1") is True
        assert repo.delete("p1") is False
        assert repo.all() == []

    def test_find_one_by_field(self):
        repo = InMemoryRepository(Patient, [make_patient("p1"), make_patient("p2", name="Leo")])

        assert repo.find_one_by_field("name", "Leo").id == "p2"
        assert repo.find_one_by_field("name", "Nadie") is None

    def test_returned_entities_are_copies(self):
        repo = InMemoryRepository(Patient, [make_patient()])

        patient = repo.get("p1")
        patient.growth_history.append(GrowthRecord(date=date(2023, 3, 1), weight=4.5, height=55))

        assert repo.get("p1").growth_history == []


class TestSnapshot:

    def test_round_trip(self, tmp_path):
        path = tmp_path / "clinic.json"
        repos = memory_repositories(demo_snapshot(today=date(2024, 6, 1)))

        save_snapshot(repos, path)
        loaded = load_snapshot(path)

        assert [u.id for u in loaded.users.all()] == ["u-admin", "u-doc-1", "u-doc-2"]
        assert loaded.patients.get("1").growth_history == repos.patients.get("1").growth_history
        assert loaded.transactions.get("t1").related_appointment_id == "101"
        assert loaded.appointments.get("101").date_time == repos.appointments.get("101").date_time

    def test_missing_file_gives_empty_repositories(self, tmp_path):
        repos = load_snapshot(tmp_path / "absent.json")

        assert repos.patients.all() == []
        assert repos.users.all() == []

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "clinic.json"

        save_snapshot(memory_repositories(), path)

        assert path.exists()


class TestSupabase:
    """Supabase repositories against a mocked client."""

    def make_repo(self, cls):
        client = MagicMock()
        return cls(client), client

    def test_add_inserts_json_row(self):
        repo, client = self.make_repo(PatientRepository)
        patient = make_patient()
        client.table.return_value.insert.return_value.execute.return_value = MagicMock(data=[])

        assert repo.add(patient) == patient

        client.table.assert_called_with("patients")
        row = client.table.return_value.insert.call_args[0][0]
        assert row["birth_date"] == "2023-02-01"
        assert row["growth_history"] == []

    def test_unique_violation_maps_to_duplicate(self):
        repo, client = self.make_repo(PatientRepository)
        client.table.return_value.insert.return_value.execute.side_effect = APIError(
            {"code": "23505", "message": "duplicate key value"}
        )

        with pytest.raises(DuplicateKeyError):
            repo.add(make_patient())

    def test_other_api_errors_propagate(self):
        repo, client = self.make_repo(PatientRepository)
        client.table.return_value.insert.return_value.execute.side_effect = APIError(
            {"code": "42501", "message": "permission denied"}
        )

        with pytest.raises(APIError):
            repo.add(make_patient())

    def test_find_parses_rows(self):
        repo, client = self.make_repo(TransactionRepository)
        row = {
            "id": "t1",
            "doctor_id": "u-doc-1",
            "date": "2024-05-01",
            "type": "INCOME",
            "category": "Consulta",
            "description": "Consulta Mateo G.",
            "amount": 800,
            "related_appointment_id": "101",
        }
        query = client.table.return_value.select.return_value.eq.return_value.limit.return_value
        query.execute.return_value = MagicMock(data=[row])

        entry = repo.get("t1")

        assert isinstance(entry, Transaction)
        assert entry.type == TransactionType.INCOME
        assert entry.date == date(2024, 5, 1)
        client.table.return_value.select.return_value.eq.assert_called_with("id", "t1")

    def test_delete_reports_missing(self):
        repo, client = self.make_repo(TransactionRepository)
        client.table.return_value.delete.return_value.eq.return_value.execute.return_value = MagicMock(data=[])

        assert repo.delete("t1") is False


class TestProvider:
    """Repository selection for the shells."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        from src.db.client import reset_clients
        from src.db.provider import set_repositories

        for name in ("SUPABASE_URL", "SUPABASE_ANON_KEY", "SUPABASE_SERVICE_KEY"):
            monkeypatch.delenv(name, raising=False)
        reset_clients()
        set_repositories(None)
        yield
        set_repositories(None)
        reset_clients()

    def test_demo_data_without_file(self, monkeypatch, tmp_path):
        from src.db.client import reset_clients
        from src.db.provider import get_repositories

        monkeypatch.setenv("PEDICARE_DATA_FILE", str(tmp_path / "absent.json"))
        reset_clients()

        repos = get_repositories()

        assert repos.appointments.get("101") is not None
        assert get_repositories() is repos

    def test_snapshot_file(self, monkeypatch, tmp_path):
        from src.db.client import reset_clients
        from src.db.provider import get_repositories

        path = tmp_path / "clinic.json"
        repos = memory_repositories()
        repos.patients.add(make_patient())
        save_snapshot(repos, path)
        monkeypatch.setenv("PEDICARE_DATA_FILE", str(path))
        reset_clients()

        assert [p.id for p in get_repositories().patients.all()] == ["p1"]
