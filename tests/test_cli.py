"""
Tests for the command-line interface.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from click.testing import CliRunner

from cli import cli
from src.db import load_snapshot


class TestCLI:

    def seeded(self, tmp_path):
        data = tmp_path / "clinic.json"
        runner = CliRunner()
        result = runner.invoke(cli, ["--data", str(data), "seed"])
        assert result.exit_code == 0
        return runner, data

    def test_seed_writes_snapshot(self, tmp_path):
        _, data = self.seeded(tmp_path)

        repos = load_snapshot(data)
        assert repos.patients.get("1") is not None
        assert repos.transactions.get("t1") is not None

    def test_book_and_cancel(self, tmp_path):
        runner, data = self.seeded(tmp_path)

        result = runner.invoke(cli, [
            "--data", str(data), "book",
            "--as", "u-doc-1", "--patient", "1",
            "--at", "2024-06-03T10:00", "--cost", "650",
            "--weight", "12.5", "--height", "88",
        ])
        assert result.exit_code == 0, result.output

        repos = load_snapshot(data)
        booked = [a for a in repos.appointments.all() if a.id != "101"]
        assert len(booked) == 1
        assert repos.transactions.get(f"t-{booked[0].id}").amount == 650
        assert len(repos.patients.get("1").growth_history) == 3

        result = runner.invoke(cli, ["--data", str(data), "cancel", booked[0].id, "--as", "u-doc-1"])
        assert result.exit_code == 0, result.output
        assert load_snapshot(data).transactions.get(f"t-{booked[0].id}") is None

    def test_out_of_scope_booking_fails(self, tmp_path):
        runner, data = self.seeded(tmp_path)

        result = runner.invoke(cli, [
            "--data", str(data), "book",
            "--as", "u-doc-2", "--patient", "1",
            "--at", "2024-06-03T10:00", "--cost", "650",
        ])

        assert result.exit_code == 1
        assert "AccessDeniedError" in result.output

    def test_unknown_viewer(self, tmp_path):
        runner, data = self.seeded(tmp_path)

        result = runner.invoke(cli, ["--data", str(data), "patients", "--as", "u-ghost"])

        assert result.exit_code != 0
