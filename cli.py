#!/usr/bin/env python3
"""
PediCare CLI

Command-line interface over a local clinic snapshot file: browse patients,
book and cancel appointments, review growth and the ledger.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

console = Console()


def setup_paths():
    """Add the project root to sys.path for imports."""
    root = Path(__file__).parent
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


setup_paths()

from src.config import get_config
from src.core import ClinicService
from src.db import load_snapshot, save_snapshot
from src.errors import ClinicError, PartialCascadeFailure
from src.models import Appointment, AppointmentStatus, User

PERCENTILE_STYLES = {"normal": "green", "watch": "yellow", "alert": "red"}


class ClinicContext:
    """Repositories loaded from the snapshot file, saved back after mutations."""

    def __init__(self, data_file: Path):
        self.data_file = data_file
        self.repos = load_snapshot(data_file)
        self.service = ClinicService(self.repos)

    def viewer(self, user_id: str) -> User:
        user = self.repos.users.get(user_id)
        if user is None:
            raise click.BadParameter(f"Unknown user: {user_id}", param_hint="--as")
        return user

    def save(self) -> None:
        save_snapshot(self.repos, self.data_file)


pass_clinic = click.make_pass_decorator(ClinicContext)


def viewer_option(f):
    return click.option("--as", "viewer_id", required=True, help="User ID to act as")(f)


def _report_error(e: ClinicError) -> None:
    console.print(f"[red]{type(e).__name__}: {e}[/red]")
    if isinstance(e, PartialCascadeFailure):
        for write in e.applied:
            console.print(f"  [green]✓[/green] {write}")
        console.print(f"  [red]✗[/red] {e.failed}")
        for write in e.pending:
            console.print(f"  [dim]· {write}[/dim]")
    sys.exit(1)


@click.group()
@click.version_option(version="0.1.0", prog_name="pedicare")
@click.option("--data", "data_file", type=click.Path(dir_okay=False, path_type=Path),
              help="Snapshot file (default: $PEDICARE_DATA_FILE or ~/.pedicare/clinic.json)")
@click.option("--verbose", "-v", is_flag=True, help="Show log output")
@click.pass_context
def cli(ctx, data_file: Optional[Path], verbose: bool):
    """
    PediCare - pediatric practice records.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    ctx.obj = ClinicContext(data_file or get_config().data_file)


@cli.command()
@click.option("--force", is_flag=True, help="Overwrite an existing snapshot")
@pass_clinic
def seed(clinic: ClinicContext, force: bool):
    """
    Write demo data to the snapshot file.
    """
    from src.db import memory_repositories
    from src.db.seed import demo_snapshot

    if clinic.data_file.exists() and not force:
        console.print(f"[yellow]{clinic.data_file} already exists (use --force)[/yellow]")
        return

    save_snapshot(memory_repositories(demo_snapshot()), clinic.data_file)
    console.print(f"[green]✓ Demo data written to {clinic.data_file}[/green]")


@cli.command()
@viewer_option
@pass_clinic
def patients(clinic: ClinicContext, viewer_id: str):
    """
    List patients visible to a user.
    """
    viewer = clinic.viewer(viewer_id)

    table = Table(title="Patients")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Born")
    table.add_column("Sex")
    table.add_column("Doctor", style="dim")
    table.add_column("Measurements", justify="right")

    for p in clinic.service.patients_for(viewer):
        table.add_row(p.id, p.name, p.birth_date.isoformat(), p.sex.value, p.doctor_id, str(len(p.growth_history)))

    console.print(table)


@cli.command()
@click.argument("patient_id")
@viewer_option
@pass_clinic
def growth(clinic: ClinicContext, patient_id: str, viewer_id: str):
    """
    Show a patient's current growth status and history.
    """
    from knowledge.growth import interpret_bucket

    viewer = clinic.viewer(viewer_id)
    try:
        analysis, series = clinic.service.growth_for(viewer, patient_id)
    except ClinicError as e:
        _report_error(e)

    if analysis is None:
        console.print("[dim]No measurements recorded; no analysis available[/dim]")
        return

    def bucket(p: int) -> str:
        style = PERCENTILE_STYLES[interpret_bucket(p)]
        return f"[{style}]p{p}[/{style}]"

    console.print(Panel(
        f"Measured: {analysis.measured_on.isoformat()} ({analysis.age_months} months)\n"
        f"Weight: {analysis.weight} kg  {bucket(analysis.weight_percentile)}\n"
        f"Height: {analysis.height} cm  {bucket(analysis.height_percentile)}\n"
        f"BMI: {analysis.bmi:.1f}  {bucket(analysis.bmi_percentile)}\n"
        f"Status: [bold]{analysis.status}[/bold]",
        title=f"Growth - {patient_id}",
        border_style="blue",
    ))

    table = Table(title="History")
    table.add_column("Date")
    table.add_column("Age (mo)", justify="right")
    table.add_column("Weight (kg)", justify="right")
    table.add_column("Height (cm)", justify="right")
    for point in series:
        table.add_row(point.date.isoformat(), str(point.age_months), f"{point.weight}", f"{point.height}")
    console.print(table)


@cli.command()
@viewer_option
@pass_clinic
def appointments(clinic: ClinicContext, viewer_id: str):
    """
    List appointments visible to a user.
    """
    viewer = clinic.viewer(viewer_id)

    table = Table(title="Appointments")
    table.add_column("ID", style="dim")
    table.add_column("When")
    table.add_column("Patient")
    table.add_column("Reason")
    table.add_column("Status")
    table.add_column("Cost", justify="right")

    for a in sorted(clinic.service.appointments_for(viewer), key=lambda a: a.date_time):
        table.add_row(
            a.id,
            a.date_time.strftime("%Y-%m-%d %H:%M"),
            a.patient_name,
            a.reason,
            a.status.value,
            f"{a.cost:,.2f}" if a.cost is not None else "-",
        )
    console.print(table)


@cli.command()
@viewer_option
@click.option("--patient", "patient_id", required=True, help="Patient ID")
@click.option("--at", "when", required=True, type=click.DateTime(["%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M"]),
              help="Date and time, e.g. 2024-06-01T09:30")
@click.option("--cost", type=float, required=True, help="Consultation fee")
@click.option("--reason", default="", help="Reason for the visit")
@click.option("--status", type=click.Choice([s.name for s in AppointmentStatus]), default="SCHEDULED")
@click.option("--weight", type=float, help="Weight measured during the visit (kg)")
@click.option("--height", type=float, help="Height measured during the visit (cm)")
@pass_clinic
def book(
    clinic: ClinicContext,
    viewer_id: str,
    patient_id: str,
    when: datetime,
    cost: float,
    reason: str,
    status: str,
    weight: Optional[float],
    height: Optional[float],
):
    """
    Book an appointment (records its income entry).

    Example:

        pedicare book --as u-doc-1 --patient 1 --at 2024-06-01T09:30 --cost 800
    """
    from src.core import Collection

    viewer = clinic.viewer(viewer_id)
    try:
        patient = clinic.service.get_for(viewer, Collection.PATIENTS, patient_id)
        appointment = Appointment(
            doctor_id=patient.doctor_id,
            patient_id=patient.id,
            patient_name=patient.name,
            date_time=when,
            reason=reason,
            status=AppointmentStatus[status],
            cost=cost,
            weight=weight,
            height=height,
        )
        plan = clinic.service.create_appointment(appointment)
    except ClinicError as e:
        _report_error(e)

    clinic.save()
    console.print(f"[green]✓ Appointment {appointment.id} booked[/green]")
    for write in plan.writes:
        console.print(f"  [dim]{write}[/dim]")


@cli.command()
@click.argument("appointment_id")
@viewer_option
@pass_clinic
def cancel(clinic: ClinicContext, appointment_id: str, viewer_id: str):
    """
    Delete an appointment and its ledger entries.
    """
    from src.core import Collection

    viewer = clinic.viewer(viewer_id)
    try:
        clinic.service.get_for(viewer, Collection.APPOINTMENTS, appointment_id)
        plan = clinic.service.delete_appointment(appointment_id)
    except ClinicError as e:
        _report_error(e)

    clinic.save()
    console.print(f"[green]✓ Deleted appointment {appointment_id}[/green]")
    for write in plan.cascades:
        console.print(f"  [dim]{write}[/dim]")


@cli.command()
@viewer_option
@click.option("--type", "transaction_type", type=click.Choice(["INCOME", "EXPENSE"]), help="Only one kind")
@pass_clinic
def ledger(clinic: ClinicContext, viewer_id: str, transaction_type: Optional[str]):
    """
    Show ledger entries and the balance.
    """
    from src.core.reports import filter_transactions, ledger_summary
    from src.models import TransactionType

    viewer = clinic.viewer(viewer_id)
    visible = clinic.service.transactions_for(viewer)
    shown = filter_transactions(visible, TransactionType(transaction_type) if transaction_type else None)

    table = Table(title="Ledger")
    table.add_column("Date")
    table.add_column("Type")
    table.add_column("Category")
    table.add_column("Description")
    table.add_column("Amount", justify="right")
    for t in sorted(shown, key=lambda t: t.date, reverse=True):
        color = "green" if t.type == TransactionType.INCOME else "red"
        table.add_row(t.date.isoformat(), t.type.value, t.category, t.description, f"[{color}]{t.amount:,.2f}[/{color}]")
    console.print(table)

    summary = ledger_summary(visible)
    console.print(
        f"\n[bold]Income:[/bold] {summary.total_income:,.2f}   "
        f"[bold]Expense:[/bold] {summary.total_expense:,.2f}   "
        f"[bold]Net:[/bold] {summary.net_balance:,.2f}"
    )


@cli.command()
@viewer_option
@pass_clinic
def dashboard(clinic: ClinicContext, viewer_id: str):
    """
    Show headline numbers for a user.
    """
    viewer = clinic.viewer(viewer_id)
    board = clinic.service.dashboard_for(viewer)

    console.print(Panel(
        f"Patients: {board.patients}\n"
        f"Appointments: {board.appointments} ({len(board.today_appointments)} today)\n"
        f"Income: {board.income:,.2f}",
        title=viewer.name,
        border_style="blue",
    ))

    if board.doctors:
        table = Table(title="Doctors")
        table.add_column("Doctor")
        table.add_column("Patients", justify="right")
        table.add_column("Appointments", justify="right")
        for d in board.doctors:
            table.add_row(d.name, str(d.patients), str(d.appointments))
        console.print(table)


@cli.command()
@click.argument("text")
@click.option("--mode", type=click.Choice(["summary", "symptoms"]), default="summary",
              help="Summarize a note or analyze symptoms")
def assist(text: str, mode: str):
    """
    Ask the clinical assistant about a note or a set of symptoms.
    """
    from src.llm import ClinicalAssistant

    with console.status("[bold blue]Consulting assistant..."):
        answer = ClinicalAssistant().run(text, mode)
    console.print(Panel(answer, title=mode, border_style="green"))


@cli.command()
def info():
    """
    Show information about PediCare.
    """
    console.print(Panel(
        "[bold]PediCare[/bold]\n\n"
        "Records for a small pediatric practice:\n"
        "• Patients and growth history\n"
        "• Appointments and consultations\n"
        "• Income ledger kept in step with appointments\n\n"
        "[dim]Growth percentiles use an illustrative linear reference,[/dim]\n"
        "[dim]not clinical growth charts.[/dim]",
        title="About",
        border_style="blue",
    ))

    console.print("\n[bold]Quick Start:[/bold]")
    console.print("  pedicare seed")
    console.print("  pedicare patients --as u-doc-1")
    console.print("  pedicare growth 1 --as u-doc-1")
    console.print("  pedicare book --as u-doc-1 --patient 1 --at 2024-06-01T09:30 --cost 800")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
