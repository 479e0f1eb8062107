"""
Clinic service: applies synchronizer plans through the repositories.

This is the only place that turns the pure rules of `src.core.sync` into
repository calls. It also carries the plain CRUD operations for users,
patients and manual ledger entries, and the viewer-scoped reads.

Partial failure: each repository call is atomic on its own, a cascade is
not. All validation happens before the first write, so a rejected command
persists nothing. If the primary write fails its error is raised unchanged
and nothing is committed. If a later write fails, `PartialCascadeFailure` is
raised with the applied, failed and pending writes; no rollback is
attempted.
"""

from __future__ import annotations

import logging
from datetime import date

from knowledge.growth import DEFAULT_MODEL, GrowthAnalysis, GrowthPoint, MedianModel, analyze_growth, growth_series
from src.core.reports import Dashboard, LedgerSummary, build_dashboard, ledger_summary
from src.core.scope import can_view, visible_to
from src.core.sync import (
    ClinicState,
    Collection,
    Command,
    CreateAppointment,
    DeleteAppointment,
    SyncPlan,
    UpdateAppointment,
    Write,
    WriteOp,
    synchronize,
)
from src.db.repositories import Repository, RepositorySet
from src.errors import AccessDeniedError, NotFoundError, PartialCascadeFailure, ValidationError
from src.models import Appointment, Patient, Transaction, User

logger = logging.getLogger(__name__)


class ClinicService:
    """
    Entry point for every mutation and scoped read the shells perform.

    One mutation at a time: callers are expected to await each call before
    issuing the next.
    """

    def __init__(self, repos: RepositorySet):
        self.repos = repos

    # -------------------------------------------------------------------------
    # Appointments (synchronized)
    # -------------------------------------------------------------------------

    def create_appointment(self, appointment: Appointment) -> SyncPlan:
        """Store a new appointment and its ledger entry (and growth record)."""
        return self._run(CreateAppointment(appointment), appointment.id, appointment.patient_id)

    def update_appointment(self, appointment: Appointment) -> SyncPlan:
        """Replace an appointment and keep its ledger entry in step."""
        return self._run(UpdateAppointment(appointment), appointment.id, appointment.patient_id)

    def delete_appointment(self, appointment_id: str) -> SyncPlan:
        """Delete an appointment and every ledger entry linked to it."""
        return self._run(DeleteAppointment(appointment_id), appointment_id)

    def load_state(self, appointment_id: str | None = None, patient_id: str | None = None) -> ClinicState:
        """Read the slice of the store an appointment command needs."""
        appointment = self.repos.appointments.get(appointment_id) if appointment_id else None
        patient = self.repos.patients.get(patient_id) if patient_id else None
        return ClinicState(
            patients=(patient,) if patient else (),
            appointments=(appointment,) if appointment else (),
            transactions=tuple(self.repos.transactions.all()),
        )

    def _run(self, command: Command, appointment_id: str, patient_id: str | None = None) -> SyncPlan:
        state = self.load_state(appointment_id, patient_id)
        plan = synchronize(state, command)
        self.apply(plan.writes)
        logger.info(
            "%s %s: %d write(s)",
            type(command).__name__, appointment_id, len(plan.writes),
        )
        return plan

    def apply(self, writes: list[Write]) -> None:
        """Execute writes in order; report a failure after the first as partial."""
        for i, write in enumerate(writes):
            try:
                self._execute(write)
            except Exception as e:
                if i == 0:
                    raise
                logger.error("Cascade write %s failed after %d committed write(s): %s", write, i, e)
                raise PartialCascadeFailure(
                    applied=writes[:i],
                    failed=write,
                    pending=writes[i + 1:],
                    cause=e,
                ) from e

    def _repository(self, collection: Collection) -> Repository:
        return getattr(self.repos, collection.value)

    def _execute(self, write: Write) -> None:
        repo = self._repository(write.collection)
        if write.op == WriteOp.ADD:
            repo.add(write.entity)
        elif write.op == WriteOp.PUT:
            repo.put(write.entity)
        else:
            repo.delete(write.key)

    # -------------------------------------------------------------------------
    # Patients, users and manual ledger entries
    # -------------------------------------------------------------------------

    def add_patient(self, patient: Patient) -> Patient:
        return self.repos.patients.add(patient)

    def update_patient(self, patient: Patient) -> Patient:
        """
        Replace a patient record.

        Appointments keep the patient name they were saved with.
        """
        self._require(self.repos.patients, "Patient", patient.id)
        return self.repos.patients.put(patient)

    def delete_patient(self, patient_id: str) -> None:
        # Appointments and ledger entries of the patient are left in place
        if not self.repos.patients.delete(patient_id):
            raise NotFoundError("Patient", patient_id)

    def add_user(self, user: User) -> User:
        return self.repos.users.add(user)

    def update_user(self, user: User) -> User:
        existing = self._require(self.repos.users, "User", user.id)
        if existing.role != user.role:
            raise ValidationError("User role cannot be changed", field="role")
        return self.repos.users.put(user)

    def delete_user(self, user_id: str) -> None:
        if not self.repos.users.delete(user_id):
            raise NotFoundError("User", user_id)

    def add_transaction(self, transaction: Transaction) -> Transaction:
        """Record a manual income or expense entry."""
        if transaction.related_appointment_id is not None:
            raise ValidationError(
                "Appointment-linked entries are managed by their appointment",
                field="related_appointment_id",
            )
        return self.repos.transactions.add(transaction)

    def delete_transaction(self, transaction_id: str) -> None:
        if not self.repos.transactions.delete(transaction_id):
            raise NotFoundError("Transaction", transaction_id)

    def _require(self, repo: Repository, kind: str, record_id: str):
        record = repo.get(record_id)
        if record is None:
            raise NotFoundError(kind, record_id)
        return record

    # -------------------------------------------------------------------------
    # Scoped reads
    # -------------------------------------------------------------------------

    def patients_for(self, viewer: User) -> list[Patient]:
        return visible_to(viewer, self.repos.patients.all())

    def appointments_for(self, viewer: User) -> list[Appointment]:
        return visible_to(viewer, self.repos.appointments.all())

    def transactions_for(self, viewer: User) -> list[Transaction]:
        return visible_to(viewer, self.repos.transactions.all())

    def get_for(self, viewer: User, collection: Collection, record_id: str):
        """Single record read, refused when outside the viewer's scope."""
        kind = collection.value[:-1].capitalize()
        record = self._require(self._repository(collection), kind, record_id)
        if not can_view(viewer, record):
            raise AccessDeniedError(kind, record_id)
        return record

    def growth_for(
        self,
        viewer: User,
        patient_id: str,
        model: MedianModel = DEFAULT_MODEL,
    ) -> tuple[GrowthAnalysis | None, list[GrowthPoint]]:
        """Current growth status and full trend of a patient."""
        patient = self.get_for(viewer, Collection.PATIENTS, patient_id)
        return analyze_growth(patient, model), growth_series(patient)

    def ledger_for(self, viewer: User) -> LedgerSummary:
        return ledger_summary(self.transactions_for(viewer))

    def dashboard_for(self, viewer: User, today: date | None = None) -> Dashboard:
        return build_dashboard(
            viewer,
            patients=self.patients_for(viewer),
            appointments=self.appointments_for(viewer),
            transactions=self.transactions_for(viewer),
            users=self.repos.users.all() if viewer.is_admin else None,
            today=today,
        )
