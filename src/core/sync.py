"""
Record-consistency synchronizer.

Keeps the ledger and growth history in step with appointments. Given the
current state and an appointment command, `synchronize` returns the new state
and the ordered list of writes that bring the store there. It performs no
I/O; `src.core.service.ClinicService` applies the writes through the
repositories.

Rules:
- Creating an appointment adds exactly one INCOME transaction linked to it.
- Updating an appointment rewrites the amount and description of its linked
  transaction, keeping id, date and category. With no linked transaction the
  ledger is left alone; with more than one the update is refused.
- Deleting an appointment deletes every transaction linked to it.
- A create or update carrying weight and height appends a growth record to
  the patient. Nothing is ever retracted from the growth history.
- An appointment belongs to its patient's doctor, and an update cannot move it
  to another doctor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Union

from pydantic import BaseModel

from src.errors import (
    ConsistencyLookupAmbiguity,
    DuplicateKeyError,
    NotFoundError,
    ValidationError,
)
from src.models import (
    Appointment,
    GrowthRecord,
    Patient,
    Transaction,
    TransactionType,
)

logger = logging.getLogger(__name__)

CONSULTATION_CATEGORY = "Consulta"


def ledger_description(patient_name: str) -> str:
    return f"Consulta: {patient_name}"


def ledger_entry_id(appointment_id: str) -> str:
    return f"t-{appointment_id}"


# =============================================================================
# WRITES AND STATE
# =============================================================================


class WriteOp(str, Enum):
    ADD = "add"
    PUT = "put"
    DELETE = "delete"


class Collection(str, Enum):
    APPOINTMENTS = "appointments"
    TRANSACTIONS = "transactions"
    PATIENTS = "patients"


@dataclass(frozen=True)
class Write:
    """One repository call. `entity` is set for add/put, `key` for delete."""
    op: WriteOp
    collection: Collection
    entity: BaseModel | None = None
    key: str | None = None

    @property
    def record_id(self) -> str:
        return self.key if self.entity is None else self.entity.id

    def __str__(self) -> str:
        return f"{self.op.value} {self.collection.value}/{self.record_id}"


def _replace_by_id(records: tuple, entity) -> tuple:
    replaced = False
    out = []
    for record in records:
        if record.id == entity.id:
            out.append(entity)
            replaced = True
        else:
            out.append(record)
    if not replaced:
        out.append(entity)
    return tuple(out)


@dataclass(frozen=True)
class ClinicState:
    """
    The slice of the store a command needs.

    The service loads the targeted appointment, the patient involved and the
    whole ledger; tests can build any state by hand.
    """
    patients: tuple[Patient, ...] = ()
    appointments: tuple[Appointment, ...] = ()
    transactions: tuple[Transaction, ...] = ()

    def patient(self, patient_id: str | None) -> Patient | None:
        return next((p for p in self.patients if p.id == patient_id), None)

    def appointment(self, appointment_id: str) -> Appointment | None:
        return next((a for a in self.appointments if a.id == appointment_id), None)

    def transaction(self, transaction_id: str) -> Transaction | None:
        return next((t for t in self.transactions if t.id == transaction_id), None)

    def linked_transactions(self, appointment_id: str) -> list[Transaction]:
        return [t for t in self.transactions if t.related_appointment_id == appointment_id]

    def apply(self, write: Write) -> ClinicState:
        """Return the state after `write`."""
        name = write.collection.value
        records = getattr(self, name)
        if write.op == WriteOp.DELETE:
            records = tuple(r for r in records if r.id != write.key)
        else:
            records = _replace_by_id(records, write.entity)
        return replace(self, **{name: records})


# =============================================================================
# COMMANDS
# =============================================================================


@dataclass(frozen=True)
class CreateAppointment:
    appointment: Appointment


@dataclass(frozen=True)
class UpdateAppointment:
    appointment: Appointment


@dataclass(frozen=True)
class DeleteAppointment:
    appointment_id: str


Command = Union[CreateAppointment, UpdateAppointment, DeleteAppointment]


@dataclass
class SyncPlan:
    """Outcome of a command: the resulting state and the writes to get there."""
    state: ClinicState
    writes: list[Write] = field(default_factory=list)
    # Set when an update found no linked transaction to keep in step
    orphaned: bool = False

    @property
    def primary(self) -> Write:
        return self.writes[0]

    @property
    def cascades(self) -> list[Write]:
        return self.writes[1:]


# =============================================================================
# SYNCHRONIZER
# =============================================================================


def synchronize(state: ClinicState, command: Command) -> SyncPlan:
    """
    Compute the writes for an appointment command.

    Every check runs before the first write is emitted, so a rejected command
    always leaves the store untouched.
    """
    if isinstance(command, CreateAppointment):
        writes = _plan_create(state, command.appointment)
        orphaned = False
    elif isinstance(command, UpdateAppointment):
        writes, orphaned = _plan_update(state, command.appointment)
    elif isinstance(command, DeleteAppointment):
        writes = _plan_delete(state, command.appointment_id)
        orphaned = False
    else:
        raise TypeError(f"Unknown command: {command!r}")

    new_state = state
    for write in writes:
        new_state = new_state.apply(write)
    return SyncPlan(state=new_state, writes=writes, orphaned=orphaned)


def _validate(state: ClinicState, appointment: Appointment) -> None:
    if appointment.cost is None:
        raise ValidationError("Appointment cost is required", field="cost")
    if appointment.cost < 0:
        raise ValidationError("Appointment cost cannot be negative", field="cost")
    if not appointment.patient_id:
        raise ValidationError("Appointment patient is required", field="patient_id")
    for name in ("weight", "height"):
        value = getattr(appointment, name)
        if value is not None and value < 0:
            raise ValidationError(f"Appointment {name} cannot be negative", field=name)

    # Appointment and ledger entry are owned by the patient's doctor
    patient = state.patient(appointment.patient_id)
    if patient is not None and patient.doctor_id != appointment.doctor_id:
        raise ValidationError(
            f"Patient {patient.id} belongs to {patient.doctor_id}, not {appointment.doctor_id}",
            field="doctor_id",
        )


def _plan_growth(state: ClinicState, appointment: Appointment) -> list[Write]:
    if not appointment.has_measurements:
        return []

    patient = state.patient(appointment.patient_id)
    if patient is None:
        raise NotFoundError("Patient", appointment.patient_id)

    record = GrowthRecord(
        date=appointment.visit_date,
        weight=appointment.weight,
        height=appointment.height,
    )
    return [Write(WriteOp.PUT, Collection.PATIENTS, entity=patient.with_growth_record(record))]


def _plan_create(state: ClinicState, appointment: Appointment) -> list[Write]:
    _validate(state, appointment)

    entry_id = ledger_entry_id(appointment.id)
    if state.transaction(entry_id) is not None:
        raise DuplicateKeyError("Transaction", entry_id)
    existing = state.linked_transactions(appointment.id)
    if existing:
        raise DuplicateKeyError("Transaction", existing[0].id)

    entry = Transaction(
        id=entry_id,
        doctor_id=appointment.doctor_id,
        date=appointment.visit_date,
        type=TransactionType.INCOME,
        category=CONSULTATION_CATEGORY,
        description=ledger_description(appointment.patient_name),
        amount=appointment.cost,
        related_appointment_id=appointment.id,
    )
    growth = _plan_growth(state, appointment)

    return [
        Write(WriteOp.ADD, Collection.APPOINTMENTS, entity=appointment),
        Write(WriteOp.ADD, Collection.TRANSACTIONS, entity=entry),
        *growth,
    ]


def _plan_update(state: ClinicState, appointment: Appointment) -> tuple[list[Write], bool]:
    existing = state.appointment(appointment.id)
    if existing is None:
        raise NotFoundError("Appointment", appointment.id)
    _validate(state, appointment)
    if existing.doctor_id != appointment.doctor_id:
        raise ValidationError("Appointment owner cannot be changed", field="doctor_id")

    linked = state.linked_transactions(appointment.id)
    if len(linked) > 1:
        raise ConsistencyLookupAmbiguity(appointment.id, [t.id for t in linked])

    growth = _plan_growth(state, appointment)

    writes = [Write(WriteOp.PUT, Collection.APPOINTMENTS, entity=appointment)]
    orphaned = not linked
    if linked:
        entry = linked[0].model_copy(update={
            "amount": appointment.cost,
            "description": ledger_description(appointment.patient_name),
        })
        writes.append(Write(WriteOp.PUT, Collection.TRANSACTIONS, entity=entry))
    else:
        logger.warning(
            "Appointment %s has no linked transaction; ledger left unchanged",
            appointment.id,
        )
    writes.extend(growth)
    return writes, orphaned


def _plan_delete(state: ClinicState, appointment_id: str) -> list[Write]:
    if state.appointment(appointment_id) is None:
        raise NotFoundError("Appointment", appointment_id)

    return [
        Write(WriteOp.DELETE, Collection.APPOINTMENTS, key=appointment_id),
        *(
            Write(WriteOp.DELETE, Collection.TRANSACTIONS, key=t.id)
            for t in state.linked_transactions(appointment_id)
        ),
    ]
