"""
Error types for PediCare.

Every condition the core reports derives from `ClinicError`, so the HTTP and
CLI shells can catch one base class and decide how to present it.
"""

from __future__ import annotations

from typing import Any


class ClinicError(Exception):
    """Base class for recoverable clinic-core errors."""


class ValidationError(ClinicError):
    """A mutation is missing a required field. Nothing was persisted."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class NotFoundError(ClinicError):
    """An update or delete targets a record that does not exist."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class DuplicateKeyError(ClinicError):
    """An insert reused an identifier that is already stored."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} already exists: {record_id}")
        self.kind = kind
        self.record_id = record_id


class ConsistencyLookupAmbiguity(ClinicError):
    """
    More than one ledger entry is linked to the same appointment.

    The ledger is already corrupted; no entry is picked and nothing is
    written.
    """

    def __init__(self, appointment_id: str, transaction_ids: list[str]):
        super().__init__(
            f"Appointment {appointment_id} is linked to {len(transaction_ids)} "
            f"transactions: {', '.join(transaction_ids)}"
        )
        self.appointment_id = appointment_id
        self.transaction_ids = transaction_ids


class PartialCascadeFailure(ClinicError):
    """
    The primary write was committed but a cascaded write failed.

    The store is inconsistent until corrected: `applied` lists the writes
    that went through, `failed` the one that raised and `pending` those that
    were never attempted. No rollback is attempted.
    """

    def __init__(self, applied: list[Any], failed: Any, pending: list[Any], cause: BaseException):
        super().__init__(
            f"{failed} failed after {len(applied)} write(s) were committed: {cause}"
        )
        self.applied = applied
        self.failed = failed
        self.pending = pending
        self.cause = cause

    @property
    def primary(self) -> Any:
        return self.applied[0] if self.applied else None


class AccessDeniedError(ClinicError):
    """The viewer's scope does not include the requested record."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} {record_id} is outside the viewer's scope")
        self.kind = kind
        self.record_id = record_id
