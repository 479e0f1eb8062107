"""
Clinic core: consistency rules, access scope and the service that applies
them through the repositories.
"""

from .scope import can_view, visible_to
from .service import ClinicService
from .sync import (
    ClinicState,
    Collection,
    CreateAppointment,
    DeleteAppointment,
    SyncPlan,
    UpdateAppointment,
    Write,
    WriteOp,
    synchronize,
)

__all__ = [
    "can_view",
    "visible_to",
    "ClinicService",
    "ClinicState",
    "Collection",
    "CreateAppointment",
    "DeleteAppointment",
    "SyncPlan",
    "UpdateAppointment",
    "Write",
    "WriteOp",
    "synchronize",
]
