"""
Data models for PediCare.
"""

from .patient import (
    Appointment,
    AppointmentStatus,
    GrowthRecord,
    Patient,
    Sex,
    Transaction,
    TransactionType,
    generate_id,
)
from .user import ClinicInfo, User, UserRole

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "ClinicInfo",
    "GrowthRecord",
    "Patient",
    "Sex",
    "Transaction",
    "TransactionType",
    "User",
    "UserRole",
    "generate_id",
]
