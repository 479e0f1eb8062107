"""
User models for the PediCare practice.

Users are the identities that see and own clinical records: doctors own
patients, appointments and ledger entries; admins own nothing but may see
everything.
"""

from datetime import date
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, EmailStr, Field


def generate_user_id() -> str:
  """Generate a user identifier in the practice's `u-` namespace."""
  return f"u-{str(uuid4())[:8]}"


class UserRole(str, Enum):
  """User roles for access control."""

  ADMIN = "ADMIN"
  DOCTOR = "DOCTOR"


class ClinicInfo(BaseModel):
  """Clinic branding shown on reports and prescriptions."""

  model_config = ConfigDict(from_attributes=True)

  name: str
  address: str
  phone: str
  email: str
  website: Optional[str] = None
  logo: Optional[str] = None  # data URI or URL, rendered by the shell


class User(BaseModel):
  """
  A practice user.

  The role is fixed at creation; there is no role-change operation.
  """

  model_config = ConfigDict(from_attributes=True)

  id: str = Field(default_factory=generate_user_id)
  name: str
  email: EmailStr
  role: UserRole = UserRole.DOCTOR
  specialty: Optional[str] = None
  professional_id: Optional[str] = None
  birth_date: Optional[date] = None
  photo: Optional[str] = None
  clinic_info: Optional[ClinicInfo] = None

  @property
  def is_admin(self) -> bool:
    """Check if user is an admin."""
    return self.role == UserRole.ADMIN

  @property
  def is_doctor(self) -> bool:
    return self.role == UserRole.DOCTOR
