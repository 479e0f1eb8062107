"""
Access scope: which records a viewer may see.

Admins see everything; doctors see the records they own. The rule is the
same for patients, appointments and transactions, so it is written once
against anything that carries a `doctor_id`.
"""

from typing import Iterable, Protocol, TypeVar

from src.models import User


class Owned(Protocol):
  doctor_id: str


R = TypeVar("R", bound=Owned)


def can_view(viewer: User, record: Owned) -> bool:
  """Check if `viewer` may see `record`."""
  return viewer.is_admin or record.doctor_id == viewer.id


def visible_to(viewer: User, records: Iterable[R]) -> list[R]:
  """
  Narrow a collection to the viewer's scope, keeping the input order.

  An admin gets the input back unfiltered.
  """
  records = list(records)
  if viewer.is_admin:
    return records
  return [r for r in records if r.doctor_id == viewer.id]
