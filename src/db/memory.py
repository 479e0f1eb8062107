"""
In-memory repositories and JSON snapshots.

Used by the CLI (backed by a snapshot file), by the server when Supabase is
not configured, and by the tests.
"""

from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field

from src.db.repositories import M, Repository, RepositorySet
from src.errors import DuplicateKeyError
from src.models import Appointment, Patient, Transaction, User


class InMemoryRepository(Repository[M]):
  """
  Dict-backed repository.

  Insertion order is kept and `put` on an existing id replaces in place.
  Entities are copied on the way in and out so callers never alias stored
  state.
  """

  def __init__(self, model: type[M], entities: Iterable[M] = ()):
    self.model = model
    self._rows: dict[str, M] = {}
    for entity in entities:
      self.add(entity)

  def add(self, entity: M) -> M:
    if entity.id in self._rows:
      raise DuplicateKeyError(self.model.__name__, entity.id)
    self._rows[entity.id] = entity.model_copy(deep=True)
    return entity

  def put(self, entity: M) -> M:
    self._rows[entity.id] = entity.model_copy(deep=True)
    return entity

  def delete(self, entity_id: str) -> bool:
    return self._rows.pop(entity_id, None) is not None

  def all(self) -> list[M]:
    return [row.model_copy(deep=True) for row in self._rows.values()]

  def find_one_by_field(self, field: str, value: Any) -> Optional[M]:
    for row in self._rows.values():
      if getattr(row, field, None) == value:
        return row.model_copy(deep=True)
    return None

  def __len__(self) -> int:
    return len(self._rows)


class Snapshot(BaseModel):
  """Serializable dump of every collection."""

  users: list[User] = Field(default_factory=list)
  patients: list[Patient] = Field(default_factory=list)
  appointments: list[Appointment] = Field(default_factory=list)
  transactions: list[Transaction] = Field(default_factory=list)


def memory_repositories(snapshot: Optional[Snapshot] = None) -> RepositorySet:
  """Build in-memory repositories, optionally pre-loaded from a snapshot."""
  snapshot = snapshot or Snapshot()
  return RepositorySet(
    users=InMemoryRepository(User, snapshot.users),
    patients=InMemoryRepository(Patient, snapshot.patients),
    appointments=InMemoryRepository(Appointment, snapshot.appointments),
    transactions=InMemoryRepository(Transaction, snapshot.transactions),
  )


def take_snapshot(repos: RepositorySet) -> Snapshot:
  return Snapshot(
    users=repos.users.all(),
    patients=repos.patients.all(),
    appointments=repos.appointments.all(),
    transactions=repos.transactions.all(),
  )


def load_snapshot(path: Path) -> RepositorySet:
  """Load repositories from a JSON snapshot file; a missing file gives empty ones."""
  path = Path(path)
  if not path.exists():
    return memory_repositories()
  return memory_repositories(Snapshot.model_validate_json(path.read_text()))


def save_snapshot(repos: RepositorySet, path: Path) -> Path:
  """Write every collection to a JSON snapshot file."""
  path = Path(path)
  path.parent.mkdir(parents=True, exist_ok=True)
  path.write_text(take_snapshot(repos).model_dump_json(indent=2))
  return path
