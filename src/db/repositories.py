"""
Repository classes for database operations.

Every entity type is stored in its own collection behind the same five
operations: `add`, `put` (upsert by id), `delete`, `all` and
`find_one_by_field`. The clinic core depends on this contract only, so a
Supabase table and an in-memory dict are interchangeable.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from postgrest.exceptions import APIError
from pydantic import BaseModel

from src.db.client import get_client, get_admin_client, SupabaseClient
from src.errors import DuplicateKeyError
from src.models import Appointment, Patient, Transaction, User

M = TypeVar("M", bound=BaseModel)

# Postgres unique_violation
UNIQUE_VIOLATION = "23505"


class Repository(ABC, Generic[M]):
  """Persistent collection of one entity type, keyed by `id`."""

  model: type[M]

  @abstractmethod
  def add(self, entity: M) -> M:
    """Insert a new entity. Raises DuplicateKeyError if the id is taken."""

  @abstractmethod
  def put(self, entity: M) -> M:
    """Insert or replace the entity with the same id."""

  @abstractmethod
  def delete(self, entity_id: str) -> bool:
    """Delete by id. Returns False if nothing was deleted."""

  @abstractmethod
  def all(self) -> list[M]:
    """Snapshot of the whole collection."""

  @abstractmethod
  def find_one_by_field(self, field: str, value: Any) -> Optional[M]:
    """First entity whose `field` equals `value`, or None."""

  def get(self, entity_id: str) -> Optional[M]:
    """Get entity by ID."""
    return self.find_one_by_field("id", entity_id)


class BaseRepository(Repository[M]):
  """Supabase-backed repository; one table per entity type."""

  table_name: str = ""

  def __init__(self, client: Optional[SupabaseClient] = None, use_admin: bool = False):
    """
    Initialize repository with optional client.

    Args:
      client: Supabase client to use. If None, gets default client.
      use_admin: If True and no client provided, use admin client.
    """
    if client:
      self._client = client
    elif use_admin:
      self._client = get_admin_client()
    else:
      self._client = get_client()

  @property
  def table(self):
    """Get the table reference."""
    return self._client.table(self.table_name)

  def _to_dict(self, entity: M) -> dict:
    """Convert entity to a row. None values are kept so upserts clear columns."""
    return entity.model_dump(mode="json")

  def _from_row(self, row: dict) -> M:
    return self.model.model_validate(row)

  def add(self, entity: M) -> M:
    try:
      response = self.table.insert(self._to_dict(entity)).execute()
    except APIError as e:
      if e.code == UNIQUE_VIOLATION:
        raise DuplicateKeyError(self.model.__name__, entity.id) from e
      raise
    return self._from_row(response.data[0]) if response.data else entity

  def put(self, entity: M) -> M:
    response = self.table.upsert(self._to_dict(entity)).execute()
    return self._from_row(response.data[0]) if response.data else entity

  def delete(self, entity_id: str) -> bool:
    response = self.table.delete().eq("id", str(entity_id)).execute()
    return len(response.data) > 0 if response.data else False

  def all(self) -> list[M]:
    response = self.table.select("*").execute()
    return [self._from_row(row) for row in response.data or []]

  def find_one_by_field(self, field: str, value: Any) -> Optional[M]:
    response = self.table.select("*").eq(field, value).limit(1).execute()
    return self._from_row(response.data[0]) if response.data else None


class UserRepository(BaseRepository[User]):
  """Repository for practice users."""

  table_name = "users"
  model = User


class PatientRepository(BaseRepository[Patient]):
  """Repository for patients; growth history is stored as a JSONB column."""

  table_name = "patients"
  model = Patient


class AppointmentRepository(BaseRepository[Appointment]):
  """Repository for appointments and consultations."""

  table_name = "appointments"
  model = Appointment


class TransactionRepository(BaseRepository[Transaction]):
  """Repository for ledger entries."""

  table_name = "transactions"
  model = Transaction


@dataclass
class RepositorySet:
  """The four collections the clinic works with."""

  users: Repository[User]
  patients: Repository[Patient]
  appointments: Repository[Appointment]
  transactions: Repository[Transaction]


def supabase_repositories(client: Optional[SupabaseClient] = None, use_admin: bool = True) -> RepositorySet:
  """Build a RepositorySet over Supabase tables sharing one client."""
  if client is None:
    client = get_admin_client() if use_admin else get_client()
  return RepositorySet(
    users=UserRepository(client),
    patients=PatientRepository(client),
    appointments=AppointmentRepository(client),
    transactions=TransactionRepository(client),
  )
