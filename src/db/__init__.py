"""
Database module for PediCare.

Provides the repository contract, its Supabase and in-memory
implementations, and JSON snapshots.
"""

from src.db.client import get_client, get_admin_client, is_configured, SupabaseClient
from src.db.repositories import (
  Repository,
  RepositorySet,
  UserRepository,
  PatientRepository,
  AppointmentRepository,
  TransactionRepository,
  supabase_repositories,
)
from src.db.memory import (
  InMemoryRepository,
  Snapshot,
  load_snapshot,
  memory_repositories,
  save_snapshot,
  take_snapshot,
)

__all__ = [
  "get_client",
  "get_admin_client",
  "is_configured",
  "SupabaseClient",
  "Repository",
  "RepositorySet",
  "UserRepository",
  "PatientRepository",
  "AppointmentRepository",
  "TransactionRepository",
  "supabase_repositories",
  "InMemoryRepository",
  "Snapshot",
  "load_snapshot",
  "memory_repositories",
  "save_snapshot",
  "take_snapshot",
]
