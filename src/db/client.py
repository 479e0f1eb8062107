"""
Supabase client wrapper for PediCare.

Holds the anon and service-role clients as lazily created singletons.
Connection settings come from `src.config`.
"""

from typing import Optional

from supabase import create_client, Client

from src.config import get_config, reset_config


class SupabaseClient:
  """Thin wrapper so repositories depend on `table()` and nothing else."""

  def __init__(self, client: Client):
    self._client = client

  def table(self, name: str):
    """Get a table reference for queries."""
    return self._client.table(name)


_client: Optional[SupabaseClient] = None
_admin_client: Optional[SupabaseClient] = None


def _connect(key: str) -> SupabaseClient:
  return SupabaseClient(create_client(get_config().supabase_url, key))


def get_client() -> SupabaseClient:
  """
  Get the Supabase client (singleton).

  Uses the anon key, which respects Row Level Security.
  """
  global _client
  if _client is None:
    config = get_config()
    config.validate_supabase()
    _client = _connect(config.supabase_anon_key)
  return _client


def get_admin_client() -> SupabaseClient:
  """
  Get the service-role client (singleton).

  Row Level Security is bypassed; the clinic applies its own access scope
  on reads, so server-side writes go through this client.
  """
  global _admin_client
  if _admin_client is None:
    config = get_config()
    config.validate_supabase(admin=True)
    _admin_client = _connect(config.supabase_service_key)
  return _admin_client


def is_configured() -> bool:
  return get_config().supabase_configured


def reset_clients() -> None:
  """Drop both clients and the cached configuration."""
  global _client, _admin_client
  _client = None
  _admin_client = None
  reset_config()
