"""
Process-wide repository provider for the shells.

Supabase when it is configured; otherwise in-memory repositories loaded from
the local snapshot file, seeded with demo data when the file does not exist.
"""

import logging
from typing import Optional

from src.config import get_config
from src.db.client import is_configured
from src.db.memory import load_snapshot, memory_repositories
from src.db.repositories import RepositorySet, supabase_repositories
from src.db.seed import demo_snapshot

logger = logging.getLogger(__name__)

_repos: Optional[RepositorySet] = None


def get_repositories() -> RepositorySet:
  """Get the repository set (singleton)."""
  global _repos
  if _repos is None:
    if is_configured():
      logger.info("Using Supabase repositories")
      _repos = supabase_repositories()
    else:
      data_file = get_config().data_file
      if data_file.exists():
        logger.info("Using snapshot repositories from %s", data_file)
        _repos = load_snapshot(data_file)
      else:
        logger.info("No data file at %s; starting from demo data", data_file)
        _repos = memory_repositories(demo_snapshot())
  return _repos


def set_repositories(repos: Optional[RepositorySet]) -> None:
  """Replace the repository set (None resets it)."""
  global _repos
  _repos = repos
