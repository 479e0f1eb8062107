"""
Runtime configuration for PediCare.

All settings come from environment variables so the same code runs under the
HTTP server, the CLI and the tests without a settings file.
"""

import os
from pathlib import Path
from typing import Optional


DEFAULT_DATA_FILE = Path.home() / ".pedicare" / "clinic.json"
DEFAULT_LLM_MODEL = "claude-sonnet-4-20250514"


class ClinicConfig:
  """Configuration read from the environment."""

  def __init__(self):
    # Supabase storage
    self.supabase_url = os.environ.get("SUPABASE_URL")
    self.supabase_anon_key = os.environ.get("SUPABASE_ANON_KEY")
    self.supabase_service_key = os.environ.get("SUPABASE_SERVICE_KEY")
    self.jwt_secret = os.environ.get("SUPABASE_JWT_SECRET")

    # Local snapshot used when Supabase is not configured
    self.data_file = Path(os.environ.get("PEDICARE_DATA_FILE", DEFAULT_DATA_FILE))

    # AI assistant
    self.llm_model = os.environ.get("PEDICARE_LLM_MODEL", DEFAULT_LLM_MODEL)
    self.anthropic_api_key = os.environ.get("ANTHROPIC_API_KEY")

    self.log_level = os.environ.get("PEDICARE_LOG_LEVEL", "INFO").upper()

  @property
  def supabase_configured(self) -> bool:
    """Check if Supabase is properly configured."""
    return bool(self.supabase_url and self.supabase_anon_key)

  def validate_supabase(self, admin: bool = False) -> None:
    """Raise error if Supabase is not properly configured."""
    if not self.supabase_url:
      raise ValueError("SUPABASE_URL environment variable not set")
    if not self.supabase_anon_key:
      raise ValueError("SUPABASE_ANON_KEY environment variable not set")
    if admin and not self.supabase_service_key:
      raise ValueError("SUPABASE_SERVICE_KEY environment variable not set")


_config: Optional[ClinicConfig] = None


def get_config() -> ClinicConfig:
  """Get the configuration (singleton)."""
  global _config
  if _config is None:
    _config = ClinicConfig()
  return _config


def reset_config() -> None:
  """Drop the cached configuration so the environment is read again."""
  global _config
  _config = None
