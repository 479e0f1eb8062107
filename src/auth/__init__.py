"""
Authentication module for PediCare.

Provides JWT verification and viewer resolution for FastAPI.
"""

from src.auth.middleware import (
  create_token,
  decode_token,
  get_current_user,
  get_admin_user,
)

__all__ = [
  "create_token",
  "decode_token",
  "get_current_user",
  "get_admin_user",
]
