"""
Auth middleware for FastAPI.

Resolves the viewer of a request: the bearer JWT's `sub` claim names a user
in the user repository. Persisting "who is logged in" is the client's
concern; every request carries its own token.
"""

from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from src.config import get_config
from src.db.provider import get_repositories
from src.db.repositories import RepositorySet
from src.models import User


ALGORITHM = "HS256"

# HTTP Bearer scheme for Authorization header
security = HTTPBearer(auto_error=False)


def _secret() -> str:
  secret = get_config().jwt_secret
  if not secret:
    raise HTTPException(
      status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
      detail="Authentication not configured"
    )
  return secret


def create_token(user_id: str, expires_in: timedelta = timedelta(hours=8)) -> str:
  """Issue a signed token for `user_id`."""
  claims = {
    "sub": user_id,
    "exp": datetime.now(timezone.utc) + expires_in,
  }
  return jwt.encode(claims, _secret(), algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
  """
  Decode and verify a JWT.

  Supabase-issued tokens carry an `aud` claim we do not check; the signature
  and expiry are verified.
  """
  try:
    return jwt.decode(token, _secret(), algorithms=[ALGORITHM], options={"verify_aud": False})
  except JWTError as e:
    raise HTTPException(
      status_code=status.HTTP_401_UNAUTHORIZED,
      detail=f"Token validation failed: {str(e)}"
    )


async def get_current_user(
  credentials: HTTPAuthorizationCredentials = Depends(security),
  repos: RepositorySet = Depends(get_repositories),
) -> User:
  """
  Dependency to get the current viewer.

  Raises 401 if not authenticated or if the token names an unknown user.
  """
  if not credentials:
    raise HTTPException(
      status_code=status.HTTP_401_UNAUTHORIZED,
      detail="Authentication required",
      headers={"WWW-Authenticate": "Bearer"},
    )

  token_data = decode_token(credentials.credentials)
  user = repos.users.get(token_data.get("sub", ""))
  if user is None:
    raise HTTPException(
      status_code=status.HTTP_401_UNAUTHORIZED,
      detail="Unknown user"
    )
  return user


async def get_admin_user(
  user: User = Depends(get_current_user)
) -> User:
  """
  Dependency to require admin role.

  Raises 403 if user is not an admin.
  """
  if not user.is_admin:
    raise HTTPException(
      status_code=status.HTTP_403_FORBIDDEN,
      detail="Admin access required"
    )
  return user
