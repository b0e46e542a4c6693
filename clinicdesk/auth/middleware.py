"""
Auth middleware for FastAPI.

Provides dependency injection for admin-authenticated routes.
"""

import logging
from typing import Optional
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from clinicdesk.context import AppContext, get_context


logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
AUDIENCE = "authenticated"

# HTTP Bearer scheme for Authorization header
security = HTTPBearer(auto_error=False)


@dataclass
class AuthenticatedUser:
  """The admin identity every owner-scoped query runs as."""
  id: str
  email: str
  display_name: Optional[str] = None


def decode_token(token: str, ctx: AppContext) -> dict:
  """
  Verify a Supabase access token.

  With SUPABASE_JWT_SECRET set the token is checked locally; otherwise
  Supabase Auth is asked to resolve it.
  """
  if ctx.jwt_secret:
    try:
      claims = jwt.decode(token, ctx.jwt_secret, algorithms=[ALGORITHM], audience=AUDIENCE)
    except JWTError as e:
      raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=f"Token validation failed: {str(e)}"
      )
    metadata = claims.get("user_metadata") or {}
    return {
      "sub": claims.get("sub"),
      "email": claims.get("email"),
      "display_name": metadata.get("display_name") or metadata.get("full_name"),
    }

  if ctx.auth_client is None:
    raise HTTPException(
      status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
      detail="Database not configured"
    )

  try:
    user_response = ctx.auth_client.get_user(token)
  except Exception as e:
    logger.info("Token rejected by auth provider: %s", e)
    raise HTTPException(
      status_code=status.HTTP_401_UNAUTHORIZED,
      detail=f"Token validation failed: {str(e)}"
    )

  if not user_response or not user_response.user:
    raise HTTPException(
      status_code=status.HTTP_401_UNAUTHORIZED,
      detail="Invalid or expired token"
    )

  metadata = getattr(user_response.user, "user_metadata", None) or {}
  return {
    "sub": user_response.user.id,
    "email": user_response.user.email,
    "display_name": metadata.get("display_name") or metadata.get("full_name"),
  }


async def get_current_user(
  credentials: HTTPAuthorizationCredentials = Depends(security),
  ctx: AppContext = Depends(get_context),
) -> AuthenticatedUser:
  """
  Dependency to get the current admin.

  Use this for every admin route. Raises 401 if not authenticated.
  """
  if not credentials:
    raise HTTPException(
      status_code=status.HTTP_401_UNAUTHORIZED,
      detail="Authentication required",
      headers={"WWW-Authenticate": "Bearer"},
    )

  token_data = decode_token(credentials.credentials, ctx)

  if not token_data.get("sub") or not token_data.get("email"):
    raise HTTPException(
      status_code=status.HTTP_401_UNAUTHORIZED,
      detail="Token has no subject or email"
    )

  return AuthenticatedUser(
    id=str(token_data["sub"]),
    email=token_data["email"],
    display_name=token_data.get("display_name"),
  )
