"""
Authentication module for clinicdesk.

Admin routes use Supabase Auth tokens; the user portal uses the
email-only PortalSession.
"""

from clinicdesk.auth.middleware import (
  get_current_user,
  decode_token,
  AuthenticatedUser,
)
from clinicdesk.auth.portal import (
  PortalDenied,
  PortalSession,
  SessionStorage,
  authenticate_portal_user,
)

__all__ = [
  "get_current_user",
  "decode_token",
  "AuthenticatedUser",
  "PortalDenied",
  "PortalSession",
  "SessionStorage",
  "authenticate_portal_user",
]
