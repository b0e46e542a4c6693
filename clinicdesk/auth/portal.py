"""
Portal session for end users.

A portal user "logs in" with nothing but the email of an approved account.
The session token is that bare email, kept in tab-scoped storage on the
client; it proves nothing about who holds it.
"""

import logging
from typing import Optional

from clinicdesk.db.repositories import AccountRepository
from clinicdesk.models import Account
from clinicdesk.validators import is_valid_email


logger = logging.getLogger(__name__)

SESSION_KEY = "userPortalEmail"
LOGIN_PATH = "/user-portal-login"
DASHBOARD_PATH = "/user-portal-dashboard"


class PortalDenied(Exception):
  """Portal login refused; message is shown to the user as-is."""

  def __init__(self, message: str, reason: str, status: Optional[str] = None):
    self.message = message
    self.reason = reason
    self.status = status
    super().__init__(message)


class SessionStorage:
  """Key/value storage whose lifetime is one browser tab."""

  def __init__(self, items: Optional[dict[str, str]] = None):
    self._items: dict[str, str] = dict(items or {})

  def get_item(self, key: str) -> Optional[str]:
    return self._items.get(key)

  def set_item(self, key: str, value: str) -> None:
    self._items[key] = value

  def remove_item(self, key: str) -> None:
    self._items.pop(key, None)


def authenticate_portal_user(accounts: AccountRepository, email: str) -> Account:
  """
  Resolve an email to an approved account.

  Raises PortalDenied with a user-facing message when the email is blank,
  malformed, unknown, or belongs to an account that is not approved.
  """
  email = (email or "").strip()
  if not email:
    raise PortalDenied("Please enter your email address", reason="missing")
  if not is_valid_email(email):
    raise PortalDenied("Please enter a valid email address", reason="invalid")

  account = accounts.get_by_email(email)
  if account is None:
    raise PortalDenied("Email not found. Please contact your administrator.", reason="not_found")

  if not account.is_approved:
    status = account.status.value
    raise PortalDenied(
      f"Your account verification is {status}. Please contact your administrator.",
      reason="not_approved",
      status=status,
    )
  return account


class PortalSession:
  """
  Two-state portal session: unauthenticated until an approved email is stored.
  """

  def __init__(self, storage: SessionStorage, accounts: AccountRepository):
    self._storage = storage
    self._accounts = accounts

  @property
  def current_email(self) -> Optional[str]:
    return self._storage.get_item(SESSION_KEY)

  @property
  def is_authenticated(self) -> bool:
    return self.current_email is not None

  def login(self, email: str) -> Account:
    """Authenticate and store the email; returns the account."""
    account = authenticate_portal_user(self._accounts, email)
    self._storage.set_item(SESSION_KEY, email.strip())
    logger.info("Portal login for %s", account.email)
    return account

  def current_account(self) -> Optional[Account]:
    """
    Resolve the stored email to its account on every use.

    A stored email whose account is missing or no longer approved ends the
    session and raises PortalDenied.
    """
    email = self.current_email
    if email is None:
      return None
    try:
      return authenticate_portal_user(self._accounts, email)
    except PortalDenied:
      self.logout()
      raise

  def logout(self) -> str:
    """Clear the stored email and return the portal login path."""
    self._storage.remove_item(SESSION_KEY)
    return LOGIN_PATH
