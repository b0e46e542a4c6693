"""
Supabase client wrapper for clinicdesk.

Provides singleton access to the Supabase client and a small document-store
facade (query / get / insert / update / delete / count) over its tables.
"""

import logging
import os
from typing import Any, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import create_client, Client


logger = logging.getLogger(__name__)

# Postgres insufficient_privilege (RLS refused the read, HTTP 403) and the
# PostgREST JWT errors it answers with HTTP 401
PERMISSION_DENIED_CODES = {"42501", "PGRST301", "PGRST302"}


class SupabaseConfig:
  """Configuration for Supabase connection."""

  def __init__(self):
    self.url = os.environ.get("SUPABASE_URL")
    self.anon_key = os.environ.get("SUPABASE_ANON_KEY")
    self.service_key = os.environ.get("SUPABASE_SERVICE_KEY")
    self.jwt_secret = os.environ.get("SUPABASE_JWT_SECRET")

  @property
  def is_configured(self) -> bool:
    """Check if Supabase is properly configured."""
    return bool(self.url and self.anon_key)

  def validate(self) -> None:
    """Raise error if not properly configured."""
    if not self.url:
      raise ValueError("SUPABASE_URL environment variable not set")
    if not self.anon_key:
      raise ValueError("SUPABASE_ANON_KEY environment variable not set")


class SupabaseClient:
  """
  Wrapper around Supabase client with convenience methods.

  Provides both authenticated (user context) and admin (service role) access.
  """

  def __init__(self, client: Client):
    self._client = client

  @property
  def client(self) -> Client:
    """Get the underlying Supabase client."""
    return self._client

  @property
  def auth(self):
    """Get the auth module."""
    return self._client.auth

  def table(self, name: str):
    """Get a table reference for queries."""
    return self._client.table(name)

  # -------------------------------------------------------------------------
  # Auth convenience methods
  # -------------------------------------------------------------------------

  def sign_up(self, email: str, password: str, display_name: Optional[str] = None):
    """Sign up a new admin."""
    credentials = {
      "email": email,
      "password": password,
    }
    if display_name:
      credentials["options"] = {"data": {"display_name": display_name}}
    return self._client.auth.sign_up(credentials)

  def sign_in(self, email: str, password: str):
    """Sign in an existing admin."""
    return self._client.auth.sign_in_with_password({
      "email": email,
      "password": password,
    })

  def sign_out(self) -> None:
    """Sign out the current admin."""
    self._client.auth.sign_out()

  def get_user(self, token: Optional[str] = None):
    """Get the authenticated user, optionally for a specific access token."""
    return self._client.auth.get_user(token)


class StoreError(Exception):
  """Generic failure talking to the document store."""

  def __init__(self, message: str, code: Optional[str] = None):
    self.message = message
    self.code = code
    super().__init__(message)

  @property
  def permission_denied(self) -> bool:
    """True when the store refused the request for lack of privilege."""
    return self.code in PERMISSION_DENIED_CODES


class DocumentStore:
  """
  Collection-oriented facade over Supabase tables.

  Every call is an independent request; errors from PostgREST or the
  transport are raised as StoreError.
  """

  def __init__(self, client: SupabaseClient):
    self._client = client

  @property
  def client(self) -> SupabaseClient:
    return self._client

  def _execute(self, collection: str, action: str, builder) -> Any:
    try:
      return builder.execute()
    except APIError as e:
      logger.warning("Store %s on %s failed: %s (code=%s)", action, collection, e.message, e.code)
      raise StoreError(f"Failed to {action} {collection}", code=e.code) from e
    except httpx.HTTPError as e:
      logger.warning("Store %s on %s failed: %s", action, collection, e)
      raise StoreError(f"Failed to {action} {collection}") from e

  def query(
    self,
    collection: str,
    filters: Optional[dict] = None,
    order_by: Optional[str] = None,
    desc: bool = False,
  ) -> list[dict]:
    """Return rows matching all equality filters."""
    builder = self._client.table(collection).select("*")
    for field, value in (filters or {}).items():
      builder = builder.eq(field, value)
    if order_by:
      builder = builder.order(order_by, desc=desc)
    response = self._execute(collection, "query", builder)
    return response.data or []

  def get(self, collection: str, record_id: str) -> Optional[dict]:
    """Return a single row by id, or None."""
    builder = self._client.table(collection).select("*").eq("id", str(record_id)).limit(1)
    response = self._execute(collection, "read", builder)
    return response.data[0] if response.data else None

  def count(self, collection: str, filters: Optional[dict] = None) -> int:
    """Count rows matching all equality filters."""
    builder = self._client.table(collection).select("id", count="exact")
    for field, value in (filters or {}).items():
      builder = builder.eq(field, value)
    response = self._execute(collection, "count", builder)
    if response.count is not None:
      return response.count
    return len(response.data or [])

  def insert(self, collection: str, record: dict) -> str:
    """Insert a row and return its id."""
    response = self._execute(collection, "insert into", self._client.table(collection).insert(record))
    if not response.data:
      raise StoreError(f"Failed to insert into {collection}")
    return str(response.data[0]["id"])

  def update(self, collection: str, record_id: str, patch: dict) -> Optional[dict]:
    """Apply a partial update and return the updated row."""
    builder = self._client.table(collection).update(patch).eq("id", str(record_id))
    response = self._execute(collection, "update", builder)
    return response.data[0] if response.data else None

  def delete(self, collection: str, record_id: str) -> bool:
    """Delete a row by id."""
    builder = self._client.table(collection).delete().eq("id", str(record_id))
    response = self._execute(collection, "delete from", builder)
    return len(response.data) > 0 if response.data else False


# -----------------------------------------------------------------------------
# Singleton instances
# -----------------------------------------------------------------------------

_client: Optional[SupabaseClient] = None
_admin_client: Optional[SupabaseClient] = None
_config: Optional[SupabaseConfig] = None


def get_config() -> SupabaseConfig:
  """Get the Supabase configuration (singleton)."""
  global _config
  if _config is None:
    _config = SupabaseConfig()
  return _config


def get_client() -> SupabaseClient:
  """
  Get the Supabase client (singleton).

  Uses the anon key, which respects Row Level Security.
  Use this for auth calls made on behalf of an admin.
  """
  global _client
  if _client is None:
    config = get_config()
    config.validate()
    raw_client = create_client(config.url, config.anon_key)
    _client = SupabaseClient(raw_client)
  return _client


def get_admin_client() -> SupabaseClient:
  """
  Get the admin Supabase client (singleton).

  Uses the service_role key, which bypasses Row Level Security.
  Ownership scoping is then enforced by the repositories.
  """
  global _admin_client
  if _admin_client is None:
    config = get_config()
    config.validate()
    if not config.service_key:
      raise ValueError("SUPABASE_SERVICE_KEY environment variable not set")
    raw_client = create_client(config.url, config.service_key)
    _admin_client = SupabaseClient(raw_client)
  return _admin_client


def is_configured() -> bool:
  """Check if Supabase is configured without raising errors."""
  return get_config().is_configured


def reset_clients() -> None:
  """Reset client singletons (useful for testing)."""
  global _client, _admin_client, _config
  _client = None
  _admin_client = None
  _config = None
