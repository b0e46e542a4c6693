"""
Database module for clinicdesk.

Provides the Supabase client, the document-store facade and the
owner-scoped repositories.
"""

from clinicdesk.db.client import (
  get_client,
  get_admin_client,
  SupabaseClient,
  DocumentStore,
  StoreError,
)
from clinicdesk.db.repositories import (
  OwnedRepository,
  AccountRepository,
  DocumentRepository,
  ClinicRepository,
)

__all__ = [
  "get_client",
  "get_admin_client",
  "SupabaseClient",
  "DocumentStore",
  "StoreError",
  "OwnedRepository",
  "AccountRepository",
  "DocumentRepository",
  "ClinicRepository",
]
