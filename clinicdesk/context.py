"""
Application context for clinicdesk.

One AppContext is built when the process starts and handed to every consumer
(FastAPI dependencies, CLI commands). It is closed on shutdown; tests build
their own.
"""

from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import HTTPException, Request

from clinicdesk.config import Settings, get_settings
from clinicdesk.db.client import DocumentStore, SupabaseClient, get_admin_client, get_client, get_config
from clinicdesk.db.repositories import AccountRepository, ClinicRepository, DocumentRepository
from clinicdesk.services.images import ImageHostClient
from clinicdesk.services.quotes import QuoteClient


@dataclass
class AppContext:
  """Everything a request or command needs to reach the store and external services."""
  settings: Settings
  client: Optional[SupabaseClient]
  auth_client: Optional[SupabaseClient]
  store: DocumentStore
  accounts: AccountRepository
  documents: DocumentRepository
  clinics: ClinicRepository
  image_host: ImageHostClient
  quotes: QuoteClient
  jwt_secret: Optional[str] = None

  def close(self) -> None:
    """Release HTTP connections held by the external-service clients."""
    self.image_host.close()
    self.quotes.close()


def build_context(
  client: Optional[SupabaseClient] = None,
  auth_client: Optional[SupabaseClient] = None,
  settings: Optional[Settings] = None,
  http_client: Optional[httpx.Client] = None,
  jwt_secret: Optional[str] = None,
) -> AppContext:
  """
  Build the application context.

  Without an explicit client the service-role Supabase client is used for
  data and the anon client for admin auth; ownership scoping is enforced by
  the repositories.
  """
  settings = settings or get_settings()
  if client is None:
    client = get_admin_client()
    auth_client = auth_client or get_client()
    jwt_secret = jwt_secret or get_config().jwt_secret

  store = DocumentStore(client)
  return AppContext(
    settings=settings,
    client=client,
    auth_client=auth_client or client,
    store=store,
    accounts=AccountRepository(store),
    documents=DocumentRepository(store),
    clinics=ClinicRepository(store),
    image_host=ImageHostClient(
      api_key=settings.imgbb_api_key,
      api_url=settings.imgbb_api_url,
      http_client=http_client,
    ),
    quotes=QuoteClient(api_url=settings.quote_api_url, http_client=http_client),
    jwt_secret=jwt_secret,
  )


def get_context(request: Request) -> AppContext:
  """FastAPI dependency returning the context built at startup."""
  ctx = getattr(request.app.state, "context", None)
  if ctx is None:
    try:
      ctx = build_context()
    except ValueError as e:
      raise HTTPException(status_code=503, detail=f"Database not configured: {e}")
    request.app.state.context = ctx
  return ctx
