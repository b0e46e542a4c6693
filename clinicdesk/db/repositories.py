"""
Repository classes for database operations.

Each repository handles one collection and scopes every read to the admin
recorded in the row's createdBy field. There is no cross-owner read path; the
only unscoped lookups are the portal's by-email account read and its
document scan, which filter on the portal user's own email.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Type

from pydantic import ValidationError as RecordValidationError

from clinicdesk.db.client import DocumentStore, StoreError
from clinicdesk.models import Account, Clinic, Document, ImageRef, MAX_IMAGES_PER_ACCOUNT
from clinicdesk.models.records import StoredRecord


logger = logging.getLogger(__name__)

OWNER_FIELD = "createdBy"


def utc_now() -> str:
  """Timestamp for fields the application stamps on update."""
  return datetime.now(timezone.utc).isoformat()


class BaseRepository:
  """Base class for all repositories."""

  table_name: str = ""
  model: Type[StoredRecord] = StoredRecord

  def __init__(self, store: DocumentStore):
    self._store = store

  @property
  def store(self) -> DocumentStore:
    return self._store

  def _to_dict(self, obj: Any) -> dict:
    """Convert object to dict for storage."""
    if hasattr(obj, "model_dump"):
      return obj.model_dump(mode="json", by_alias=True, exclude_none=True)
    elif isinstance(obj, dict):
      return obj
    else:
      raise ValueError(f"Cannot convert {type(obj)} to dict")

  def _parse(self, rows: list[dict]) -> list:
    """Validate rows into records, skipping rows that do not fit the model."""
    records = []
    for row in rows:
      try:
        records.append(self.model.from_db(row))
      except RecordValidationError as e:
        logger.warning("Skipping malformed %s row %s: %s", self.table_name, row.get("id"), e)
    return records


class OwnedRepository(BaseRepository):
  """Repository whose rows belong to the admin who created them."""

  def list(self, owner_email: str, **filters) -> list:
    """
    List records owned by an admin.

    A permission-denied response (e.g. RLS on an empty table) reads as
    no records rather than an error.
    """
    query = {OWNER_FIELD: owner_email, **filters}
    try:
      rows = self._store.query(self.table_name, query)
    except StoreError as e:
      if e.permission_denied:
        logger.info("Permission denied listing %s for %s; treating as empty", self.table_name, owner_email)
        return []
      raise
    return self._parse(rows)

  def count(self, owner_email: str, **filters) -> int:
    """Count records owned by an admin."""
    query = {OWNER_FIELD: owner_email, **filters}
    try:
      return self._store.count(self.table_name, query)
    except StoreError as e:
      if e.permission_denied:
        return 0
      raise

  def get_owned(self, record_id: str, owner_email: str):
    """Get a record by id only if the admin owns it."""
    row = self._store.get(self.table_name, record_id)
    if not row or row.get(OWNER_FIELD) != owner_email:
      return None
    parsed = self._parse([row])
    return parsed[0] if parsed else None

  def create(self, data: Any, owner_email: str) -> str:
    """Create a record stamped with its owner. createdAt is set by the database."""
    record = dict(self._to_dict(data))
    record.pop("id", None)
    record.pop("createdAt", None)
    record[OWNER_FIELD] = owner_email
    return self._store.insert(self.table_name, record)

  def update(self, record_id: str, patch: dict) -> Optional[dict]:
    """Apply a partial update."""
    return self._store.update(self.table_name, record_id, patch)

  def delete(self, record_id: str) -> bool:
    """Delete a record. Callers confirm with the admin first."""
    return self._store.delete(self.table_name, record_id)


class AccountRepository(OwnedRepository):
  """Repository for user accounts."""

  table_name = "users"
  model = Account

  def list_approved(self, owner_email: str) -> list[Account]:
    """Approved accounts owned by an admin, for document assignment."""
    return self.list(owner_email, status="approved")

  def get_by_email(self, email: str) -> Optional[Account]:
    """First account with this email, for portal login."""
    rows = self._store.query(self.table_name, {"email": email})
    parsed = self._parse(rows[:1])
    return parsed[0] if parsed else None

  def get(self, account_id: str) -> Optional[Account]:
    row = self._store.get(self.table_name, account_id)
    parsed = self._parse([row]) if row else []
    return parsed[0] if parsed else None

  # -------------------------------------------------------------------------
  # Image array operations
  #
  # Each is a read-modify-write of the whole images array in one update.
  # There is no concurrency token, so two writers race last-write-wins.
  # -------------------------------------------------------------------------

  def _write_images(self, account_id: str, images: list[ImageRef]) -> None:
    self.update(account_id, {"images": [img.to_db() for img in images]})

  def _current_images(self, account_id: str) -> list[ImageRef]:
    account = self.get(account_id)
    if account is None:
      raise StoreError(f"Account {account_id} not found")
    return list(account.images)

  def add_image(self, account_id: str, image: ImageRef) -> list[ImageRef]:
    """Append an image unless an identical one is already present."""
    images = self._current_images(account_id)
    if image in images:
      return images
    if len(images) >= MAX_IMAGES_PER_ACCOUNT:
      raise StoreError(f"Account {account_id} already has {MAX_IMAGES_PER_ACCOUNT} images")
    images.append(image)
    self._write_images(account_id, images)
    return images

  def replace_image(self, account_id: str, old: ImageRef, new: ImageRef) -> list[ImageRef]:
    """Swap every copy of old for new in a single write."""
    images = [img for img in self._current_images(account_id) if img != old]
    if new not in images:
      images.append(new)
    self._write_images(account_id, images)
    return images

  def remove_image(self, account_id: str, image: ImageRef) -> list[ImageRef]:
    """Remove every entry equal to image (all fields) from this account."""
    images = [img for img in self._current_images(account_id) if img != image]
    self._write_images(account_id, images)
    return images


class DocumentRepository(OwnedRepository):
  """Repository for documents."""

  table_name = "documents"
  model = Document

  def list_all(self) -> list[Document]:
    """Every document; the portal filters by assignment afterwards."""
    return self._parse(self._store.query(self.table_name))

  def get(self, document_id: str) -> Optional[Document]:
    row = self._store.get(self.table_name, document_id)
    parsed = self._parse([row]) if row else []
    return parsed[0] if parsed else None


class ClinicRepository(OwnedRepository):
  """Repository for clinics."""

  table_name = "clinics"
  model = Clinic

  def update(self, record_id: str, patch: dict) -> Optional[dict]:
    """Update a clinic, stamping updatedAt."""
    return super().update(record_id, {**patch, "updatedAt": utc_now()})
