"""
Record models for clinicdesk.

One model per store collection. Rows are validated here, at the store-adapter
boundary, before they reach services or endpoints. Stored field names are
camelCase; Python attributes are snake_case with aliases.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


MAX_IMAGES_PER_ACCOUNT = 3


class AccountRole(str, Enum):
  """Roles an admin can give an account."""

  ADMIN = "admin"
  USER = "user"


class AccountStatus(str, Enum):
  """Approval state of an account."""

  PENDING = "pending"
  APPROVED = "approved"
  REJECTED = "rejected"


class StoredRecord(BaseModel):
  """Base for rows read from the document store."""

  class Config:
    populate_by_name = True
    from_attributes = True

  @classmethod
  def from_db(cls, data: dict):
    """Create the record from a database row."""
    row = dict(data)
    if "id" in row and row["id"] is not None:
      row["id"] = str(row["id"])
    return cls.model_validate(row)

  def to_api(self) -> dict:
    """Serialize with stored (camelCase) field names."""
    return self.model_dump(mode="json", by_alias=True)


class ImageRef(BaseModel):
  """
  A profile image hosted externally.

  Two refs are the same image only when every field matches.
  """

  url: str
  display_url: Optional[str] = None
  thumb_url: Optional[str] = None
  medium_url: Optional[str] = None
  delete_url: Optional[str] = None
  image_id: str
  uploaded_at: str = Field(alias="uploadedAt")
  filename: str

  class Config:
    populate_by_name = True

  def to_db(self) -> dict:
    return self.model_dump(mode="json", by_alias=True)


class AssignedUser(BaseModel):
  """Snapshot of an account taken when a document is assigned."""

  id: str
  username: str
  email: str


class Account(StoredRecord):
  """A user account created and approved by an admin."""

  id: str
  username: str
  email: str
  role: AccountRole = AccountRole.USER
  status: AccountStatus = AccountStatus.PENDING
  rejection_reason: Optional[str] = Field(None, alias="rejectionReason")
  rejected_at: Optional[datetime] = Field(None, alias="rejectedAt")
  created_by: str = Field(alias="createdBy")
  created_at: Optional[datetime] = Field(None, alias="createdAt")
  images: list[ImageRef] = Field(default_factory=list, max_length=MAX_IMAGES_PER_ACCOUNT)

  @field_validator("images", mode="before")
  @classmethod
  def _images_default(cls, value):
    return value or []

  @property
  def is_approved(self) -> bool:
    return self.status == AccountStatus.APPROVED

  def snapshot(self) -> AssignedUser:
    """Copy of the identifying fields for document assignment."""
    return AssignedUser(id=self.id, username=self.username, email=self.email)


class Document(StoredRecord):
  """A named document assigned to approved accounts."""

  id: str
  document_name: str = Field(alias="documentName")
  assigned_users: list[AssignedUser] = Field(default_factory=list, alias="assignedUsers")
  created_by: str = Field(alias="createdBy")
  created_at: Optional[datetime] = Field(None, alias="createdAt")

  @field_validator("assigned_users", mode="before")
  @classmethod
  def _assigned_default(cls, value):
    return value or []

  def is_assigned_to(self, email: str) -> bool:
    """Check if an account with this email is assigned."""
    return any(u.email == email for u in self.assigned_users)


class Clinic(StoredRecord):
  """A clinic record managed by its owning admin."""

  id: str
  clinic_name: str = Field(alias="clinicName")
  doctor_name: str = Field(alias="doctorName")
  clinic_mail: str = Field(alias="clinicMail")
  clinic_number: Optional[str] = Field(None, alias="clinicNumber")
  establishment_date: Optional[str] = Field(None, alias="establishmentDate")
  location: Optional[str] = None
  panchakrma: Optional[str] = None
  number_of_patients: Optional[str] = Field(None, alias="numberOfPatients")
  revenue: Optional[str] = None
  created_by: str = Field(alias="createdBy")
  created_at: Optional[datetime] = Field(None, alias="createdAt")
  updated_at: Optional[datetime] = Field(None, alias="updatedAt")

  @field_validator("clinic_number", "number_of_patients", "revenue", mode="before")
  @classmethod
  def _numbers_as_text(cls, value):
    if isinstance(value, (int, float)):
      return str(value)
    return value
