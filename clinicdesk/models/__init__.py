"""
Record models for clinicdesk.
"""

from clinicdesk.models.records import (
  MAX_IMAGES_PER_ACCOUNT,
  Account,
  AccountRole,
  AccountStatus,
  AssignedUser,
  Clinic,
  Document,
  ImageRef,
)

__all__ = [
  "MAX_IMAGES_PER_ACCOUNT",
  "Account",
  "AccountRole",
  "AccountStatus",
  "AssignedUser",
  "Clinic",
  "Document",
  "ImageRef",
]
