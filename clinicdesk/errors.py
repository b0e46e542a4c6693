"""
Exception types shared across clinicdesk services.
"""


class ValidationError(Exception):
  """Input rejected before any store or network call."""

  def __init__(self, message: str):
    self.message = message
    super().__init__(message)


class NotFoundError(Exception):
  """Record does not exist or is not visible to the caller."""


class ImageUploadError(Exception):
  """The image host refused or failed an upload."""

  def __init__(self, message: str = "Failed to upload image.", details: dict = None):
    self.message = message
    self.details = details or {}
    super().__init__(message)
