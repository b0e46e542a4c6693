"""
Application settings for clinicdesk.

Values come from environment variables; Supabase settings live in
clinicdesk.db.client alongside the client they configure.
"""

import logging
import os
from typing import Optional


DEFAULT_IMGBB_API_URL = "https://api.imgbb.com"
DEFAULT_QUOTE_API_URL = "https://api.quotable.io"


class Settings:
  """Settings for external services and logging."""

  def __init__(self):
    self.imgbb_api_key = os.environ.get("IMGBB_API_KEY", "")
    self.imgbb_api_url = os.environ.get("IMGBB_API_URL", DEFAULT_IMGBB_API_URL).rstrip("/")
    self.quote_api_url = os.environ.get("QUOTE_API_URL", DEFAULT_QUOTE_API_URL).rstrip("/")
    self.log_level = os.environ.get("LOG_LEVEL", "INFO")

  @property
  def image_host_configured(self) -> bool:
    """Check if an image host API key is available."""
    return bool(self.imgbb_api_key)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
  """Get the application settings (singleton)."""
  global _settings
  if _settings is None:
    _settings = Settings()
  return _settings


def reset_settings() -> None:
  """Reset the settings singleton (useful for testing)."""
  global _settings
  _settings = None


def configure_logging(level: Optional[str] = None) -> None:
  """Configure root logging from LOG_LEVEL unless a level is given."""
  level_name = (level or get_settings().log_level).upper()
  logging.basicConfig(
    level=getattr(logging, level_name, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
  )
