"""
Input checks shared by admin forms and the portal login.
"""

import re


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(email: str) -> bool:
  """Loose syntactic check: something@something.tld with no spaces."""
  return bool(EMAIL_PATTERN.match(email or ""))
