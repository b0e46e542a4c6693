"""
clinicdesk: admin console and user portal API for clinic, document and
account-approval records.
"""

__version__ = "0.1.0"
