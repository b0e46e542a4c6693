"""
Services for clinicdesk: account approvals, document assignment, clinics,
dashboard statistics, quotes and image uploads.
"""

from .accounts import BulkResult, bulk_transition, create_account
from .clinics import ClinicForm, save_clinic
from .documents import approved_user_options, assign_document, documents_for_email
from .images import ImageHostClient, delete_image, upload_image, validate_image
from .quotes import QuoteClient, FALLBACK_QUOTES
from .stats import DashboardStats, compute_stats

__all__ = [
    "BulkResult",
    "bulk_transition",
    "create_account",
    "ClinicForm",
    "save_clinic",
    "approved_user_options",
    "assign_document",
    "documents_for_email",
    "ImageHostClient",
    "delete_image",
    "upload_image",
    "validate_image",
    "QuoteClient",
    "FALLBACK_QUOTES",
    "DashboardStats",
    "compute_stats",
]
