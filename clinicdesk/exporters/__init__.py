"""
Export functionality for clinicdesk.
"""

from .csv_export import export_csv, export_filename, CSV_MEDIA_TYPE

__all__ = [
    "export_csv",
    "export_filename",
    "CSV_MEDIA_TYPE",
]
