"""
CSV exporter for document assignments.

Produces the two-column Username,Email listing offered as a download.
Fields are written as-is: a comma or quote inside a username or email is
not escaped and will shift columns.
"""

from __future__ import annotations

from pathlib import Path

from clinicdesk.models import Document

CSV_HEADERS = ["Username", "Email"]
CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


def export_filename(document: Document) -> str:
    """Download name for a document's CSV."""
    return f"{document.document_name}.csv"


def export_csv(document: Document, output_path: Path | None = None) -> str:
    """
    Export a document's assigned users as CSV text.

    Args:
        document: The document to export
        output_path: Optional path to write the CSV file

    Returns:
        Header row plus one row per assigned user, joined by newlines
    """
    rows = [[user.username, user.email] for user in document.assigned_users]
    csv_content = "\n".join([",".join(CSV_HEADERS)] + [",".join(row) for row in rows])

    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(csv_content, encoding="utf-8")

    return csv_content
