"""
Document assignment.
"""

from __future__ import annotations

from typing import Iterable

from clinicdesk.db.repositories import AccountRepository, DocumentRepository
from clinicdesk.errors import ValidationError
from clinicdesk.models import Account, Document


def approved_user_options(accounts: AccountRepository, owner_email: str) -> list[dict]:
    """Approved accounts of an admin, shaped for a multi-select."""
    return [
        {
            "value": account.id,
            "label": f"{account.username} ({account.email})",
            "username": account.username,
            "email": account.email,
        }
        for account in accounts.list_approved(owner_email)
    ]


def assign_document(
    documents: DocumentRepository,
    accounts: AccountRepository,
    owner_email: str,
    document_name: str,
    user_ids: Iterable[str],
) -> str:
    """
    Create a document assigned to approved accounts of the admin.

    Each assignee's id, username and email are copied into the document;
    later edits to the account do not reach existing documents.
    """
    name = (document_name or "").strip()
    if not name:
        raise ValidationError("Please enter a document name.")

    ids = list(dict.fromkeys(user_ids or []))
    if not ids:
        raise ValidationError("Please select at least one approved user.")

    approved: dict[str, Account] = {a.id: a for a in accounts.list_approved(owner_email)}
    unknown = [i for i in ids if i not in approved]
    if unknown:
        raise ValidationError(f"Only approved users can be assigned: {', '.join(unknown)}")

    assigned = [approved[i].snapshot().model_dump() for i in ids]
    return documents.create(
        {"documentName": name, "assignedUsers": assigned},
        owner_email,
    )


def documents_for_email(documents: DocumentRepository, email: str) -> list[Document]:
    """Documents whose assignment list contains this email."""
    return [doc for doc in documents.list_all() if doc.is_assigned_to(email)]
