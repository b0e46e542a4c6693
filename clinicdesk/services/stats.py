"""
Dashboard statistics and greeting.

The four counts are separate scoped queries; under concurrent writes they can
describe slightly different moments.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime

from clinicdesk.db.repositories import AccountRepository, DocumentRepository
from clinicdesk.models import AccountStatus


@dataclass
class DashboardStats:
    total_users: int = 0
    pending_approvals: int = 0
    rejected_users: int = 0
    total_documents: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def compute_stats(
    accounts: AccountRepository,
    documents: DocumentRepository,
    owner_email: str,
) -> DashboardStats:
    """Count the admin's accounts, pending and rejected accounts, and documents."""
    return DashboardStats(
        total_users=accounts.count(owner_email),
        pending_approvals=accounts.count(owner_email, status=AccountStatus.PENDING.value),
        rejected_users=accounts.count(owner_email, status=AccountStatus.REJECTED.value),
        total_documents=documents.count(owner_email),
    )


def greeting_for(now: datetime) -> dict:
    """Time-of-day greeting."""
    hour = now.hour
    if hour < 12:
        return {"emoji": "🌅", "text": "Good Morning"}
    if hour < 17:
        return {"emoji": "☀️", "text": "Good Afternoon"}
    if hour < 21:
        return {"emoji": "🌆", "text": "Good Evening"}
    return {"emoji": "🌙", "text": "Good Night"}


def formatted_date(now: datetime) -> str:
    """Date line such as 'Monday, Oct 19'."""
    return now.strftime("%A, %b %d")


def display_name_for(display_name: str | None, email: str | None) -> str:
    """First word of the display name, else the email's local part."""
    if display_name:
        return display_name.split(" ")[0]
    if email:
        return email.split("@")[0]
    return "User"
