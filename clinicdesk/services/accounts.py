"""
Account creation and bulk status transitions.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable

from clinicdesk.validators import is_valid_email
from clinicdesk.db.client import StoreError
from clinicdesk.db.repositories import AccountRepository, utc_now
from clinicdesk.errors import ValidationError
from clinicdesk.models import AccountRole, AccountStatus

logger = logging.getLogger(__name__)

MAX_BULK_WORKERS = 8


@dataclass
class BulkResult:
    """Aggregate outcome of a bulk transition. Per-record outcomes are not kept."""

    requested: int
    succeeded: int

    @property
    def failed(self) -> int:
        return self.requested - self.succeeded

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> dict:
        return {
            "requested": self.requested,
            "succeeded": self.succeeded,
            "failed": self.failed,
        }


def _parse_choice(enum_cls, value, message: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(message)


def create_account(
    accounts: AccountRepository,
    owner_email: str,
    username: str,
    email: str,
    role: str,
    status: str,
) -> str:
    """Create an account owned by the admin. Returns the new id."""
    username = (username or "").strip()
    email = (email or "").strip()
    if not username or not email:
        raise ValidationError("Please fill in all required fields.")
    if not is_valid_email(email):
        raise ValidationError("Please enter a valid email address")
    role = _parse_choice(AccountRole, role, "Please select a role.")
    status = _parse_choice(AccountStatus, status, "Please select a status.")

    return accounts.create(
        {
            "username": username,
            "email": email,
            "role": role.value,
            "status": status.value,
            "images": [],
        },
        owner_email,
    )


def transition_patch(status: AccountStatus, reason: str | None = None) -> dict:
    """
    Build the update for one account.

    Rejection carries its reason and a timestamp; every other status clears both.
    """
    if status == AccountStatus.REJECTED:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Please provide a reason for rejection.")
        return {
            "status": status.value,
            "rejectionReason": reason,
            "rejectedAt": utc_now(),
        }
    return {
        "status": status.value,
        "rejectionReason": None,
        "rejectedAt": None,
    }


def bulk_transition(
    accounts: AccountRepository,
    account_ids: Iterable[str],
    status: str | AccountStatus | None,
    reason: str | None = None,
    owner_email: str | None = None,
) -> BulkResult:
    """
    Apply one status to many accounts concurrently and wait for all of them.

    Writes that already committed stay committed when others fail; only the
    number of successes is reported. With owner_email, ids the admin does not
    own are not written and count as failures.
    """
    if not status:
        raise ValidationError("Please select an action.")
    ids = list(dict.fromkeys(account_ids))
    if not ids:
        raise ValidationError("Please select at least one user.")

    target = _parse_choice(AccountStatus, status, "Please select an action.")
    patch = transition_patch(target, reason)

    owned = None
    if owner_email is not None:
        owned = {account.id for account in accounts.list(owner_email)}

    def apply(account_id: str) -> bool:
        if owned is not None and account_id not in owned:
            logger.warning("Skipping account %s not owned by %s", account_id, owner_email)
            return False
        try:
            accounts.update(account_id, patch)
            return True
        except StoreError as e:
            logger.error("Status update to %s failed for account %s: %s", target.value, account_id, e)
            return False

    with ThreadPoolExecutor(max_workers=min(MAX_BULK_WORKERS, len(ids))) as pool:
        outcomes = list(pool.map(apply, ids))

    result = BulkResult(requested=len(ids), succeeded=sum(outcomes))
    logger.info("Bulk transition to %s: %d/%d succeeded", target.value, result.succeeded, result.requested)
    return result
