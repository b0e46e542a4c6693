"""
Tests for account creation and bulk status transitions.
"""

import pytest

from clinicdesk.errors import ValidationError
from clinicdesk.models import AccountStatus
from clinicdesk.services import BulkResult, bulk_transition, create_account
from clinicdesk.services.accounts import transition_patch

from conftest import ADMIN_A, ADMIN_B


class TestCreateAccount:
    def test_creates_owned_account(self, accounts):
        account_id = create_account(accounts, ADMIN_A, "  Bob ", "b@x.com", "user", "pending")

        account = accounts.get_owned(account_id, ADMIN_A)
        assert account.username == "Bob"
        assert account.status == AccountStatus.PENDING
        assert account.images == []

    def test_requires_username_and_email(self, accounts):
        with pytest.raises(ValidationError) as exc:
            create_account(accounts, ADMIN_A, "", "b@x.com", "user", "pending")
        assert exc.value.message == "Please fill in all required fields."

    def test_rejects_malformed_email(self, accounts):
        with pytest.raises(ValidationError):
            create_account(accounts, ADMIN_A, "Bob", "not-an-email", "user", "pending")

    def test_rejects_unknown_role(self, accounts):
        with pytest.raises(ValidationError) as exc:
            create_account(accounts, ADMIN_A, "Bob", "b@x.com", "", "pending")
        assert exc.value.message == "Please select a role."


class TestTransitionPatch:
    def test_rejection_requires_reason(self):
        with pytest.raises(ValidationError) as exc:
            transition_patch(AccountStatus.REJECTED, "   ")
        assert exc.value.message == "Please provide a reason for rejection."

    def test_rejection_carries_reason_and_timestamp(self):
        patch = transition_patch(AccountStatus.REJECTED, " Incomplete ")
        assert patch["status"] == "rejected"
        assert patch["rejectionReason"] == "Incomplete"
        assert patch["rejectedAt"]

    @pytest.mark.parametrize("status", [AccountStatus.APPROVED, AccountStatus.PENDING])
    def test_other_statuses_clear_rejection(self, status):
        patch = transition_patch(status, "ignored")
        assert patch == {"status": status.value, "rejectionReason": None, "rejectedAt": None}


class TestBulkTransition:
    """Tests for bulk_transition."""

    def test_approving_clears_previous_rejection(self, accounts, add_account):
        ids = [add_account(email=f"u{i}@x.com", status="pending") for i in range(3)]
        bulk_transition(accounts, ids, "rejected", reason="Missing ID", owner_email=ADMIN_A)

        result = bulk_transition(accounts, ids, "approved", owner_email=ADMIN_A)

        assert result == BulkResult(requested=3, succeeded=3)
        for account_id in ids:
            account = accounts.get(account_id)
            assert account.status == AccountStatus.APPROVED
            assert account.rejection_reason is None
            assert account.rejected_at is None

    def test_reject_without_reason_writes_nothing(self, accounts, add_account, fake_db):
        account_id = add_account(status="pending")

        with pytest.raises(ValidationError):
            bulk_transition(accounts, [account_id], "rejected", reason="")

        assert fake_db.ops("users", "update") == []

    def test_requires_action_and_selection(self, accounts):
        with pytest.raises(ValidationError) as exc:
            bulk_transition(accounts, ["x"], None)
        assert exc.value.message == "Please select an action."

        with pytest.raises(ValidationError) as exc:
            bulk_transition(accounts, [], "approved")
        assert exc.value.message == "Please select at least one user."

    def test_partial_failure_keeps_committed_writes(self, accounts, add_account, fake_db):
        ok_id = add_account(email="ok@x.com", status="pending")
        bad_id = add_account(email="bad@x.com", status="pending")
        fake_db.fail("users", "update", record_id=bad_id)

        result = bulk_transition(accounts, [ok_id, bad_id], "approved")

        assert result.requested == 2
        assert result.succeeded == 1
        assert result.failed == 1
        assert not result.ok
        assert accounts.get(ok_id).status == AccountStatus.APPROVED
        assert accounts.get(bad_id).status == AccountStatus.PENDING

    def test_foreign_ids_count_as_failed(self, accounts, add_account):
        mine = add_account(owner=ADMIN_A, email="mine@x.com", status="pending")
        theirs = add_account(owner=ADMIN_B, email="theirs@x.com", status="pending")

        result = bulk_transition(accounts, [mine, theirs], "approved", owner_email=ADMIN_A)

        assert result.to_dict() == {"requested": 2, "succeeded": 1, "failed": 1}
        assert accounts.get(theirs).status == AccountStatus.PENDING

    def test_duplicate_ids_are_applied_once(self, accounts, add_account, fake_db):
        account_id = add_account(status="pending")

        result = bulk_transition(accounts, [account_id, account_id], "approved")

        assert result.requested == 1
        assert len(fake_db.ops("users", "update")) == 1
