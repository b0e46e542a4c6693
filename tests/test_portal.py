"""
Tests for the email-only portal session.
"""

import pytest

from clinicdesk.auth import PortalDenied, PortalSession, SessionStorage, authenticate_portal_user
from clinicdesk.auth.portal import LOGIN_PATH, SESSION_KEY


class TestAuthenticatePortalUser:
    """Tests for authenticate_portal_user."""

    def test_approved_account_logs_in(self, accounts, add_account):
        add_account(email="b@x.com", status="approved")

        account = authenticate_portal_user(accounts, "  b@x.com ")

        assert account.email == "b@x.com"

    @pytest.mark.parametrize("status", ["pending", "rejected"])
    def test_unapproved_account_denied_with_status(self, accounts, add_account, status):
        add_account(email="b@x.com", status=status)

        with pytest.raises(PortalDenied) as exc:
            authenticate_portal_user(accounts, "b@x.com")

        assert exc.value.reason == "not_approved"
        assert exc.value.status == status
        assert exc.value.message == (
            f"Your account verification is {status}. Please contact your administrator."
        )

    def test_unknown_email(self, accounts):
        with pytest.raises(PortalDenied) as exc:
            authenticate_portal_user(accounts, "ghost@x.com")
        assert exc.value.reason == "not_found"
        assert exc.value.message == "Email not found. Please contact your administrator."

    def test_blank_and_malformed_input_skip_the_store(self, accounts, fake_db):
        with pytest.raises(PortalDenied) as exc:
            authenticate_portal_user(accounts, "   ")
        assert exc.value.message == "Please enter your email address"

        with pytest.raises(PortalDenied) as exc:
            authenticate_portal_user(accounts, "nope@")
        assert exc.value.message == "Please enter a valid email address"

        assert fake_db.calls == []


class TestPortalSession:
    """Tests for PortalSession state."""

    def test_login_stores_email(self, accounts, add_account):
        add_account(email="b@x.com")
        storage = SessionStorage()
        session = PortalSession(storage, accounts)

        session.login(" b@x.com ")

        assert session.is_authenticated
        assert storage.get_item(SESSION_KEY) == "b@x.com"

    def test_denied_login_stays_unauthenticated(self, accounts, add_account):
        add_account(email="b@x.com", status="pending")
        session = PortalSession(SessionStorage(), accounts)

        with pytest.raises(PortalDenied):
            session.login("b@x.com")

        assert not session.is_authenticated

    def test_logout_clears_and_redirects(self, accounts, add_account):
        add_account(email="b@x.com")
        session = PortalSession(SessionStorage(), accounts)
        session.login("b@x.com")

        assert session.logout() == LOGIN_PATH
        assert session.current_email is None

    def test_current_account_rechecks_approval(self, accounts, add_account):
        account_id = add_account(email="b@x.com")
        session = PortalSession(SessionStorage(), accounts)
        session.login("b@x.com")
        accounts.update(account_id, {"status": "rejected"})

        with pytest.raises(PortalDenied) as exc:
            session.current_account()

        assert exc.value.status == "rejected"
        assert not session.is_authenticated

    def test_current_account_from_seeded_storage(self, accounts, add_account):
        add_account(email="b@x.com")
        session = PortalSession(SessionStorage({SESSION_KEY: "b@x.com"}), accounts)

        assert session.current_account().email == "b@x.com"
        assert PortalSession(SessionStorage(), accounts).current_account() is None
