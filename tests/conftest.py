"""
Shared fixtures for clinicdesk tests.

FakeSupabase mimics the slice of the supabase-py query builder that
DocumentStore uses, so the real store, repositories and services run
against in-memory tables.
"""

import copy
import sys
from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace
from uuid import uuid4

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import httpx
import pytest
from postgrest.exceptions import APIError

from clinicdesk.config import Settings
from clinicdesk.context import build_context
from clinicdesk.db.client import DocumentStore, SupabaseClient
from clinicdesk.db.repositories import AccountRepository, ClinicRepository, DocumentRepository
from clinicdesk.models import ImageRef


class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.filters = []
        self.payload = None
        self.count_mode = None
        self.limit_to = None
        self.order_by = None

    def select(self, columns="*", count=None):
        self.op = "select"
        self.count_mode = count
        return self

    def insert(self, record):
        self.op = "insert"
        self.payload = record
        return self

    def update(self, patch):
        self.op = "update"
        self.payload = patch
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, field, value):
        self.filters.append((field, value))
        return self

    def limit(self, n):
        self.limit_to = n
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def _matches(self, row):
        return all(row.get(field) == value for field, value in self.filters)

    def execute(self):
        self.db.calls.append((self.table, self.op, list(self.filters)))
        self.db.raise_if_failing(self.table, self.op, self.filters)

        rows = self.db.tables.setdefault(self.table, [])
        matched = [row for row in rows if self._matches(row)]

        if self.op == "select":
            result = [copy.deepcopy(row) for row in matched]
            if self.order_by:
                column, desc = self.order_by
                result.sort(key=lambda r: str(r.get(column)), reverse=desc)
            if self.limit_to is not None:
                result = result[:self.limit_to]
            count = len(matched) if self.count_mode == "exact" else None
            return FakeResponse(result, count)

        if self.op == "insert":
            row = copy.deepcopy(self.payload)
            row.setdefault("id", str(uuid4()))
            row.setdefault("createdAt", datetime.now(timezone.utc).isoformat())
            rows.append(row)
            return FakeResponse([copy.deepcopy(row)])

        if self.op == "update":
            for row in matched:
                row.update(copy.deepcopy(self.payload))
            return FakeResponse([copy.deepcopy(row) for row in matched])

        if self.op == "delete":
            self.db.tables[self.table] = [row for row in rows if not self._matches(row)]
            return FakeResponse([copy.deepcopy(row) for row in matched])

        raise AssertionError(f"unexpected op {self.op}")


class FakeAuth:
    def __init__(self):
        self.users = {}
        self.signed_out = False

    def add_token(self, token, user_id, email, display_name=None):
        self.users[token] = SimpleNamespace(
            id=user_id,
            email=email,
            user_metadata={"display_name": display_name} if display_name else {},
        )

    def get_user(self, token=None):
        user = self.users.get(token)
        if user is None:
            raise Exception("invalid JWT")
        return SimpleNamespace(user=user)

    def sign_in_with_password(self, credentials):
        for token, user in self.users.items():
            if user.email == credentials["email"] and credentials["password"] == "correct-horse":
                return SimpleNamespace(
                    user=user,
                    session=SimpleNamespace(access_token=token, refresh_token=f"refresh-{token}"),
                )
        raise Exception("Invalid login credentials")

    def sign_up(self, credentials):
        token = f"token-{len(self.users) + 1}"
        display_name = (credentials.get("options") or {}).get("data", {}).get("display_name")
        self.add_token(token, str(uuid4()), credentials["email"], display_name)
        user = self.users[token]
        return SimpleNamespace(
            user=user,
            session=SimpleNamespace(access_token=token, refresh_token=f"refresh-{token}"),
        )

    def sign_out(self):
        self.signed_out = True


class FakeSupabase:
    """In-memory stand-in for supabase.Client."""

    def __init__(self):
        self.tables = {}
        self.calls = []
        self.failures = []
        self.auth = FakeAuth()

    def table(self, name):
        return FakeQuery(self, name)

    def fail(self, table, op, code="XX000", record_id=None):
        """Make matching requests raise a PostgREST APIError."""
        self.failures.append((table, op, code, record_id))

    def raise_if_failing(self, table, op, filters):
        for f_table, f_op, code, record_id in self.failures:
            if f_table != table or f_op != op:
                continue
            if record_id is not None and ("id", record_id) not in filters:
                continue
            raise APIError({"message": "simulated failure", "code": code, "hint": None, "details": None})

    def ops(self, table=None, op=None):
        return [c for c in self.calls if (table is None or c[0] == table) and (op is None or c[1] == op)]


ADMIN_A = "alice@admins.org"
ADMIN_B = "bob@admins.org"


def make_image(n: int, **overrides) -> ImageRef:
    data = {
        "url": f"https://i.ibb.co/{n}/photo.png",
        "display_url": f"https://i.ibb.co/{n}/photo.png",
        "thumb_url": f"https://i.ibb.co/{n}/thumb.png",
        "medium_url": f"https://i.ibb.co/{n}/medium.png",
        "delete_url": f"https://ibb.co/{n}/delete",
        "image_id": f"img{n}",
        "uploadedAt": "2026-10-19T09:00:00+00:00",
        "filename": f"photo{n}.png",
    }
    data.update(overrides)
    return ImageRef(**data)


@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def supabase_client(fake_db):
    return SupabaseClient(fake_db)


@pytest.fixture
def store(supabase_client):
    return DocumentStore(supabase_client)


@pytest.fixture
def accounts(store):
    return AccountRepository(store)


@pytest.fixture
def documents(store):
    return DocumentRepository(store)


@pytest.fixture
def clinics(store):
    return ClinicRepository(store)


@pytest.fixture
def add_account(accounts):
    """Create an account; returns its id."""
    def _add(owner=ADMIN_A, username="Bob", email="b@x.com", status="approved", role="user", images=None):
        return accounts.create(
            {
                "username": username,
                "email": email,
                "role": role,
                "status": status,
                "images": [img.to_db() for img in (images or [])],
            },
            owner,
        )
    return _add


class ImageHostStub:
    """httpx handler that records requests and answers like ImgBB."""

    def __init__(self):
        self.requests = []
        self.fail_with = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            status, message = self.fail_with
            return httpx.Response(status, json={"status_code": status, "error": {"message": message}, "success": False})
        n = len(self.requests)
        return httpx.Response(200, json={
            "success": True,
            "status": 200,
            "data": {
                "id": f"host{n}",
                "url": f"https://i.ibb.co/host{n}/up.png",
                "display_url": f"https://i.ibb.co/host{n}/up.png",
                "delete_url": f"https://ibb.co/host{n}/delete",
                "thumb": {"url": f"https://i.ibb.co/host{n}/t.png"},
                "medium": {"url": f"https://i.ibb.co/host{n}/m.png"},
            },
        })


class ServiceStub:
    """Routes image-host and quote requests to their stubs."""

    def __init__(self):
        self.images = ImageHostStub()
        self.quote_response = httpx.Response(200, json={"content": "Keep going."})
        self.quote_requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/1/upload":
            return self.images(request)
        if request.url.path == "/random":
            self.quote_requests.append(request)
            return self.quote_response
        return httpx.Response(404)


@pytest.fixture
def services():
    return ServiceStub()


@pytest.fixture
def http_client(services):
    client = httpx.Client(transport=httpx.MockTransport(services))
    yield client
    client.close()


@pytest.fixture
def settings():
    s = Settings()
    s.imgbb_api_key = "test-key"
    s.imgbb_api_url = "https://api.imgbb.test"
    s.quote_api_url = "https://quotes.test"
    return s


@pytest.fixture
def ctx(supabase_client, settings, http_client):
    return build_context(client=supabase_client, settings=settings, http_client=http_client)
