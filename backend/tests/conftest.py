"""
NoteCraft — Test Configuration (conftest.py)
=============================================

What:  Shared pytest fixtures for the entire test suite.
How:   Provider traffic never leaves the process: ``FakeProvider`` answers
       the GoTrue and PostgREST endpoints from memory through
       ``httpx.MockTransport``, including row-level security (a token only
       ever sees the rows it owns).

Fixture Hierarchy:
    provider        in-memory identity/storage provider
    alice, bob      registered users: (token, user dict)
    settings        Settings pointing at the fake provider
    app             FastAPI app wired to the fake provider
    test_client     HTTPX AsyncClient talking to ``app`` over ASGI
"""

import itertools
import json
import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Before any app import: keep a developer's .env values out of the tests
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_ANON_KEY"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

from notecraft.config import Settings  # noqa: E402
from notecraft.main import create_app  # noqa: E402
from notecraft.provider.identity import IdentityClientFactory  # noqa: E402

SUPABASE_URL = "https://project-ref.supabase.co"
ANON_KEY = "anon-key-for-tests"


# ══════════════════════════════════════════════════════════════════════════
# In-memory provider
# ══════════════════════════════════════════════════════════════════════════

class FakeProvider:
    """
    Just enough of GoTrue + PostgREST for NoteCraft.

    Attributes:
        users:     bearer token → user object
        rows:      note id → row
        codes:     PKCE auth code → (code_verifier, token)
        requests:  every request received, in order
        fail_with: when set, every /rest/v1 call answers with this
                   ``(status, body)`` instead
    """

    def __init__(self) -> None:
        self.users: Dict[str, Dict[str, Any]] = {}
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.codes: Dict[str, Tuple[str, str]] = {}
        self.requests: List[httpx.Request] = []
        self.fail_with: Optional[Tuple[int, Dict[str, Any]]] = None
        self._tick = itertools.count()

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    # ── Setup helpers ─────────────────────────────────────────────────────

    def add_user(self, token: str, email: str) -> Dict[str, Any]:
        user = {"id": str(uuid.uuid4()), "email": email, "aud": "authenticated", "role": "authenticated"}
        self.users[token] = user
        return user

    def add_code(self, code: str, code_verifier: str, token: str) -> None:
        self.codes[code] = (code_verifier, token)

    def now(self) -> str:
        """Strictly increasing timestamps, all in the past."""
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        return (base + timedelta(seconds=next(self._tick))).isoformat()

    def insert_note(self, owner: Dict[str, Any], title: str, content: str = "") -> Dict[str, Any]:
        stamp = self.now()
        row = {
            "id": str(uuid.uuid4()),
            "user_id": owner["id"],
            "title": title,
            "content": content,
            "created_at": stamp,
            "updated_at": stamp,
        }
        self.rows[row["id"]] = row
        return row

    def rest_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.startswith("/rest/v1/")]

    # ── Dispatch ──────────────────────────────────────────────────────────

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.headers.get("apikey") != ANON_KEY:
            return httpx.Response(401, json={"message": "Invalid API key"})
        if path == "/auth/v1/user":
            return self._user(request)
        if path == "/auth/v1/token":
            return self._token(request)
        if path.startswith("/rest/v1/"):
            if self.fail_with is not None:
                status, body = self.fail_with
                return httpx.Response(status, json=body)
            return self._rest(request)
        return httpx.Response(404, json={"message": "Not found"})

    def _caller(self, request: httpx.Request) -> Optional[Dict[str, Any]]:
        scheme, _, token = request.headers.get("Authorization", "").partition(" ")
        return self.users.get(token) if scheme.lower() == "bearer" else None

    def _user(self, request: httpx.Request) -> httpx.Response:
        user = self._caller(request)
        if user is None:
            return httpx.Response(
                401,
                json={"code": 401, "error_code": "bad_jwt", "msg": "invalid JWT: unable to parse or verify signature"},
            )
        return httpx.Response(200, json=user)

    def _token(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if request.url.params.get("grant_type") != "pkce":
            return httpx.Response(400, json={"error": "unsupported_grant_type"})
        verifier, token = self.codes.get(body.get("auth_code"), (None, None))
        if verifier is None or verifier != body.get("code_verifier"):
            return httpx.Response(
                400,
                json={"error": "invalid_grant", "error_description": "invalid flow state, no valid flow state found"},
            )
        del self.codes[body["auth_code"]]
        return httpx.Response(
            200,
            json={
                "access_token": token,
                "token_type": "bearer",
                "expires_in": 3600,
                "refresh_token": f"refresh-{token}",
                "user": self.users[token],
            },
        )

    def _rest(self, request: httpx.Request) -> httpx.Response:
        caller = self._caller(request)
        filters = {
            key: value[3:]
            for key, value in request.url.params.items()
            if value.startswith("eq.")
        }
        if "id" in filters:
            try:
                uuid.UUID(filters["id"])
            except ValueError:
                return httpx.Response(
                    400,
                    json={"code": "22P02", "message": f'invalid input syntax for type uuid: "{filters["id"]}"'},
                )

        # Row-level security: the anon role sees nothing
        visible = [
            row for row in self.rows.values()
            if caller is not None and row["user_id"] == caller["id"]
        ]
        matched = [
            row for row in visible
            if all(str(row.get(col)) == val for col, val in filters.items())
        ]

        if request.method == "GET":
            order = request.url.params.get("order")
            if order:
                column, _, direction = order.partition(".")
                matched.sort(key=lambda row: row[column], reverse=direction == "desc")
            return httpx.Response(200, json=matched)

        if request.method == "POST":
            body = json.loads(request.content)
            if caller is None or body.get("user_id") != caller["id"]:
                return httpx.Response(
                    403,
                    json={"code": "42501", "message": 'new row violates row-level security policy for table "notes"'},
                )
            row = self.insert_note(caller, body["title"], body.get("content", ""))
            return httpx.Response(201, json=[row])

        if request.method == "PATCH":
            values = json.loads(request.content)
            for row in matched:
                row.update(values)
            return httpx.Response(200, json=matched)

        if request.method == "DELETE":
            for row in matched:
                del self.rows[row["id"]]
            return httpx.Response(200, json=matched)

        return httpx.Response(405, json={"message": "Method not allowed"})


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def alice(provider):
    """(token, user) for the first test user."""
    return "alice-token", provider.add_user("alice-token", "alice@example.com")


@pytest.fixture
def bob(provider):
    return "bob-token", provider.add_user("bob-token", "bob@example.com")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url=SUPABASE_URL,
        supabase_anon_key=ANON_KEY,
        _env_file=None,
    )


@pytest.fixture
def identity_factory(settings, provider) -> IdentityClientFactory:
    return IdentityClientFactory(settings, transport=provider.transport)


@pytest.fixture
def app(settings, identity_factory):
    return create_app(settings=settings, identity_factory=identity_factory)


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient routed straight into the app over ASGI.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
