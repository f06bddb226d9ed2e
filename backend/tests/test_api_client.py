"""
NoteCraft — Notes API Client Tests
===================================

What:  The typed client against the real app, end to end.
How:   NotesApiClient → ASGITransport → NoteCraft app → FakeProvider.
"""

import uuid

import pytest
from httpx import ASGITransport

from notecraft.client.api import ApiError, NotesApiClient
from notecraft.client.environment import resolve_environment
from notecraft.client.session import SESSION_KEY, ProviderSessionClient
from notecraft.schemas.auth import Principal, Session


@pytest.fixture
def environment():
    return resolve_environment("notes.example.com", "https://notes.example.com")


@pytest.fixture
def signed_in(settings, provider, alice):
    """A session client already holding Alice's Session."""
    token, user = alice
    session = Session(access_token=token, user=Principal.from_provider_user(user))
    return ProviderSessionClient(
        settings.supabase_url,
        settings.supabase_anon_key,
        storage={SESSION_KEY: session},
        transport=provider.transport,
    )


class TestNotesApiClient:

    @pytest.mark.asyncio
    async def test_crud_round_trip(self, app, environment, signed_in, alice):
        _, user = alice
        async with NotesApiClient(environment, signed_in, transport=ASGITransport(app=app)) as api:
            created = await api.create_note("  Groceries ", "milk")
            updated = await api.update_note(str(created.id), "Groceries", "milk, eggs")
            fetched = await api.get_note(str(created.id))
            listed = await api.list_notes()
            deleted = await api.delete_note(str(created.id))
            after = await api.list_notes()

        assert created.title == "Groceries"
        assert created.user_id == user["id"]
        assert updated.content == "milk, eggs"
        assert fetched == updated
        assert [n.id for n in listed] == [created.id]
        assert deleted is True
        assert after == []

    @pytest.mark.asyncio
    async def test_current_user(self, app, environment, signed_in, alice):
        _, user = alice
        async with NotesApiClient(environment, signed_in, transport=ASGITransport(app=app)) as api:
            assert await api.current_user() == Principal(id=user["id"], email="alice@example.com")

    @pytest.mark.asyncio
    async def test_anonymous_current_user_is_none(self, app, environment):
        async with NotesApiClient(environment, transport=ASGITransport(app=app)) as api:
            assert await api.current_user() is None

    @pytest.mark.asyncio
    async def test_anonymous_notes_raise_401(self, app, environment):
        async with NotesApiClient(environment, transport=ASGITransport(app=app)) as api:
            with pytest.raises(ApiError) as exc_info:
                await api.list_notes()

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Unauthorized"
        assert exc_info.value.request_id

    @pytest.mark.asyncio
    async def test_missing_note_raises_404(self, app, environment, signed_in):
        async with NotesApiClient(environment, signed_in, transport=ASGITransport(app=app)) as api:
            with pytest.raises(ApiError) as exc_info:
                await api.get_note(str(uuid.uuid4()))
        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Note not found"

    @pytest.mark.asyncio
    async def test_blank_title_raises_400(self, app, environment, signed_in):
        async with NotesApiClient(environment, signed_in, transport=ASGITransport(app=app)) as api:
            with pytest.raises(ApiError, match="Title is required"):
                await api.create_note("   ")

    @pytest.mark.asyncio
    async def test_requests_use_environment_base(self, environment):
        seen = []

        async def app(scope, receive, send):
            seen.append((scope["scheme"], dict(scope["headers"])[b"host"], scope["path"]))
            await send({"type": "http.response.start", "status": 200, "headers": [(b"content-type", b"application/json")]})
            await send({"type": "http.response.body", "body": b'{"notes": []}'})

        async with NotesApiClient(environment, transport=ASGITransport(app=app)) as api:
            assert await api.list_notes() == []

        assert seen == [("https", b"notes.example.com", "/api/notes")]
