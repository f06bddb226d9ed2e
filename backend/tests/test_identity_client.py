"""
NoteCraft — Identity Client Tests
==================================

What:  Wire format and result mapping of the request-scoped provider client.
"""

import httpx
import pytest

from notecraft.config import Settings
from notecraft.exceptions import ConfigMissingError
from notecraft.provider.identity import IdentityClientFactory, eq_filters
from notecraft.provider.results import ProviderErr, ProviderOk


def recording_transport(status: int = 200, body=None):
    """MockTransport answering every call with ``body``; returns (transport, seen)."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status, json=[] if body is None else body)

    return httpx.MockTransport(handler), seen


class TestFactory:

    def test_unconfigured_raises(self):
        factory = IdentityClientFactory(Settings(supabase_url="", supabase_anon_key="", _env_file=None))
        with pytest.raises(ConfigMissingError):
            factory.create("Bearer token")

    @pytest.mark.asyncio
    async def test_headers_carry_apikey_and_caller_credential(self, settings):
        transport, seen = recording_transport()
        async with IdentityClientFactory(settings, transport).create("Bearer user-jwt") as identity:
            await identity.select("notes", filters={"user_id": "u1"})

        request = seen[0]
        assert request.headers["apikey"] == settings.supabase_anon_key
        assert request.headers["Authorization"] == "Bearer user-jwt"
        assert str(request.url).startswith(settings.supabase_url)

    @pytest.mark.asyncio
    async def test_anonymous_client_uses_anon_role(self, settings):
        transport, seen = recording_transport()
        async with IdentityClientFactory(settings, transport).create(None) as identity:
            await identity.select("notes", filters={})
        assert seen[0].headers["Authorization"] == f"Bearer {settings.supabase_anon_key}"


class TestQueries:

    def test_eq_filters(self):
        assert eq_filters({"id": 5, "user_id": "abc"}) == {"id": "eq.5", "user_id": "eq.abc"}

    @pytest.mark.asyncio
    async def test_select_with_order(self, settings):
        transport, seen = recording_transport(body=[{"id": "1"}])
        async with IdentityClientFactory(settings, transport).create("Bearer t") as identity:
            result = await identity.select("notes", filters={"user_id": "u"}, order=("created_at", True))

        assert result == ProviderOk([{"id": "1"}])
        params = seen[0].url.params
        assert params["user_id"] == "eq.u"
        assert params["order"] == "created_at.desc"
        assert seen[0].url.path == "/rest/v1/notes"

    @pytest.mark.asyncio
    async def test_writes_ask_for_representation(self, settings):
        transport, seen = recording_transport(body=[])
        async with IdentityClientFactory(settings, transport).create("Bearer t") as identity:
            await identity.insert("notes", {"title": "t"})
            await identity.update("notes", {"title": "u"}, filters={"id": "1"})
            await identity.delete("notes", filters={"id": "1"})

        assert [r.method for r in seen] == ["POST", "PATCH", "DELETE"]
        assert all(r.headers["Prefer"] == "return=representation" for r in seen)
        assert seen[2].url.params["id"] == "eq.1"

    @pytest.mark.asyncio
    async def test_error_body_becomes_provider_err(self, settings):
        transport, _ = recording_transport(
            status=403, body={"code": "42501", "message": "permission denied"}
        )
        async with IdentityClientFactory(settings, transport).create("Bearer t") as identity:
            result = await identity.select("notes", filters={})

        assert result == ProviderErr(message="permission denied", status=403, code="42501")

    @pytest.mark.asyncio
    async def test_transport_failure_becomes_provider_err(self, settings):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        factory = IdentityClientFactory(settings, httpx.MockTransport(handler))
        async with factory.create("Bearer t") as identity:
            result = await identity.select("notes", filters={})

        match result:
            case ProviderErr(message=message):
                assert message == "Provider unreachable: ConnectError"
            case _:
                pytest.fail(f"expected ProviderErr, got {result!r}")


class TestGetUser:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("header", [None, "", "Token abc", "Bearer   "])
    async def test_no_bearer_fails_locally(self, settings, header):
        transport, seen = recording_transport()
        async with IdentityClientFactory(settings, transport).create(header) as identity:
            result = await identity.get_user()

        assert isinstance(result, ProviderErr)
        assert result.status == 401
        assert seen == []

    @pytest.mark.asyncio
    async def test_maps_provider_user_to_principal(self, identity_factory, alice):
        token, user = alice
        async with identity_factory.create(f"Bearer {token}") as identity:
            result = await identity.get_user()

        match result:
            case ProviderOk(value=principal):
                assert principal.id == user["id"]
                assert principal.email == "alice@example.com"
            case _:
                pytest.fail(f"expected ProviderOk, got {result!r}")

    @pytest.mark.asyncio
    async def test_gotrue_error_message(self, identity_factory):
        async with identity_factory.create("Bearer nope") as identity:
            result = await identity.get_user()
        assert result.message.startswith("invalid JWT")
        assert result.code == "401"
