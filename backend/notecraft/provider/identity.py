"""
NoteCraft Backend — Request-Scoped Identity Client
===================================================

What:  HTTP client for the identity/storage provider, bound to one request's
       bearer credential.
How:   ``IdentityClientFactory.create()`` builds an ``httpx.AsyncClient`` whose
       default headers carry the project's anon key (``apikey``) and the
       caller's ``Authorization`` header. The provider evaluates row access
       with that credential, so two concurrent requests never share a client.
Who:   The session middleware creates one per ``/api`` request and closes it
       when the request completes.

Wire format:
    GET    /auth/v1/user                         → current user for the token
    GET    /rest/v1/<table>?col=eq.v&order=c.desc → select
    POST   /rest/v1/<table>                      → insert (return=representation)
    PATCH  /rest/v1/<table>?col=eq.v             → update (return=representation)
    DELETE /rest/v1/<table>?col=eq.v             → delete (return=representation)

Every method returns a ``ProviderResult``; transport failures are folded
into ``ProviderErr`` as well.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

import httpx

from notecraft.config import Settings
from notecraft.exceptions import ConfigMissingError
from notecraft.provider.results import ProviderErr, ProviderOk, ProviderResult
from notecraft.schemas.auth import Principal

logger = logging.getLogger(__name__)

Rows = List[Dict[str, Any]]


def eq_filters(filters: Mapping[str, Any]) -> Dict[str, str]:
    """Render equality predicates as PostgREST query parameters."""
    return {column: f"eq.{value}" for column, value in filters.items()}


class IdentityClient:
    """
    Provider operations scoped to a single bearer credential.

    ``authorization`` is the raw ``Authorization`` header of the incoming
    request, or None for an anonymous caller.
    """

    def __init__(self, http: httpx.AsyncClient, authorization: Optional[str] = None):
        self._http = http
        self.authorization = authorization

    async def __aenter__(self) -> "IdentityClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ── Auth ──────────────────────────────────────────────────────────────

    async def get_user(self) -> ProviderResult[Principal]:
        """
        Resolve the Principal behind the bound credential.

        An absent or non-bearer header is answered locally with an error,
        without contacting the provider.
        """
        if not self.authorization:
            return ProviderErr(message="Auth session missing", status=401)
        scheme, _, token = self.authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return ProviderErr(message="Bearer credential required", status=401)

        result = await self._request("GET", "/auth/v1/user")
        match result:
            case ProviderOk(value=dict() as user) if user.get("id"):
                return ProviderOk(Principal.from_provider_user(user))
            case ProviderOk():
                return ProviderErr(message="Provider returned no user", status=401)
            case _:
                return result

    # ── Tables ────────────────────────────────────────────────────────────

    async def select(
        self,
        table: str,
        *,
        filters: Mapping[str, Any],
        order: Optional[Tuple[str, bool]] = None,
    ) -> ProviderResult[Rows]:
        """
        ``order`` is ``(column, descending)``.
        """
        params = {"select": "*", **eq_filters(filters)}
        if order is not None:
            column, descending = order
            params["order"] = f"{column}.{'desc' if descending else 'asc'}"
        return await self._rows("GET", table, params=params)

    async def insert(self, table: str, row: Mapping[str, Any]) -> ProviderResult[Rows]:
        return await self._rows(
            "POST",
            table,
            params={"select": "*"},
            json=dict(row),
            headers={"Prefer": "return=representation"},
        )

    async def update(
        self,
        table: str,
        values: Mapping[str, Any],
        *,
        filters: Mapping[str, Any],
    ) -> ProviderResult[Rows]:
        return await self._rows(
            "PATCH",
            table,
            params={"select": "*", **eq_filters(filters)},
            json=dict(values),
            headers={"Prefer": "return=representation"},
        )

    async def delete(self, table: str, *, filters: Mapping[str, Any]) -> ProviderResult[Rows]:
        return await self._rows(
            "DELETE",
            table,
            params=eq_filters(filters),
            headers={"Prefer": "return=representation"},
        )

    # ── Internals ─────────────────────────────────────────────────────────

    async def _rows(self, method: str, table: str, **kwargs) -> ProviderResult[Rows]:
        result = await self._request(method, f"/rest/v1/{table}", **kwargs)
        match result:
            case ProviderOk(value=list() as rows):
                return ProviderOk(rows)
            case ProviderOk(value=None):
                return ProviderOk([])
            case ProviderOk(value=dict() as row):
                return ProviderOk([row])
            case ProviderOk():
                return ProviderErr(message="Unexpected provider response")
            case _:
                return result

    async def _request(self, method: str, path: str, **kwargs) -> ProviderResult[Any]:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("Provider %s %s failed: %s", method, path, type(e).__name__)
            return ProviderErr(message=f"Provider unreachable: {type(e).__name__}")

        try:
            payload = response.json() if response.content else None
        except ValueError:
            payload = None

        if response.is_error:
            err = ProviderErr.from_payload(response.status_code, payload)
            logger.debug("Provider %s %s → %d: %s", method, path, response.status_code, err.message)
            return err
        return ProviderOk(payload)


class IdentityClientFactory:
    """
    Builds one ``IdentityClient`` per request.

    ``transport`` is passed straight to ``httpx.AsyncClient``; tests use it to
    route provider traffic to an in-memory fake.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.transport = transport

    def create(self, authorization: Optional[str] = None) -> IdentityClient:
        if not self.settings.provider_configured:
            raise ConfigMissingError()

        headers = {
            "apikey": self.settings.supabase_anon_key,
            # Without a user credential the provider sees the anon role.
            "Authorization": authorization or f"Bearer {self.settings.supabase_anon_key}",
            "Accept": "application/json",
        }
        http = httpx.AsyncClient(
            base_url=self.settings.supabase_url,
            headers=headers,
            timeout=self.settings.provider_timeout,
            transport=self.transport,
        )
        return IdentityClient(http, authorization=authorization)
