"""
NoteCraft Client — Provider Session Client
===========================================

What:  The browser-side client of the identity provider: starts the OAuth
       sign-in, turns a callback (fragment tokens or PKCE code) into a
       Session, and keeps that Session in client storage.
How:   ``httpx.AsyncClient`` against the provider's GoTrue endpoints:
         GET  /auth/v1/authorize?provider=..&redirect_to=..&code_challenge=..
         POST /auth/v1/token?grant_type=pkce   {auth_code, code_verifier}
         GET  /auth/v1/user                    (Bearer <access_token>)
Who:   Used by the OAuth callback reconciler and the notes API client.

When constructed with the landing ``url``, a token-bearing fragment is
consumed automatically: the first ``get_session()`` call waits for it, the
same way the browser SDK finishes its URL detection before answering.
"""

import asyncio
import hashlib
import logging
import secrets
from base64 import urlsafe_b64encode
from typing import Any, Dict, MutableMapping, Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit

import httpx

from notecraft.provider.results import ProviderErr, ProviderOk, ProviderResult
from notecraft.schemas.auth import Principal, Session

logger = logging.getLogger(__name__)

SESSION_KEY = "session"
CODE_VERIFIER_KEY = "code_verifier"


def generate_pkce() -> Tuple[str, str]:
    """
    Generate code_verifier and code_challenge (S256).
    Returns (code_verifier, code_challenge).
    """
    code_verifier = secrets.token_urlsafe(32)
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    code_challenge = urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return code_verifier, code_challenge


def parse_fragment(url: str) -> Dict[str, str]:
    """Key/value pairs of the URL fragment (``#a=1&b=2``)."""
    return dict(parse_qsl(urlsplit(url).fragment, keep_blank_values=False))


class ProviderSessionClient:
    """
    Client-side provider access holding at most one Session.

    ``storage`` stands in for the browser's local storage; pass a shared
    mapping to keep the Session across client instances.
    """

    def __init__(
        self,
        supabase_url: str,
        anon_key: str,
        *,
        url: Optional[str] = None,
        storage: Optional[MutableMapping[str, Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.storage: MutableMapping[str, Any] = storage if storage is not None else {}
        self._http = httpx.AsyncClient(
            base_url=supabase_url.rstrip("/"),
            headers={"apikey": anon_key, "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )
        self._supabase_url = supabase_url.rstrip("/")
        self._pending_fragment = url if url and "access_token" in parse_fragment(url) else None
        self._init_lock = asyncio.Lock()

    async def __aenter__(self) -> "ProviderSessionClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ── Sign-in ───────────────────────────────────────────────────────────

    def authorize_url(
        self,
        provider: str,
        redirect_to: str,
        query_params: Optional[Dict[str, str]] = None,
    ) -> str:
        """
        Build the provider's authorize URL for an OAuth sign-in.

        A fresh PKCE verifier is stored so the ``?code=`` callback can be
        exchanged later by this client (or one sharing its storage).
        """
        code_verifier, code_challenge = generate_pkce()
        self.storage[CODE_VERIFIER_KEY] = code_verifier
        params = {
            "provider": provider,
            "redirect_to": redirect_to,
            "code_challenge": code_challenge,
            "code_challenge_method": "s256",
            **(query_params or {}),
        }
        return f"{self._supabase_url}/auth/v1/authorize?{urlencode(params)}"

    async def exchange_code_for_session(self, code: str) -> ProviderResult[Session]:
        code_verifier = self.storage.get(CODE_VERIFIER_KEY)
        if not code_verifier:
            return ProviderErr(message="PKCE code verifier not found in storage")

        result = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "pkce"},
            json={"auth_code": code, "code_verifier": code_verifier},
        )
        match result:
            case ProviderOk(value=dict() as payload) if payload.get("access_token") and payload.get("user"):
                self.storage.pop(CODE_VERIFIER_KEY, None)
                return ProviderOk(self._store(payload, payload["user"]))
            case ProviderOk():
                return ProviderErr(message="Token response carried no session")
            case _:
                return result

    async def consume_url_fragment(self, url: str) -> ProviderResult[Session]:
        """Turn ``#access_token=..&refresh_token=..`` into a stored Session."""
        params = parse_fragment(url)
        if "error_description" in params or "error" in params:
            return ProviderErr(message=params.get("error_description") or params["error"])
        access_token = params.get("access_token")
        if not access_token:
            return ProviderErr(message="No access token in URL fragment")

        result = await self._request(
            "GET",
            "/auth/v1/user",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        match result:
            case ProviderOk(value=dict() as user) if user.get("id"):
                return ProviderOk(self._store(params, user))
            case ProviderOk():
                return ProviderErr(message="Provider returned no user")
            case _:
                return result

    # ── Session ───────────────────────────────────────────────────────────

    async def get_session(self) -> ProviderResult[Optional[Session]]:
        """
        The stored Session, or ``ProviderOk(None)`` when signed out.

        Waits for a pending URL fragment to be consumed first; an error from
        that consumption is returned here.
        """
        async with self._init_lock:
            if self._pending_fragment is not None:
                url, self._pending_fragment = self._pending_fragment, None
                match await self.consume_url_fragment(url):
                    case ProviderErr() as err:
                        return err
        return ProviderOk(self.storage.get(SESSION_KEY))

    def sign_out(self) -> None:
        self.storage.pop(SESSION_KEY, None)

    # ── Internals ─────────────────────────────────────────────────────────

    def _store(self, tokens: Dict[str, Any], user: Dict[str, Any]) -> Session:
        session = Session(
            access_token=tokens["access_token"],
            refresh_token=tokens.get("refresh_token") or "",
            expires_in=int(tokens.get("expires_in") or 0),
            token_type=tokens.get("token_type") or "bearer",
            user=Principal.from_provider_user(user),
        )
        self.storage[SESSION_KEY] = session
        logger.info("Session established for %s", session.user.email or session.user.id)
        return session

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
            return ProviderErr.from_payload(response.status_code, payload)
        return ProviderOk(payload)
