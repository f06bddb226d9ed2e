"""
NoteCraft Client — Notes API Client
====================================

What:  Typed access to the NoteCraft HTTP API from a client session.
How:   Every call resolves its URL through the ``EnvironmentConfig``, sends
       JSON, and attaches ``Authorization: Bearer <token>`` from the current
       provider Session when one exists. Non-2xx responses raise ``ApiError``
       carrying the status and the server's ``error`` message.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from notecraft.client.environment import EnvironmentConfig
from notecraft.client.session import ProviderSessionClient
from notecraft.exceptions import NoteCraftError
from notecraft.provider.results import ProviderOk
from notecraft.schemas.auth import Principal
from notecraft.schemas.note import NoteResponse

logger = logging.getLogger(__name__)


class ApiError(NoteCraftError):
    """An API call answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str, request_id: str = ""):
        super().__init__(message=message, context={"request_id": request_id})
        self.status_code = status_code
        self.request_id = request_id


class NotesApiClient:
    def __init__(
        self,
        environment: EnvironmentConfig,
        session_client: Optional[ProviderSessionClient] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.environment = environment
        self.session_client = session_client
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def __aenter__(self) -> "NotesApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.session_client is not None:
            match await self.session_client.get_session():
                case ProviderOk(value=session) if session is not None:
                    headers["Authorization"] = session.authorization_header
        return headers

    async def request(self, method: str, endpoint: str, json: Any = None) -> Dict[str, Any]:
        url = self.environment.api_url(endpoint)
        response = await self._http.request(method, url, json=json, headers=await self._headers())
        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.is_error:
            message = payload.get("error") if isinstance(payload, dict) else None
            logger.warning("API %s %s -> %d", method, url, response.status_code)
            raise ApiError(
                response.status_code,
                message or f"HTTP {response.status_code}",
                request_id=response.headers.get("X-Request-ID", ""),
            )
        return payload

    # ── Endpoints ─────────────────────────────────────────────────────────

    async def current_user(self) -> Optional[Principal]:
        payload = await self.request("GET", "/auth/user")
        user = payload.get("user")
        return Principal.model_validate(user) if user else None

    async def list_notes(self) -> List[NoteResponse]:
        payload = await self.request("GET", "/notes")
        return [NoteResponse.model_validate(n) for n in payload["notes"]]

    async def get_note(self, note_id: str) -> NoteResponse:
        payload = await self.request("GET", f"/notes/{note_id}")
        return NoteResponse.model_validate(payload["note"])

    async def create_note(self, title: str, content: str = "") -> NoteResponse:
        payload = await self.request("POST", "/notes", json={"title": title, "content": content})
        return NoteResponse.model_validate(payload["note"])

    async def update_note(self, note_id: str, title: str, content: str = "") -> NoteResponse:
        payload = await self.request(
            "PUT", f"/notes/{note_id}", json={"title": title, "content": content}
        )
        return NoteResponse.model_validate(payload["note"])

    async def delete_note(self, note_id: str) -> bool:
        payload = await self.request("DELETE", f"/notes/{note_id}")
        return bool(payload.get("success"))
