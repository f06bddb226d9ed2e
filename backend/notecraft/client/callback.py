"""
NoteCraft Client — OAuth Callback Reconciler
=============================================

What:  Runs on page load. When the provider has just redirected back with a
       token-bearing fragment or a PKCE ``?code=``, turns it into a Session,
       strips the callback artifacts from the URL, and announces the result.
How:   A small state machine:

         IDLE ─▶ DETECTED_CALLBACK ─▶ WAITING_FOR_PROVIDER_CLIENT
              ─▶ EXCHANGING_CREDENTIALS ─▶ SESSION_ESTABLISHED | FAILED
              ─▶ URL_CLEANED

       The provider client may load after this code, so availability is
       polled with a bounded tenacity retry that ends in a typed
       ``ClientTimeout`` instead of an open loop.
Who:   ``reconcile_on_load()`` is the page-load entry point; observers listen
       on the ``NotificationBus`` for ``oauth-success`` / ``oauth-error``.

Failure also rewrites the URL: tokens must not stay in the address bar or
browser history regardless of the outcome.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Union
from urllib.parse import parse_qs, urlsplit

from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from notecraft.client.events import OAUTH_ERROR, OAUTH_SUCCESS, NotificationBus
from notecraft.client.session import ProviderSessionClient, parse_fragment
from notecraft.exceptions import CallbackTimeoutError
from notecraft.provider.results import ProviderErr, ProviderOk, ProviderResult
from notecraft.schemas.auth import Principal, Session

logger = logging.getLogger(__name__)

MAX_CLIENT_ATTEMPTS = 50
CLIENT_POLL_INTERVAL = 0.1   # seconds
FRAGMENT_SETTLE_DELAY = 1.0  # seconds

ClientGetter = Callable[[], Optional[ProviderSessionClient]]
Sleep = Callable[[float], Awaitable[Any]]


class CallbackState(str, Enum):
    IDLE = "idle"
    DETECTED_CALLBACK = "detected_callback"
    WAITING_FOR_PROVIDER_CLIENT = "waiting_for_provider_client"
    EXCHANGING_CREDENTIALS = "exchanging_credentials"
    SESSION_ESTABLISHED = "session_established"
    FAILED = "failed"
    URL_CLEANED = "url_cleaned"


# ══════════════════════════════════════════════════════════════════════════
# Callback detection
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FragmentCallback:
    """``#access_token=..&refresh_token=..&expires_in=..&token_type=..``"""

    access_token: str
    refresh_token: str = ""
    expires_in: int = 0
    token_type: str = "bearer"


@dataclass(frozen=True)
class CodeCallback:
    """``?code=..`` from the PKCE flow."""

    code: str


Callback = Union[FragmentCallback, CodeCallback]


def detect_callback(url: str) -> Optional[Callback]:
    """
    Read the callback carried by ``url``, if any.

    The fragment wins when both markers are present; the redirect flow never
    produces both, and the fragment already holds a usable token.
    """
    fragment = parse_fragment(url)
    if fragment.get("access_token"):
        expires_in = fragment.get("expires_in", "0")
        return FragmentCallback(
            access_token=fragment["access_token"],
            refresh_token=fragment.get("refresh_token", ""),
            expires_in=int(expires_in) if expires_in.isdigit() else 0,
            token_type=fragment.get("token_type", "bearer"),
        )

    code = parse_qs(urlsplit(url).query).get("code")
    if code and code[0]:
        return CodeCallback(code=code[0])
    return None


def is_oauth_callback(url: str) -> bool:
    return detect_callback(url) is not None


# ══════════════════════════════════════════════════════════════════════════
# Browser location
# ══════════════════════════════════════════════════════════════════════════

@dataclass
class BrowserLocation:
    """The page URL plus the non-reloading history entries written to it."""

    url: str
    history: List[str] = field(default_factory=list)

    @property
    def path(self) -> str:
        return urlsplit(self.url).path or "/"

    def replace_state(self, url: str) -> None:
        parts = urlsplit(self.url)
        self.url = f"{parts.scheme}://{parts.netloc}{url}" if parts.netloc else url
        self.history.append(url)


# ══════════════════════════════════════════════════════════════════════════
# Waiting for the provider client
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ClientReady:
    client: ProviderSessionClient
    attempts: int


@dataclass(frozen=True)
class ClientTimeout:
    attempts: int


async def wait_for_client(
    get_client: ClientGetter,
    *,
    max_attempts: int = MAX_CLIENT_ATTEMPTS,
    interval: float = CLIENT_POLL_INTERVAL,
    sleep: Sleep = asyncio.sleep,
) -> Union[ClientReady, ClientTimeout]:
    """Poll ``get_client`` until it returns a client or the attempts run out."""
    attempts = 0

    async def probe() -> Optional[ProviderSessionClient]:
        nonlocal attempts
        attempts += 1
        return get_client()

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda client: client is None),
        before_sleep=before_sleep_log(logger, logging.DEBUG),
        sleep=sleep,
    )
    try:
        client = await retrying(probe)
    except RetryError:
        return ClientTimeout(attempts=attempts)
    return ClientReady(client=client, attempts=attempts)


# ══════════════════════════════════════════════════════════════════════════
# Reconciler
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class NoCallback:
    """The URL carried no callback; nothing happened."""


@dataclass(frozen=True)
class SessionEstablished:
    principal: Principal


@dataclass(frozen=True)
class ReconcileFailed:
    reason: str


Outcome = Union[NoCallback, SessionEstablished, ReconcileFailed]


class OAuthCallbackReconciler:
    """
    One reconciler per page. ``run()`` may be called any number of times:
    without callback markers it is a no-op, and concurrent calls during a
    reconciliation share the one in flight.
    """

    def __init__(
        self,
        location: BrowserLocation,
        get_client: ClientGetter,
        notifications: NotificationBus,
        *,
        max_attempts: int = MAX_CLIENT_ATTEMPTS,
        poll_interval: float = CLIENT_POLL_INTERVAL,
        settle_delay: float = FRAGMENT_SETTLE_DELAY,
        sleep: Sleep = asyncio.sleep,
    ):
        self.location = location
        self.notifications = notifications
        self.state = CallbackState.IDLE
        self.transitions: List[CallbackState] = []
        self._get_client = get_client
        self._max_attempts = max_attempts
        self._poll_interval = poll_interval
        self._settle_delay = settle_delay
        self._sleep = sleep
        self._in_flight: Optional["asyncio.Future[Outcome]"] = None

    async def run(self) -> Outcome:
        if self._in_flight is not None:
            return await self._in_flight

        callback = detect_callback(self.location.url)
        if callback is None:
            return NoCallback()

        self._in_flight = asyncio.ensure_future(self._reconcile(callback))
        try:
            return await self._in_flight
        finally:
            self._in_flight = None

    # ── Steps ─────────────────────────────────────────────────────────────

    async def _reconcile(self, callback: Callback) -> Outcome:
        self._enter(CallbackState.DETECTED_CALLBACK)
        logger.info("OAuth callback detected (%s)", type(callback).__name__)

        self._enter(CallbackState.WAITING_FOR_PROVIDER_CLIENT)
        try:
            ready = await wait_for_client(
                self._get_client,
                max_attempts=self._max_attempts,
                interval=self._poll_interval,
                sleep=self._sleep,
            )
        except Exception as e:
            # A getter that raises is a failed sign-in, not a page error
            logger.error("Provider client lookup raised: %s", str(e), exc_info=True)
            ready = ReconcileFailed(reason=str(e) or type(e).__name__)

        match ready:
            case ReconcileFailed() as failed:
                outcome: Outcome = failed
            case ClientTimeout(attempts=attempts):
                error = CallbackTimeoutError(attempts)
                logger.error("%s after %d attempts", error.message, attempts)
                outcome = ReconcileFailed(reason=error.message)
            case ClientReady(client=client):
                self._enter(CallbackState.EXCHANGING_CREDENTIALS)
                outcome = self._settle(await self._exchange(client, callback))

        if isinstance(outcome, SessionEstablished):
            self._enter(CallbackState.SESSION_ESTABLISHED)
        else:
            self._enter(CallbackState.FAILED)

        self._clean_url()

        match outcome:
            case SessionEstablished(principal=principal):
                logger.info("OAuth sign-in complete for %s", principal.email or principal.id)
                self.notifications.emit(OAUTH_SUCCESS, {"user": principal})
            case ReconcileFailed(reason=reason):
                logger.warning("OAuth sign-in failed: %s", reason)
                self.notifications.emit(OAUTH_ERROR, {"error": reason})
        return outcome

    async def _exchange(
        self, client: ProviderSessionClient, callback: Callback
    ) -> ProviderResult[Optional[Session]]:
        try:
            match callback:
                case CodeCallback(code=code):
                    return await client.exchange_code_for_session(code)
                case FragmentCallback():
                    # The client consumes the fragment on its own
                    await self._sleep(self._settle_delay)
                    return await client.get_session()
        except Exception as e:
            logger.error("Credential exchange raised: %s", str(e), exc_info=True)
            return ProviderErr(message=str(e) or type(e).__name__)

    @staticmethod
    def _settle(result: ProviderResult[Optional[Session]]) -> Outcome:
        match result:
            case ProviderOk(value=Session() as session):
                return SessionEstablished(principal=session.user)
            case ProviderOk():
                return ReconcileFailed(reason="No session found after authentication")
            case ProviderErr(message=message):
                return ReconcileFailed(reason=message)

    def _clean_url(self) -> None:
        self.location.replace_state(self.location.path)
        self._enter(CallbackState.URL_CLEANED)

    def _enter(self, state: CallbackState) -> None:
        logger.debug("Callback state %s -> %s", self.state.value, state.value)
        self.state = state
        self.transitions.append(state)


async def reconcile_on_load(
    location: BrowserLocation,
    get_client: ClientGetter,
    notifications: NotificationBus,
    **options: Any,
) -> Outcome:
    """Page-load hook: build a reconciler for this page and run it once."""
    return await OAuthCallbackReconciler(location, get_client, notifications, **options).run()
