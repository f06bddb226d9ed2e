"""
NoteCraft Client
================

The browser-session half of NoteCraft, usable from any asyncio program:

    environment.py  Environment Resolver (API base + OAuth redirect per host)
    session.py      Provider session client (PKCE sign-in, code exchange, Session)
    callback.py     OAuth Callback Reconciler (page-load state machine)
    events.py       Notification bus for oauth-success / oauth-error
    api.py          Typed client for the /api routes
"""

from notecraft.client.api import ApiError, NotesApiClient
from notecraft.client.callback import (
    BrowserLocation,
    CallbackState,
    OAuthCallbackReconciler,
    reconcile_on_load,
)
from notecraft.client.environment import EnvironmentConfig, resolve_environment
from notecraft.client.events import OAUTH_ERROR, OAUTH_SUCCESS, NotificationBus
from notecraft.client.session import ProviderSessionClient

__all__ = [
    "ApiError",
    "BrowserLocation",
    "CallbackState",
    "EnvironmentConfig",
    "NotesApiClient",
    "NotificationBus",
    "OAUTH_ERROR",
    "OAUTH_SUCCESS",
    "OAuthCallbackReconciler",
    "ProviderSessionClient",
    "reconcile_on_load",
    "resolve_environment",
]
