"""
NoteCraft Client — Environment Resolver
========================================

What:  Derives the API base URL and OAuth redirect URL from the page's
       hostname and origin.
How:   Pure function of ``(hostname, origin)``:
         local development host → fixed local API origin, redirect = origin
         any other host         → origin for both API base and redirect
Who:   Called once when a client session starts; the resulting
       ``EnvironmentConfig`` is handed to the API client and the login flow.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet

logger = logging.getLogger(__name__)

LOCAL_HOSTNAMES: FrozenSet[str] = frozenset({"localhost", "127.0.0.1"})
LOCAL_API_ORIGIN = "http://localhost:3000"
PREVIEW_DOMAIN = "vercel.app"


@dataclass(frozen=True)
class EnvironmentConfig:
    hostname: str
    origin: str
    api_base_url: str
    redirect_url: str
    is_local: bool
    is_hosted_preview: bool = False
    oauth_query_params: Dict[str, str] = field(
        default_factory=lambda: {"access_type": "offline", "prompt": "consent"}
    )

    @property
    def is_production(self) -> bool:
        return not self.is_local

    def api_url(self, endpoint: str) -> str:
        """``/notes`` and ``notes`` both resolve to ``<api_base_url>/api/notes``."""
        return f"{self.api_base_url}/api/{endpoint.lstrip('/')}"

    def oauth_options(self) -> Dict[str, Any]:
        """Options for starting the provider's OAuth sign-in."""
        return {"redirect_to": self.redirect_url, "query_params": dict(self.oauth_query_params)}


def resolve_environment(
    hostname: str,
    origin: str,
    *,
    local_hostnames: FrozenSet[str] = LOCAL_HOSTNAMES,
    local_api_origin: str = LOCAL_API_ORIGIN,
    preview_domain: str = PREVIEW_DOMAIN,
) -> EnvironmentConfig:
    """
    Resolve the client environment for a page served from ``origin``.

    Deterministic: identical input always yields an equal result.
    """
    origin = origin.rstrip("/")
    is_local = hostname in local_hostnames
    config = EnvironmentConfig(
        hostname=hostname,
        origin=origin,
        api_base_url=local_api_origin if is_local else origin,
        redirect_url=origin,
        is_local=is_local,
        is_hosted_preview=hostname == preview_domain or hostname.endswith("." + preview_domain),
    )
    if is_local:
        logger.debug("Environment detected: local, API base %s", config.api_base_url)
    return config
