"""Identity/storage provider access: request-scoped clients and call results."""

from notecraft.provider.identity import IdentityClient, IdentityClientFactory
from notecraft.provider.results import ProviderErr, ProviderOk, ProviderResult

__all__ = [
    "IdentityClient",
    "IdentityClientFactory",
    "ProviderErr",
    "ProviderOk",
    "ProviderResult",
]
