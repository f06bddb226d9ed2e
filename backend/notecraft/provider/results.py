"""
Provider call results.

Every wrapper around a provider HTTP call returns either ``ProviderOk`` or
``ProviderErr`` instead of raising or handing back a ``(data, error)`` pair.
Callers branch on the variant with ``match``.
"""

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class ProviderOk(Generic[T]):
    value: T


@dataclass(frozen=True)
class ProviderErr:
    message: str
    status: Optional[int] = None
    code: Optional[str] = None

    @classmethod
    def from_payload(cls, status: int, payload: Any) -> "ProviderErr":
        """Build an error from a GoTrue or PostgREST error body."""
        if isinstance(payload, dict):
            message = (
                payload.get("message")
                or payload.get("msg")
                or payload.get("error_description")
                or payload.get("error")
            )
            code = payload.get("code") or payload.get("error_code")
            return cls(
                message=str(message or f"Provider returned HTTP {status}"),
                status=status,
                code=str(code) if code is not None else None,
            )
        return cls(message=f"Provider returned HTTP {status}", status=status)


ProviderResult = Union[ProviderOk[T], ProviderErr]
