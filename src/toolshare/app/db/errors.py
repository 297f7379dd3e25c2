"""PostgREST error hierarchy and its mapping onto share errors.

The error types carry no httpx objects, so repositories can raise and
catch them without leaking response objects (or the service-role key).
``storage_call`` is the single place where storage and network failures
become ``TransientFailure``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable

import httpx

from toolshare.app.observability import get_logger
from toolshare.app.sharing.errors import TransientFailure

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SupabaseError(Exception):
    """Base error for failed PostgREST requests."""

    status_code: int
    message: str
    code: str | None = None
    details: str | None = None

    def __str__(self) -> str:
        bits = [f"SupabaseError(status={self.status_code})", self.message]
        if self.code:
            bits.append(f"code={self.code}")
        return " ".join(bits)


class SupabaseAuthError(SupabaseError):
    """401/403: bad key or row-level security rejection."""


class SupabaseNotFoundError(SupabaseError):
    """404: missing table or route."""


class SupabaseConflictError(SupabaseError):
    """409: unique violation."""


async def storage_call(
    resource: str, operation: str, awaitable: Awaitable[Any],
) -> Any:
    """Await a PostgREST call, raising ``TransientFailure`` on any failure."""
    try:
        return await awaitable
    except (SupabaseError, httpx.HTTPError) as exc:
        logger.error(
            "storage_failure",
            resource=resource,
            operation=operation,
            error=type(exc).__name__,
        )
        raise TransientFailure(
            f"{resource} storage unavailable ({operation})"
        ) from exc
