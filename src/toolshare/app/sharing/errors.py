"""Share-link error taxonomy and HTTP mapping.

Public-facing failures collapse to ``InvalidToken``: not-found, expired,
revoked and wrong-tool tokens are indistinguishable to the caller.
Management-facing failures (``PermissionDenied``, ``ValidationError``,
``TransientFailure``) may be specific because the caller is authenticated.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

INVALID_LINK_MESSAGE = 'Link Expired or Revoked'


class ShareError(Exception):
    """Base class for share-link errors."""

    status_code = 500
    error = 'share_error'

    def __init__(self, detail: str = '') -> None:
        self.detail = detail
        super().__init__(detail or self.error)

    def to_content(self) -> dict:
        return {'error': self.error, 'detail': self.detail}


class InvalidToken(ShareError):
    """Token is unknown, expired, revoked, or bound to another tool."""

    status_code = 404
    error = 'link_invalid'

    def __init__(self) -> None:
        super().__init__(INVALID_LINK_MESSAGE)


class PermissionDenied(ShareError):
    status_code = 403
    error = 'forbidden'


class ValidationError(ShareError):
    """Malformed management request; ``field`` names the offending input."""

    status_code = 400
    error = 'invalid_request'

    def __init__(self, field: str, detail: str) -> None:
        self.field = field
        super().__init__(detail)

    def to_content(self) -> dict:
        return {'error': self.error, 'field': self.field, 'detail': self.detail}


class TransientFailure(ShareError):
    """Storage or network failure during create/list/revoke. Not retried."""

    status_code = 503
    error = 'unavailable'


class ShareLinkNotFound(ShareError):
    """Revoke target is not a link of this project and tool."""

    status_code = 404
    error = 'share_not_found'


class UnknownTool(ShareError):
    status_code = 404
    error = 'unknown_tool'


# ── Handlers ─────────────────────────────────────────────────────────


async def _share_error_handler(request: Request, exc: ShareError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_content())


async def _request_validation_handler(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = [
        str(part) for part in first.get('loc', ())
        if part not in ('body', 'query', 'path')
    ]
    return JSONResponse(
        status_code=400,
        content={
            'error': 'invalid_request',
            'field': '.'.join(loc),
            'detail': first.get('msg', 'Invalid request'),
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install the share error → JSON response mapping on ``app``."""
    app.add_exception_handler(ShareError, _share_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
