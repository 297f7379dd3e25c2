"""Unauthenticated share-link endpoints.

  GET /api/share/{tool_key}/{token}  → JSON public view
  GET /share/{tool_key}/{token}      → HTML page

Every token failure renders the same generic "Link Expired or Revoked"
outcome with status 404. A storage outage is a 503 in the same format as
the route (JSON or HTML) and says nothing about the token. Responses are
never cached or indexed.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import HTMLResponse, JSONResponse

from toolshare.app.observability import get_logger

from .audit import ShareAuditEmitter, emit_share_accessed, emit_share_denied
from .errors import InvalidToken, ShareError
from .render import render_invalid_page, render_share_page, render_unavailable_page
from .schema import get_tool_schema
from .validator import PublicView, TokenValidator

logger = get_logger(__name__)

PUBLIC_HEADERS = {
    'X-Robots-Tag': 'noindex, nofollow',
    'Cache-Control': 'no-store',
    'Referrer-Policy': 'no-referrer',
}


def create_public_router(
    validator: TokenValidator,
    audit: ShareAuditEmitter,
) -> APIRouter:
    router = APIRouter(tags=['public-share'])

    async def _view(tool_key: str, token: str) -> PublicView | None:
        try:
            view = await validator.validate(tool_key, token)
        except InvalidToken:
            await emit_share_denied(audit, tool_key=tool_key, plaintext=token)
            return None
        await emit_share_accessed(audit, token=view.token, plaintext=token)
        return view

    @router.get('/api/share/{tool_key}/{token}')
    async def get_shared_payload(tool_key: str, token: str):
        try:
            view = await _view(tool_key, token)
        except ShareError as exc:
            logger.warning('public_share_unavailable', tool_key=tool_key, error=exc.error)
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_content(),
                headers=PUBLIC_HEADERS,
            )
        if view is None:
            return JSONResponse(
                status_code=InvalidToken.status_code,
                content=InvalidToken().to_content(),
                headers=PUBLIC_HEADERS,
            )
        return JSONResponse(content=view.to_dict(), headers=PUBLIC_HEADERS)

    @router.get('/share/{tool_key}/{token}', response_class=HTMLResponse)
    async def get_shared_page(tool_key: str, token: str):
        try:
            view = await _view(tool_key, token)
        except ShareError as exc:
            logger.warning('public_share_unavailable', tool_key=tool_key, error=exc.error)
            return HTMLResponse(
                render_unavailable_page(),
                status_code=exc.status_code,
                headers=PUBLIC_HEADERS,
            )
        if view is None:
            return HTMLResponse(
                render_invalid_page(),
                status_code=InvalidToken.status_code,
                headers=PUBLIC_HEADERS,
            )
        return HTMLResponse(
            render_share_page(view, get_tool_schema(tool_key)),
            headers=PUBLIC_HEADERS,
        )

    return router
