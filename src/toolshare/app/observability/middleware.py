"""Request correlation and access logging middleware."""

from __future__ import annotations

import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from .logging import get_logger, request_id_ctx

logger = get_logger(__name__)

_VALID_REQUEST_ID = re.compile(r"^[a-zA-Z0-9\-]{8,128}$")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Accept a well-formed X-Request-ID or mint one; echo it on the response.

    Also emits one ``request_completed`` line per request. The path is
    logged under ``path`` so the share-token mask applies to it.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        incoming = request.headers.get("x-request-id", "")
        rid = incoming if _VALID_REQUEST_ID.match(incoming) else str(uuid.uuid4())
        request.state.request_id = rid

        ctx_token = request_id_ctx.set(rid)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
        finally:
            request_id_ctx.reset(ctx_token)

        response.headers["X-Request-ID"] = rid
        return response
