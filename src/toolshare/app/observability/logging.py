"""structlog setup for the share service.

Every entry carries ``service``, ``environment`` and, inside a request,
``request_id``. Plaintext share tokens must never reach the log stream:
credential-like keys are blanked, and the token segment of public share
paths is masked wherever a ``path`` is logged.
"""

from __future__ import annotations

import logging
import re
import sys
from contextvars import ContextVar
from typing import Any, Callable

import structlog

SERVICE_NAME = "toolshare"
REDACTED = "<redacted>"

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

_SECRET_KEYS = frozenset({
    "token",
    "plaintext",
    "authorization",
    "apikey",
    "cookie",
    "service_role_key",
})

# /share/{tool}/{token} and /api/share/{tool}/{token}
_SHARE_PATH = re.compile(r"(/(?:api/)?share/[^/]+/)[^/?#\s]+")

_configured = False


def redact_share_path(path: str) -> str:
    """Mask the token segment of a public share URL path."""
    return _SHARE_PATH.sub(rf"\1{REDACTED}", path)


def _add_request_id(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict,
) -> dict:
    rid = request_id_ctx.get()
    if rid is not None:
        event_dict["request_id"] = rid
    return event_dict


def _redact_secrets(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict,
) -> dict:
    for key in list(event_dict):
        if key.lower() in _SECRET_KEYS:
            event_dict[key] = REDACTED
    path = event_dict.get("path")
    if isinstance(path, str):
        event_dict["path"] = redact_share_path(path)
    return event_dict


def _service_context(environment: str) -> Callable[..., dict]:
    def add_service(
        logger: logging.Logger, method_name: str, event_dict: dict,
    ) -> dict:
        event_dict.setdefault("service", SERVICE_NAME)
        event_dict.setdefault("environment", environment)
        return event_dict

    return add_service


def build_processors(environment: str) -> list[Any]:
    """Processors shared by every log entry, before rendering."""
    return [
        structlog.contextvars.merge_contextvars,
        _service_context(environment),
        _add_request_id,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        _redact_secrets,
        structlog.processors.format_exc_info,
    ]


def configure_logging(
    *,
    level: str = "INFO",
    json_output: bool = True,
    environment: str = "local",
) -> None:
    """Route structlog and stdlib logging to stdout. First call wins."""
    global _configured
    if _configured:
        return
    _configured = True

    structlog.configure(
        processors=[
            *build_processors(environment),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Access lines carry raw share tokens in the path; request_completed
    # replaces them. httpx request lines carry PostgREST token_hash filters.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
