"""Logging helpers for the share service."""

from .logging import configure_logging, get_logger, redact_share_path, request_id_ctx
from .middleware import RequestIDMiddleware

__all__ = [
    "RequestIDMiddleware",
    "configure_logging",
    "get_logger",
    "redact_share_path",
    "request_id_ctx",
]
