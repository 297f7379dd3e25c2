"""Scoped public sharing: token lifecycle, scope, redaction and routes."""

from .access import AccessGate
from .audit import InMemoryShareAuditEmitter, LoggingShareAuditEmitter
from .errors import (
    InvalidToken,
    PermissionDenied,
    ShareError,
    TransientFailure,
    UnknownTool,
    ValidationError,
    register_error_handlers,
)
from .model import (
    InMemoryShareTokenStore,
    ShareFlags,
    ShareScope,
    ShareToken,
    ShareTokenStore,
    TokenState,
)
from .public import create_public_router
from .routes import create_share_router
from .validator import PublicView, TokenValidator

__all__ = [
    'AccessGate',
    'InMemoryShareAuditEmitter',
    'InMemoryShareTokenStore',
    'InvalidToken',
    'LoggingShareAuditEmitter',
    'PermissionDenied',
    'PublicView',
    'ShareError',
    'ShareFlags',
    'ShareScope',
    'ShareToken',
    'ShareTokenStore',
    'TokenState',
    'TokenValidator',
    'TransientFailure',
    'UnknownTool',
    'ValidationError',
    'create_public_router',
    'create_share_router',
    'register_error_handlers',
]
