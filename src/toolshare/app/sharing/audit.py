"""Share audit events and token redaction.

Records share create, revoke, public access and denied access. Plaintext
tokens never appear in events or logs; only an 8-character prefix is kept
for correlation.

This module provides:
  1. ``ShareAuditEvent``: structured audit record.
  2. ``ShareAuditEmitter``: protocol for event sinks.
  3. ``InMemoryShareAuditEmitter``: test sink.
  4. ``LoggingShareAuditEmitter``: structlog sink used by default.
  5. ``redact_token`` and ``emit_share_*`` helpers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

from toolshare.app.observability import get_logger

from .model import TOKEN_PREFIX_LENGTH, ShareToken

SHARE_CREATED = 'share.created'
SHARE_REVOKED = 'share.revoked'
SHARE_ACCESSED = 'share.accessed'
SHARE_DENIED = 'share.denied'


def redact_token(token: str | None) -> str:
    """Truncate a token to its prefix, or ``<redacted>`` if too short."""
    if not token or len(token) < TOKEN_PREFIX_LENGTH:
        return '<redacted>'
    return f'{token[:TOKEN_PREFIX_LENGTH]}...'


@dataclass(frozen=True, slots=True)
class ShareAuditEvent:
    """Structured audit event for share operations.

    Attributes:
        event_type: share.created, share.revoked, share.accessed, share.denied.
        tool_key: Tool the link belongs to (or was requested for).
        project_id: Project, when known.
        token_id: Token record id, when known.
        token_prefix: Redacted token for correlation.
        actor_user_id: Authenticated actor; empty for anonymous viewers.
        detail: Extra context (never the plaintext token).
        timestamp: When the event occurred.
    """

    event_type: str
    tool_key: str
    project_id: str = ''
    token_id: str = ''
    token_prefix: str = '<redacted>'
    actor_user_id: str = ''
    detail: str = ''
    timestamp: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self) -> dict:
        return {
            'event_type': self.event_type,
            'tool_key': self.tool_key,
            'project_id': self.project_id,
            'token_id': self.token_id,
            'token_prefix': self.token_prefix,
            'actor_user_id': self.actor_user_id,
            'detail': self.detail,
            'timestamp': self.timestamp.isoformat(),
        }


class ShareAuditEmitter(Protocol):
    async def emit(self, event: ShareAuditEvent) -> None: ...


class InMemoryShareAuditEmitter:
    """Test audit emitter that stores events in memory."""

    def __init__(self) -> None:
        self.events: list[ShareAuditEvent] = []

    async def emit(self, event: ShareAuditEvent) -> None:
        self.events.append(event)

    def find(self, event_type: str | None = None) -> list[ShareAuditEvent]:
        if event_type is None:
            return list(self.events)
        return [e for e in self.events if e.event_type == event_type]


class LoggingShareAuditEmitter:
    """Writes audit events to the structured log stream."""

    def __init__(self) -> None:
        self._logger = get_logger('toolshare.audit')

    async def emit(self, event: ShareAuditEvent) -> None:
        self._logger.info('share_audit', **event.to_dict())


# ── Convenience emitters ─────────────────────────────────────────────


async def emit_share_created(
    emitter: ShareAuditEmitter,
    *,
    token: ShareToken,
    plaintext: str,
    user_id: str,
) -> ShareAuditEvent:
    event = ShareAuditEvent(
        event_type=SHARE_CREATED,
        tool_key=token.tool_key,
        project_id=token.project_id,
        token_id=token.id,
        token_prefix=redact_token(plaintext),
        actor_user_id=user_id,
        detail=f'scope={token.scope.mode}',
    )
    await emitter.emit(event)
    return event


async def emit_share_revoked(
    emitter: ShareAuditEmitter,
    *,
    token: ShareToken,
    user_id: str,
) -> ShareAuditEvent:
    event = ShareAuditEvent(
        event_type=SHARE_REVOKED,
        tool_key=token.tool_key,
        project_id=token.project_id,
        token_id=token.id,
        token_prefix=redact_token(token.token_prefix),
        actor_user_id=user_id,
    )
    await emitter.emit(event)
    return event


async def emit_share_accessed(
    emitter: ShareAuditEmitter,
    *,
    token: ShareToken,
    plaintext: str,
) -> ShareAuditEvent:
    event = ShareAuditEvent(
        event_type=SHARE_ACCESSED,
        tool_key=token.tool_key,
        project_id=token.project_id,
        token_id=token.id,
        token_prefix=redact_token(plaintext),
    )
    await emitter.emit(event)
    return event


async def emit_share_denied(
    emitter: ShareAuditEmitter,
    *,
    tool_key: str,
    plaintext: str,
) -> ShareAuditEvent:
    """Emit a share.denied event. No failure reason is recorded."""
    event = ShareAuditEvent(
        event_type=SHARE_DENIED,
        tool_key=tool_key,
        token_prefix=redact_token(plaintext),
    )
    await emitter.emit(event)
    return event
