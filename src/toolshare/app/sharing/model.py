"""Share-token domain model with token-hash persistence.

Implements the public share-link data model:

  - Only the SHA-256 token hash is persisted; the plaintext token is
    generated once and returned to the creator.
  - Tokens expire a fixed 14 days after creation. Expiry is computed at
    read time; there is no sweeper job.
  - Revocation sets ``revoked_at`` once and is terminal.
  - Tokens are never deleted, so the owner listing keeps an audit trail.

State machine::

    ACTIVE ──(now >= expires_at)──▶ EXPIRED
       └────(owner revokes)───────▶ REVOKED

This module provides:
  1. ``ShareFlags`` / ``ShareScope`` / ``ShareToken`` value objects.
  2. ``ShareTokenStore``: abstract storage protocol.
  3. ``InMemoryShareTokenStore``: local/test implementation.
  4. ``generate_share_token`` / ``hash_token``: token helpers.
"""

from __future__ import annotations

import enum
import hashlib
import secrets
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol

# ── Constants ─────────────────────────────────────────────────────────

TOKEN_BYTES = 32  # 256-bit tokens.
TOKEN_PREFIX_LENGTH = 8
SHARE_TOKEN_TTL = timedelta(days=14)

SCOPE_ALL = 'all'
SCOPE_SELECTED = 'selected'
SCOPE_MODES = frozenset({SCOPE_ALL, SCOPE_SELECTED})

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Server-side time source for every expiry comparison."""
    return datetime.now(timezone.utc)


# ── Token operations ──────────────────────────────────────────────────


def generate_share_token() -> str:
    """Generate a cryptographically random URL-safe share token."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def hash_token(plaintext: str) -> str:
    """SHA-256 of a plaintext token; the only form that is stored."""
    return hashlib.sha256(plaintext.encode('utf-8')).hexdigest()


# ── Value objects ─────────────────────────────────────────────────────


class TokenState(str, enum.Enum):
    ACTIVE = 'active'
    EXPIRED = 'expired'
    REVOKED = 'revoked'


@dataclass(frozen=True, slots=True)
class ShareFlags:
    """Coarse content inclusion flags of a share link."""

    include_notes: bool = False
    include_comments: bool = False
    include_photos: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {
            'includeNotes': self.include_notes,
            'includeComments': self.include_comments,
            'includePhotos': self.include_photos,
        }


@dataclass(frozen=True, slots=True)
class ShareScope:
    """Which groups a share link exposes.

    ``ids`` only matters in ``selected`` mode. It is matched against the
    tool's current collection at view time, so deleted groups simply
    vanish. ``labels`` are display names captured at creation.
    """

    mode: str = SCOPE_ALL
    ids: frozenset[str] = frozenset()
    labels: tuple[str, ...] = ()

    @property
    def is_all(self) -> bool:
        return self.mode == SCOPE_ALL

    def to_dict(self) -> dict:
        return {
            'mode': self.mode,
            'ids': sorted(self.ids),
            'labels': list(self.labels),
        }


@dataclass(frozen=True, slots=True)
class ShareToken:
    """Share token record.

    Attributes:
        id: Storage identity.
        tool_key: Tool the link exposes.
        project_id: Owning project.
        token_hash: SHA-256 hash of the plaintext token.
        token_prefix: First characters of the plaintext, for owner display.
        scope: Visible groups.
        flags: Content inclusion flags.
        created_by: User ID of the owner who minted the link.
        created_at: Creation timestamp.
        expires_at: ``created_at + 14 days``.
        revoked_at: Set once on revocation, never cleared.
    """

    id: str
    tool_key: str
    project_id: str
    token_hash: str
    token_prefix: str
    scope: ShareScope
    flags: ShareFlags
    created_by: str
    created_at: datetime
    expires_at: datetime
    revoked_at: datetime | None = None

    def state(self, now: datetime) -> TokenState:
        if self.revoked_at is not None:
            return TokenState.REVOKED
        if now >= self.expires_at:
            return TokenState.EXPIRED
        return TokenState.ACTIVE

    def is_active(self, now: datetime) -> bool:
        return self.state(now) is TokenState.ACTIVE


def new_share_token(
    *,
    tool_key: str,
    project_id: str,
    flags: ShareFlags,
    scope: ShareScope,
    created_by: str,
    now: datetime,
    token_id: str | None = None,
) -> tuple[ShareToken, str]:
    """Mint a token record and its plaintext secret.

    ``expires_at`` is always ``now + SHARE_TOKEN_TTL``; callers cannot
    choose a different lifetime.
    """
    plaintext = generate_share_token()
    token = ShareToken(
        id=token_id or f'stk_{uuid.uuid4().hex[:12]}',
        tool_key=tool_key,
        project_id=project_id,
        token_hash=hash_token(plaintext),
        token_prefix=plaintext[:TOKEN_PREFIX_LENGTH],
        scope=scope,
        flags=flags,
        created_by=created_by,
        created_at=now,
        expires_at=now + SHARE_TOKEN_TTL,
    )
    return token, plaintext


# ── Repository protocol ──────────────────────────────────────────────


class ShareTokenStore(Protocol):
    """Abstract share token storage.

    Implementations: InMemoryShareTokenStore (local/testing),
    SupabaseShareTokenStore (production).
    """

    async def create(
        self,
        *,
        tool_key: str,
        project_id: str,
        flags: ShareFlags,
        scope: ShareScope,
        created_by: str,
    ) -> tuple[ShareToken, str]:
        """Persist a new ACTIVE token. Returns (record, plaintext)."""
        ...

    async def revoke(
        self, token_id: str, *, tool_key: str, project_id: str,
    ) -> ShareToken | None:
        """Set ``revoked_at`` if unset. None if the id is not in the project."""
        ...

    async def list_by_project(
        self, tool_key: str, project_id: str,
    ) -> list[ShareToken]: ...

    async def lookup(self, plaintext_token: str) -> ShareToken | None:
        """Exact hash match only."""
        ...


# ── In-memory implementation ─────────────────────────────────────────


class InMemoryShareTokenStore:
    """Dict-backed share token store for local development and tests."""

    def __init__(self, clock: Clock = utcnow) -> None:
        self._clock = clock
        self._tokens: dict[str, ShareToken] = {}
        self._by_hash: dict[str, str] = {}

    async def create(
        self,
        *,
        tool_key: str,
        project_id: str,
        flags: ShareFlags,
        scope: ShareScope,
        created_by: str,
    ) -> tuple[ShareToken, str]:
        token, plaintext = new_share_token(
            tool_key=tool_key,
            project_id=project_id,
            flags=flags,
            scope=scope,
            created_by=created_by,
            now=self._clock(),
        )
        self._tokens[token.id] = token
        self._by_hash[token.token_hash] = token.id
        return token, plaintext

    async def revoke(
        self, token_id: str, *, tool_key: str, project_id: str,
    ) -> ShareToken | None:
        token = self._tokens.get(token_id)
        if (
            token is None
            or token.project_id != project_id
            or token.tool_key != tool_key
        ):
            return None
        if token.revoked_at is None:
            token = replace(token, revoked_at=self._clock())
            self._tokens[token_id] = token
        return token

    async def list_by_project(
        self, tool_key: str, project_id: str,
    ) -> list[ShareToken]:
        matching = [
            t for t in self._tokens.values()
            if t.tool_key == tool_key and t.project_id == project_id
        ]
        return sorted(matching, key=lambda t: t.created_at, reverse=True)

    async def lookup(self, plaintext_token: str) -> ShareToken | None:
        token_id = self._by_hash.get(hash_token(plaintext_token))
        if token_id is None:
            return None
        return self._tokens.get(token_id)
