"""Supabase-backed ShareTokenStore.

Persists share tokens in ``toolshare.tool_share_tokens`` via PostgREST.

Security invariants:
  - The plaintext token is never stored; only its SHA-256 hash and an
    8-character display prefix.
  - ``expires_at`` is always ``created_at + 14 days``; the row is built
    here, never from request input.
  - Revocation only ever sets ``revoked_at`` on a row where it is null.

Storage and network failures surface as ``TransientFailure``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from toolshare.app.sharing.model import (
    Clock,
    ShareFlags,
    ShareScope,
    ShareToken,
    hash_token,
    new_share_token,
    utcnow,
)

from .errors import storage_call
from .supabase_client import SupabaseClient


def _parse_ts(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    # PostgREST emits "+00:00" offsets; older servers may use "Z".
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def token_to_row(token: ShareToken) -> dict[str, Any]:
    return {
        "id": token.id,
        "tool_key": token.tool_key,
        "project_id": token.project_id,
        "token_hash": token.token_hash,
        "token_prefix": token.token_prefix,
        "scope": token.scope.to_dict(),
        "include_notes": token.flags.include_notes,
        "include_comments": token.flags.include_comments,
        "include_photos": token.flags.include_photos,
        "created_by": token.created_by,
        "created_at": token.created_at.isoformat(),
        "expires_at": token.expires_at.isoformat(),
        "revoked_at": token.revoked_at.isoformat() if token.revoked_at else None,
    }


def row_to_token(row: dict[str, Any]) -> ShareToken:
    scope_raw = row.get("scope") or {}
    return ShareToken(
        id=str(row["id"]),
        tool_key=row["tool_key"],
        project_id=str(row["project_id"]),
        token_hash=row["token_hash"],
        token_prefix=row.get("token_prefix") or "",
        scope=ShareScope(
            mode=scope_raw.get("mode", "all"),
            ids=frozenset(scope_raw.get("ids") or ()),
            labels=tuple(scope_raw.get("labels") or ()),
        ),
        flags=ShareFlags(
            include_notes=bool(row.get("include_notes")),
            include_comments=bool(row.get("include_comments")),
            include_photos=bool(row.get("include_photos")),
        ),
        created_by=str(row.get("created_by") or ""),
        created_at=_parse_ts(row["created_at"]),
        expires_at=_parse_ts(row["expires_at"]),
        revoked_at=_parse_ts(row.get("revoked_at")),
    )


class SupabaseShareTokenStore:
    """ShareTokenStore backed by toolshare.tool_share_tokens."""

    TABLE = "toolshare.tool_share_tokens"

    def __init__(self, client: SupabaseClient, clock: Clock = utcnow) -> None:
        self._client = client
        self._clock = clock

    async def _call(self, operation: str, coro):
        return await storage_call("Share link", operation, coro)

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
        rows = await self._call(
            "create", self._client.insert(self.TABLE, token_to_row(token)),
        )
        # Plaintext is returned once and never written.
        return (row_to_token(rows[0]) if rows else token), plaintext

    async def _get(
        self, token_id: str, tool_key: str, project_id: str,
    ) -> ShareToken | None:
        rows = await self._call(
            "get",
            self._client.select(
                self.TABLE,
                filters={
                    "id": token_id,
                    "tool_key": tool_key,
                    "project_id": project_id,
                },
                limit=1,
            ),
        )
        return row_to_token(rows[0]) if rows else None

    async def revoke(
        self, token_id: str, *, tool_key: str, project_id: str,
    ) -> ShareToken | None:
        token = await self._get(token_id, tool_key, project_id)
        if token is None or token.revoked_at is not None:
            return token

        rows = await self._call(
            "revoke",
            self._client.update(
                self.TABLE,
                filters={
                    "id": token_id,
                    "project_id": project_id,
                    "revoked_at": ("is", None),
                },
                data={"revoked_at": self._clock().isoformat()},
            ),
        )
        if rows:
            return row_to_token(rows[0])
        # A concurrent revoke won; return its timestamp.
        return await self._get(token_id, tool_key, project_id)

    async def list_by_project(
        self, tool_key: str, project_id: str,
    ) -> list[ShareToken]:
        rows = await self._call(
            "list",
            self._client.select(
                self.TABLE,
                filters={"tool_key": tool_key, "project_id": project_id},
                order="created_at.desc",
            ),
        )
        return [row_to_token(r) for r in rows]

    async def lookup(self, plaintext_token: str) -> ShareToken | None:
        rows = await self._call(
            "lookup",
            self._client.select(
                self.TABLE,
                filters={"token_hash": hash_token(plaintext_token)},
                limit=1,
            ),
        )
        return row_to_token(rows[0]) if rows else None
