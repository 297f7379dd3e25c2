"""Share-link management and collaborator export endpoints.

  POST   /api/tools/{tool_key}/share-token?projectId=       → create link
  GET    /api/tools/{tool_key}/share-token?projectId=       → list links
  DELETE /api/tools/{tool_key}/share-token?projectId=       → revoke link
  POST   /api/tools/{tool_key}/share-token/risk?projectId=  → risk preview
  GET    /api/tools/{tool_key}/share-scopes?projectId=      → group catalog
  GET    /api/tools/{tool_key}/export?projectId=            → print payload

Auth contract:
  - Every endpoint requires an authenticated identity.
  - Link management is owner-only; collaborators get 403 even though the
    UI also hides the Public Links tab.
  - Export is open to any collaborator with EDIT or VIEW access.

Token security:
  - The plaintext token is returned exactly once in the create response.
  - Listings show the 8-character prefix, never a usable URL.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, ConfigDict, Field

from toolshare.app.observability import get_logger
from toolshare.app.protocols import ToolDataRepository
from toolshare.app.security.auth_guard import get_auth_identity
from toolshare.app.security.token_verify import AuthIdentity
from toolshare.app.settings import ShareSettings

from .access import AccessGate
from .audit import ShareAuditEmitter, emit_share_created, emit_share_revoked
from .errors import PermissionDenied, ShareLinkNotFound, ValidationError
from .model import ShareFlags, ShareToken, ShareTokenStore, utcnow
from .risk import classify, required_confirmation
from .sanitize import sanitize
from .schema import ToolSchema, get_tool_schema
from .scope import (
    ScopeOption,
    group_catalog,
    label_scope,
    parse_scope,
    resolve,
    risk_group_count,
)

logger = get_logger(__name__)


# ── Request schemas ──────────────────────────────────────────────────


class ScopeRequest(BaseModel):
    mode: str = 'all'
    ids: list[str] = Field(default_factory=list)


class ShareOptionsRequest(BaseModel):
    """Flags and scope shared by create and risk preview."""

    model_config = ConfigDict(populate_by_name=True)

    include_notes: bool = Field(default=False, alias='includeNotes')
    include_comments: bool = Field(default=False, alias='includeComments')
    include_photos: bool = Field(default=False, alias='includePhotos')
    scope: ScopeRequest | None = None

    def flags(self) -> ShareFlags:
        return ShareFlags(
            include_notes=self.include_notes,
            include_comments=self.include_comments,
            include_photos=self.include_photos,
        )


class RevokeShareRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token_id: str | None = Field(default=None, alias='tokenId')


# ── Serialization ────────────────────────────────────────────────────


def token_summary(token: ShareToken, now) -> dict[str, Any]:
    return {
        'id': token.id,
        'tokenPrefix': token.token_prefix,
        'status': token.state(now).value,
        **token.flags.to_dict(),
        'scope': token.scope.to_dict(),
        'createdBy': token.created_by,
        'createdAt': token.created_at.isoformat(),
        'expiresAt': token.expires_at.isoformat(),
        'revokedAt': token.revoked_at.isoformat() if token.revoked_at else None,
    }


# ── Route factory ────────────────────────────────────────────────────


def create_share_router(
    store: ShareTokenStore,
    access: AccessGate,
    tool_data: ToolDataRepository,
    audit: ShareAuditEmitter,
    settings: ShareSettings,
    *,
    clock=utcnow,
) -> APIRouter:
    """Create the share management router with injected dependencies.

    Args:
        store: Share token store.
        access: Authorization checks against project roles.
        tool_data: Tool payload repository (group catalogs and export).
        audit: Audit event sink.
        settings: App settings (public base URL, notes failsafe).
        clock: Server time source for token status.
    """
    router = APIRouter(prefix='/api/tools', tags=['share-links'])

    async def _catalog(
        schema: ToolSchema, project_id: str,
    ) -> list[ScopeOption]:
        payload = await tool_data.get_payload(project_id, schema.tool_key)
        return group_catalog(schema, payload)

    @router.post('/{tool_key}/share-token', status_code=201)
    async def create_share_token(
        tool_key: str,
        body: ShareOptionsRequest,
        project_id: str = Query(..., alias='projectId', min_length=1),
        identity: AuthIdentity = Depends(get_auth_identity),
    ):
        """Mint a public link. Returns the plaintext token once."""
        schema = get_tool_schema(tool_key)
        await access.require_manage(project_id, tool_key, identity.user_id)

        scope = parse_scope(body.scope.model_dump() if body.scope else None, schema)
        scope = label_scope(scope, await _catalog(schema, project_id))

        flags = body.flags()
        if settings.hide_notes_in_public_share and flags.include_notes:
            flags = replace(flags, include_notes=False)

        token, plaintext = await store.create(
            tool_key=tool_key,
            project_id=project_id,
            flags=flags,
            scope=scope,
            created_by=identity.user_id,
        )
        await emit_share_created(
            audit, token=token, plaintext=plaintext, user_id=identity.user_id,
        )
        logger.info(
            'share_token_created',
            tool_key=tool_key,
            project_id=project_id,
            token_id=token.id,
            scope_mode=scope.mode,
        )
        return {
            'id': token.id,
            'token': plaintext,
            'url': settings.share_url(tool_key, plaintext),
            **token.flags.to_dict(),
            'scope': token.scope.to_dict(),
            'createdAt': token.created_at.isoformat(),
            'expiresAt': token.expires_at.isoformat(),
        }

    @router.get('/{tool_key}/share-token')
    async def list_share_tokens(
        tool_key: str,
        project_id: str = Query(..., alias='projectId', min_length=1),
        identity: AuthIdentity = Depends(get_auth_identity),
    ):
        """List every link for the tool, including expired and revoked."""
        get_tool_schema(tool_key)
        await access.require_manage(project_id, tool_key, identity.user_id)

        tokens = await store.list_by_project(tool_key, project_id)
        now = clock()
        return {'tokens': [token_summary(t, now) for t in tokens]}

    @router.delete('/{tool_key}/share-token', status_code=204)
    async def revoke_share_token(
        tool_key: str,
        body: RevokeShareRequest | None = None,
        project_id: str = Query(..., alias='projectId', min_length=1),
        identity: AuthIdentity = Depends(get_auth_identity),
    ):
        """Revoke a link. Idempotent."""
        get_tool_schema(tool_key)
        await access.require_manage(project_id, tool_key, identity.user_id)

        if body is None or not body.token_id:
            raise ValidationError('tokenId', 'tokenId required')

        token = await store.revoke(
            body.token_id, tool_key=tool_key, project_id=project_id,
        )
        if token is None:
            raise ShareLinkNotFound(f'Share link {body.token_id} not found')
        await emit_share_revoked(audit, token=token, user_id=identity.user_id)
        logger.info(
            'share_token_revoked',
            tool_key=tool_key,
            project_id=project_id,
            token_id=token.id,
        )
        return Response(status_code=204)

    @router.post('/{tool_key}/share-token/risk')
    async def preview_share_risk(
        tool_key: str,
        body: ShareOptionsRequest,
        project_id: str = Query(..., alias='projectId', min_length=1),
        identity: AuthIdentity = Depends(get_auth_identity),
    ):
        """Classify a prospective link against the current group count."""
        schema = get_tool_schema(tool_key)
        await access.require_manage(project_id, tool_key, identity.user_id)

        scope = parse_scope(body.scope.model_dump() if body.scope else None, schema)
        group_count = risk_group_count(schema, await _catalog(schema, project_id))
        assessment = classify(body.flags(), scope, group_count)
        return {
            'risky': assessment.risky,
            'exposes': list(assessment.exposes),
            'groupCount': group_count,
            'confirmation': required_confirmation(assessment).to_dict(),
        }

    @router.get('/{tool_key}/share-scopes')
    async def list_share_scopes(
        tool_key: str,
        project_id: str = Query(..., alias='projectId', min_length=1),
        identity: AuthIdentity = Depends(get_auth_identity),
    ):
        """Selectable groups for the creation form."""
        schema = get_tool_schema(tool_key)
        level = await access.require_tool_access(
            project_id, tool_key, identity.user_id,
        )
        catalog = await _catalog(schema, project_id)
        return {
            'toolKey': tool_key,
            'scopeLabel': schema.scope_label,
            'canManage': access.can_manage(level),
            'options': [o.to_dict() for o in catalog],
        }

    @router.get('/{tool_key}/export')
    async def export_tool(
        tool_key: str,
        project_id: str = Query(..., alias='projectId', min_length=1),
        include_notes: bool = Query(False, alias='includeNotes'),
        include_comments: bool = Query(False, alias='includeComments'),
        include_photos: bool = Query(False, alias='includePhotos'),
        scope_mode: str = Query('all', alias='scopeMode'),
        ids: list[str] | None = Query(None),
        identity: AuthIdentity = Depends(get_auth_identity),
    ):
        """Scoped, sanitized payload for the print/PDF path."""
        schema = get_tool_schema(tool_key)
        level = await access.resolve_tool_access(
            project_id, tool_key, identity.user_id,
        )
        if not access.can_export(level):
            raise PermissionDenied('No access to this tool')

        scope = parse_scope({'mode': scope_mode, 'ids': ids or []}, schema)
        flags = ShareFlags(
            include_notes=include_notes,
            include_comments=include_comments,
            include_photos=include_photos,
        )
        payload = await tool_data.get_payload(project_id, tool_key)
        scope = label_scope(scope, group_catalog(schema, payload))
        return {
            'toolKey': tool_key,
            'payload': sanitize(resolve(scope, payload, schema), flags, schema),
            **flags.to_dict(),
            'scope': scope.to_dict(),
        }

    return router
