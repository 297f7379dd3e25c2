"""View-time resolution of a share token into a public view.

Every failure (unknown token, revoked, expired, wrong tool, project or
payload gone) raises the same ``InvalidToken``. Callers cannot tell the
cases apart, and validation never mutates token state, so arbitrary
strings are safe to pass in.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from toolshare.app.observability import get_logger
from toolshare.app.protocols import ProjectRepository, ToolDataRepository

from .errors import InvalidToken, UnknownTool
from .model import Clock, ShareFlags, ShareScope, ShareToken, ShareTokenStore, utcnow
from .sanitize import sanitize
from .schema import get_tool_schema
from .scope import resolve

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class PublicView:
    """Composed, sanitized view handed to the public renderer."""

    token: ShareToken
    tool_key: str
    project_name: str
    payload: dict[str, Any]
    flags: ShareFlags
    scope: ShareScope

    def to_dict(self) -> dict[str, Any]:
        return {
            'payload': self.payload,
            'projectName': self.project_name,
            'toolKey': self.tool_key,
            **self.flags.to_dict(),
            'scope': self.scope.to_dict(),
        }


class TokenValidator:
    """Resolve ``(tool_key, token)`` into a ``PublicView`` or ``InvalidToken``.

    Args:
        store: Share token store.
        projects: Project repository (for the project name).
        tool_data: Per-tool payload repository.
        hide_notes: Admin failsafe forcing notes off in every public view.
        clock: Server time source shared with the store.
    """

    def __init__(
        self,
        store: ShareTokenStore,
        projects: ProjectRepository,
        tool_data: ToolDataRepository,
        *,
        hide_notes: bool = False,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._projects = projects
        self._tool_data = tool_data
        self._hide_notes = hide_notes
        self._clock = clock

    async def resolve_token(self, tool_key: str, plaintext: str) -> ShareToken:
        """Return the active token bound to ``tool_key`` or raise InvalidToken."""
        token = await self._store.lookup(plaintext)
        if (
            token is None
            or token.tool_key != tool_key
            or not token.is_active(self._clock())
        ):
            raise InvalidToken()
        return token

    async def validate(self, tool_key: str, plaintext: str) -> PublicView:
        try:
            schema = get_tool_schema(tool_key)
        except UnknownTool:
            raise InvalidToken() from None

        token = await self.resolve_token(tool_key, plaintext)

        project = await self._projects.get_project(token.project_id)
        payload = await self._tool_data.get_payload(token.project_id, tool_key)
        if project is None or payload is None:
            logger.warning(
                'share_view_source_missing',
                token_id=token.id,
                project_found=project is not None,
                payload_found=payload is not None,
            )
            raise InvalidToken()

        flags = token.flags
        if self._hide_notes and flags.include_notes:
            flags = replace(flags, include_notes=False)

        visible = resolve(token.scope, payload, schema)
        return PublicView(
            token=token,
            tool_key=tool_key,
            project_name=str(project.get('name') or ''),
            payload=sanitize(visible, flags, schema),
            flags=flags,
            scope=token.scope,
        )
