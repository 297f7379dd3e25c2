"""Who may manage public links, who may export, who may view.

Roles per project tool:

  - ``OWNER``: create, list and revoke share links; export.
  - ``EDIT`` / ``VIEW`` collaborators: export/print only. Every management
    call is rejected server-side even though the UI also hides it.
  - anonymous: no identity; reaches data only through a valid token.

Project owners have implicit access to every tool. Members need an explicit
tool access row. The check is pure: it reads existing role data and has no
side effects.
"""

from __future__ import annotations

from toolshare.app.protocols import (
    LEVEL_EDIT,
    LEVEL_VIEW,
    ROLE_OWNER,
    ProjectRepository,
)

from .errors import PermissionDenied
from .model import ShareToken

ACCESS_OWNER = ROLE_OWNER
EXPORT_LEVELS = frozenset({ACCESS_OWNER, LEVEL_EDIT, LEVEL_VIEW})


class AccessGate:
    """Authorization checks against the project access service."""

    def __init__(self, projects: ProjectRepository) -> None:
        self._projects = projects

    async def resolve_tool_access(
        self, project_id: str, tool_key: str, user_id: str,
    ) -> str | None:
        """Return ``OWNER``, ``EDIT``, ``VIEW`` or None (no access at all)."""
        role = await self._projects.get_member_role(project_id, user_id)
        if role is None:
            return None
        if role == ROLE_OWNER:
            return ACCESS_OWNER
        level = await self._projects.get_tool_access_level(
            project_id, tool_key, user_id,
        )
        return level if level in (LEVEL_EDIT, LEVEL_VIEW) else None

    @staticmethod
    def can_manage(access: str | None) -> bool:
        return access == ACCESS_OWNER

    @staticmethod
    def can_export(access: str | None) -> bool:
        return access in EXPORT_LEVELS

    @staticmethod
    def can_use_public_link(token: ShareToken | None) -> bool:
        # Anonymous access is granted by the resolved token alone.
        return token is not None

    async def require_tool_access(
        self, project_id: str, tool_key: str, user_id: str,
    ) -> str:
        access = await self.resolve_tool_access(project_id, tool_key, user_id)
        if access is None:
            raise PermissionDenied('No access to this tool')
        return access

    async def require_manage(
        self, project_id: str, tool_key: str, user_id: str,
    ) -> str:
        access = await self.require_tool_access(project_id, tool_key, user_id)
        if not self.can_manage(access):
            raise PermissionDenied('Owner access required')
        return access
