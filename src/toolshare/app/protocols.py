"""Repository protocol interfaces for dependency injection.

These protocols define the boundary with collaborators the share service
does not own: project membership/tool access and per-tool payload storage.
Concrete implementations (InMemory for local dev, Supabase for non-local)
are chosen by the app factory.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

ROLE_OWNER = "OWNER"
ROLE_MEMBER = "MEMBER"

LEVEL_EDIT = "EDIT"
LEVEL_VIEW = "VIEW"


@runtime_checkable
class ProjectRepository(Protocol):
    """Projects, memberships and per-tool access rows."""

    async def get_project(self, project_id: str) -> dict[str, Any] | None: ...

    async def get_member_role(self, project_id: str, user_id: str) -> str | None:
        """Return ``OWNER`` / ``MEMBER`` or None for non-members."""
        ...

    async def get_tool_access_level(
        self, project_id: str, tool_key: str, user_id: str,
    ) -> str | None:
        """Return ``EDIT`` / ``VIEW`` or None when no access row exists."""
        ...


@runtime_checkable
class ToolDataRepository(Protocol):
    """Per-tool JSON payload storage (one instance per project and tool)."""

    async def get_payload(
        self, project_id: str, tool_key: str,
    ) -> dict[str, Any] | None: ...
