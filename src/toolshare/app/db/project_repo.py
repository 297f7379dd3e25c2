"""Supabase-backed project access and tool payload repositories.

Read-only views over tables owned by the collaboration app:

  - ``projects``            (id, name, owner_id)
  - ``project_members``     (project_id, user_id, role)
  - ``project_tool_access`` (project_id, tool_key, user_id, level)
  - ``tool_instances``      (project_id, tool_key, payload jsonb)

Storage and network failures surface as ``TransientFailure``, the same
as for share tokens.
"""

from __future__ import annotations

from typing import Any

from toolshare.app.protocols import ROLE_OWNER

from .errors import storage_call
from .supabase_client import Filters, SupabaseClient


async def _first(
    client: SupabaseClient,
    resource: str,
    operation: str,
    table: str,
    filters: Filters,
    columns: str,
) -> dict[str, Any] | None:
    rows = await storage_call(
        resource,
        operation,
        client.select(table, filters=filters, columns=columns, limit=1),
    )
    return rows[0] if rows else None


class SupabaseProjectRepository:
    PROJECTS_TABLE = "projects"
    MEMBERS_TABLE = "project_members"
    TOOL_ACCESS_TABLE = "project_tool_access"

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    async def get_project(self, project_id: str) -> dict[str, Any] | None:
        return await _first(
            self._client, "Project", "get_project",
            self.PROJECTS_TABLE, {"id": project_id}, "id,name,owner_id",
        )

    async def get_member_role(self, project_id: str, user_id: str) -> str | None:
        project = await self.get_project(project_id)
        if project is None:
            return None
        if project.get("owner_id") == user_id:
            return ROLE_OWNER
        row = await _first(
            self._client, "Project", "get_member_role",
            self.MEMBERS_TABLE,
            {"project_id": project_id, "user_id": user_id},
            "role",
        )
        return row.get("role") if row else None

    async def get_tool_access_level(
        self, project_id: str, tool_key: str, user_id: str,
    ) -> str | None:
        row = await _first(
            self._client, "Project", "get_tool_access_level",
            self.TOOL_ACCESS_TABLE,
            {"project_id": project_id, "tool_key": tool_key, "user_id": user_id},
            "level",
        )
        return row.get("level") if row else None


class SupabaseToolDataRepository:
    TABLE = "tool_instances"

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    async def get_payload(
        self, project_id: str, tool_key: str,
    ) -> dict[str, Any] | None:
        row = await _first(
            self._client, "Tool data", "get_payload",
            self.TABLE, {"project_id": project_id, "tool_key": tool_key},
            "payload",
        )
        if row is None:
            return None
        payload = row.get("payload")
        return payload if isinstance(payload, dict) else None
