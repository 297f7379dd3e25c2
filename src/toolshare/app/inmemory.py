"""In-memory repository implementations for local development.

These are used when ENVIRONMENT=local. They satisfy the protocol interfaces
but store everything in dicts (no persistence across restarts).
"""

from __future__ import annotations

import copy
from typing import Any

from .protocols import ROLE_OWNER


class InMemoryProjectRepository:
    def __init__(self) -> None:
        self._projects: dict[str, dict[str, Any]] = {}
        self._roles: dict[tuple[str, str], str] = {}
        self._tool_access: dict[tuple[str, str, str], str] = {}

    def add_project(
        self, project_id: str, name: str, owner_id: str,
    ) -> dict[str, Any]:
        project = {"id": project_id, "name": name, "owner_id": owner_id}
        self._projects[project_id] = project
        self._roles[(project_id, owner_id)] = ROLE_OWNER
        return project

    def add_member(
        self,
        project_id: str,
        user_id: str,
        *,
        role: str,
        tool_levels: dict[str, str] | None = None,
    ) -> None:
        self._roles[(project_id, user_id)] = role
        for tool_key, level in (tool_levels or {}).items():
            self._tool_access[(project_id, tool_key, user_id)] = level

    async def get_project(self, project_id: str) -> dict[str, Any] | None:
        return self._projects.get(project_id)

    async def get_member_role(self, project_id: str, user_id: str) -> str | None:
        return self._roles.get((project_id, user_id))

    async def get_tool_access_level(
        self, project_id: str, tool_key: str, user_id: str,
    ) -> str | None:
        return self._tool_access.get((project_id, tool_key, user_id))


class InMemoryToolDataRepository:
    def __init__(self) -> None:
        self._payloads: dict[tuple[str, str], dict[str, Any]] = {}

    def put_payload(
        self, project_id: str, tool_key: str, payload: dict[str, Any],
    ) -> None:
        self._payloads[(project_id, tool_key)] = payload

    async def get_payload(
        self, project_id: str, tool_key: str,
    ) -> dict[str, Any] | None:
        payload = self._payloads.get((project_id, tool_key))
        # Callers receive a copy so view-time filtering cannot alter storage.
        return copy.deepcopy(payload) if payload is not None else None
