"""Supabase/PostgREST persistence for share tokens and project data."""

from .errors import (
    SupabaseAuthError,
    SupabaseConflictError,
    SupabaseError,
    SupabaseNotFoundError,
)
from .project_repo import SupabaseProjectRepository, SupabaseToolDataRepository
from .share_repo import SupabaseShareTokenStore
from .supabase_client import SupabaseClient

__all__ = [
    "SupabaseAuthError",
    "SupabaseClient",
    "SupabaseConflictError",
    "SupabaseError",
    "SupabaseNotFoundError",
    "SupabaseProjectRepository",
    "SupabaseShareTokenStore",
    "SupabaseToolDataRepository",
]
