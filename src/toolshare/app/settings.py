"""Share service configuration settings.

ShareSettings is the single configuration object accepted by create_app().
It is a plain frozen dataclass (not env-coupled) so tests can inject config
without touching os.environ.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

_TRUTHY = frozenset({"1", "true", "yes", "on"})

DEFAULT_PUBLIC_BASE_URL = "http://localhost:3000"
DEFAULT_CORS_ORIGINS: tuple[str, ...] = (
    "http://localhost:5173",
    "http://localhost:3000",
)


@dataclass(frozen=True, slots=True)
class ShareSettings:
    """Configuration for the public-sharing FastAPI application.

    All fields have local-development defaults. Non-local environments must
    supply supabase_url, supabase_service_role_key and session_secret.
    """

    # ── Environment ────────────────────────────────────────────────
    environment: str = "local"
    """One of: local, dev, staging, production."""

    # ── Supabase ───────────────────────────────────────────────────
    supabase_url: str = ""
    """Supabase project URL (e.g. https://xyz.supabase.co)."""

    supabase_service_role_key: str = ""
    """Service-role key for PostgREST calls. Never log this."""

    supabase_jwt_secret: str = ""
    """HS256 secret for bearer tokens when JWKS is unavailable (local only)."""

    # ── Session / Auth ─────────────────────────────────────────────
    session_secret: str = ""
    """Secret used to verify session cookies. Must be >=32 chars in non-local."""

    # ── Public links ───────────────────────────────────────────────
    public_base_url: str = DEFAULT_PUBLIC_BASE_URL
    """Origin used to build the share URL returned on creation."""

    hide_notes_in_public_share: bool = False
    """Admin failsafe: strip notes from every public view regardless of flags."""

    # ── CORS ───────────────────────────────────────────────────────
    cors_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS

    # ── Logging ────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool = True

    @property
    def is_local(self) -> bool:
        return self.environment == "local"

    def share_url(self, tool_key: str, token: str) -> str:
        return f"{self.public_base_url.rstrip('/')}/share/{tool_key}/{token}"

    def validate(self) -> list[str]:
        """Return a list of configuration errors. Empty means valid."""
        errors: list[str] = []
        if not self.is_local:
            if not self.supabase_url:
                errors.append(f"{self.environment}: supabase_url is required")
            if not self.supabase_service_role_key:
                errors.append(
                    f"{self.environment}: supabase_service_role_key is required"
                )
            if not self.session_secret or len(self.session_secret) < 32:
                errors.append(
                    f"{self.environment}: session_secret must be >= 32 characters"
                )
        return errors

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> ShareSettings:
        """Build settings from environment variables.

        Convenience factory for production use. Tests should construct
        ShareSettings directly.
        """
        if env is None:
            env = dict(os.environ)

        cors_raw = env.get("CORS_ORIGINS", "")
        cors = (
            tuple(o.strip() for o in cors_raw.split(",") if o.strip())
            if cors_raw
            else DEFAULT_CORS_ORIGINS
        )

        return cls(
            environment=env.get("ENVIRONMENT", "local"),
            supabase_url=env.get("SUPABASE_URL", ""),
            supabase_service_role_key=env.get("SUPABASE_SERVICE_ROLE_KEY", ""),
            supabase_jwt_secret=env.get("SUPABASE_JWT_SECRET", ""),
            session_secret=env.get("SESSION_SECRET", ""),
            public_base_url=env.get("PUBLIC_BASE_URL", DEFAULT_PUBLIC_BASE_URL),
            hide_notes_in_public_share=(
                env.get("HIDE_NOTES_IN_PUBLIC_SHARE", "").strip().lower() in _TRUTHY
            ),
            cors_origins=cors,
            log_level=env.get("LOG_LEVEL", "INFO"),
            log_json=env.get("LOG_FORMAT", "json") == "json",
        )
