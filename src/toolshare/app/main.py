"""Share service FastAPI application factory.

create_app() is the single entry point for building the ASGI application.
It wires middleware (request-ID, auth guard, CORS), error handlers and the
share routers, and injects repository implementations.

Usage:
    # Local development (in-memory repositories)
    from toolshare.app import create_app, ShareSettings
    app = create_app(ShareSettings())

    # Non-local (Supabase repositories built from the environment)
    app = create_app_from_env()

    # Testing (full DI control)
    app = create_app(settings, store=store, projects=projects, ...)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .observability import RequestIDMiddleware, configure_logging, get_logger
from .protocols import ProjectRepository, ToolDataRepository
from .security import AuthGuardMiddleware, TokenVerifier, create_token_verifier
from .settings import ShareSettings
from .sharing.access import AccessGate
from .sharing.audit import ShareAuditEmitter
from .sharing.errors import register_error_handlers
from .sharing.model import Clock, ShareTokenStore, utcnow
from .sharing.public import create_public_router
from .sharing.routes import create_share_router
from .sharing.validator import TokenValidator

if TYPE_CHECKING:
    from .db import SupabaseClient

logger = get_logger(__name__)


@dataclass(frozen=True)
class ShareDependencies:
    """Injected repositories, stored on ``app.state.deps``."""

    store: ShareTokenStore
    projects: ProjectRepository
    tool_data: ToolDataRepository
    audit: ShareAuditEmitter
    client: SupabaseClient | None = None


def _build_inmemory_deps() -> ShareDependencies:
    from .inmemory import InMemoryProjectRepository, InMemoryToolDataRepository
    from .sharing.audit import LoggingShareAuditEmitter
    from .sharing.model import InMemoryShareTokenStore

    return ShareDependencies(
        store=InMemoryShareTokenStore(),
        projects=InMemoryProjectRepository(),
        tool_data=InMemoryToolDataRepository(),
        audit=LoggingShareAuditEmitter(),
    )


def build_supabase_deps(
    settings: ShareSettings,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> ShareDependencies:
    """Construct PostgREST-backed repositories for non-local environments."""
    from .db import (
        SupabaseClient,
        SupabaseProjectRepository,
        SupabaseShareTokenStore,
        SupabaseToolDataRepository,
    )
    from .sharing.audit import LoggingShareAuditEmitter

    client = SupabaseClient(
        supabase_url=settings.supabase_url,
        service_role_key=settings.supabase_service_role_key,
        http_client=http_client,
    )
    return ShareDependencies(
        store=SupabaseShareTokenStore(client),
        projects=SupabaseProjectRepository(client),
        tool_data=SupabaseToolDataRepository(client),
        audit=LoggingShareAuditEmitter(),
        client=client,
    )


def _build_token_verifier(settings: ShareSettings) -> TokenVerifier | None:
    if not (settings.supabase_jwt_secret or settings.supabase_url):
        return None
    return create_token_verifier(
        supabase_url=settings.supabase_url or None,
        jwt_secret=settings.supabase_jwt_secret or None,
    )


# ── Factory ─────────────────────────────────────────────────────────


def create_app(
    settings: ShareSettings | None = None,
    *,
    store: ShareTokenStore | None = None,
    projects: ProjectRepository | None = None,
    tool_data: ToolDataRepository | None = None,
    audit: ShareAuditEmitter | None = None,
    token_verifier: TokenVerifier | None = None,
    supabase_client: SupabaseClient | None = None,
    clock: Clock = utcnow,
) -> FastAPI:
    """Create a configured share-service FastAPI application.

    Args:
        settings: Application settings. Defaults to local-dev settings.
        store, projects, tool_data, audit: Repository overrides. Local mode
            fills missing ones with in-memory implementations; non-local
            mode requires all of them.
        token_verifier: Bearer token verifier override.
        supabase_client: PostgREST client shared by the repositories;
            closed on shutdown.
        clock: Server time source for token status.

    Raises:
        ValueError: If settings validation fails, or a non-local
            environment is missing repositories.
    """
    if settings is None:
        settings = ShareSettings()

    errors = settings.validate()
    if errors:
        raise ValueError(
            "Share service settings validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    if settings.is_local:
        defaults = _build_inmemory_deps()
        deps = ShareDependencies(
            store=store or defaults.store,
            projects=projects or defaults.projects,
            tool_data=tool_data or defaults.tool_data,
            audit=audit or defaults.audit,
            client=supabase_client,
        )
    else:
        provided = {
            "store": store,
            "projects": projects,
            "tool_data": tool_data,
            "audit": audit,
        }
        missing = [name for name, value in provided.items() if value is None]
        if missing:
            raise ValueError(
                f"Non-local environment ({settings.environment}) requires all "
                f"repositories to be explicitly provided. Missing: {', '.join(missing)}"
            )
        deps = ShareDependencies(**provided, client=supabase_client)  # type: ignore[arg-type]

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(
            level=settings.log_level,
            json_output=settings.log_json,
            environment=settings.environment,
        )
        logger.info("share_service_startup", environment=settings.environment)
        yield
        if deps.client is not None:
            await deps.client.aclose()
        logger.info("share_service_shutdown")

    app = FastAPI(
        title="Toolshare",
        description="Scoped public share links for project collaboration tools",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.deps = deps
    app.state.settings = settings

    register_error_handlers(app)

    # ── Middleware stack (last added runs first) ──────────────────
    # Order of execution: RequestID -> AuthGuard -> CORS -> route handler
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        AuthGuardMiddleware,
        token_verifier=token_verifier or _build_token_verifier(settings),
        session_secret=settings.session_secret or None,
    )
    app.add_middleware(RequestIDMiddleware)

    # ── Routes ──────────────────────────────────────────────────
    @app.get("/health")
    async def health():
        return {"status": "ok", "environment": settings.environment}

    access = AccessGate(deps.projects)
    validator = TokenValidator(
        deps.store,
        deps.projects,
        deps.tool_data,
        hide_notes=settings.hide_notes_in_public_share,
        clock=clock,
    )
    app.include_router(
        create_share_router(
            deps.store, access, deps.tool_data, deps.audit, settings, clock=clock,
        )
    )
    app.include_router(create_public_router(validator, deps.audit))

    return app


def create_app_from_env() -> FastAPI:
    """Build settings from the environment and wire matching repositories."""
    settings = ShareSettings.from_env()
    if settings.is_local:
        return create_app(settings)
    deps = build_supabase_deps(settings)
    return create_app(
        settings,
        store=deps.store,
        projects=deps.projects,
        tool_data=deps.tool_data,
        audit=deps.audit,
        supabase_client=deps.client,
    )


# For uvicorn, use --factory:
#   uvicorn toolshare.app.main:create_app_from_env --factory
