"""
StoreDirectory Backend API
==========================

FastAPI service exposing the store directory through synchronized concepts.

Design Intent
-------------
• Concepts (Store, Review, Rating, Tagging, User, Requesting) never call each
  other. Every cross-concept effect is a rule in `syncs/`.
• `POST /api/{Concept}/{action}` is a thin shell over `Requesting.request`;
  see `backend.routes.api`.
• Optional Supabase audit trail: every invocation record is mirrored to
  `AUDIT_TABLE` when SUPABASE_URL / SUPABASE_ANON_KEY are set (best-effort).
• Introspection: `/syncs`, `/syncs/describe`, `/syncs/concepts`.

Running
-------
    uvicorn backend.main:create_app --factory --reload

The app is built by `create_app()` so tests can inject settings (e.g. an
in-memory database) or a ready-made concept registry.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from backend.routes.api import router as api_router
from backend.routes.syncs import router as syncs_router
from concepts.registry import build_registry
from core.concepts import ConceptRegistry
from core.config import Settings
from core.dispatcher import SyncEngine
from core.health import system_health
from core.log import configure_logging
from core.metadata import __project__, __version__, get_metadata
from database.db_setup import get_engine, init_db, make_session_factory
from supabase_client.helpers import build_audit_sink, fetch_recent
from syncs.catalog import build_sync_rules

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------- #
# Response models
# --------------------------------------------------------------------------- #

class StatusSummary(BaseModel):
    """High-level status for dashboards and agents."""
    backend_version: str
    concepts: List[str]
    rules: int
    audit_enabled: bool
    database_url_configured: bool
    engine: Dict[str, int]


# --------------------------------------------------------------------------- #
# App factory
# --------------------------------------------------------------------------- #

def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[ConceptRegistry] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Parameters
    ----------
    settings : Settings, optional
        Defaults to `Settings.from_env()`.
    registry : ConceptRegistry, optional
        Concepts to synchronize. When omitted, the database at
        `settings.database_url` is initialized and the standard concepts are
        registered on it.

    Returns
    -------
    FastAPI
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    db_engine = None
    if registry is None:
        db_engine = get_engine(settings.database_url)
        init_db(db_engine)
        registry = build_registry(make_session_factory(db_engine))

    listeners = []
    audit_sink = build_audit_sink(settings)
    if audit_sink is not None:
        listeners.append(audit_sink)

    sync_engine = SyncEngine.from_settings(registry, build_sync_rules(), settings, listeners)

    app = FastAPI(
        title=f"{__project__} Backend API",
        version=__version__,
        description=(
            "Store directory backend built from independent concepts.\n"
            "- Stores, users, reviews, ratings and tags.\n"
            "- Declarative synchronization rules between concepts.\n"
            "- Optional Supabase audit trail."
        ),
    )
    app.state.settings = settings
    app.state.db_engine = db_engine
    app.state.sync_engine = sync_engine
    app.state.audit_sink = audit_sink

    app.include_router(api_router)
    app.include_router(syncs_router)

    # ----------------------------------------------------------------------- #
    # Core routes
    # ----------------------------------------------------------------------- #

    @app.get("/")
    async def root():
        """Basic liveness probe."""
        return {
            "status": "ok",
            "message": f"{__project__} Backend is live.",
            "version": app.version,
            "audit_enabled": audit_sink is not None,
        }

    @app.get("/health")
    def health():
        """
        System health endpoint.

        Delegates to core.health.system_health (database ping, engine
        counters, process metrics).
        """
        return system_health(db_engine=db_engine, sync_engine=sync_engine)

    @app.get("/metadata")
    async def metadata():
        return get_metadata()

    @app.get("/status/summary", response_model=StatusSummary)
    async def status_summary():
        return StatusSummary(
            backend_version=app.version,
            concepts=registry.names(),
            rules=len(sync_engine.rules),
            audit_enabled=audit_sink is not None,
            database_url_configured=db_engine is not None,
            engine=sync_engine.stats(),
        )

    @app.get("/audit/recent")
    def audit_recent(limit: int = Query(10, ge=1, le=200)) -> List[Dict[str, Any]]:
        """
        Most recent audit rows (Supabase `AUDIT_TABLE`).
        """
        if audit_sink is None:
            raise HTTPException(status_code=503, detail="Supabase audit trail is disabled.")
        return fetch_recent(audit_sink.table, limit=limit, client=audit_sink.client)

    logger.info(
        "[Backend] ✅ %s %s ready (%d concepts, %d rules)",
        __project__, __version__, len(registry.names()), len(sync_engine.rules),
    )
    return app
