"""
core/health.py
--------------
System health diagnostics for the StoreDirectory backend.

Purpose
-------
- Used by the FastAPI `/health` endpoint.
- Validates database connectivity.
- Reports uptime, version, CPU/memory usage and sync engine counters.
- Returns JSON-safe dict ready for serialization.
"""

from __future__ import annotations

import platform
import time
from typing import Any, Dict, Optional

import psutil
from sqlalchemy import text

from core.metadata import __version__

# Cache the process start time for uptime calculation
START_TIME = time.time()


def system_health(db_engine=None, sync_engine=None) -> Dict[str, Any]:
    """
    Return structured backend health diagnostics.

    Parameters
    ----------
    db_engine : sqlalchemy.engine.Engine, optional
        Pinged with `SELECT 1` when given.
    sync_engine : core.dispatcher.SyncEngine, optional
        Its counters are included when given.

    Returns
    -------
    dict
        JSON-safe health report.
    """
    status = "ok"
    message = "Backend operational."
    database_connected: Optional[bool] = None

    # --- Database connectivity test ---
    if db_engine is not None:
        try:
            with db_engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            database_connected = True
        except Exception as e:  # noqa: BLE001
            status = "degraded"
            message = f"Database check failed: {e.__class__.__name__}"
            database_connected = False

    # --- System metrics ---
    try:
        cpu_load = psutil.cpu_percent(interval=None)
        memory_usage = round(psutil.Process().memory_info().rss / (1024 * 1024), 2)
    except Exception:  # noqa: BLE001
        cpu_load = None
        memory_usage = None

    return {
        "status": status,
        "message": message,
        "version": __version__,
        "database_connected": database_connected,
        "sync": sync_engine.stats() if sync_engine is not None else None,
        "cpu_load": cpu_load,
        "memory_usage": memory_usage,
        "uptime_sec": round(time.time() - START_TIME, 2),
        "system": platform.system(),
        "release": platform.release(),
    }
