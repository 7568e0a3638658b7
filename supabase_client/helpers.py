# supabase_client/helpers.py
"""
Utility layer for the optional Supabase audit trail.

Features
--------
- Safe wrapper for inserting invocation records into an audit table.
- Graceful handling of transient errors (e.g., connection or schema issues).
- Automatic timestamp fallback (for tables without default `created_at`).
- `AuditSink`: a record listener for the sync engine that never raises.

The engine itself keeps no log; this trail is an external collaborator.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Callable, Dict, List, Optional

from supabase_client.config import get_supabase_client

logger = logging.getLogger(__name__)


def insert_record(
    table: str,
    data: Dict[str, Any],
    client: Optional[Any] = None,
) -> List[Dict[str, Any]]:
    """
    Insert a row into a Supabase table safely.

    Parameters
    ----------
    table : str
        Target table name in Supabase.
    data : dict
        Dictionary of column names and values.
    client : optional
        Supabase client; created from the environment when omitted.

    Returns
    -------
    list[dict]
        Inserted rows, or [] on failure.
    """
    try:
        supabase = client or get_supabase_client()

        payload = dict(data)
        if "created_at" not in payload:
            payload["created_at"] = dt.datetime.now(dt.timezone.utc).isoformat()

        logger.debug("[Supabase] → Inserting into '%s' (keys: %s)", table, list(payload.keys()))
        res = supabase.table(table).insert(payload).execute()

        status = getattr(res, "status_code", None)
        if isinstance(status, int) and status >= 400:
            logger.warning("[Supabase] ❌ HTTP %s inserting into '%s'", status, table)
            return []

        return res.data or []

    except Exception as e:  # noqa: BLE001 - audit must never break a cascade
        logger.warning("[Supabase] ⚠️ Insert failed: %s: %s", type(e).__name__, e)
        return []


def fetch_recent(
    table: str,
    limit: int = 10,
    client: Optional[Any] = None,
) -> List[Dict[str, Any]]:
    """
    Fetch the most recent rows of a Supabase table, [] if empty/error.
    """
    try:
        supabase = client or get_supabase_client()
        res = (
            supabase.table(table)
            .select("*")
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return res.data or []
    except Exception as e:  # noqa: BLE001
        logger.warning("[Supabase] ⚠️ Fetch failed: %s", e)
        return []


class AuditSink:
    """
    Record listener writing every invocation record to an audit table.

    Usage:
        engine.add_listener(AuditSink(client, "sync_invocations"))
    """

    def __init__(self, client: Any, table: str, insert: Callable[..., Any] = insert_record):
        self.client = client
        self.table = table
        self._insert = insert

    def __call__(self, record) -> None:
        self._insert(self.table, record.as_dict(), client=self.client)

    def __repr__(self) -> str:
        return f"AuditSink(table={self.table!r})"


def build_audit_sink(settings) -> Optional[AuditSink]:
    """AuditSink for `settings`, or None when Supabase is not configured/reachable."""
    if not settings.audit_enabled:
        return None
    try:
        client = get_supabase_client(settings.supabase_url, settings.supabase_anon_key)
    except Exception as e:  # noqa: BLE001
        logger.warning("[Supabase] ⚠️ Audit trail disabled: %s", e)
        return None
    logger.info("[Supabase] ✅ Audit trail → '%s'", settings.audit_table)
    return AuditSink(client, settings.audit_table)
