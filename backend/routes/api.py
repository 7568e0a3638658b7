"""
Concept API Router — StoreDirectory
===================================

Single HTTP entry point for every concept action:

    POST /api/{Concept}/{action}      JSON body = action input

Design:
-------
• The handler never calls a concept directly. It submits a
  `Requesting.request` record and lets the synchronization rules route it.
• Once the cascade settles it reads the answer with `Requesting._response`.
  The request is discarded afterwards, on error paths too.
• Status codes:
    200  response body without "error"
    400  response body {"error": ...}
    404  no rule answered the request
    500  contract violation or fatal engine error
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Request
from fastapi.responses import JSONResponse

from core.concepts import EMPTY
from core.dispatcher import SyncEngine
from core.errors import ContractViolation, SyncError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/{concept}/{action}")
def call_action(
    concept: str,
    action: str,
    request: Request,
    body: Optional[Dict[str, Any]] = Body(default=None),
):
    """
    Submit an API call to the synchronization engine and return its response.
    """
    engine: SyncEngine = request.app.state.sync_engine
    requesting = engine.registry.get("Requesting")
    path = f"/{concept}/{action}"
    payload = {"path": path, "body": body or {}}

    # mint the request first so it is discarded whatever the cascade does
    try:
        outcome = engine.registry.invoke("Requesting", "request", payload)
    except ContractViolation as e:
        logger.error("[API] %s: %s", path, e)
        return _error(500, f"Internal error in {e.concept}.{e.action}")
    root = engine.record("Requesting", "request", payload, outcome)
    request_id = root.output["request"]

    try:
        result = engine.submit(root)
        response = engine.registry.query("Requesting", "_response", {"request": request_id})
    except ContractViolation as e:
        logger.error("[API] %s: %s", path, e)
        return _error(500, f"Internal error in {e.concept}.{e.action}")
    except SyncError as e:
        logger.error("[API] %s: fatal engine error: %s", path, e)
        return _error(500, str(e))
    finally:
        requesting.discard(request_id)

    if response is EMPTY:
        if result.violations:
            v = result.violations[0]
            return _error(500, f"Internal error in {v.concept}.{v.action}")
        return _error(404, f"No synchronization handled {path}; check the action name and required fields")

    if isinstance(response, dict) and "error" in response:
        return _error(400, str(response["error"]))

    return response
