"""
Synchronization Map Router
--------------------------
Read-only introspection of the loaded rules and concepts.
"""

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from core.sync_rules import describe_sync_map, list_sync_rules

router = APIRouter(prefix="/syncs", tags=["syncs"])


@router.get("")
async def get_sync_rules(request: Request):
    """All rules in registration (firing) order."""
    engine = request.app.state.sync_engine
    return {"count": len(engine.rules), "rules": list_sync_rules(engine.rules)}


@router.get("/describe", response_class=PlainTextResponse)
async def get_sync_map(request: Request):
    return describe_sync_map(request.app.state.sync_engine.rules)


@router.get("/concepts")
async def get_concepts(request: Request):
    return request.app.state.sync_engine.registry.describe()
