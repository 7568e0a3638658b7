"""
concepts/requesting.py
----------------------
HTTP bridge concept.

An inbound API call becomes a `request` command whose completion triggers the
request/response rules; those rules eventually call `respond`. The HTTP layer
reads the response with the `_response` query once the cascade has settled
and then discards it.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, Mapping

from concepts.base import new_id
from core.concepts import EMPTY, Concept, Failure, Success, command, query


class Requesting(Concept):
    """Turns API calls into records and collects their responses."""

    def __init__(self):
        self._pending: Dict[str, Dict[str, Any]] = {}
        self._responses: Dict[str, Any] = {}
        self._lock = threading.Lock()

    @command
    def request(self, path: str, body: Mapping[str, Any] = None):
        request_id = new_id()
        with self._lock:
            self._pending[request_id] = {"path": path, "body": dict(body or {})}
        return Success({"request": request_id})

    @command
    def respond(self, request: str, body: Any = None):
        with self._lock:
            if request not in self._pending:
                return Failure.of("Unknown request", request=request)
            if request in self._responses:
                return Failure.of("Request already answered", request=request)
            self._responses[request] = body if body is not None else {}
        return Success({"request": request})

    @query
    def _response(self, request: str):
        with self._lock:
            return self._responses.get(request, EMPTY)

    def discard(self, request: str) -> None:
        """Forget a request and its response (HTTP layer housekeeping)."""
        with self._lock:
            self._pending.pop(request, None)
            self._responses.pop(request, None)

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)
