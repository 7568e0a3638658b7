"""
core/records.py
---------------
Invocation records: immutable evidence that one command completed.

A record is minted exactly once per completed command call (queries never
produce records) and carries a process-wide, strictly increasing sequence
number. The engine keeps records only for the lifetime of the cascade that
produced them; any long-term trail belongs to an audit sink.
"""

from __future__ import annotations

import itertools
import threading
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from core.concepts import Outcome
from core.frames import freeze, thaw


class SequenceCounter:
    """Thread-safe monotonically increasing counter."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            return next(self._counter)


def new_flow_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class InvocationRecord:
    concept: str
    action: str
    input: Mapping[str, Any]
    outcome: Outcome
    seq: int
    flow: str

    @classmethod
    def create(
        cls,
        concept: str,
        action: str,
        input: Mapping[str, Any],
        outcome: Outcome,
        *,
        seq: int,
        flow: str,
    ) -> "InvocationRecord":
        """Build a record, deep-freezing input and outcome payload."""
        return cls(
            concept=concept,
            action=action,
            input=freeze(dict(input)),
            outcome=type(outcome)(freeze(dict(outcome.payload))),
            seq=seq,
            flow=flow,
        )

    @property
    def ok(self) -> bool:
        return self.outcome.ok

    @property
    def output(self) -> Mapping[str, Any]:
        return self.outcome.payload

    @property
    def action_id(self) -> str:
        return f"{self.concept}.{self.action}"

    def as_dict(self) -> Dict[str, Any]:
        """JSON-safe representation."""
        return {
            "seq": self.seq,
            "flow": self.flow,
            "concept": self.concept,
            "action": self.action,
            "input": thaw(self.input),
            "outcome": self.outcome.kind,
            "output": thaw(self.outcome.payload),
        }

    def __str__(self) -> str:
        return f"#{self.seq} {self.action_id} -> {self.outcome.kind}"
