"""
core/matcher.py
---------------
Pattern matcher: unifies a rule's trigger pattern with an invocation record.

`When("Review", "create", input={...}, output={...})` declares a pattern over
one command's completion. Literals in the shapes must equal the record's
fields; variables bind on first sight and must agree on re-occurrence.
Success and failure outcomes are distinguished by `outcome`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Set

from core.concepts import Failure, Success
from core.frames import Relation, Var, unify, variables_in
from core.records import InvocationRecord

SUCCESS = Success.kind
FAILURE = Failure.kind


@dataclass(frozen=True)
class ActionPattern:
    concept: str
    action: str
    input: Any = field(default_factory=dict)
    output: Any = field(default_factory=dict)
    outcome: str = SUCCESS

    def __post_init__(self):
        if self.outcome not in (SUCCESS, FAILURE):
            raise ValueError(f"outcome must be {SUCCESS!r} or {FAILURE!r}, got {self.outcome!r}")

    @property
    def action_id(self) -> str:
        return f"{self.concept}.{self.action}"

    def applies_to(self, record: InvocationRecord) -> bool:
        """Same concept and action (outcome not considered)."""
        return record.concept == self.concept and record.action == self.action

    def variables(self) -> Set[Var]:
        return variables_in(self.input) | variables_in(self.output)

    def __str__(self) -> str:
        suffix = "" if self.outcome == SUCCESS else " !failure"
        return f"{self.action_id}{suffix}"


def When(
    concept: str,
    action: str,
    input: Any = None,
    output: Any = None,
    *,
    failure: bool = False,
) -> ActionPattern:
    """
    Readable constructor for trigger patterns.

    `input` / `output` are partial shapes, or a single Var to bind the whole
    input or payload.
    """
    return ActionPattern(
        concept=concept,
        action=action,
        input=input if isinstance(input, Var) else dict(input or {}),
        output=output if isinstance(output, Var) else dict(output or {}),
        outcome=FAILURE if failure else SUCCESS,
    )


def match(
    pattern: ActionPattern,
    record: InvocationRecord,
    base: Optional[Relation] = None,
) -> Relation:
    """
    Extend `base` with every way `pattern` unifies with `record`.

    - Different concept/action: `base` is returned unchanged.
    - Different outcome kind: no frame survives.
    - No `base`: matching starts from the single empty frame.
    - Empty `base`: nothing survives (an earlier pattern already failed).
    """
    if base is None:
        start = Relation.unit()
    elif not base:
        return Relation()
    else:
        start = base

    if not pattern.applies_to(record):
        return base if base is not None else Relation()

    if record.outcome.kind != pattern.outcome:
        return Relation()

    result = Relation()
    for frame in start:
        extended = unify(pattern.input, record.input, frame)
        if extended is None:
            continue
        extended = unify(pattern.output, record.outcome.payload, extended)
        if extended is not None:
            result.add(extended)
    return result
