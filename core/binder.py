"""
core/binder.py
--------------
Query binder: the `where` (refinement) step of a synchronization rule.

A rule's refinement is a list of steps applied in order to its relation:

- Query   call a concept query with bound values, fold the result back in.
          EMPTY drops the frame; a list fans it out, one frame per element.
          With `negate=True` the frame survives only if nothing was found;
          with `collect=True` the whole list is bound to one variable.
- Call    bind the result of a pure function of bound values.
- Filter  keep frames satisfying a predicate.

Steps only ever call queries, so refinement never mints invocation records
and can be replayed freely in tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional, Protocol, Sequence, Set

from core.concepts import EMPTY, ConceptRegistry, is_empty
from core.frames import Frame, Relation, Var, substitute, unify, variables_in

logger = logging.getLogger(__name__)


class WhereStep(Protocol):
    def requires(self) -> Set[Var]: ...

    def binds(self) -> Set[Var]: ...

    def apply(self, relation: Relation, registry: ConceptRegistry) -> Relation: ...


@dataclass(frozen=True)
class Query:
    concept: str
    query: str
    input: Mapping[str, Any] = field(default_factory=dict)
    output: Any = None
    negate: bool = False
    collect: bool = False

    def __post_init__(self):
        if self.collect and not isinstance(self.output, Var):
            raise ValueError(f"{self}: collect=True needs a single Var as output")

    def requires(self) -> Set[Var]:
        return variables_in(self.input)

    def binds(self) -> Set[Var]:
        if self.negate:
            return set()
        return variables_in(self.output)

    def apply(self, relation: Relation, registry: ConceptRegistry) -> Relation:
        result = Relation()
        for frame in relation:
            args = substitute(self.input, frame, context=f"where {self}")
            found = registry.query(self.concept, self.query, args)
            if self.negate:
                if is_empty(found):
                    result.add(frame)
                continue
            if self.collect:
                # whole result bound at once; absence is an empty list
                items = [] if found is EMPTY else found
                extended = unify(self.output, items, frame)
                if extended is not None:
                    result.add(extended)
                continue
            if found is EMPTY:
                logger.debug("[Sync] %s returned EMPTY; frame dropped", self)
                continue
            items: Iterable[Any] = found if isinstance(found, (list, tuple)) else [found]
            for item in items:
                extended = frame if self.output is None else unify(self.output, item, frame)
                if extended is not None:
                    result.add(extended)
        return result

    def __str__(self) -> str:
        prefix = "not " if self.negate else ""
        return f"{prefix}{self.concept}.{self.query}"


@dataclass(frozen=True)
class Call:
    fn: Callable[..., Any]
    inputs: Mapping[str, Any]
    into: Var

    def requires(self) -> Set[Var]:
        return variables_in(self.inputs)

    def binds(self) -> Set[Var]:
        return {self.into}

    def apply(self, relation: Relation, registry: ConceptRegistry) -> Relation:
        result = Relation()
        for frame in relation:
            kwargs = substitute(self.inputs, frame, context=f"where {self}")
            value = self.fn(**kwargs)
            if value is None:
                continue
            extended = unify(self.into, value, frame)
            if extended is not None:
                result.add(extended)
        return result

    def __str__(self) -> str:
        return f"call {getattr(self.fn, '__name__', 'fn')} -> {self.into}"


@dataclass(frozen=True)
class Filter:
    predicate: Callable[[Frame], bool]
    uses: Sequence[Var] = ()

    def requires(self) -> Set[Var]:
        return set(self.uses)

    def binds(self) -> Set[Var]:
        return set()

    def apply(self, relation: Relation, registry: ConceptRegistry) -> Relation:
        return Relation(f for f in relation if self.predicate(f))

    def __str__(self) -> str:
        return f"filter {getattr(self.predicate, '__name__', 'predicate')}"


def refine(
    steps: Sequence[WhereStep],
    relation: Relation,
    registry: Optional[ConceptRegistry],
) -> Relation:
    """Apply where-steps in order. No steps is the identity."""
    for step in steps:
        if not relation:
            break
        relation = step.apply(relation, registry)
    return relation


__all__ = ["Call", "Filter", "Query", "WhereStep", "refine"]
