"""
core/sync_rules.py
------------------
Defines the Concept–Synchronization model for StoreDirectory.

Each synchronization (rule) describes:
    - when:    trigger patterns over completed commands
    - where:   optional refinement steps (queries, pure calls, filters)
    - then:    commands to invoke with the bound variables
    - purpose: short natural language description

Rules are loaded once at startup. `validate_rules` checks them statically so
that configuration mistakes surface at registration, not deep in a cascade.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from core.binder import WhereStep
from core.concepts import COMMAND, QUERY, ConceptRegistry
from core.errors import ConfigurationError, DuplicateRuleError, UnboundVariableError, UnknownActionError
from core.frames import Var, variables_in
from core.matcher import ActionPattern


@dataclass(frozen=True)
class Then:
    """One effect: a command invoked with a template (or a single Var) over bound variables."""

    concept: str
    action: str
    input: Any = field(default_factory=dict)

    @property
    def action_id(self) -> str:
        return f"{self.concept}.{self.action}"

    def __str__(self) -> str:
        return self.action_id


@dataclass(frozen=True)
class SyncRule:
    id: str
    when: Sequence[ActionPattern]
    then: Sequence[Then]
    where: Sequence[WhereStep] = ()
    purpose: str = ""

    def __post_init__(self):
        object.__setattr__(self, "when", tuple(self.when))
        object.__setattr__(self, "then", tuple(self.then))
        object.__setattr__(self, "where", tuple(self.where))

    def triggers_on(self, concept: str, action: str) -> bool:
        return any(p.concept == concept and p.action == action for p in self.when)

    def bound_variables(self) -> Set[Var]:
        bound: Set[Var] = set()
        for pattern in self.when:
            bound |= pattern.variables()
        for step in self.where:
            bound |= step.binds()
        return bound

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "when": [str(p) for p in self.when],
            "where": [str(s) for s in self.where],
            "then": [str(t) for t in self.then],
            "purpose": self.purpose,
        }


# --------------------------------------------------------------------------- #
# Static checking
# --------------------------------------------------------------------------- #

def check_rule(rule: SyncRule) -> None:
    """Raise ConfigurationError if the rule can never fire correctly."""
    if not rule.id:
        raise ConfigurationError("Rule without id")
    if not rule.when:
        raise ConfigurationError(f"Rule {rule.id!r} has no trigger patterns")
    if not rule.then:
        raise ConfigurationError(f"Rule {rule.id!r} has no effects")

    bound: Set[Var] = set()
    for pattern in rule.when:
        bound |= pattern.variables()

    for step in rule.where:
        missing = step.requires() - bound
        if missing:
            var = sorted(v.name for v in missing)[0]
            raise UnboundVariableError(var, f"rule {rule.id!r} where {step}")
        bound |= step.binds()

    for effect in rule.then:
        missing = variables_in(effect.input) - bound
        if missing:
            var = sorted(v.name for v in missing)[0]
            raise UnboundVariableError(var, f"rule {rule.id!r} then {effect}")


def check_against_registry(rule: SyncRule, registry: ConceptRegistry) -> None:
    """Every trigger and effect must name a registered command; queries must exist."""
    for pattern in rule.when:
        if not registry.has_action(pattern.concept, pattern.action, COMMAND):
            raise UnknownActionError(f"Rule {rule.id!r} triggers on unknown command {pattern.action_id}")
    for effect in rule.then:
        if not registry.has_action(effect.concept, effect.action, COMMAND):
            raise UnknownActionError(f"Rule {rule.id!r} invokes unknown command {effect.action_id}")
    for step in rule.where:
        concept = getattr(step, "concept", None)
        name = getattr(step, "query", None)
        if concept is not None and not registry.has_action(concept, name, QUERY):
            raise UnknownActionError(f"Rule {rule.id!r} queries unknown {concept}.{name}")


def validate_rules(
    rules: Iterable[SyncRule],
    registry: Optional[ConceptRegistry] = None,
) -> List[SyncRule]:
    """Check ids are unique and every rule is well-formed. Returns the rules as a list."""
    seen: Set[str] = set()
    checked: List[SyncRule] = []
    for rule in rules:
        if rule.id in seen:
            raise DuplicateRuleError(f"Rule id {rule.id!r} registered twice")
        seen.add(rule.id)
        check_rule(rule)
        if registry is not None:
            check_against_registry(rule, registry)
        checked.append(rule)
    return checked


# --------------------------------------------------------------------------- #
# Introspection
# --------------------------------------------------------------------------- #

def list_sync_rules(rules: Sequence[SyncRule], as_dicts: bool = True):
    """Return synchronization rules as list of dicts or objects."""
    return [r.as_dict() for r in rules] if as_dicts else list(rules)


def describe_sync_map(rules: Sequence[SyncRule]) -> str:
    """Return a readable multi-line summary of all synchronizations."""
    lines = ["StoreDirectory Synchronization Map\n"]
    for rule in rules:
        when = " & ".join(str(p) for p in rule.when)
        then = ", ".join(str(t) for t in rule.then)
        where = f" where {', '.join(str(s) for s in rule.where)}" if rule.where else ""
        lines.append(f"{rule.id:32s} {when} →{where} {then} — {rule.purpose}".rstrip(" —"))
    return "\n".join(lines)
