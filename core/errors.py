"""
core/errors.py
--------------
Exception taxonomy for the synchronization engine.

Only fatal conditions are exceptions:
- ConfigurationError: a rule set or registry that can never work
  (duplicate ids, unbound variables, unknown concepts, runaway cascades).
- ContractViolation: a concept raised instead of returning Failure.

Match-misses and business failures are values, not exceptions.
"""

from __future__ import annotations

from typing import Optional


class SyncError(RuntimeError):
    """Base class for all synchronization engine errors."""


class ConfigurationError(SyncError):
    """A rule set, registry or setting is invalid."""


class DuplicateRuleError(ConfigurationError):
    """Two rules were registered with the same id."""


class UnboundVariableError(ConfigurationError):
    """A template references a variable no earlier step binds."""

    def __init__(self, variable: str, context: str = ""):
        self.variable = variable
        self.context = context
        where = f" in {context}" if context else ""
        super().__init__(f"Unbound variable ?{variable}{where}")


class CascadeDepthExceeded(ConfigurationError):
    """A cascade chained deeper than the configured ceiling."""

    def __init__(self, depth: int, limit: int, rule_id: Optional[str] = None):
        self.depth = depth
        self.limit = limit
        self.rule_id = rule_id
        suffix = f" (last rule: {rule_id})" if rule_id else ""
        super().__init__(
            f"Cascade depth {depth} exceeds ceiling {limit}; "
            f"the rule set probably forms a trigger cycle{suffix}"
        )


class UnknownConceptError(LookupError, ConfigurationError):
    """Referenced a concept that is not registered."""


class UnknownActionError(LookupError, ConfigurationError):
    """Referenced an action the concept does not expose."""


class ContractViolation(SyncError):
    """A concept raised an exception across the command boundary."""

    def __init__(self, concept: str, action: str, cause: BaseException):
        self.concept = concept
        self.action = action
        self.cause = cause
        super().__init__(
            f"{concept}.{action} raised {type(cause).__name__}: {cause}"
        )
