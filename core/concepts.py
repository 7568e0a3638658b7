"""
StoreDirectory Core Concepts Registry
-------------------------------------
Defines the contract every "Concept" (independently-owned module) satisfies,
in alignment with the Legible Modular Software model.

Each Concept declares:
- commands: named operations returning exactly one of Success / Failure
- queries:  side-effect-free reads returning a record, a list, or EMPTY
- purpose:  the first line of its class docstring

Concepts never call each other. They are coordinated only by the
synchronization rules in `syncs/`, through the `ConceptRegistry` handed to the
engine at startup.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Dict, List, Mapping, Optional, Union

from core.errors import (
    ConfigurationError,
    ContractViolation,
    UnknownActionError,
    UnknownConceptError,
)

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------- #
# Outcomes
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class Success:
    payload: Mapping[str, Any] = field(default_factory=dict)

    kind: ClassVar[str] = "success"
    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class Failure:
    payload: Mapping[str, Any] = field(default_factory=dict)

    kind: ClassVar[str] = "failure"
    ok: ClassVar[bool] = False

    @classmethod
    def of(cls, message: str, **extra: Any) -> "Failure":
        return cls({"error": message, **extra})

    @property
    def error(self) -> str:
        return str(self.payload.get("error", ""))


Outcome = Union[Success, Failure]


class _Empty:
    """Distinguished query result meaning "no such data"."""

    _instance: Optional["_Empty"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "EMPTY"


EMPTY = _Empty()


def is_empty(value: Any) -> bool:
    """True for EMPTY, None and empty collections."""
    if value is EMPTY or value is None:
        return True
    if isinstance(value, (list, tuple)) and not value:
        return True
    return False


# --------------------------------------------------------------------------- #
# Action decorators
# --------------------------------------------------------------------------- #

COMMAND = "command"
QUERY = "query"


def _mark(kind: str, func: Optional[Callable] = None, *, name: Optional[str] = None):
    def inner(fn: Callable) -> Callable:
        fn.__sync_kind__ = kind
        fn.__sync_name__ = name or fn.__name__
        return fn

    if func is not None:
        return inner(func)
    return inner


def command(func: Optional[Callable] = None, *, name: Optional[str] = None):
    """Mark a Concept method as a command (returns Success or Failure)."""
    return _mark(COMMAND, func, name=name)


def query(func: Optional[Callable] = None, *, name: Optional[str] = None):
    """Mark a Concept method as a query (returns data, a list, or EMPTY)."""
    return _mark(QUERY, func, name=name)


class Concept:
    """Base class for an independently-owned unit of state and behavior."""

    name: ClassVar[str] = ""
    _commands: ClassVar[Dict[str, str]] = {}
    _queries: ClassVar[Dict[str, str]] = {}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if not cls.__dict__.get("name"):
            cls.name = cls.__name__
        commands: Dict[str, str] = {}
        queries: Dict[str, str] = {}
        for klass in reversed(cls.__mro__):
            for attr, value in vars(klass).items():
                kind = getattr(value, "__sync_kind__", None)
                if kind == COMMAND:
                    commands[value.__sync_name__] = attr
                elif kind == QUERY:
                    queries[value.__sync_name__] = attr
        cls._commands = commands
        cls._queries = queries

    @classmethod
    def purpose(cls) -> str:
        doc = inspect.getdoc(cls) or ""
        return doc.splitlines()[0] if doc else ""

    @classmethod
    def commands(cls) -> List[str]:
        return list(cls._commands)

    @classmethod
    def queries(cls) -> List[str]:
        return list(cls._queries)

    def handler(self, action: str, kind: str) -> Callable:
        table = self._commands if kind == COMMAND else self._queries
        attr = table.get(action)
        if attr is None:
            raise UnknownActionError(f"{self.name} has no {kind} named {action!r}")
        return getattr(self, attr)


def _bind_inputs(fn: Callable, data: Mapping[str, Any]) -> tuple[Dict[str, Any], List[str]]:
    """Select the keyword arguments `fn` accepts; report missing required ones."""
    sig = inspect.signature(fn)
    kwargs: Dict[str, Any] = {}
    missing: List[str] = []
    accepts_extra = any(p.kind == p.VAR_KEYWORD for p in sig.parameters.values())
    for pname, param in sig.parameters.items():
        if param.kind in (param.VAR_KEYWORD, param.VAR_POSITIONAL):
            continue
        if pname in data:
            kwargs[pname] = data[pname]
        elif param.default is param.empty:
            missing.append(pname)
    if accepts_extra:
        for key, value in data.items():
            kwargs.setdefault(key, value)
    return kwargs, missing


# --------------------------------------------------------------------------- #
# Registry
# --------------------------------------------------------------------------- #

class ConceptRegistry:
    """
    Explicit collection of concept instances, keyed by name.

    The registry is the only way the engine reaches a concept, so tests can
    substitute fakes by registering different instances.
    """

    def __init__(self, concepts: Optional[List[Concept]] = None):
        self._concepts: Dict[str, Concept] = {}
        for concept in concepts or []:
            self.register(concept)

    def register(self, concept: Concept) -> Concept:
        if concept.name in self._concepts:
            raise ConfigurationError(f"Concept {concept.name!r} registered twice")
        self._concepts[concept.name] = concept
        return concept

    def get(self, name: str) -> Concept:
        try:
            return self._concepts[name]
        except KeyError:
            raise UnknownConceptError(f"No concept named {name!r}") from None

    def __contains__(self, name: str) -> bool:
        return name in self._concepts

    def names(self) -> List[str]:
        return list(self._concepts)

    def has_action(self, concept: str, action: str, kind: str = COMMAND) -> bool:
        if concept not in self._concepts:
            return False
        klass = type(self._concepts[concept])
        table = klass._commands if kind == COMMAND else klass._queries
        return action in table

    def invoke(self, concept: str, action: str, input: Mapping[str, Any]) -> Outcome:
        """
        Run a command.

        Missing inputs become a Failure. Any exception from the command body is
        a contract violation and is raised as `ContractViolation`.
        """
        fn = self.get(concept).handler(action, COMMAND)
        if not isinstance(input, Mapping):
            return Failure.of("Input must be an object")
        kwargs, missing = _bind_inputs(fn, input)
        if missing:
            return Failure.of(f"Missing input: {', '.join(missing)}")
        try:
            outcome = fn(**kwargs)
        except Exception as e:  # noqa: BLE001 - any escape is a contract breach
            raise ContractViolation(concept, action, e) from e
        if not isinstance(outcome, (Success, Failure)):
            raise ContractViolation(
                concept, action, TypeError(f"returned {type(outcome).__name__}, expected Success/Failure")
            )
        return outcome

    def query(self, concept: str, action: str, input: Mapping[str, Any]) -> Any:
        """Run a query. Faults and missing inputs degrade to EMPTY."""
        fn = self.get(concept).handler(action, QUERY)
        kwargs, missing = _bind_inputs(fn, input)
        if missing:
            logger.warning("[%s] query %s missing input: %s", concept, action, ", ".join(missing))
            return EMPTY
        try:
            result = fn(**kwargs)
        except Exception as e:  # noqa: BLE001
            logger.warning("[%s] query %s failed, degrading to EMPTY: %s", concept, action, e)
            return EMPTY
        return EMPTY if result is None else result

    def describe(self) -> Dict[str, Dict[str, Any]]:
        """Purpose, commands and queries of every registered concept."""
        return {
            name: {
                "purpose": type(c).purpose(),
                "commands": type(c).commands(),
                "queries": type(c).queries(),
            }
            for name, c in self._concepts.items()
        }

    def list_concepts(self) -> List[str]:
        """Return list of concept names."""
        return self.names()

    def describe_concept(self, name: str) -> dict:
        """Get description of a specific concept."""
        return self.describe().get(name, {"error": "Concept not found."})
