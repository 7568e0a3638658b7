"""
core/frames.py
--------------
Variables, frames and relations: the binding algebra the engine works in.

- A `Var` is a logical name scoped to one rule.
- A `Frame` is an immutable, partial `Var -> value` environment.
- A `Relation` is an ordered set of frames ("all ways this rule could apply
  so far"). Duplicates collapse, insertion order is kept so firing order is
  reproducible.

Patterns and templates are plain Python values whose leaves may be `Var`s:
dicts match partially (extra keys in the data are ignored), lists match
element-wise, anything else matches by equality.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Set

from core.errors import UnboundVariableError


@dataclass(frozen=True)
class Var:
    name: str

    def __str__(self) -> str:
        return f"?{self.name}"

    def __repr__(self) -> str:
        return f"Var({self.name!r})"


def freeze(value: Any) -> Any:
    """Return a read-only deep copy of `value` (dicts -> mappingproxy, lists -> tuples)."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    if isinstance(value, set):
        return frozenset(freeze(v) for v in value)
    return value


def thaw(value: Any) -> Any:
    """Inverse of `freeze`: plain dicts and lists, safe to hand to callers."""
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [thaw(v) for v in value]
    if isinstance(value, frozenset):
        return {thaw(v) for v in value}
    return value


def _hash_key(value: Any) -> Any:
    if isinstance(value, Mapping):
        return ("map", tuple(sorted((str(k), _hash_key(v)) for k, v in value.items())))
    if isinstance(value, (list, tuple)):
        return ("seq", tuple(_hash_key(v) for v in value))
    if isinstance(value, (set, frozenset)):
        return ("set", tuple(sorted(repr(_hash_key(v)) for v in value)))
    return value


class Frame(Mapping[Var, Any]):
    """Immutable variable-binding environment."""

    __slots__ = ("_bindings", "_key")

    def __init__(self, bindings: Optional[Mapping[Var, Any]] = None):
        self._bindings: Dict[Var, Any] = {k: freeze(v) for k, v in (bindings or {}).items()}
        self._key = None

    def __getitem__(self, var: Var) -> Any:
        return self._bindings[var]

    def __iter__(self) -> Iterator[Var]:
        return iter(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    def __hash__(self) -> int:
        if self._key is None:
            self._key = tuple(sorted((v.name, _hash_key(x)) for v, x in self._bindings.items()))
        return hash(self._key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Frame):
            return NotImplemented
        return self._bindings == other._bindings

    def __repr__(self) -> str:
        inner = ", ".join(f"{v}={thaw(x)!r}" for v, x in self._bindings.items())
        return f"Frame({inner})"

    def bind(self, var: Var, value: Any) -> "Frame":
        """Return a new frame with `var` bound. Rebinding is not allowed."""
        if var in self._bindings:
            raise ValueError(f"{var} is already bound in {self!r}")
        merged = dict(self._bindings)
        merged[var] = value
        return Frame(merged)

    def value(self, name: str) -> Any:
        """Look up a binding by variable name (thawed)."""
        return thaw(self._bindings[Var(name)])

    def as_dict(self) -> Dict[str, Any]:
        return {v.name: thaw(x) for v, x in self._bindings.items()}


class Relation:
    """Ordered set of frames."""

    __slots__ = ("_frames", "_seen")

    def __init__(self, frames: Iterable[Frame] = ()):
        self._frames: List[Frame] = []
        self._seen: Set[Frame] = set()
        for frame in frames:
            self.add(frame)

    @classmethod
    def unit(cls) -> "Relation":
        """The relation holding exactly one empty frame."""
        return cls([Frame()])

    def add(self, frame: Frame) -> None:
        if frame not in self._seen:
            self._seen.add(frame)
            self._frames.append(frame)

    def __iter__(self) -> Iterator[Frame]:
        return iter(self._frames)

    def __len__(self) -> int:
        return len(self._frames)

    def __bool__(self) -> bool:
        return bool(self._frames)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Relation):
            return NotImplemented
        return self._frames == other._frames

    def __repr__(self) -> str:
        return f"Relation({self._frames!r})"


# --------------------------------------------------------------------------- #
# Unification and substitution
# --------------------------------------------------------------------------- #

def unify(pattern: Any, value: Any, frame: Frame) -> Optional[Frame]:
    """
    Match `pattern` against `value`, extending `frame`.

    Returns the extended frame, or None when the pattern does not apply.
    """
    if isinstance(pattern, Var):
        if pattern in frame:
            return frame if frame[pattern] == freeze(value) else None
        return frame.bind(pattern, value)

    if isinstance(pattern, Mapping):
        if not isinstance(value, Mapping):
            return None
        for key, sub in pattern.items():
            if key not in value:
                return None
            frame = unify(sub, value[key], frame)
            if frame is None:
                return None
        return frame

    if isinstance(pattern, (list, tuple)):
        if not isinstance(value, (list, tuple)) or len(pattern) != len(value):
            return None
        for sub, item in zip(pattern, value):
            frame = unify(sub, item, frame)
            if frame is None:
                return None
        return frame

    return frame if freeze(pattern) == freeze(value) else None


def substitute(template: Any, frame: Frame, context: str = "") -> Any:
    """Resolve `template` against `frame`; unbound variables are configuration errors."""
    if isinstance(template, Var):
        if template not in frame:
            raise UnboundVariableError(template.name, context)
        return thaw(frame[template])
    if isinstance(template, Mapping):
        return {k: substitute(v, frame, context) for k, v in template.items()}
    if isinstance(template, (list, tuple)):
        return [substitute(v, frame, context) for v in template]
    return template


def variables_in(template: Any) -> Set[Var]:
    """All variables referenced anywhere inside a pattern or template."""
    if isinstance(template, Var):
        return {template}
    if isinstance(template, Mapping):
        found: Set[Var] = set()
        for v in template.values():
            found |= variables_in(v)
        return found
    if isinstance(template, (list, tuple)):
        found = set()
        for v in template:
            found |= variables_in(v)
        return found
    return set()
