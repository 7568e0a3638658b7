"""
core/dispatcher.py
------------------
The reactive core of StoreDirectory: the synchronization engine.

Lifecycle of every invocation record handed to `SyncEngine.submit`:

    Received  ->  Matched  ->  Refined  ->  Fired  ->  (new records)  ->  Settled

1. Received  the record enters the cascade's FIFO work queue.
2. Matched   rules whose triggers mention the record's (concept, action) are
             matched in registration order; zero frames ends the rule.
3. Refined   the rule's where-steps run; an empty relation ends the rule.
4. Fired     each frame (in relation order) invokes each effect (in
             declaration order); every outcome, failures included, becomes a
             new record queued one level deeper.
5. Settled   the queue is empty.

Guarantees
----------
- Deterministic: same rules + same records => same effects in the same order.
- Idempotent dispatch: a record (seq, flow) is dispatched at most once, so no
  rule fires twice for the same trigger. Records must be minted through
  `SyncEngine.record`; the memory keeps only the last `dispatch_memory`
  dispatches, so resubmitting an older record runs it again.
- Bounded: a cascade deeper than `max_depth` raises CascadeDepthExceeded.
- Isolated: cascades share only the sequence counter and the dispatch
  memory, so unrelated root triggers may run on different threads.
- Loose coupling: no retries, no rollback. A concept that raises aborts only
  the branch below that effect.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict, deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from core.binder import refine
from core.concepts import ConceptRegistry, Outcome
from core.config import DEFAULT_DISPATCH_MEMORY, DEFAULT_MAX_CASCADE_DEPTH, Settings
from core.errors import CascadeDepthExceeded, ContractViolation
from core.frames import Frame, Relation, substitute
from core.matcher import match
from core.records import InvocationRecord, SequenceCounter, new_flow_id
from core.sync_rules import SyncRule, validate_rules

logger = logging.getLogger(__name__)

RecordListener = Callable[[InvocationRecord], None]


@dataclass(frozen=True)
class FiredEffect:
    """One effect invocation performed by a rule."""

    rule_id: str
    trigger_seq: int
    concept: str
    action: str
    input: Mapping[str, Any]
    record: Optional[InvocationRecord]

    @property
    def action_id(self) -> str:
        return f"{self.concept}.{self.action}"

    @property
    def ok(self) -> bool:
        return self.record is not None and self.record.ok


@dataclass
class CascadeResult:
    """Everything one root trigger caused, in dispatch order."""

    root: InvocationRecord
    records: List[InvocationRecord] = field(default_factory=list)
    fired: List[FiredEffect] = field(default_factory=list)
    violations: List[ContractViolation] = field(default_factory=list)
    depth: int = 0

    @property
    def flow(self) -> str:
        return self.root.flow

    def effects(self, rule_id: Optional[str] = None) -> List[FiredEffect]:
        if rule_id is None:
            return list(self.fired)
        return [f for f in self.fired if f.rule_id == rule_id]

    def fired_rules(self) -> List[str]:
        seen: List[str] = []
        for f in self.fired:
            if f.rule_id not in seen:
                seen.append(f.rule_id)
        return seen

    def find(self, concept: str, action: str) -> List[InvocationRecord]:
        return [r for r in self.records if r.concept == concept and r.action == action]


class SyncEngine:
    """
    Dispatcher for synchronization rules over a concept registry.

    Parameters
    ----------
    registry : ConceptRegistry
        Concepts the rules may trigger on, query and invoke.
    rules : sequence of SyncRule
        Static rule set; validated eagerly (ids, variable bindings, actions).
    max_depth : int
        Ceiling on cascade depth (root record is depth 0).
    dispatch_memory : int
        How many recently dispatched (seq, flow) keys are remembered for
        idempotency. Older records fall out of the memory.
    listeners : iterable of callables
        Called with every minted record (logging, audit). Best-effort.
    """

    def __init__(
        self,
        registry: ConceptRegistry,
        rules: Sequence[SyncRule],
        *,
        max_depth: int = DEFAULT_MAX_CASCADE_DEPTH,
        dispatch_memory: int = DEFAULT_DISPATCH_MEMORY,
        listeners: Iterable[RecordListener] = (),
        counter: Optional[SequenceCounter] = None,
    ):
        self.registry = registry
        self.rules: List[SyncRule] = validate_rules(rules, registry)
        self.max_depth = max_depth
        self.dispatch_memory = dispatch_memory
        self._listeners: List[RecordListener] = list(listeners)
        self._counter = counter or SequenceCounter()
        self._dispatched: "OrderedDict[Tuple[int, str], None]" = OrderedDict()
        self._lock = threading.Lock()
        self._stats = {"cascades": 0, "records": 0, "effects": 0, "violations": 0}

        self._index: Dict[Tuple[str, str], List[SyncRule]] = {}
        for rule in self.rules:
            keys = []
            for pattern in rule.when:
                key = (pattern.concept, pattern.action)
                if key not in keys:
                    keys.append(key)
            for key in keys:
                self._index.setdefault(key, []).append(rule)

        logger.info("[Sync] Engine ready: %d rules over %d concepts", len(self.rules), len(registry.names()))

    @classmethod
    def from_settings(
        cls,
        registry: ConceptRegistry,
        rules: Sequence[SyncRule],
        settings: Settings,
        listeners: Iterable[RecordListener] = (),
    ) -> "SyncEngine":
        return cls(
            registry,
            rules,
            max_depth=settings.max_cascade_depth,
            dispatch_memory=settings.dispatch_memory,
            listeners=listeners,
        )

    # ------------------------------------------------------------------ #
    # Entry points
    # ------------------------------------------------------------------ #

    def add_listener(self, listener: RecordListener) -> None:
        self._listeners.append(listener)

    def invoke(
        self,
        concept: str,
        action: str,
        input: Mapping[str, Any],
        *,
        flow: Optional[str] = None,
    ) -> CascadeResult:
        """
        Run a root command and its whole cascade.

        A ContractViolation from the root command itself propagates: there is
        no record to cascade from.
        """
        outcome = self.registry.invoke(concept, action, input)
        record = self.record(concept, action, input, outcome, flow=flow)
        return self.submit(record)

    def record(
        self,
        concept: str,
        action: str,
        input: Mapping[str, Any],
        outcome: Outcome,
        *,
        flow: Optional[str] = None,
    ) -> InvocationRecord:
        """Mint an invocation record for a completed command."""
        record = InvocationRecord.create(
            concept,
            action,
            input,
            outcome,
            seq=self._counter.next(),
            flow=flow or new_flow_id(),
        )
        with self._lock:
            self._stats["records"] += 1
        if not record.ok:
            logger.info("[Sync] %s failed: %s", record.action_id, record.outcome.payload.get("error"))
        for listener in self._listeners:
            try:
                listener(record)
            except Exception as e:  # noqa: BLE001 - listeners are best-effort
                logger.warning("[Sync] Record listener %r failed: %s", listener, e)
        return record

    def submit(self, record: InvocationRecord) -> CascadeResult:
        """
        Dispatch `record` and everything it triggers until the cascade settles.

        `record` must come from `SyncEngine.record`. A record already
        dispatched (same seq and flow) is skipped.
        """
        result = CascadeResult(root=record)
        queue: Deque[Tuple[InvocationRecord, int]] = deque([(record, 0)])
        history: List[InvocationRecord] = []

        with self._lock:
            self._stats["cascades"] += 1

        while queue:
            current, depth = queue.popleft()
            if not self._claim(current):
                logger.debug("[Sync] #%d (flow %s) already dispatched; skipped", current.seq, current.flow)
                continue
            history.append(current)
            result.records.append(current)
            result.depth = max(result.depth, depth)

            for rule in self._index.get((current.concept, current.action), ()):
                relation = self._evaluate(rule, current, history)
                for frame in relation:
                    self._fire(rule, frame, current, depth, queue, result)

        logger.debug(
            "[Sync] Flow %s settled: %d records, %d effects",
            record.flow, len(result.records), len(result.fired),
        )
        return result

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _claim(self, record: InvocationRecord) -> bool:
        key = (record.seq, record.flow)
        with self._lock:
            if key in self._dispatched:
                return False
            self._dispatched[key] = None
            while len(self._dispatched) > self.dispatch_memory:
                self._dispatched.popitem(last=False)
            return True

    def _evaluate(
        self,
        rule: SyncRule,
        record: InvocationRecord,
        history: Sequence[InvocationRecord],
    ) -> Relation:
        if len(rule.when) == 1:
            relation = match(rule.when[0], record)
        else:
            relation = self._join(rule, record, history)
        if not relation:
            logger.debug("[Sync] %s: no match for #%d", rule.id, record.seq)
            return relation
        relation = refine(rule.where, relation, self.registry)
        if not relation:
            logger.debug("[Sync] %s: refinement left no frames for #%d", rule.id, record.seq)
        return relation

    def _join(
        self,
        rule: SyncRule,
        record: InvocationRecord,
        history: Sequence[InvocationRecord],
    ) -> Relation:
        """
        Match every trigger against the records of this cascade.

        Only frames the new record took part in survive, so earlier records
        never re-fire a rule on their own.
        """
        rows: List[Tuple[Frame, frozenset]] = [(Frame(), frozenset())]
        for pattern in rule.when:
            extended: List[Tuple[Frame, frozenset]] = []
            for frame, used in rows:
                for candidate in history:
                    if not pattern.applies_to(candidate):
                        continue
                    for f in match(pattern, candidate, Relation([frame])):
                        extended.append((f, used | {candidate.seq}))
            rows = extended
            if not rows:
                return Relation()
        return Relation(f for f, used in rows if record.seq in used)

    def _fire(
        self,
        rule: SyncRule,
        frame: Frame,
        trigger: InvocationRecord,
        depth: int,
        queue: Deque[Tuple[InvocationRecord, int]],
        result: CascadeResult,
    ) -> None:
        for effect in rule.then:
            args = substitute(effect.input, frame, context=f"rule {rule.id!r} then {effect}")
            if depth + 1 > self.max_depth:
                raise CascadeDepthExceeded(depth + 1, self.max_depth, rule.id)

            logger.debug("[Sync] %s fired by #%d -> %s %s", rule.id, trigger.seq, effect.action_id, args)
            with self._lock:
                self._stats["effects"] += 1
            try:
                outcome = self.registry.invoke(effect.concept, effect.action, args)
            except ContractViolation as violation:
                logger.error(
                    "[Sync] Contract violation in %s (rule %s); branch aborted",
                    effect.action_id, rule.id, exc_info=violation.cause,
                )
                with self._lock:
                    self._stats["violations"] += 1
                result.violations.append(violation)
                result.fired.append(
                    FiredEffect(rule.id, trigger.seq, effect.concept, effect.action, args, None)
                )
                continue

            new = self.record(effect.concept, effect.action, args, outcome, flow=trigger.flow)
            result.fired.append(
                FiredEffect(rule.id, trigger.seq, effect.concept, effect.action, args, new)
            )
            queue.append((new, depth + 1))

    # ------------------------------------------------------------------ #
    # Status
    # ------------------------------------------------------------------ #

    def stats(self) -> Dict[str, int]:
        with self._lock:
            snapshot = dict(self._stats)
        snapshot["rules"] = len(self.rules)
        snapshot["concepts"] = len(self.registry.names())
        snapshot["max_depth"] = self.max_depth
        return snapshot
