"""
State Store — keyed storage for every character record, with rollback.

Queried and mutated by: EntanglementNetwork, MemeEngine, ConsciousnessEngine

Behavioral Contract:
- All state is keyed by character ID; each record is owned by its slot.
- Mutations happen inside transaction(). On any exception the arena is
  restored to its state at transaction entry, buffered events are dropped,
  and the exception propagates unchanged.
- Events are only published to the EventLog when the transaction commits.
- Transactions are serialized by a re-entrant store lock; threads queue
  at the outermost transaction.
"""

import copy
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Set

from character_chain.chain.events import EventLog
from character_chain.models.chain import BlockContext, ChainEvent
from character_chain.models.consciousness import ConsciousnessRecord
from character_chain.models.meme import MemeticPattern
from character_chain.models.quantum import QuantumState

logger = logging.getLogger(__name__)


class StateStore:
    """
    In-memory arena of character records.
    Production would back this with persistent contract storage.
    """

    def __init__(self, event_log: Optional[EventLog] = None):
        self.event_log = event_log or EventLog()
        self.quantum_states: Dict[int, QuantumState] = {}
        self.entanglements: Dict[int, Set[int]] = {}
        self.patterns: Dict[int, MemeticPattern] = {}
        self.minds: Dict[int, ConsciousnessRecord] = {}
        self._depth = 0
        self._pending: List[ChainEvent] = []
        self._lock = threading.RLock()

    # --- Record access ---

    def quantum_state(self, character_id: int) -> QuantumState:
        """Get the quantum slot for a character; an empty slot reads as uninitialized."""
        state = self.quantum_states.get(character_id)
        if state is None:
            state = QuantumState()
            if self._depth:
                self.quantum_states[character_id] = state
        return state

    def pattern(self, character_id: int) -> MemeticPattern:
        pattern = self.patterns.get(character_id)
        if pattern is None:
            pattern = MemeticPattern()
            if self._depth:
                self.patterns[character_id] = pattern
        return pattern

    def mind(self, character_id: int) -> ConsciousnessRecord:
        mind = self.minds.get(character_id)
        if mind is None:
            mind = ConsciousnessRecord()
            if self._depth:
                self.minds[character_id] = mind
        return mind

    def is_entangled(self, a: int, b: int) -> bool:
        return b in self.entanglements.get(a, ())

    def entangled_peers(self, character_id: int) -> Set[int]:
        return set(self.entanglements.get(character_id, ()))

    def entangle(self, a: int, b: int) -> None:
        """Set the adjacency relation in both directions."""
        self.entanglements.setdefault(a, set()).add(b)
        self.entanglements.setdefault(b, set()).add(a)

    # --- Transactions ---

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def transaction(self) -> Iterator["StateStore"]:
        """
        Run a block of mutations atomically.

        The outermost transaction holds the store lock until it commits or
        rolls back, so calls from other threads wait their turn. Nested
        calls on the same thread join the outermost transaction. Events are
        published before the transaction counts as committed; a publishing
        failure rolls the state back too.
        """
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield self
                finally:
                    self._depth -= 1
                return

            saved = self._capture()
            self._depth = 1
            try:
                yield self
                if self._pending:
                    self.event_log.append_many(self._pending)
                self._pending = []
            except Exception as e:
                self._restore(saved)
                dropped = len(self._pending)
                self._pending = []
                logger.warning(
                    "transaction rolled back (%s: %s), %d event(s) dropped",
                    type(e).__name__, e, dropped,
                )
                raise
            finally:
                self._depth = 0

    def emit(
        self,
        ctx: BlockContext,
        name: str,
        character_id: Optional[int] = None,
        **payload,
    ) -> ChainEvent:
        """Buffer an event for publication when the transaction commits."""
        if not self._depth:
            raise RuntimeError(f"Event {name} emitted outside a transaction")
        event = ChainEvent(
            name=name,
            character_id=character_id,
            block_number=ctx.block_number,
            timestamp=ctx.timestamp,
            caller=ctx.caller,
            payload=payload,
        )
        self._pending.append(event)
        return event

    def _capture(self) -> tuple:
        return copy.deepcopy(
            (self.quantum_states, self.entanglements, self.patterns, self.minds)
        )

    def _restore(self, saved: tuple) -> None:
        self.quantum_states, self.entanglements, self.patterns, self.minds = saved

    # --- Inspection ---

    def snapshot(self) -> dict:
        """Get a serializable snapshot of all state."""
        return {
            "quantum_states": {
                str(k): v.model_dump(mode="json") for k, v in self.quantum_states.items()
            },
            "entanglements": {
                str(k): sorted(v) for k, v in self.entanglements.items()
            },
            "patterns": {
                str(k): v.model_dump(mode="json") for k, v in self.patterns.items()
            },
            "minds": {
                str(k): v.model_dump(mode="json") for k, v in self.minds.items()
            },
        }
