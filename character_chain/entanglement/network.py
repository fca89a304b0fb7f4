"""
Entanglement Network — quantum state and bonds between characters.

Behavioral Contract:
- A character is initialized exactly once; entanglement_factor == 0 means "not yet".
- Bonds are symmetric and set-once: re-bonding a pair is rejected.
- Bond strength is the truncated mean of both factors at bonding time; each
  factor then grows by a tenth of the bond strength.
- Collapse is one-way. It empties the superposition list but keeps every bond.
- Any caller may act on any character.
"""

import logging
from typing import List, Optional

from character_chain.chain.context import DEFAULT_CALLER, SimulatedChain
from character_chain.chain.store import StateStore
from character_chain.errors import (
    AlreadyCollapsed,
    AlreadyEntangled,
    AlreadyInitialized,
    InvalidEntanglementFactor,
    NotInitialized,
    SelfEntanglement,
    check_character_id,
)
from character_chain.models.chain import ChainConfig
from character_chain.models.quantum import QuantumState

logger = logging.getLogger(__name__)


class EntanglementNetwork:
    """Owns per-character QuantumState and the entanglement relation."""

    def __init__(
        self,
        store: StateStore,
        chain: SimulatedChain,
        config: Optional[ChainConfig] = None,
    ):
        self.store = store
        self.chain = chain
        self.config = config or ChainConfig()

    def _require_initialized(self, character_id: int) -> QuantumState:
        state = self.store.quantum_state(character_id)
        if not state.initialized:
            raise NotInitialized(
                f"Character {character_id} has no quantum state", character_id
            )
        return state

    # --- Mutations ---

    def initialize_quantum_state(
        self, character_id: int, entanglement_factor: int, caller: str = DEFAULT_CALLER
    ) -> QuantumState:
        """Write the initial entanglement factor for a character. First write wins."""
        with self.store.transaction():
            ctx = self.chain.context(caller)
            check_character_id(character_id)
            state = self.store.quantum_state(character_id)
            if state.initialized:
                raise AlreadyInitialized(
                    f"Character {character_id} quantum state already initialized",
                    character_id,
                )
            if entanglement_factor <= 0:
                raise InvalidEntanglementFactor(
                    f"Entanglement factor must be positive, got {entanglement_factor}",
                    character_id,
                )
            state.entanglement_factor = entanglement_factor
            state.is_collapsed = False
            self.store.emit(
                ctx, "QuantumStateInitialized", character_id,
                entanglement_factor=entanglement_factor,
            )
        logger.info("quantum state initialized char=%d factor=%d", character_id, entanglement_factor)
        return state.model_copy(deep=True)

    def add_superposition_state(
        self, character_id: int, label: str, caller: str = DEFAULT_CALLER
    ) -> List[str]:
        """Append a label to an uncollapsed character's superposition list."""
        with self.store.transaction():
            ctx = self.chain.context(caller)
            state = self._require_initialized(character_id)
            if state.is_collapsed:
                raise AlreadyCollapsed(
                    f"Character {character_id} has collapsed", character_id
                )
            state.superposition_states.append(label)
            self.store.emit(ctx, "SuperpositionAdded", character_id, label=label)
        return list(state.superposition_states)

    def create_quantum_bond(
        self, character_a: int, character_b: int, caller: str = DEFAULT_CALLER
    ) -> int:
        """
        Entangle two characters and return the bond strength.

        bond = (factor_a + factor_b) // 2, then both factors += bond // 10.
        """
        with self.store.transaction():
            ctx = self.chain.context(caller)
            check_character_id(character_a, character_b)
            if self.store.is_entangled(character_a, character_b):
                raise AlreadyEntangled(
                    f"Characters {character_a} and {character_b} are already entangled",
                    character_a,
                )
            if character_a == character_b:
                raise SelfEntanglement(
                    f"Character {character_a} cannot entangle with itself", character_a
                )
            state_a = self._require_initialized(character_a)
            state_b = self._require_initialized(character_b)

            bond_strength = (state_a.entanglement_factor + state_b.entanglement_factor) // 2
            state_a.quantum_bonds[character_b] = bond_strength
            state_b.quantum_bonds[character_a] = bond_strength
            self.store.entangle(character_a, character_b)

            growth = bond_strength // 10
            state_a.entanglement_factor += growth
            state_b.entanglement_factor += growth

            self.store.emit(
                ctx, "QuantumBondFormed", character_a,
                peer_id=character_b, bond_strength=bond_strength,
            )
        logger.info(
            "bond formed %d<->%d strength=%d growth=%d",
            character_a, character_b, bond_strength, growth,
        )
        return bond_strength

    def collapse_quantum_state(
        self, character_id: int, caller: str = DEFAULT_CALLER
    ) -> QuantumState:
        """Collapse a character. Superpositions are cleared, bonds survive."""
        with self.store.transaction():
            ctx = self.chain.context(caller)
            state = self._require_initialized(character_id)
            if state.is_collapsed:
                raise AlreadyCollapsed(
                    f"Character {character_id} has already collapsed", character_id
                )
            cleared = len(state.superposition_states)
            state.is_collapsed = True
            state.superposition_states.clear()
            self.store.emit(
                ctx, "QuantumStateCollapsed", character_id, cleared_states=cleared,
            )
        logger.info("quantum state collapsed char=%d cleared=%d", character_id, cleared)
        return state.model_copy(deep=True)

    # --- Readers ---

    def get_quantum_state(self, character_id: int) -> QuantumState:
        return self.store.quantum_state(character_id).model_copy(deep=True)

    def get_entanglement_factor(self, character_id: int) -> int:
        return self.store.quantum_state(character_id).entanglement_factor

    def get_superposition_states(self, character_id: int) -> List[str]:
        return list(self.store.quantum_state(character_id).superposition_states)

    def is_collapsed(self, character_id: int) -> bool:
        return self.store.quantum_state(character_id).is_collapsed

    def get_bond_strength(self, character_a: int, character_b: int) -> int:
        """Bond strength as seen from character_a; 0 when not bonded."""
        return self.store.quantum_state(character_a).quantum_bonds.get(character_b, 0)

    def are_entangled(self, character_a: int, character_b: int) -> bool:
        return self.store.is_entangled(character_a, character_b)

    def get_entangled_peers(self, character_id: int) -> List[int]:
        return sorted(self.store.entangled_peers(character_id))
