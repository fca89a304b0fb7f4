"""
Meme Engine — meme mutation and broadcast over the entanglement relation.

Behavioral Contract:
- Only initialized characters may propagate.
- The source's mutation rate defaults lazily on first propagation.
- A pseudo-random draw below the mutation rate appends a one-character
  variant to the source pattern. Peers only ever receive the original meme.
- Fan-out visits candidate IDs 0..len(source superpositions)-1 and delivers
  to those entangled with the source. Entangled peers whose ID is outside
  that range are not reached unless ChainConfig.fan_out_over_adjacency is set.
"""

import logging
from typing import Iterable, List, Optional

from character_chain.chain.context import DEFAULT_CALLER, SimulatedChain
from character_chain.chain.seed import BlockSeedSource, SeedSource
from character_chain.chain.store import StateStore
from character_chain.entanglement.network import EntanglementNetwork
from character_chain.errors import (
    InvalidMutationRate,
    NotInitialized,
    check_character_id,
)
from character_chain.models.chain import ChainConfig
from character_chain.models.meme import MemeticPattern, PropagationResult

logger = logging.getLogger(__name__)


def mutate_meme(meme: str, seed: int, threshold: int = 126) -> Optional[str]:
    """
    Return a copy of meme with exactly one character nudged.

    The position is seed % len(meme). A code point below threshold is
    incremented, anything at or above it is decremented, so printable ASCII
    stays printable. The surrogate block U+D800..U+DFFF is skipped.
    Empty memes have no variant.
    """
    if not meme:
        return None
    chars = list(meme)
    index = seed % len(chars)
    code = ord(chars[index])
    code = code + 1 if code < threshold else code - 1
    # Lone surrogates are not encodable; step over the block.
    if 0xD800 <= code <= 0xDFFF:
        code = 0xE000 if code == 0xD800 else 0xD7FF
    chars[index] = chr(code)
    return "".join(chars)


class MemeEngine:
    """Owns per-character MemeticPattern and drives propagation."""

    def __init__(
        self,
        network: EntanglementNetwork,
        seed_source: Optional[SeedSource] = None,
        config: Optional[ChainConfig] = None,
    ):
        self.network = network
        self.seed_source = seed_source or BlockSeedSource()
        self.config = config or network.config

    @property
    def store(self) -> StateStore:
        return self.network.store

    @property
    def chain(self) -> SimulatedChain:
        return self.network.chain

    def _fan_out_targets(self, source_id: int) -> Iterable[int]:
        if self.config.fan_out_over_adjacency:
            return sorted(self.store.entangled_peers(source_id))
        bound = len(self.store.quantum_state(source_id).superposition_states)
        return [i for i in range(bound) if self.store.is_entangled(source_id, i)]

    def propagate_meme(
        self, character_id: int, meme: str, caller: str = DEFAULT_CALLER
    ) -> PropagationResult:
        """Record a meme on its source, maybe mutate it, and broadcast to peers."""
        result = PropagationResult(source_id=character_id, meme=meme)

        with self.store.transaction():
            ctx = self.chain.context(caller)
            check_character_id(character_id)
            if not self.store.quantum_state(character_id).initialized:
                raise NotInitialized(
                    f"Character {character_id} has no quantum state", character_id
                )

            pattern = self.store.pattern(character_id)
            pattern.memes.append(meme)
            if pattern.mutation_rate == 0:
                pattern.mutation_rate = self.config.default_mutation_rate

            seed = self.seed_source.network_seed(ctx)
            draw = seed % 100
            logger.debug(
                "mutation draw char=%d draw=%d rate=%d", character_id, draw, pattern.mutation_rate
            )
            if draw < pattern.mutation_rate:
                mutated = mutate_meme(meme, seed, self.config.mutation_threshold)
                if mutated is not None:
                    pattern.memes.append(mutated)
                    result.mutated_meme = mutated
                    self.store.emit(
                        ctx, "MemeMutated", character_id, original=meme, mutated=mutated,
                    )

            for peer_id in self._fan_out_targets(character_id):
                peer = self.store.pattern(peer_id)
                peer.memes.append(meme)
                peer.virality += 1
                peer.propagation_paths[character_id] = (
                    peer.propagation_paths.get(character_id, 0) + 1
                )
                result.reached_peers.append(peer_id)
                self.store.emit(
                    ctx, "MemePropagated", character_id, target_id=peer_id, meme=meme,
                )
                logger.debug("meme propagated %d -> %d", character_id, peer_id)

        logger.info(
            "meme propagated char=%d mutated=%s peers=%d",
            character_id, result.mutated_meme is not None, len(result.reached_peers),
        )
        return result

    def set_mutation_rate(
        self, character_id: int, mutation_rate: int, caller: str = DEFAULT_CALLER
    ) -> int:
        """
        Override a character's mutation rate.
        A rate of 0 reads as unset and is replaced by the default on the next propagation.
        """
        with self.store.transaction():
            ctx = self.chain.context(caller)
            check_character_id(character_id)
            if not self.store.quantum_state(character_id).initialized:
                raise NotInitialized(
                    f"Character {character_id} has no quantum state", character_id
                )
            if not 0 <= mutation_rate <= 100:
                raise InvalidMutationRate(
                    f"Mutation rate must be within 0-100, got {mutation_rate}", character_id
                )
            self.store.pattern(character_id).mutation_rate = mutation_rate
            self.store.emit(
                ctx, "MutationRateChanged", character_id, mutation_rate=mutation_rate,
            )
        return mutation_rate

    # --- Readers ---

    def get_pattern(self, character_id: int) -> MemeticPattern:
        return self.store.pattern(character_id).model_copy(deep=True)

    def get_memes(self, character_id: int) -> List[str]:
        return list(self.store.pattern(character_id).memes)

    def get_virality(self, character_id: int) -> int:
        return self.store.pattern(character_id).virality

    def get_mutation_rate(self, character_id: int) -> int:
        return self.store.pattern(character_id).mutation_rate

    def get_propagation_count(self, character_id: int, source_id: int) -> int:
        """How many times source_id has propagated into character_id."""
        return self.store.pattern(character_id).propagation_paths.get(source_id, 0)
