"""Character Chain data models."""

from character_chain.models.chain import BlockContext, ChainConfig, ChainEvent
from character_chain.models.consciousness import (
    ConsciousnessRecord,
    Decision,
    EvolutionResult,
)
from character_chain.models.meme import MemeticPattern, PropagationResult
from character_chain.models.quantum import QuantumState

__all__ = [
    "BlockContext",
    "ChainConfig",
    "ChainEvent",
    "ConsciousnessRecord",
    "Decision",
    "EvolutionResult",
    "MemeticPattern",
    "PropagationResult",
    "QuantumState",
]
