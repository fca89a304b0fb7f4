"""Quantum State — per-character entanglement record."""

from typing import Dict, List

from pydantic import BaseModel, Field


class QuantumState(BaseModel):
    """
    Entanglement state owned by a single character slot.

    An entanglement_factor of 0 marks the slot as uninitialized.
    """

    entanglement_factor: int = Field(ge=0, default=0)
    is_collapsed: bool = False
    superposition_states: List[str] = []
    quantum_bonds: Dict[int, int] = {}      # peer character ID -> bond strength

    @property
    def initialized(self) -> bool:
        return self.entanglement_factor != 0
