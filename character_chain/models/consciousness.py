"""Consciousness Record — beliefs, values, goals and the evolution log."""

from typing import Dict, List, Optional, Set

from pydantic import BaseModel, Field


class Decision(BaseModel):
    """One entry of a character's decision history."""

    context: str
    reasoning: str
    outcome: str
    timestamp: int
    confidence: int = Field(ge=0, le=95)
    success: bool = True


class ConsciousnessRecord(BaseModel):
    """
    Evolving mind of a character.

    beliefs / values / goals and decision_history are append-only.
    priorities is last-write-wins. achieved_breakthroughs only ever grows.
    coherence_level is set once at initialization and not touched afterwards.
    """

    beliefs: List[str] = []
    values: List[str] = []
    goals: List[str] = []
    priorities: Dict[str, int] = {}
    decision_history: List[Decision] = []
    awareness_level: int = Field(ge=0, le=100, default=0)
    coherence_level: int = Field(ge=0, le=100, default=0)
    evolution_points: int = Field(ge=0, default=0)
    achieved_breakthroughs: Set[str] = set()
    last_update_time: int = 0
    is_initialized: bool = False


class EvolutionResult(BaseModel):
    """Outcome of a single evolve_consciousness call."""

    character_id: int
    decision: Decision
    evolution_impact: int
    awareness_level: int
    evolution_points: int
    breakthrough: bool = False
    breakthrough_draw: Optional[int] = None
    breakthrough_probability: Optional[int] = None
