"""Memetic Pattern — the memes a character carries and how they spread."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class MemeticPattern(BaseModel):
    """Per-character meme store. mutation_rate == 0 means "not yet set"."""

    memes: List[str] = []                   # Append-only
    virality: int = Field(ge=0, default=0)  # Inbound propagation count
    mutation_rate: int = Field(ge=0, le=100, default=0)
    propagation_paths: Dict[int, int] = {}  # source character ID -> inbound count


class PropagationResult(BaseModel):
    """Outcome of a single propagate_meme call."""

    source_id: int
    meme: str
    mutated_meme: Optional[str] = None
    reached_peers: List[int] = []
