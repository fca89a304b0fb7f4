"""Chain primitives — block context, events and engine configuration."""

from typing import Optional

from pydantic import BaseModel, Field


class BlockContext(BaseModel):
    """Environment of one call: the block it lands in and who sent it."""

    block_number: int = Field(ge=0)
    timestamp: int = Field(ge=0)            # Unix seconds
    caller: str
    gas_price: int = Field(ge=0, default=1)
    prevrandao: int = Field(ge=0, default=0)    # Per-block seed
    previous_block_hash: str = "0" * 64


class ChainEvent(BaseModel):
    """A single entry of the append-only public event stream."""

    sequence: Optional[int] = None          # Assigned by the EventLog
    name: str                               # e.g., "QuantumBondFormed"
    character_id: Optional[int] = None
    block_number: int
    timestamp: int
    caller: str
    payload: dict = {}

    # INTEGRITY
    signature: str = ""
    prior_event_hash: Optional[str] = None


class ChainConfig(BaseModel):
    """Tunables shared by the two engines and the API."""

    cooldown_seconds: int = Field(ge=0, default=3600)
    default_mutation_rate: int = Field(ge=0, le=100, default=10)
    mutation_threshold: int = Field(ge=1, default=126)
    initial_coherence: int = Field(ge=0, le=100, default=50)
    max_confidence: int = Field(ge=0, le=95, default=95)
    breakthrough_bonus: int = Field(ge=0, default=5)
    goal_match_bonus: int = Field(ge=0, default=2)
    # False keeps the historical fan-out bound (source superposition count);
    # True walks the real adjacency set.
    fan_out_over_adjacency: bool = False
    gas_price: int = Field(ge=0, default=1)
