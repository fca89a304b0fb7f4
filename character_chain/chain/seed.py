"""
Seed Sources — pseudo-randomness derived from the block context.

NOT a secure randomness source. Every input (block time, caller, gas price,
previous block hash, per-block seed) is visible to, or chosen by, whoever
produces the block or simulates the call before submitting it. Such a party
can predict or steer mutations and breakthroughs. This derivation surface is
kept as-is; swap the SeedSource if that matters.
"""

import hashlib
from collections import deque
from typing import Iterable, Protocol

from character_chain.errors import SeedExhausted
from character_chain.models.chain import BlockContext


class SeedSource(Protocol):
    """Protocol for pseudo-random draws — pluggable backend."""

    def network_seed(self, ctx: BlockContext) -> int: ...

    def consciousness_seed(
        self, ctx: BlockContext, character_id: int, experience: str
    ) -> int: ...


def _word(value: int) -> bytes:
    """Encode an unsigned integer as a 32-byte big-endian word."""
    return value.to_bytes(32, "big")


def _digest(*parts: bytes) -> int:
    return int.from_bytes(hashlib.sha3_256(b"".join(parts)).digest(), "big")


class BlockSeedSource:
    """Derives seeds by hashing the packed block context."""

    def network_seed(self, ctx: BlockContext) -> int:
        return _digest(
            _word(ctx.timestamp),
            ctx.caller.encode(),
            _word(ctx.gas_price),
            bytes.fromhex(ctx.previous_block_hash),
        )

    def consciousness_seed(
        self, ctx: BlockContext, character_id: int, experience: str
    ) -> int:
        experience_hash = hashlib.sha3_256(experience.encode()).digest()
        return _digest(
            _word(ctx.timestamp),
            ctx.caller.encode(),
            _word(ctx.prevrandao),
            _word(character_id),
            experience_hash,
        )


class ScriptedSeedSource:
    """
    Replays a fixed queue of seeds, one per draw, in call order.
    Used by tests and reproducible simulations.
    """

    def __init__(self, seeds: Iterable[int] = ()):
        self._queue = deque(seeds)
        self.draws = 0

    def push(self, *seeds: int) -> None:
        self._queue.extend(seeds)

    @property
    def remaining(self) -> int:
        return len(self._queue)

    def _next(self) -> int:
        if not self._queue:
            raise SeedExhausted(f"Seed script exhausted after {self.draws} draws")
        self.draws += 1
        return self._queue.popleft()

    def network_seed(self, ctx: BlockContext) -> int:
        return self._next()

    def consciousness_seed(
        self, ctx: BlockContext, character_id: int, experience: str
    ) -> int:
        return self._next()
