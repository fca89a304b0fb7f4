"""
Simulated Chain — the execution environment the engines run inside.

Hands out one BlockContext per submitted call. Each call is mined into its
own block; block hashes chain over the previous header so the
previous_block_hash seen by the entanglement network moves every call.
"""

import hashlib
import secrets
import time
from typing import Callable, Optional

from character_chain.models.chain import BlockContext

DEFAULT_CALLER = "0x0000000000000000000000000000000000000000"


def _wall_clock() -> int:
    return int(time.time())


class SimulatedChain:
    """
    In-process block producer.

    clock and entropy are injectable so tests and replays can pin time and
    the per-block seed.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], int]] = None,
        entropy: Optional[Callable[[], int]] = None,
        gas_price: int = 1,
        genesis_time: Optional[int] = None,
    ):
        self._clock = clock or _wall_clock
        self._entropy = entropy or (lambda: secrets.randbits(256))
        self._offset = 0
        self._pinned: Optional[int] = genesis_time
        self.gas_price = gas_price
        self.block_number = 0
        self.last_block_hash = "0" * 64
        self._last_timestamp = 0

    def now(self) -> int:
        """Current chain time in unix seconds."""
        base = self._pinned if self._pinned is not None else self._clock()
        # Block time never runs backwards.
        return max(base + self._offset, self._last_timestamp)

    def advance(self, seconds: int) -> int:
        """Move chain time forward."""
        if seconds < 0:
            raise ValueError("Chain time cannot move backwards")
        self._offset += seconds
        return self.now()

    def set_time(self, timestamp: int) -> None:
        """Pin chain time to an absolute timestamp."""
        self._pinned = timestamp
        self._offset = 0

    def context(self, caller: str = DEFAULT_CALLER) -> BlockContext:
        """Mine a new block for one call and return its context."""
        timestamp = self.now()
        self.block_number += 1
        ctx = BlockContext(
            block_number=self.block_number,
            timestamp=timestamp,
            caller=caller,
            gas_price=self.gas_price,
            prevrandao=self._entropy(),
            previous_block_hash=self.last_block_hash,
        )
        header = f"{ctx.block_number}:{ctx.timestamp}:{ctx.prevrandao}:{ctx.previous_block_hash}"
        self.last_block_hash = hashlib.sha256(header.encode()).hexdigest()
        self._last_timestamp = timestamp
        return ctx
