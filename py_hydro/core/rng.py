"""
Deterministic PRNG shared by every hydrology stage.

A Numerical Recipes linear congruential generator over a 32-bit integer
state. Only integer arithmetic touches the state, so a given seed yields the
same sequence on every platform.
"""

import math
from typing import MutableSequence, Sequence, TypeVar

T = TypeVar("T")

DEFAULT_SEED = 123456789


def _uint32(n):
    """Convert to unsigned 32-bit integer."""
    return int(n) & 0xFFFFFFFF


class SeededRandom:
    """
    Seeded LCG with the helpers used across the pipeline.

    The instance is threaded through the stages in a fixed order; that call
    order is part of the reproducibility contract.
    """

    MULTIPLIER = 1664525
    INCREMENT = 1013904223

    def __init__(self, seed: int = DEFAULT_SEED):
        """Initialize with an integer seed (zero falls back to the default)."""
        self.call_count = 0
        self.state = _uint32(seed) or DEFAULT_SEED

    def next_u32(self) -> int:
        """Advance the state and return it as an unsigned 32-bit integer."""
        self.call_count += 1
        self.state = _uint32(self.MULTIPLIER * self.state + self.INCREMENT)
        return self.state

    def random(self) -> float:
        """Generate next random number in [0, 1)."""
        return self.next_u32() / 0x100000000

    def float_in(self, min_val: float, max_val: float) -> float:
        """Random float in [min_val, max_val)."""
        return min_val + (max_val - min_val) * self.random()

    def int_in(self, min_val: float, max_val: float) -> int:
        """Random integer in [min_val, max_val], both ends inclusive."""
        low = math.ceil(min_val)
        high = math.floor(max_val)
        if high < low:
            raise ValueError(f"Empty integer range [{min_val}, {max_val}]")
        return low + self.next_u32() % (high - low + 1)

    def choice(self, seq: Sequence[T]) -> T:
        """Choose a random element from a non-empty sequence."""
        if not seq:
            raise IndexError("Cannot choose from an empty sequence")
        return seq[self.int_in(0, len(seq) - 1)]

    def shuffle(self, seq: MutableSequence[T]) -> MutableSequence[T]:
        """Fisher-Yates shuffle in place; returns the same sequence."""
        for i in range(len(seq) - 1, 0, -1):
            j = self.int_in(0, i)
            seq[i], seq[j] = seq[j], seq[i]
        return seq
