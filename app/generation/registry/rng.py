"""Seeded pseudo-random numbers.

Seed strings are folded into a 32-bit integer with the classic
``h = h * 31 + c`` string hash, then drive a small linear-congruential
generator. The sequence depends only on the seed string, so every shuffle
built on it is reproducible across processes and machines.
"""

import math
from typing import TypeVar

_LCG_MULTIPLIER = 9301
_LCG_INCREMENT = 49297
_LCG_MODULUS = 233280

T = TypeVar("T")


def hash_seed(seed: str) -> int:
    """Hash a seed string into a non-negative 32-bit integer."""
    h = 0
    for ch in seed:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


class SeededRandom:
    """Deterministic random source for a single seed string."""

    def __init__(self, seed: str):
        self.seed = seed
        self._state = hash_seed(seed)

    def random(self) -> float:
        """Next float in [0, 1)."""
        self._state = (self._state * _LCG_MULTIPLIER + _LCG_INCREMENT) % _LCG_MODULUS
        return self._state / _LCG_MODULUS

    def below(self, n: int) -> int:
        """Next integer in [0, n)."""
        return math.floor(self.random() * n)

    def shuffle(self, items: list[T]) -> list[T]:
        """Return a Fisher-Yates shuffled copy of ``items``."""
        out = list(items)
        for i in range(len(out) - 1, 0, -1):
            j = self.below(i + 1)
            out[i], out[j] = out[j], out[i]
        return out
