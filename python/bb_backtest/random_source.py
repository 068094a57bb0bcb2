"""Deterministic pseudo-random source for the synthetic market data.

A symbol is hashed to an integer seed, and the seed drives a small linear
congruential generator. Both steps use exact integer arithmetic so the same
symbol always produces the same float stream.
"""

from __future__ import annotations

import secrets

from .config import SEED_SALT
from .errors import InvalidParameters

_MODULUS = 2**31
_MULTIPLIER = 1103515245
_INCREMENT = 12345


def _to_int32(x: int) -> int:
    x &= 0xFFFFFFFF
    return x - 0x100000000 if x & 0x80000000 else x


def string_to_seed(text: str) -> int:
    """Polynomial rolling hash (``h = h*31 + code``) with 32-bit wraparound.

    Hashes UTF-16 code units, so characters outside the BMP count as two units.
    Returns ``abs(h)``; the empty string maps to 0.
    """
    data = str(text).encode("utf-16-le")
    h = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = _to_int32(h * 31 + unit)
    return abs(h)


def symbol_seed(symbol: str, salt: str = SEED_SALT) -> int:
    return string_to_seed(f"{symbol}{salt}")


class SeededRandom:
    """LCG with m=2**31, a=1103515245, c=12345.

    ``next()`` returns ``state / (m - 1)``, so the stream lies in [0, 1]
    (1.0 only when the state hits m - 1).
    """

    modulus = _MODULUS

    def __init__(self, seed: int):
        seed = int(seed)
        if seed < 0:
            raise InvalidParameters("seed must be non-negative", "seed", seed)
        self.seed = seed
        self._state = seed % _MODULUS

    @classmethod
    def from_entropy(cls) -> "SeededRandom":
        """Non-deterministic generator seeded from system entropy."""
        return cls(secrets.randbelow(_MODULUS - 1))

    def next(self) -> float:
        self._state = (_MULTIPLIER * self._state + _INCREMENT) % _MODULUS
        return self._state / (_MODULUS - 1)

    def __iter__(self) -> "SeededRandom":
        return self

    def __next__(self) -> float:
        return self.next()
