from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

RAND_BITS = 31


@dataclass
class ObfuscationRandom:
    """
    Seeded pseudo-random source private to one protected counter.

    - wraps its own random.Random; never touches the global random state
    - seeded once at construction and never reseeded
    - ``rand()`` draws a fresh mask, ``rand(n)`` rolls a 1-in-n trigger
    """

    seed: int = 0

    def __post_init__(self) -> None:
        self._rng = random.Random(self.seed)
        self._draws = 0
        logger.debug("Initialized ObfuscationRandom with seed=%s", self.seed)

    @property
    def draws(self) -> int:
        return self._draws

    def rand(self, n: Optional[int] = None) -> int:
        """Return a non-negative 31-bit int, or a uniform int in ``[0, n)``."""
        self._draws += 1
        if n is None:
            return self._rng.getrandbits(RAND_BITS)
        if n <= 0:
            raise ValueError(f"rand() upper bound must be positive, got {n}")
        return self._rng.randrange(n)

    def one_in(self, n: int) -> bool:
        return self.rand(n) == 0


__all__ = ["ObfuscationRandom", "RAND_BITS"]
