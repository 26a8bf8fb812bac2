"""Randomness sources for the slot engine.

The generator and the cheat policy only ever see an RNGBase, so the
service, the audit simulation and the tests each plug in their own.
"""
import random
import secrets
from abc import ABC, abstractmethod
from collections.abc import Iterable


class RNGBase(ABC):
    """Source of symbol draws (randint) and re-roll draws (random)."""

    @abstractmethod
    def random(self) -> float:
        """Return a float in [0, 1), compared against a bracket's chance."""
        pass

    @abstractmethod
    def randint(self, a: int, b: int) -> int:
        """Return an int in [a, b] inclusive, used as a symbol index."""
        pass


class ProductionRNG(RNGBase):
    """
    RNG used by the live service.

    Draws come straight from the OS entropy pool, so rolls on different
    sessions never share or advance a common seed.
    """

    def random(self) -> float:
        return secrets.randbelow(2**32) / (2**32)

    def randint(self, a: int, b: int) -> int:
        return secrets.randbelow(b - a + 1) + a


class SeededRNG(RNGBase):
    """
    Reproducible RNG for scripts/audit_sim.py and the statistical tests.

    Owns a private random.Random; two instances with the same seed replay
    the same rolls.
    """

    def __init__(self, seed: int):
        self._rng = random.Random(seed)
        self.seed = seed

    def random(self) -> float:
        return self._rng.random()

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)


class ScriptedRNG(RNGBase):
    """
    Replays a fixed sequence of floats in [0, 1).

    randint maps the next float onto [a, b], so a script can drive both
    symbol draws and re-roll decisions. Raises RuntimeError when the
    script runs out.
    """

    def __init__(self, values: Iterable[float]):
        self._values = list(values)
        self._index = 0

    @property
    def consumed(self) -> int:
        return self._index

    def random(self) -> float:
        if self._index >= len(self._values):
            raise RuntimeError(f"ScriptedRNG exhausted after {self._index} draws")
        value = self._values[self._index]
        self._index += 1
        return value

    def randint(self, a: int, b: int) -> int:
        span = b - a + 1
        return a + min(int(self.random() * span), span - 1)
