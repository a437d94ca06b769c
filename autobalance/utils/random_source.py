"""Seeded pseudo-random source shared by every stochastic step of a run."""

from __future__ import annotations

from typing import Optional, Sequence, TypeVar

import numpy as np

T = TypeVar("T")


class SeededRandom:
    """Deterministic float stream in ``[0, 1)`` built on numpy's PCG64.

    The same seed and the same sequence of calls always reproduce the same
    stream. Without a seed, one is drawn from system entropy and exposed via
    :attr:`seed` so the run can still be replayed afterwards.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        if seed is None:
            seed = int(np.random.SeedSequence().generate_state(1)[0])
        self._seed = int(seed)
        self._rng = np.random.default_rng(self._seed)

    @property
    def seed(self) -> int:
        return self._seed

    def next(self) -> float:
        return float(self._rng.random())

    def uniform(self, low: float, high: float) -> float:
        if high <= low:
            return float(low)
        return low + self.next() * (high - low)

    def integers(self, low: int, high: int) -> int:
        """Integer in ``[low, high)``."""
        return int(self._rng.integers(low, high))

    def permutation(self, n: int) -> list[int]:
        return [int(i) for i in self._rng.permutation(n)]

    def choice(self, items: Sequence[T]) -> T:
        if not items:
            raise ValueError("cannot choose from an empty sequence")
        return items[self.integers(0, len(items))]

    def __repr__(self) -> str:
        return f"SeededRandom(seed={self._seed})"
