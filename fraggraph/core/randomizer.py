"""
Seedable source of randomness shared by the graph operators.
"""

from __future__ import annotations
from typing import Any, List, Optional, Sequence, TypeVar
import numpy as np

T = TypeVar("T")


class Randomizer:
    """
    Thin wrapper around numpy's Generator with the draws operators need.

    One seeded instance reproduces a whole growth/mutation/crossover
    session.
    """

    def __init__(self, seed: Optional[int] = None, rng: Optional[np.random.Generator] = None):
        self.seed = seed
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def next_boolean(self, probability: float = 0.5) -> bool:
        """Bernoulli draw with success probability `probability`."""
        if probability >= 1.0:
            return True
        if probability <= 0.0:
            return False
        return bool(self.rng.random() < probability)

    def next_int(self, n: int) -> int:
        """Uniform integer in [0, n)."""
        if n <= 0:
            raise ValueError(f"Upper bound must be positive, got {n}")
        return int(self.rng.integers(n))

    def choose_one(self, items: Sequence[T]) -> Optional[T]:
        """Uniformly pick one element, or None for an empty sequence."""
        seq = list(items)
        if not seq:
            return None
        return seq[self.next_int(len(seq))]

    def shuffled(self, items: Sequence[Any]) -> List[Any]:
        """Return a new list with the elements in random order."""
        seq = list(items)
        return [seq[i] for i in self.rng.permutation(len(seq))]
