"""
Graph-rewriting operators.

Contains:
- GrowthOperator: extends graphs from the fragment space
- MutationOperator: delete / extend / change-branch mutations
- CrossoverOperator: branch exchange between two graphs
"""

from .growth import (
    GrowthOperator, ChainBiasOutcome, ChainCandidate, NO_FRAGMENT,
    growth_probability, crowdedness,
)
from .mutation import MutationOperator
from .crossover import (
    CrossoverOperator, is_crossover_possible,
    locate_compatible_xover_points, perform_crossover,
)

__all__ = [
    "GrowthOperator",
    "ChainBiasOutcome",
    "ChainCandidate",
    "NO_FRAGMENT",
    "growth_probability",
    "crowdedness",
    "MutationOperator",
    "CrossoverOperator",
    "is_crossover_possible",
    "locate_compatible_xover_points",
    "perform_crossover",
]
