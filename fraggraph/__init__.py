"""
fraggraph

Building-block graphs for evolutionary structure design. Graphs are
trees of typed multi-port building blocks (vertices) joined through
compatible attachment points, grown, mutated and crossed by operators
that honour symmetry and ring-closure bias.

Main components:
- core: vertices, APs, edges, rings, symmetric sets, graphs, queries
- space: compatibility registry, building-block library, fragment space
- operators: growth, mutation, crossover
- rings: closable chains, tree paths, ring-closures archive
- storage: JSON/gzip persistence
"""

__version__ = "0.1.0"
__author__ = "fraggraph developers"

from .core import Graph, Vertex, AttachmentPoint, Edge, Ring, SymmetricSet, Randomizer
from .space import CompatibilityRegistry, BuildingBlockLibrary, FragmentSpace
from .operators import GrowthOperator, MutationOperator, CrossoverOperator
from .rings import ClosableChain, PathSubGraph, RingClosuresArchive
from .config import SpaceConfig

__all__ = [
    "Graph",
    "Vertex",
    "AttachmentPoint",
    "Edge",
    "Ring",
    "SymmetricSet",
    "Randomizer",
    "CompatibilityRegistry",
    "BuildingBlockLibrary",
    "FragmentSpace",
    "GrowthOperator",
    "MutationOperator",
    "CrossoverOperator",
    "ClosableChain",
    "PathSubGraph",
    "RingClosuresArchive",
    "SpaceConfig",
]
