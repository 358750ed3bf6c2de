"""
Building-block space.

Contains:
- CompatibilityRegistry: immutable AP-class rules
- BuildingBlockLibrary: scaffold, fragment and capping pools
- FragmentSpace: library + registry handed to the operators
"""

from .compatibility import CompatibilityRegistry, SYMMETRY_FORCE_THRESHOLD
from .library import APRef, BuildingBlockLibrary
from .fragment_space import FragmentSpace

__all__ = [
    "CompatibilityRegistry",
    "SYMMETRY_FORCE_THRESHOLD",
    "APRef",
    "BuildingBlockLibrary",
    "FragmentSpace",
]
