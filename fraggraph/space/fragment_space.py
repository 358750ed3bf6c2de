"""
Fragment space: the building-block library together with the rules that
govern how its blocks connect.
"""

from __future__ import annotations
from typing import Optional

from fraggraph.core.enums import BondType
from fraggraph.space.compatibility import CompatibilityRegistry
from fraggraph.space.library import BuildingBlockLibrary


class FragmentSpace:
    """
    Read-only configuration shared by every operator.

    Args:
        library: Building-block pools
        registry: AP compatibility rules; without it growth picks blocks
            uniformly and ignores AP classes
        symmetry_probability: Chance of symmetric growth for classes with
            no override in the registry
    """

    def __init__(
        self,
        library: BuildingBlockLibrary,
        registry: Optional[CompatibilityRegistry] = None,
        symmetry_probability: float = 0.0,
    ):
        if registry is None:
            registry = library.registry
        if library.registry is None:
            library.registry = registry
        self.library = library
        self.registry = registry
        self.symmetry_probability = symmetry_probability

    @property
    def use_ap_class_based_approach(self) -> bool:
        return self.registry is not None and not self.registry.is_empty()

    def is_compatible(self, src_class: Optional[str], trg_class: Optional[str]) -> bool:
        if not self.use_ap_class_based_approach:
            return True
        return self.registry.is_compatible(src_class, trg_class)

    def bond_type_for(self, ap_class: Optional[str]) -> BondType:
        if self.registry is None:
            return BondType.UNDEFINED
        return self.registry.bond_type(ap_class)

    def capping_class(self, ap_class: Optional[str]) -> Optional[str]:
        if self.registry is None:
            return None
        return self.registry.capping_class(ap_class)

    def is_forbidden_end(self, ap_class: Optional[str]) -> bool:
        return self.registry is not None and self.registry.is_forbidden_end(ap_class)

    def symmetry_policy(self, ap_class: Optional[str]) -> Optional[bool]:
        """Registry override for `ap_class`, or None if growth decides."""
        if self.registry is None:
            return None
        policy = self.registry.symmetry_policy(ap_class)
        if policy is None and self.registry.enforce_symmetry:
            return True
        return policy

    def __repr__(self) -> str:
        return f"FragmentSpace({self.library!r}, {self.registry!r})"
