"""
Port compatibility registry.

Lookup tables keyed by AP class:
- compatibility: source class -> ordered list of accepted target classes
- bond orders: class -> bond order of the edges it forms (default 1)
- capping: class -> class of the capping group that saturates it
- forbidden ends: classes that must never be left free
- symmetry constraints: class -> probability of symmetric growth

The registry is immutable once built.
"""

from __future__ import annotations
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from fraggraph.core.enums import BondType
from fraggraph.exceptions import ConfigurationError

# Probabilities at or above this value force symmetric growth
SYMMETRY_FORCE_THRESHOLD = 1.0 - 1e-4

PairsOrMapping = Union[Mapping[str, Any], Sequence[Tuple[str, Any]]]


def _as_mapping(data: Optional[PairsOrMapping], what: str) -> Dict[str, Any]:
    """Turn a mapping or a list of pairs into a dict, rejecting duplicate keys."""
    if data is None:
        return {}
    if isinstance(data, Mapping):
        return dict(data)
    result: Dict[str, Any] = {}
    for entry in data:
        try:
            key, value = entry
        except (TypeError, ValueError):
            raise ConfigurationError(f"Malformed {what} entry: {entry!r}")
        if key in result:
            raise ConfigurationError(f"Duplicate key '{key}' in {what}")
        result[key] = value
    return result


class CompatibilityRegistry:
    """
    Immutable rules deciding which APs may be joined and how.

    Example:
        registry = CompatibilityRegistry(
            compatibility={"A:0": ["B:0"], "B:0": ["A:0"]},
            bond_orders={"A": 1, "B": 1},
            capping={"A:0": "cap:0"},
            forbidden_ends=["B:0"],
        )
        registry.is_compatible("A:0", "B:0")   # True
        registry.capping_class("A:0")          # "cap:0"
    """

    def __init__(
        self,
        compatibility: Optional[PairsOrMapping] = None,
        bond_orders: Optional[PairsOrMapping] = None,
        capping: Optional[PairsOrMapping] = None,
        forbidden_ends: Optional[Iterable[str]] = None,
        symmetry_constraints: Optional[PairsOrMapping] = None,
        enforce_symmetry: bool = False,
    ):
        compat = _as_mapping(compatibility, "compatibility rules")
        frozen: Dict[str, Tuple[str, ...]] = {}
        for src, targets in compat.items():
            if isinstance(targets, str):
                targets = [targets]
            targets = list(targets)
            if len(set(targets)) != len(targets):
                raise ConfigurationError(f"Duplicate target class for '{src}'")
            frozen[src] = tuple(targets)
        self._compatibility = MappingProxyType(frozen)

        caps = _as_mapping(capping, "capping rules")
        self._capping = MappingProxyType(dict(caps))

        defined = set(frozen)
        for targets in frozen.values():
            defined.update(targets)
        defined.update(caps.values())

        orders = _as_mapping(bond_orders, "bond orders")
        checked_orders: Dict[str, int] = {}
        for ap_class, order in orders.items():
            if int(order) <= 0:
                raise ConfigurationError(f"Bond order for '{ap_class}' must be positive, got {order}")
            checked_orders[ap_class] = int(order)
        self._bond_orders = MappingProxyType(checked_orders)
        defined.update(checked_orders)
        self._defined = frozenset(defined)

        for src in caps:
            self._require_defined(src, "capping rules")

        forbidden = list(forbidden_ends or ())
        if len(set(forbidden)) != len(forbidden):
            raise ConfigurationError("Duplicate class in forbidden ends")
        for ap_class in forbidden:
            self._require_defined(ap_class, "forbidden ends")
        self._forbidden = frozenset(forbidden)

        symmetry = _as_mapping(symmetry_constraints, "symmetry constraints")
        checked_sym: Dict[str, float] = {}
        for ap_class, prob in symmetry.items():
            self._require_defined(ap_class, "symmetry constraints")
            prob = float(prob)
            if not 0.0 <= prob <= 1.0:
                raise ConfigurationError(
                    f"Symmetry probability for '{ap_class}' must be in [0, 1], got {prob}"
                )
            checked_sym[ap_class] = prob
        self._symmetry = MappingProxyType(checked_sym)
        self._enforce_symmetry = bool(enforce_symmetry)

    def _require_defined(self, ap_class: str, where: str) -> None:
        if ap_class not in self._defined:
            raise ConfigurationError(f"Undefined AP class '{ap_class}' referenced in {where}")

    # ===== Lookups =====

    def compatible_classes(self, ap_class: Optional[str]) -> List[str]:
        """Target classes accepted by `ap_class` (empty if none)."""
        return list(self._compatibility.get(ap_class, ()))

    def is_compatible(self, src_class: Optional[str], trg_class: Optional[str]) -> bool:
        return trg_class in self._compatibility.get(src_class, ())

    def bond_order(self, ap_class: Optional[str]) -> int:
        """
        Bond order for `ap_class`.

        Orders can be declared for the full class ("A:0") or for its rule
        part ("A"); undefined classes get order 1.
        """
        if ap_class is None:
            return 1
        if ap_class in self._bond_orders:
            return self._bond_orders[ap_class]
        rule = ap_class.split(":", 1)[0]
        return self._bond_orders.get(rule, 1)

    def bond_type(self, ap_class: Optional[str]) -> BondType:
        return BondType.from_order(self.bond_order(ap_class))

    def capping_class(self, ap_class: Optional[str]) -> Optional[str]:
        return self._capping.get(ap_class)

    def is_forbidden_end(self, ap_class: Optional[str]) -> bool:
        return ap_class in self._forbidden

    def symmetry_policy(self, ap_class: Optional[str]) -> Optional[bool]:
        """
        Per-class symmetry override.

        Returns:
            True (forced on), False (forced off), or None to defer to the
            global policy
        """
        if ap_class not in self._symmetry:
            return None
        return self._symmetry[ap_class] >= SYMMETRY_FORCE_THRESHOLD

    def impose_symmetry_on(self, ap_class: Optional[str]) -> bool:
        """True if growth on `ap_class` must be symmetric regardless of chance."""
        policy = self.symmetry_policy(ap_class)
        if policy is None:
            return self._enforce_symmetry
        return policy

    def all_classes(self) -> List[str]:
        return sorted(self._defined)

    @property
    def compatibility(self) -> Mapping[str, Tuple[str, ...]]:
        return self._compatibility

    @property
    def enforce_symmetry(self) -> bool:
        return self._enforce_symmetry

    @property
    def forbidden_ends(self) -> frozenset:
        return self._forbidden

    def is_empty(self) -> bool:
        return len(self._compatibility) == 0

    # ===== Construction =====

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CompatibilityRegistry":
        """
        Build from a plain dictionary, as read from a space definition.

        Keys: "compatibility", "bond_orders", "capping", "forbidden_ends",
        "symmetry_constraints", "enforce_symmetry". Each map may be given
        as a dict or as a list of [key, value] pairs.
        """
        known = {
            "compatibility", "bond_orders", "capping",
            "forbidden_ends", "symmetry_constraints", "enforce_symmetry",
        }
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown registry sections: {sorted(unknown)}")
        return cls(
            compatibility=data.get("compatibility"),
            bond_orders=data.get("bond_orders"),
            capping=data.get("capping"),
            forbidden_ends=data.get("forbidden_ends"),
            symmetry_constraints=data.get("symmetry_constraints"),
            enforce_symmetry=bool(data.get("enforce_symmetry", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "compatibility": {k: list(v) for k, v in self._compatibility.items()},
            "bond_orders": dict(self._bond_orders),
            "capping": dict(self._capping),
            "forbidden_ends": sorted(self._forbidden),
            "symmetry_constraints": dict(self._symmetry),
            "enforce_symmetry": self._enforce_symmetry,
        }

    def __repr__(self) -> str:
        return (
            f"CompatibilityRegistry(classes={len(self._defined)}, "
            f"rules={len(self._compatibility)}, capping={len(self._capping)})"
        )
