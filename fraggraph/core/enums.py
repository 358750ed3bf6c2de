"""
Enumerations shared by the graph model and the operators.
"""

from __future__ import annotations
from enum import Enum


class BBType(Enum):
    """Pool a building block comes from."""
    UNDEFINED = -1
    SCAFFOLD = 0    # Root/seed blocks
    FRAGMENT = 1    # General-purpose blocks
    CAP = 2         # Single-port capping groups

    @classmethod
    def parse(cls, value) -> "BBType":
        if isinstance(value, BBType):
            return value
        if isinstance(value, str):
            return cls[value.upper()]
        return cls(int(value))


class VertexKind(Enum):
    """Payload variant carried by a vertex."""
    FRAGMENT = "fragment"   # Building block with an opaque payload
    EMPTY = "empty"         # Placeholder with ports only
    TEMPLATE = "template"   # Wraps a nested graph


class MutationType(Enum):
    """Kinds of mutation a vertex may undergo."""
    CHANGEBRANCH = "changebranch"
    EXTEND = "extend"
    DELETE = "delete"


class BondType(Enum):
    """Bond order carried by an edge or ring chord."""
    NONE = 0
    SINGLE = 1
    DOUBLE = 2
    TRIPLE = 3
    QUADRUPLE = 4
    UNDEFINED = 8

    @classmethod
    def from_order(cls, order: int) -> "BondType":
        """Map an integer bond order onto a BondType (UNDEFINED if unknown)."""
        try:
            return cls(int(order))
        except ValueError:
            return cls.UNDEFINED

    @property
    def order(self) -> int:
        return self.value if self is not BondType.UNDEFINED else -1
