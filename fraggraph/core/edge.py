"""
Edges and ring chords.
"""

from __future__ import annotations
from typing import List, Optional, Sequence, TYPE_CHECKING

from fraggraph.core.enums import BondType
from fraggraph.exceptions import StructuralInconsistency

if TYPE_CHECKING:
    from fraggraph.core.vertex import AttachmentPoint, Vertex


class Edge:
    """
    Connection between two APs of two different vertices.

    The source side records the direction of growth: the source vertex
    is the parent, the target vertex the child.
    """

    def __init__(
        self,
        src_ap: "AttachmentPoint",
        trg_ap: "AttachmentPoint",
        bond_type: BondType = BondType.SINGLE,
    ):
        if src_ap is trg_ap:
            raise StructuralInconsistency("Edge must connect two distinct APs")
        if src_ap.owner is None or trg_ap.owner is None:
            raise StructuralInconsistency("Edge endpoints must belong to a vertex")
        if src_ap.owner is trg_ap.owner:
            raise StructuralInconsistency(
                f"Edge cannot connect vertex {src_ap.owner.vertex_id} to itself"
            )
        self.src_ap = src_ap
        self.trg_ap = trg_ap
        self.bond_type = bond_type

    @property
    def src_vertex(self) -> "Vertex":
        return self.src_ap.owner

    @property
    def trg_vertex(self) -> "Vertex":
        return self.trg_ap.owner

    @property
    def src_ap_class(self) -> Optional[str]:
        return self.src_ap.ap_class

    @property
    def trg_ap_class(self) -> Optional[str]:
        return self.trg_ap.ap_class

    def other_ap(self, ap: "AttachmentPoint") -> "AttachmentPoint":
        if ap is self.src_ap:
            return self.trg_ap
        if ap is self.trg_ap:
            return self.src_ap
        raise StructuralInconsistency(f"{ap} is not an endpoint of {self}")

    def involves(self, vertex: "Vertex") -> bool:
        return self.src_vertex is vertex or self.trg_vertex is vertex

    def to_dict(self) -> dict:
        return {
            "src": [self.src_vertex.vertex_id, self.src_ap.index],
            "trg": [self.trg_vertex.vertex_id, self.trg_ap.index],
            "bond": self.bond_type.name,
        }

    def __repr__(self) -> str:
        return (
            f"Edge({self.src_vertex.vertex_id}:{self.src_ap.index} -> "
            f"{self.trg_vertex.vertex_id}:{self.trg_ap.index}, {self.bond_type.name})"
        )


class Ring:
    """
    Cycle closure declared over the tree of edges.

    The first and last vertices are the ring-closing pair joined by a
    chord of type `bond_type`.
    """

    def __init__(self, vertices: Sequence["Vertex"], bond_type: BondType = BondType.UNDEFINED):
        if len(vertices) < 2:
            raise StructuralInconsistency("A ring needs at least two vertices")
        self.vertices: List["Vertex"] = list(vertices)
        self.bond_type = bond_type

    @property
    def head(self) -> "Vertex":
        return self.vertices[0]

    @property
    def tail(self) -> "Vertex":
        return self.vertices[-1]

    def size(self) -> int:
        return len(self.vertices)

    def contains(self, vertex: "Vertex") -> bool:
        return any(v is vertex for v in self.vertices)

    def to_dict(self) -> dict:
        return {
            "vertices": [v.vertex_id for v in self.vertices],
            "bond": self.bond_type.name,
        }

    def __repr__(self) -> str:
        return f"Ring({[v.vertex_id for v in self.vertices]})"
