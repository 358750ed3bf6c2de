"""
Vertices and attachment points.

A Vertex is one placed instance of a building block. It owns an ordered
list of AttachmentPoints (APs); an AP is used exactly when an Edge
references it, so availability is never stored on its own.

Vertex payloads are a tagged variant (see VertexKind):
- FRAGMENT: building block with an opaque payload (e.g. geometry)
- EMPTY: placeholder carrying only ports
- TEMPLATE: wraps a nested Graph as payload
"""

from __future__ import annotations
import copy
from typing import Any, Dict, Iterable, List, Optional, Sequence, TYPE_CHECKING

from fraggraph.core.enums import BBType, MutationType, VertexKind
from fraggraph.core.symmetry import SymmetricSet
from fraggraph.exceptions import ConfigurationError

if TYPE_CHECKING:
    from fraggraph.core.edge import Edge
    from fraggraph.core.graph import Graph


class AttachmentPoint:
    """
    Typed connection slot on a vertex.

    Attributes:
        index: Position in the owner's AP list
        ap_class: Port class label (None when the space is not class-based)
        multi_bond: Whether the port can carry bonds of order > 1
        owner: Vertex owning this AP (back-reference)
        user: Edge currently using this AP, if any
    """

    def __init__(
        self,
        index: int,
        ap_class: Optional[str] = None,
        multi_bond: bool = False,
        owner: Optional["Vertex"] = None,
    ):
        self.index = index
        self.ap_class = ap_class
        self.multi_bond = multi_bond
        self.owner = owner
        self.user: Optional["Edge"] = None

    def is_available(self) -> bool:
        return self.user is None

    def is_src_in_user(self) -> bool:
        """True if this AP is the source side of the edge using it."""
        return self.user is not None and self.user.src_ap is self

    def linked_ap(self) -> Optional["AttachmentPoint"]:
        """AP on the other side of the edge using this AP."""
        if self.user is None:
            return None
        return self.user.other_ap(self)

    def __repr__(self) -> str:
        owner_id = self.owner.vertex_id if self.owner is not None else None
        state = "free" if self.is_available() else "used"
        return f"AP({owner_id}:{self.index} {self.ap_class} {state})"


# Mutation types allowed by default, per building-block type
_DEFAULT_MUTATIONS = {
    BBType.SCAFFOLD: (MutationType.EXTEND,),
    BBType.FRAGMENT: (MutationType.CHANGEBRANCH, MutationType.EXTEND, MutationType.DELETE),
    BBType.CAP: (),
    BBType.UNDEFINED: (MutationType.CHANGEBRANCH, MutationType.EXTEND, MutationType.DELETE),
}


class Vertex:
    """
    Building block placed in a graph.

    Example:
        v = Vertex(vertex_id=7, ap_classes=["A:0", "A:0", "B:1"],
                   bb_type=BBType.FRAGMENT, bb_id=3,
                   symmetric_aps=[[0, 1]])
        v.free_aps()                 # all three APs
        v.symmetric_aps_of(1)        # SymmetricSet([0, 1])
    """

    def __init__(
        self,
        vertex_id: int,
        ap_classes: Optional[Sequence[Optional[str]]] = None,
        bb_type: BBType = BBType.UNDEFINED,
        bb_id: int = -1,
        kind: VertexKind = VertexKind.FRAGMENT,
        symmetric_aps: Optional[Iterable[Iterable[int]]] = None,
        multi_bond: Optional[Sequence[bool]] = None,
        is_rcv: bool = False,
        payload: Any = None,
        properties: Optional[Dict[str, Any]] = None,
    ):
        self.vertex_id = vertex_id
        self.bb_type = bb_type
        self.bb_id = bb_id
        self.kind = kind
        self.is_rcv = is_rcv
        self.payload = payload
        self.properties: Dict[str, Any] = dict(properties or {})
        self.level = -1
        self.owner: Optional["Graph"] = None
        self.allowed_mutations: Optional[List[MutationType]] = None  # None = default per bb_type

        self.aps: List[AttachmentPoint] = []
        for i, ap_class in enumerate(ap_classes or ()):
            flag = bool(multi_bond[i]) if multi_bond is not None else False
            self.add_ap(ap_class, multi_bond=flag)

        self.symmetric_aps: List[SymmetricSet] = []
        for group in symmetric_aps or ():
            self.add_symmetric_aps(SymmetricSet(group))

    # ===== Ports =====

    def add_ap(self, ap_class: Optional[str] = None, multi_bond: bool = False) -> AttachmentPoint:
        ap = AttachmentPoint(len(self.aps), ap_class, multi_bond=multi_bond, owner=self)
        self.aps.append(ap)
        return ap

    def get_ap(self, index: int) -> AttachmentPoint:
        """AP at `index`; raises IndexError when out of range."""
        if index < 0 or index >= len(self.aps):
            raise IndexError(
                f"AP index {index} out of range for vertex {self.vertex_id} "
                f"with {len(self.aps)} APs"
            )
        return self.aps[index]

    def free_aps(self) -> List[AttachmentPoint]:
        return [ap for ap in self.aps if ap.is_available()]

    def has_free_ap(self) -> bool:
        return any(ap.is_available() for ap in self.aps)

    def ap_classes(self) -> List[Optional[str]]:
        return [ap.ap_class for ap in self.aps]

    # ===== Intra-vertex symmetry =====

    def add_symmetric_aps(self, group: SymmetricSet) -> None:
        """Declare a group of interchangeable APs (groups are disjoint)."""
        for idx in group:
            if idx < 0 or idx >= len(self.aps):
                raise ConfigurationError(
                    f"Symmetric AP index {idx} out of range for vertex {self.vertex_id}"
                )
            if self.symmetric_aps_of(idx) is not None:
                raise ConfigurationError(
                    f"AP {idx} of vertex {self.vertex_id} is already in a symmetric group"
                )
        self.symmetric_aps.append(group)

    def symmetric_aps_of(self, ap_index: int) -> Optional[SymmetricSet]:
        for group in self.symmetric_aps:
            if ap_index in group:
                return group
        return None

    def has_symmetric_ap(self) -> bool:
        return len(self.symmetric_aps) > 0

    # ===== Graph relations =====

    def edge_to_parent(self) -> Optional["Edge"]:
        """Edge for which this vertex is the target, if any."""
        for ap in self.aps:
            if ap.user is not None and ap.user.trg_ap is ap:
                return ap.user
        return None

    def parent(self) -> Optional["Vertex"]:
        edge = self.edge_to_parent()
        return edge.src_vertex if edge is not None else None

    # ===== Mutation sites =====

    def mutation_types(self, ignored: Iterable[MutationType] = ()) -> List[MutationType]:
        """Mutation types this vertex allows, minus `ignored`."""
        ignored = set(ignored)
        if self.allowed_mutations is not None:
            base = self.allowed_mutations
        else:
            base = _DEFAULT_MUTATIONS[self.bb_type]
        return [m for m in base if m not in ignored]

    def mutation_sites(self, ignored: Iterable[MutationType] = ()) -> List["Vertex"]:
        """Vertices offering at least one non-ignored mutation type."""
        if self.mutation_types(ignored):
            return [self]
        return []

    # ===== Copy =====

    def clone(self) -> "Vertex":
        """
        Deep copy with fresh APs and the same identity.

        The clone is not part of any graph and none of its APs is used.
        Callers give it a new identity where one is required.
        """
        if self.kind is VertexKind.TEMPLATE and hasattr(self.payload, "clone"):
            payload = self.payload.clone()
        else:
            payload = copy.deepcopy(self.payload)

        dup = Vertex(
            vertex_id=self.vertex_id,
            ap_classes=self.ap_classes(),
            bb_type=self.bb_type,
            bb_id=self.bb_id,
            kind=self.kind,
            multi_bond=[ap.multi_bond for ap in self.aps],
            is_rcv=self.is_rcv,
            payload=payload,
            properties=copy.deepcopy(self.properties),
        )
        dup.symmetric_aps = [group.copy() for group in self.symmetric_aps]
        dup.level = self.level
        if self.allowed_mutations is not None:
            dup.allowed_mutations = list(self.allowed_mutations)
        return dup

    def same_building_block(self, other: "Vertex") -> bool:
        return self.bb_type == other.bb_type and self.bb_id == other.bb_id

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "vertex_id": self.vertex_id,
            "bb_type": self.bb_type.name,
            "bb_id": self.bb_id,
            "kind": self.kind.value,
            "level": self.level,
            "is_rcv": self.is_rcv,
            "aps": [{"class": ap.ap_class, "multi_bond": ap.multi_bond} for ap in self.aps],
            "symmetric_aps": [group.to_list() for group in self.symmetric_aps],
            "properties": self.properties,
        }
        if self.allowed_mutations is not None:
            data["allowed_mutations"] = [m.value for m in self.allowed_mutations]
        if self.kind is VertexKind.TEMPLATE and hasattr(self.payload, "to_dict"):
            data["inner_graph"] = self.payload.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Vertex":
        aps = [ap if isinstance(ap, dict) else {"class": ap} for ap in data.get("aps", [])]
        kind = VertexKind(data.get("kind", VertexKind.FRAGMENT.value))
        payload = None
        if kind is VertexKind.TEMPLATE and "inner_graph" in data:
            from fraggraph.core.graph import Graph
            payload = Graph.from_dict(data["inner_graph"])
        v = cls(
            vertex_id=int(data.get("vertex_id", -1)),
            ap_classes=[ap.get("class") for ap in aps],
            bb_type=BBType.parse(data.get("bb_type", BBType.UNDEFINED.name)),
            bb_id=int(data.get("bb_id", -1)),
            kind=kind,
            symmetric_aps=data.get("symmetric_aps", []),
            multi_bond=[bool(ap.get("multi_bond", False)) for ap in aps],
            is_rcv=bool(data.get("is_rcv", False)),
            payload=payload,
            properties=data.get("properties"),
        )
        v.level = int(data.get("level", -1))
        if "allowed_mutations" in data:
            v.allowed_mutations = [MutationType(m) for m in data["allowed_mutations"]]
        return v

    def __repr__(self) -> str:
        return (
            f"Vertex(id={self.vertex_id}, {self.bb_type.name}:{self.bb_id}, "
            f"aps={len(self.aps)}, level={self.level})"
        )
