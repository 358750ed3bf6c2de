"""
Pattern queries over a graph.

Used by graph-editing scripts to locate vertices by building-block
identity, level, and by the AP classes or bond type of their incoming and
outgoing edges. Unset fields match anything.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional

from fraggraph.core.edge import Edge
from fraggraph.core.enums import BBType, BondType
from fraggraph.core.graph import Graph
from fraggraph.core.vertex import Vertex


@dataclass
class EdgeQuery:
    """Constraints on one edge."""
    src_ap_class: Optional[str] = None
    trg_ap_class: Optional[str] = None
    src_ap_index: Optional[int] = None
    trg_ap_index: Optional[int] = None
    bond_type: Optional[BondType] = None

    def matches(self, edge: Edge) -> bool:
        if self.src_ap_class is not None and edge.src_ap_class != self.src_ap_class:
            return False
        if self.trg_ap_class is not None and edge.trg_ap_class != self.trg_ap_class:
            return False
        if self.src_ap_index is not None and edge.src_ap.index != self.src_ap_index:
            return False
        if self.trg_ap_index is not None and edge.trg_ap.index != self.trg_ap_index:
            return False
        if self.bond_type is not None and edge.bond_type is not self.bond_type:
            return False
        return True


@dataclass
class VertexQuery:
    """
    Constraints on a vertex and its edges.

    Example:
        query = VertexQuery(bb_type=BBType.FRAGMENT, bb_id=4,
                            incoming=EdgeQuery(src_ap_class="A:0"))
        hits = find_vertices(graph, query)
    """
    vertex_id: Optional[int] = None
    bb_type: Optional[BBType] = None
    bb_id: Optional[int] = None
    level: Optional[int] = None
    incoming: Optional[EdgeQuery] = None      # Edge to the parent
    outgoing: Optional[EdgeQuery] = None      # Any edge to a child
    properties: dict = field(default_factory=dict)

    def matches(self, vertex: Vertex, graph: Graph) -> bool:
        if self.vertex_id is not None and vertex.vertex_id != self.vertex_id:
            return False
        if self.bb_type is not None and vertex.bb_type is not self.bb_type:
            return False
        if self.bb_id is not None and vertex.bb_id != self.bb_id:
            return False
        if self.level is not None and vertex.level != self.level:
            return False
        for key, value in self.properties.items():
            if vertex.properties.get(key) != value:
                return False
        if self.incoming is not None:
            edge = vertex.edge_to_parent()
            if edge is None or not self.incoming.matches(edge):
                return False
        if self.outgoing is not None:
            out_edges = [e for e in graph.edges if e.src_vertex is vertex]
            if not any(self.outgoing.matches(e) for e in out_edges):
                return False
        return True


def find_vertices(
    graph: Graph,
    query: VertexQuery,
    only_one_per_symmetric_set: bool = False,
) -> List[Vertex]:
    """
    Vertices of `graph` matching `query`, in graph order.

    Args:
        graph: Graph to search
        query: Constraints to satisfy
        only_one_per_symmetric_set: Keep only the first match of each
            inter-vertex symmetric set

    Returns:
        Matching vertices
    """
    hits = [v for v in graph.vertices if query.matches(v, graph)]
    if not only_one_per_symmetric_set:
        return hits

    kept: List[Vertex] = []
    for v in hits:
        partners = graph.symmetric_set_of(v.vertex_id)
        if any(k.vertex_id in partners for k in kept):
            continue
        kept.append(v)
    return kept
