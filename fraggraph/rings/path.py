"""
Path between two vertices of a graph, seen as a candidate ring.

The path is found by walking from each end towards the root until the
two parent chains meet at the turning point. The interior vertices of the
path give the chain identifier used as key in the ring-closures archive.
"""

from __future__ import annotations
from typing import List, Optional

from fraggraph.core.edge import Edge
from fraggraph.core.graph import Graph
from fraggraph.core.vertex import Vertex
from fraggraph.rings.chains import TURNING_POINT_SEPARATOR, ClosableChain, link_token


class PathSubGraph:
    """
    Tree path from `head` to `tail`.

    Attributes:
        vertices: Path vertices from head to tail (empty if none)
        edges: Edges between consecutive path vertices
        turning_point: Vertex where the path stops going towards the root
        chain_id: Identifier of the path ("" when it has no interior vertex)
        rev_chain_id: Identifier of the path read from tail to head
        all_alternative_chain_ids: Forward, reverse and rotated identifiers

    Example:
        path = PathSubGraph(rcv_a, rcv_b, graph)
        archive.contains_chain(path)
    """

    def __init__(self, head: Vertex, tail: Vertex, graph: Graph):
        self.head = head
        self.tail = tail
        self.graph = graph
        self.vertices: List[Vertex] = []
        self.edges: List[Edge] = []
        self.turning_point: Optional[Vertex] = None
        self.chain_id = ""
        self.rev_chain_id = ""
        self.all_alternative_chain_ids: List[str] = []

        if head is tail:
            return
        self._find_path()
        self._build_ids()

    def _find_path(self) -> None:
        head_to_root = [self.head] + self.graph.get_parent_tree(self.head)
        tail_to_root = [self.tail] + self.graph.get_parent_tree(self.tail)
        tail_positions = {id(v): i for i, v in enumerate(tail_to_root)}

        for v in head_to_root:
            if id(v) in tail_positions:
                self.turning_point = v
                self.vertices.append(v)
                for j in range(tail_positions[id(v)] - 1, -1, -1):
                    self.vertices.append(tail_to_root[j])
                    self.edges.append(tail_to_root[j].edge_to_parent())
                return
            self.vertices.append(v)
            self.edges.append(v.edge_to_parent())

        # Disjoint parent chains: no path
        self.vertices = []
        self.edges = []

    def _build_ids(self) -> None:
        tokens: List[str] = []
        rev_tokens: List[str] = []
        tp_index = -1
        for i in range(1, len(self.vertices) - 1):
            here = self.vertices[i]
            ap_back = self._ap_of(self.edges[i - 1], here)
            ap_front = self._ap_of(self.edges[i], here)
            if here is self.turning_point:
                tp_index = i - 1
            tokens.append(link_token(here.bb_id, here.bb_type, ap_back, ap_front))
            rev_tokens.insert(0, link_token(here.bb_id, here.bb_type, ap_front, ap_back))

        if not tokens:
            return

        tp_rev = len(tokens) - 1 - tp_index if tp_index >= 0 else -1
        self.chain_id = "".join(tokens) + TURNING_POINT_SEPARATOR + str(tp_index)
        self.rev_chain_id = "".join(rev_tokens) + TURNING_POINT_SEPARATOR + str(tp_rev)

        alternatives = [self.chain_id, self.rev_chain_id]
        n = len(tokens)
        for shift in range(1, n):
            rot = tokens[shift:] + tokens[:shift]
            rev_rot = rev_tokens[shift:] + rev_tokens[:shift]
            alternatives.append("".join(rot) + TURNING_POINT_SEPARATOR + str(tp_index))
            alternatives.append("".join(rev_rot) + TURNING_POINT_SEPARATOR + str(tp_rev))
        self.all_alternative_chain_ids = alternatives

    @staticmethod
    def _ap_of(edge: Edge, vertex: Vertex) -> int:
        return edge.src_ap.index if edge.src_vertex is vertex else edge.trg_ap.index

    # ===== Accessors =====

    def is_empty(self) -> bool:
        return len(self.vertices) == 0

    def __len__(self) -> int:
        return len(self.vertices)

    def to_closable_chain(self, closable: Optional[bool] = None) -> Optional[ClosableChain]:
        """Closable chain for this path, or None for paths without interior vertices."""
        if not self.chain_id:
            return None
        return ClosableChain.from_chain_id(self.chain_id, closable=closable)

    def path_graph(self) -> Graph:
        """
        Copy of the path as a standalone graph with edges directed from
        head to tail. APs leading out of the path are left free.
        """
        path = Graph(graph_id=-1)
        clones = [v.clone() for v in self.vertices]
        for c in clones:
            path.add_vertex(c)
        for i, edge in enumerate(self.edges):
            back, front = self.vertices[i], self.vertices[i + 1]
            src = clones[i].aps[self._ap_of(edge, back)]
            trg = clones[i + 1].aps[self._ap_of(edge, front)]
            path.add_edge(Edge(src, trg, edge.bond_type))
        path.update_levels()
        return path

    def __repr__(self) -> str:
        ids = [v.vertex_id for v in self.vertices]
        return f"PathSubGraph({ids}, chain_id='{self.chain_id}')"
