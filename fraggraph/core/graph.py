"""
Graph of building blocks.

A Graph owns an ordered list of vertices, the edges joining their APs,
the rings declared over them, and the inter-vertex symmetric sets.

Invariants:
- Edges and vertices form a connected tree; rings are recorded as chords
- Every AP referenced by an edge belongs to a vertex of the same graph
- Vertex ids are unique within a graph
- Every vertex except the root has exactly one edge to its parent
  (the edge for which it is the target); `level` counts the distance
  from the root

Example:
    graph = Graph()
    graph.add_vertex(scaffold)
    graph.append_vertex_on_ap(scaffold.get_ap(0), fragment.get_ap(1))
    graph.check_consistency()
"""

from __future__ import annotations
import copy
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, TYPE_CHECKING

import numpy as np
from scipy import sparse
from scipy.sparse import csgraph

from fraggraph.core.edge import Edge, Ring
from fraggraph.core.enums import BBType, BondType, MutationType
from fraggraph.core.identity import GRAPH_COUNTER, VERTEX_COUNTER, IdentityCounter
from fraggraph.core.symmetry import SymmetricSet
from fraggraph.core.vertex import AttachmentPoint, Vertex
from fraggraph.exceptions import StructuralInconsistency

if TYPE_CHECKING:
    from fraggraph.rings.chains import ClosableChain


logger = logging.getLogger(__name__)


class Graph:
    """
    Candidate structure built from building blocks.

    The graph is owned by one thread of control at a time; it performs
    no internal locking.
    """

    def __init__(
        self,
        graph_id: Optional[int] = None,
        counter: Optional[IdentityCounter] = None,
    ):
        if graph_id is None:
            graph_id = (counter or GRAPH_COUNTER).next_id()
        self.graph_id = graph_id
        self.vertices: List[Vertex] = []
        self.edges: List[Edge] = []
        self.rings: List[Ring] = []
        self.symmetric_sets: List[SymmetricSet] = []
        self.closable_chains: List["ClosableChain"] = []
        self.properties: Dict[str, Any] = {}

    # ===== Basic access =====

    def vertex_count(self) -> int:
        return len(self.vertices)

    def edge_count(self) -> int:
        return len(self.edges)

    def contains_vertex(self, vertex: Vertex) -> bool:
        return any(v is vertex for v in self.vertices)

    def vertex_with_id(self, vertex_id: int) -> Optional[Vertex]:
        for v in self.vertices:
            if v.vertex_id == vertex_id:
                return v
        return None

    def index_of_vertex(self, vertex_id: int) -> int:
        for i, v in enumerate(self.vertices):
            if v.vertex_id == vertex_id:
                return i
        return -1

    def vertex_at_position(self, position: int) -> Vertex:
        if position < 0 or position >= len(self.vertices):
            raise IndexError(
                f"Vertex position {position} out of range for graph {self.graph_id} "
                f"with {len(self.vertices)} vertices"
            )
        return self.vertices[position]

    def vertex_ids(self) -> List[int]:
        return [v.vertex_id for v in self.vertices]

    def max_vertex_id(self) -> int:
        """Largest vertex id in the graph, -1 when empty."""
        return max((v.vertex_id for v in self.vertices), default=-1)

    def free_aps(self) -> List[AttachmentPoint]:
        return [ap for v in self.vertices for ap in v.free_aps()]

    # ===== Building =====

    def add_vertex(self, vertex: Vertex) -> None:
        """Add a vertex that is not part of any graph yet."""
        if vertex.owner is not None and vertex.owner is not self:
            raise StructuralInconsistency(
                f"Vertex {vertex.vertex_id} already belongs to graph {vertex.owner.graph_id}"
            )
        if self.vertex_with_id(vertex.vertex_id) is not None:
            raise StructuralInconsistency(
                f"Vertex id {vertex.vertex_id} already present in graph {self.graph_id}"
            )
        vertex.owner = self
        self.vertices.append(vertex)

    def add_edge(self, edge: Edge) -> None:
        """Add an edge between two free APs of vertices in this graph."""
        for ap in (edge.src_ap, edge.trg_ap):
            if not self.contains_vertex(ap.owner):
                raise StructuralInconsistency(
                    f"Edge endpoint vertex {ap.owner.vertex_id} is not in graph {self.graph_id}"
                )
            if not ap.is_available():
                raise StructuralInconsistency(f"{ap} is already used by {ap.user}")
        if edge.trg_vertex.edge_to_parent() is not None:
            raise StructuralInconsistency(
                f"Vertex {edge.trg_vertex.vertex_id} already has an edge to its parent"
            )
        edge.src_ap.user = edge
        edge.trg_ap.user = edge
        self.edges.append(edge)

    def remove_edge(self, edge: Edge) -> None:
        for i, e in enumerate(self.edges):
            if e is edge:
                del self.edges[i]
                break
        else:
            return
        for ap in (edge.src_ap, edge.trg_ap):
            if ap.user is edge:
                ap.user = None

    def append_vertex_on_ap(
        self,
        src_ap: AttachmentPoint,
        trg_ap: AttachmentPoint,
        bond_type: BondType = BondType.UNDEFINED,
    ) -> Edge:
        """
        Add the owner of `trg_ap` as a child connected through `src_ap`.

        Returns:
            The new edge
        """
        parent = src_ap.owner
        child = trg_ap.owner
        if not self.contains_vertex(parent):
            raise StructuralInconsistency(
                f"Source vertex {parent.vertex_id} is not in graph {self.graph_id}"
            )
        if not src_ap.is_available() or not trg_ap.is_available():
            raise StructuralInconsistency(f"Cannot connect {src_ap} and {trg_ap}: AP in use")
        self.add_vertex(child)
        edge = Edge(src_ap, trg_ap, bond_type)
        self.add_edge(edge)
        child.level = parent.level + 1
        return edge

    def add_ring(self, ring: Ring) -> None:
        for v in ring.vertices:
            if not self.contains_vertex(v):
                raise StructuralInconsistency(
                    f"Ring vertex {v.vertex_id} is not in graph {self.graph_id}"
                )
        self.rings.append(ring)

    # ===== Symmetry =====

    def add_symmetric_set(self, sym_set: SymmetricSet) -> None:
        """Record a set of symmetric vertex ids (sets are disjoint)."""
        for vid in sym_set:
            if self.vertex_with_id(vid) is None:
                raise StructuralInconsistency(
                    f"Symmetric vertex {vid} is not in graph {self.graph_id}"
                )
            for existing in self.symmetric_sets:
                if vid in existing:
                    raise StructuralInconsistency(
                        f"Vertex {vid} already belongs to symmetric set {existing}"
                    )
        self.symmetric_sets.append(sym_set)

    def symmetric_set_of(self, vertex_id: int) -> SymmetricSet:
        """
        Symmetric set containing `vertex_id`.

        When the vertex has no symmetric partner, a new set holding only
        that id is returned (it is not recorded in the graph).
        """
        for sym_set in self.symmetric_sets:
            if vertex_id in sym_set:
                return sym_set
        return SymmetricSet([vertex_id])

    def has_symmetry_involving(self, vertex: Vertex) -> bool:
        return any(vertex.vertex_id in s for s in self.symmetric_sets)

    def symmetric_vertices_of(self, vertex: Vertex) -> List[Vertex]:
        """Vertices symmetric to `vertex`, including itself."""
        ids = self.symmetric_set_of(vertex.vertex_id)
        return [v for v in self.vertices if v.vertex_id in ids]

    # ===== Traversal =====

    def get_edge_to_parent(self, vertex: Vertex) -> Optional[Edge]:
        return vertex.edge_to_parent()

    def get_parent(self, vertex: Vertex) -> Optional[Vertex]:
        return vertex.parent()

    def get_children(self, vertex: Vertex) -> List[Vertex]:
        return [e.trg_vertex for e in self.edges if e.src_vertex is vertex]

    def get_child_tree(self, vertex: Vertex) -> List[Vertex]:
        """All descendants of `vertex`, depth first."""
        tree: List[Vertex] = []
        stack = list(reversed(self.get_children(vertex)))
        while stack:
            child = stack.pop()
            tree.append(child)
            stack.extend(reversed(self.get_children(child)))
        return tree

    def get_parent_tree(self, vertex: Vertex) -> List[Vertex]:
        """Ancestors of `vertex`, from its parent up to the root."""
        chain: List[Vertex] = []
        parent = vertex.parent()
        while parent is not None:
            chain.append(parent)
            parent = parent.parent()
        return chain

    def get_source_vertex(self) -> Optional[Vertex]:
        """Root of the tree: the first vertex without a parent edge."""
        for v in self.vertices:
            if v.edge_to_parent() is None:
                return v
        return None

    def update_levels(self, root_level: int = -1) -> None:
        """Recompute levels from the root, which gets `root_level`."""
        root = self.get_source_vertex()
        if root is not None:
            self._set_levels_from(root, root_level)

    def _set_levels_from(self, vertex: Vertex, level: int) -> None:
        vertex.level = level
        stack = [vertex]
        while stack:
            current = stack.pop()
            for child in self.get_children(current):
                child.level = current.level + 1
                stack.append(child)

    # ===== Removal =====

    def remove_vertex(self, vertex: Vertex) -> bool:
        """
        Remove one vertex, its edges, and any ring or symmetric-set entry
        referring to it.

        Returns:
            False if the vertex is not in this graph
        """
        if not self.contains_vertex(vertex):
            return False
        for edge in [e for e in self.edges if e.involves(vertex)]:
            self.remove_edge(edge)
        self.rings = [r for r in self.rings if not r.contains(vertex)]
        for sym_set in self.symmetric_sets:
            sym_set.remove(vertex.vertex_id)
        self.symmetric_sets = [s for s in self.symmetric_sets if len(s) > 1]
        self.vertices = [v for v in self.vertices if v is not vertex]
        vertex.owner = None
        return True

    def remove_branch_starting_at(self, vertex: Vertex) -> bool:
        """Remove `vertex` together with all its descendants."""
        if not self.contains_vertex(vertex):
            return False
        branch = [vertex] + self.get_child_tree(vertex)
        for v in reversed(branch):
            self.remove_vertex(v)
        return True

    remove_vertex_and_descendants = remove_branch_starting_at

    def remove_capping_on(self, vertex: Vertex) -> int:
        """Remove the capping groups attached to `vertex`."""
        caps = [c for c in self.get_children(vertex) if c.bb_type is BBType.CAP]
        for cap in caps:
            self.remove_branch_starting_at(cap)
        return len(caps)

    # ===== Subgraphs =====

    def extract_subgraph(
        self, vertex: Vertex, graph_counter: Optional[IdentityCounter] = None
    ) -> "Graph":
        """
        Detach the branch rooted at `vertex` into a new graph.

        The edge to the parent of `vertex` is removed from this graph.
        Rings and symmetric sets entirely inside the branch move along.

        Returns:
            New graph whose first vertex is `vertex`
        """
        if not self.contains_vertex(vertex):
            raise StructuralInconsistency(
                f"Vertex {vertex.vertex_id} is not in graph {self.graph_id}"
            )
        branch = [vertex] + self.get_child_tree(vertex)
        branch_ids = {v.vertex_id for v in branch}

        inner_edges = [
            (e.src_ap, e.trg_ap, e.bond_type) for e in self.edges
            if e.src_vertex.vertex_id in branch_ids and e.trg_vertex.vertex_id in branch_ids
        ]
        inner_rings = [
            (list(r.vertices), r.bond_type) for r in self.rings
            if all(v.vertex_id in branch_ids for v in r.vertices)
        ]
        inner_sym_sets = []
        for sym_set in self.symmetric_sets:
            members = [vid for vid in sym_set if vid in branch_ids]
            if len(members) > 1:
                inner_sym_sets.append(SymmetricSet(members))

        for v in reversed(branch):
            self.remove_vertex(v)

        sub = Graph(counter=graph_counter)
        for v in branch:
            sub.add_vertex(v)
        for src_ap, trg_ap, bond_type in inner_edges:
            sub.add_edge(Edge(src_ap, trg_ap, bond_type))
        for ring_vertices, bond_type in inner_rings:
            sub.add_ring(Ring(ring_vertices, bond_type))
        for sym_set in inner_sym_sets:
            sub.add_symmetric_set(sym_set)
        return sub

    def append_graph_on_ap(
        self,
        parent_vertex: Vertex,
        parent_ap_index: int,
        subgraph: "Graph",
        child_vertex: Vertex,
        child_ap_index: int,
        bond_type: BondType,
        new_sym_sets: Dict[int, SymmetricSet],
        counter: Optional[IdentityCounter] = None,
    ) -> Vertex:
        """
        Attach a renumbered copy of `subgraph` to one AP of `parent_vertex`.

        Args:
            parent_vertex: Vertex of this graph receiving the copy
            parent_ap_index: AP of `parent_vertex` to use
            subgraph: Graph to copy (left untouched)
            child_vertex: Root vertex of `subgraph`
            child_ap_index: AP of `child_vertex` to connect
            bond_type: Bond type of the new edge
            new_sym_sets: Maps each vertex id of `subgraph` to the set of
                ids of its copies. Shared across calls that append the
                same subgraph on several sites, so that copies end up in
                merged symmetric sets.
            counter: Vertex identity counter used to renumber the copy

        Returns:
            The copy of `child_vertex` now in this graph
        """
        if not self.contains_vertex(parent_vertex):
            raise StructuralInconsistency(
                f"Parent vertex {parent_vertex.vertex_id} is not in graph {self.graph_id}"
            )
        parent_ap = parent_vertex.get_ap(parent_ap_index)
        if not parent_ap.is_available():
            raise StructuralInconsistency(f"{parent_ap} is already used")
        child_pos = subgraph.index_of_vertex(child_vertex.vertex_id)
        if child_pos < 0:
            raise StructuralInconsistency(
                f"Vertex {child_vertex.vertex_id} is not in subgraph {subgraph.graph_id}"
            )
        if child_vertex.edge_to_parent() is not None:
            raise StructuralInconsistency(
                f"Vertex {child_vertex.vertex_id} is not the root of subgraph {subgraph.graph_id}"
            )

        sg_clone = subgraph.clone()
        sg_clone.renumber_vertices(counter or VERTEX_COUNTER)
        clones = list(sg_clone.vertices)
        clone_sym_sets = {vid: s for s in sg_clone.symmetric_sets for vid in s}
        child_clone = clones[child_pos]
        self._import_graph(sg_clone)

        self.add_edge(Edge(parent_ap, child_clone.get_ap(child_ap_index), bond_type))
        self._set_levels_from(child_clone, parent_vertex.level + 1)

        for orig, dup in zip(subgraph.vertices, clones):
            if orig.vertex_id in new_sym_sets:
                new_sym_sets[orig.vertex_id].add(dup.vertex_id)
            elif dup.vertex_id in clone_sym_sets:
                new_sym_sets[orig.vertex_id] = clone_sym_sets[dup.vertex_id]
            else:
                new_sym_sets[orig.vertex_id] = SymmetricSet([dup.vertex_id])

        seen = []
        for sym_set in new_sym_sets.values():
            if any(sym_set is s for s in seen):
                continue
            seen.append(sym_set)
            target = None
            for existing in self.symmetric_sets:
                if any(vid in existing for vid in sym_set):
                    target = existing
                    break
            if target is not None:
                target.add_all(sym_set)
            elif len(sym_set) > 1:
                self.symmetric_sets.append(sym_set.copy())
        return child_clone

    def append_graph_on_graph(
        self,
        parent_vertices: Sequence[Vertex],
        parent_ap_indices: Sequence[int],
        subgraph: "Graph",
        child_vertex: Vertex,
        child_ap_index: int,
        bond_type: BondType,
        on_all_symmetric_aps: bool = False,
        counter: Optional[IdentityCounter] = None,
    ) -> List[Vertex]:
        """
        Append copies of `subgraph` on several parent sites at once.

        With `on_all_symmetric_aps`, each site also covers the free APs
        symmetric to the requested one. All copies of a subgraph vertex
        end up in one symmetric set.

        Returns:
            The copies of `child_vertex`, one per site
        """
        if len(parent_vertices) != len(parent_ap_indices):
            raise ValueError("parent_vertices and parent_ap_indices differ in length")
        new_sym_sets: Dict[int, SymmetricSet] = {}
        added: List[Vertex] = []
        for parent, ap_index in zip(parent_vertices, parent_ap_indices):
            group = parent.symmetric_aps_of(ap_index) if on_all_symmetric_aps else None
            targets = [i for i in group if parent.get_ap(i).is_available()] if group else [ap_index]
            for idx in targets:
                added.append(self.append_graph_on_ap(
                    parent, idx, subgraph, child_vertex, child_ap_index,
                    bond_type, new_sym_sets, counter,
                ))
        return added

    def _import_graph(self, other: "Graph") -> None:
        """Move every vertex, edge and ring of `other` into this graph."""
        for v in other.vertices:
            if self.vertex_with_id(v.vertex_id) is not None:
                raise StructuralInconsistency(
                    f"Vertex id {v.vertex_id} already present in graph {self.graph_id}"
                )
        for v in other.vertices:
            v.owner = self
            self.vertices.append(v)
        self.edges.extend(other.edges)
        self.rings.extend(other.rings)
        other.vertices, other.edges, other.rings, other.symmetric_sets = [], [], [], []

    # ===== Copy and identity =====

    def renumber_vertices(self, counter: Optional[IdentityCounter] = None) -> Dict[int, int]:
        """
        Give every vertex a fresh id.

        Returns:
            Map from old to new vertex ids
        """
        counter = counter or VERTEX_COUNTER
        mapping: Dict[int, int] = {}
        for v in self.vertices:
            new_id = counter.next_id()
            mapping[v.vertex_id] = new_id
            v.vertex_id = new_id
        self.symmetric_sets = [
            SymmetricSet(mapping[vid] for vid in s) for s in self.symmetric_sets
        ]
        return mapping

    def clone(self) -> "Graph":
        """Deep copy keeping vertex ids and graph id."""
        dup = Graph(graph_id=self.graph_id)
        by_identity: Dict[int, Vertex] = {}
        for v in self.vertices:
            c = v.clone()
            by_identity[id(v)] = c
            dup.add_vertex(c)
        for e in self.edges:
            src = by_identity[id(e.src_vertex)].aps[e.src_ap.index]
            trg = by_identity[id(e.trg_vertex)].aps[e.trg_ap.index]
            dup.add_edge(Edge(src, trg, e.bond_type))
        for r in self.rings:
            dup.add_ring(Ring([by_identity[id(v)] for v in r.vertices], r.bond_type))
        dup.symmetric_sets = [s.copy() for s in self.symmetric_sets]
        dup.closable_chains = list(self.closable_chains)
        dup.properties = copy.deepcopy(self.properties)
        return dup

    # ===== Operators support =====

    def mutable_sites(self, ignored: Iterable[MutationType] = ()) -> List[Vertex]:
        """Vertices offering at least one mutation type not in `ignored`."""
        ignored = list(ignored)
        sites: List[Vertex] = []
        for v in self.vertices:
            sites.extend(v.mutation_sites(ignored))
        return sites

    # ===== Consistency =====

    def to_adjacency_matrix(self) -> sparse.csr_matrix:
        """Symmetric adjacency matrix of the edge skeleton (vertex order)."""
        n = len(self.vertices)
        position = {id(v): i for i, v in enumerate(self.vertices)}
        rows = [position[id(e.src_vertex)] for e in self.edges]
        cols = [position[id(e.trg_vertex)] for e in self.edges]
        data = np.ones(len(rows), dtype=np.int8)
        adj = sparse.coo_matrix((data, (rows, cols)), shape=(n, n))
        return (adj + adj.T).tocsr()

    def check_consistency(self) -> None:
        """
        Verify the graph invariants.

        Raises:
            StructuralInconsistency: describing the first violation found
        """
        ids = [v.vertex_id for v in self.vertices]
        if len(ids) != len(set(ids)):
            raise StructuralInconsistency(f"Duplicate vertex ids in graph {self.graph_id}")

        for v in self.vertices:
            if v.owner is not self:
                raise StructuralInconsistency(f"Vertex {v.vertex_id} has a wrong owner")
            parents = 0
            for ap in v.aps:
                if ap.owner is not v:
                    raise StructuralInconsistency(f"{ap} has a wrong owner")
                if ap.user is None:
                    continue
                if not any(ap.user is e for e in self.edges):
                    raise StructuralInconsistency(f"{ap} is used by an edge not in the graph")
                if ap.user.trg_ap is ap:
                    parents += 1
            if parents > 1:
                raise StructuralInconsistency(f"Vertex {v.vertex_id} has {parents} parents")

        for e in self.edges:
            for ap in (e.src_ap, e.trg_ap):
                if not self.contains_vertex(ap.owner):
                    raise StructuralInconsistency(f"{e} references a vertex outside the graph")
                if ap.user is not e:
                    raise StructuralInconsistency(f"{e} references {ap} not bound to it")

        for r in self.rings:
            if not all(self.contains_vertex(v) for v in r.vertices):
                raise StructuralInconsistency(f"{r} references a vertex outside the graph")
        for s in self.symmetric_sets:
            if not all(vid in ids for vid in s):
                raise StructuralInconsistency(f"{s} references a vertex outside the graph")

        n = len(self.vertices)
        if n == 0:
            return
        if len(self.edges) != n - 1:
            raise StructuralInconsistency(
                f"Graph {self.graph_id} has {len(self.edges)} edges for {n} vertices"
            )
        n_components, _ = csgraph.connected_components(self.to_adjacency_matrix(), directed=False)
        if n_components != 1:
            raise StructuralInconsistency(
                f"Graph {self.graph_id} is split into {n_components} components"
            )

    # ===== Serialization =====

    def to_dict(self) -> Dict[str, Any]:
        return {
            "graph_id": self.graph_id,
            "vertices": [v.to_dict() for v in self.vertices],
            "edges": [e.to_dict() for e in self.edges],
            "rings": [r.to_dict() for r in self.rings],
            "symmetric_sets": [s.to_list() for s in self.symmetric_sets],
            "closable_chains": [c.chain_id for c in self.closable_chains],
            "properties": self.properties,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Graph":
        from fraggraph.rings.chains import ClosableChain

        graph = cls(graph_id=data.get("graph_id"))
        for vd in data.get("vertices", []):
            graph.add_vertex(Vertex.from_dict(vd))
        for ed in data.get("edges", []):
            src_vid, src_ap = ed["src"]
            trg_vid, trg_ap = ed["trg"]
            src = graph.vertex_with_id(src_vid)
            trg = graph.vertex_with_id(trg_vid)
            if src is None or trg is None:
                raise StructuralInconsistency(f"Edge {ed} references an unknown vertex")
            graph.add_edge(Edge(src.get_ap(src_ap), trg.get_ap(trg_ap), BondType[ed.get("bond", "SINGLE")]))
        for rd in data.get("rings", []):
            members = [graph.vertex_with_id(vid) for vid in rd["vertices"]]
            if any(m is None for m in members):
                raise StructuralInconsistency(f"Ring {rd} references an unknown vertex")
            graph.add_ring(Ring(members, BondType[rd.get("bond", "UNDEFINED")]))
        for ids in data.get("symmetric_sets", []):
            graph.add_symmetric_set(SymmetricSet(ids))
        graph.closable_chains = [
            ClosableChain.from_chain_id(cid) for cid in data.get("closable_chains", [])
        ]
        graph.properties = dict(data.get("properties", {}))
        return graph

    def summary(self) -> Dict[str, Any]:
        return {
            "graph_id": self.graph_id,
            "vertices": len(self.vertices),
            "edges": len(self.edges),
            "rings": len(self.rings),
            "symmetric_sets": len(self.symmetric_sets),
            "free_aps": len(self.free_aps()),
            "max_level": max((v.level for v in self.vertices), default=-1),
        }

    def __repr__(self) -> str:
        return (
            f"Graph(id={self.graph_id}, vertices={len(self.vertices)}, "
            f"edges={len(self.edges)}, rings={len(self.rings)})"
        )
