"""
Core graph model for fraggraph.

Contains:
- IdentityCounter: atomic, monotonic identities for vertices and graphs
- Randomizer: seedable draws shared by the operators
- AttachmentPoint / Vertex: building blocks and their ports
- Edge / Ring: tree edges and ring chords
- SymmetricSet: interchangeable APs or vertices
- Graph: the candidate structure and its invariants
- VertexQuery / find_vertices: pattern search over a graph
"""

from .enums import BBType, BondType, MutationType, VertexKind
from .identity import IdentityCounter, VERTEX_COUNTER, GRAPH_COUNTER
from .randomizer import Randomizer
from .symmetry import SymmetricSet
from .vertex import AttachmentPoint, Vertex
from .edge import Edge, Ring
from .graph import Graph
from .query import EdgeQuery, VertexQuery, find_vertices

__all__ = [
    "BBType",
    "BondType",
    "MutationType",
    "VertexKind",
    "IdentityCounter",
    "VERTEX_COUNTER",
    "GRAPH_COUNTER",
    "Randomizer",
    "SymmetricSet",
    "AttachmentPoint",
    "Vertex",
    "Edge",
    "Ring",
    "Graph",
    # Queries
    "EdgeQuery",
    "VertexQuery",
    "find_vertices",
]
