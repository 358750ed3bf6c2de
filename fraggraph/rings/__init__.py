"""
Ring-closure subsystem.

Contains:
- ChainLink / ClosableChain: immutable descriptions of candidate rings
- PathSubGraph: tree path between two vertices and its chain identifiers
- RingClosuresArchive: shared, append-only cache of closability verdicts
"""

from .chains import ChainLink, ClosableChain, link_token
from .path import PathSubGraph
from .archive import RingClosingConformations, RingClosuresArchive

__all__ = [
    "ChainLink",
    "ClosableChain",
    "link_token",
    "PathSubGraph",
    "RingClosingConformations",
    "RingClosuresArchive",
]
