"""
Closable chains.

A closable chain describes, by building-block identity and AP indices
only, a path of vertices that may close into a ring. It is rebuilt from
its chain identifier:

    "<link>_<link>_..._%<turning point>"

where each link reads "<bb_id>/<bb_type>/ap<left>ap<right>". The turning
point is the index of the link where the path changes direction with
respect to the growth tree (-1 if the turn is at an end of the path).
"""

from __future__ import annotations
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, TYPE_CHECKING

from fraggraph.core.enums import BBType
from fraggraph.exceptions import ConfigurationError

if TYPE_CHECKING:
    from fraggraph.core.vertex import Vertex


LINK_SEPARATOR = "_"
TURNING_POINT_SEPARATOR = "%"
_LINK_PATTERN = re.compile(r"^(-?\d+)/(-?\d+)/ap(-?\d+)ap(-?\d+)$")


def link_token(bb_id: int, bb_type: BBType, ap_a: int, ap_b: int) -> str:
    """Path token of one vertex entered through `ap_a` and left through `ap_b`."""
    return f"{bb_id}/{bb_type.value}/ap{ap_a}ap{ap_b}{LINK_SEPARATOR}"


@dataclass(frozen=True)
class ChainLink:
    """One vertex of a closable chain."""
    bb_id: int
    bb_type: BBType
    ap_to_left: int     # AP pointing to the previous link
    ap_to_right: int    # AP pointing to the next link

    def matches_vertex(self, vertex: "Vertex") -> bool:
        return self.bb_id == vertex.bb_id and self.bb_type == vertex.bb_type

    @classmethod
    def parse(cls, token: str) -> "ChainLink":
        match = _LINK_PATTERN.match(token)
        if match is None:
            raise ConfigurationError(f"Malformed chain link '{token}'")
        bb_id, bb_type, left, right = (int(g) for g in match.groups())
        return cls(bb_id, BBType(bb_type), left, right)


@dataclass(frozen=True)
class ClosableChain:
    """
    Immutable description of a candidate ring-forming path.

    Attributes:
        chain_id: Identifier the chain was built from
        links: Chain links from head to tail
        turning_point: Index of the link where the path turns
        closable: Verdict, if known
        conformations_ref: Archive record holding the ring-closing
            conformations (closable chains only)
    """
    chain_id: str
    links: Tuple[ChainLink, ...]
    turning_point: int
    closable: Optional[bool] = None
    conformations_ref: Optional[int] = None

    @classmethod
    def from_chain_id(
        cls,
        chain_id: str,
        closable: Optional[bool] = None,
        conformations_ref: Optional[int] = None,
    ) -> "ClosableChain":
        body, sep, tp = chain_id.rpartition(TURNING_POINT_SEPARATOR)
        if not sep:
            raise ConfigurationError(f"Chain id '{chain_id}' lacks a turning point")
        try:
            turning_point = int(tp)
        except ValueError:
            raise ConfigurationError(f"Malformed turning point in chain id '{chain_id}'")
        links = tuple(
            ChainLink.parse(token) for token in body.split(LINK_SEPARATOR) if token
        )
        if turning_point >= len(links):
            raise ConfigurationError(
                f"Turning point {turning_point} beyond the {len(links)} links of '{chain_id}'"
            )
        return cls(chain_id, links, turning_point, closable, conformations_ref)

    @property
    def size(self) -> int:
        return len(self.links)

    def link(self, position: int) -> ChainLink:
        if position < 0 or position >= len(self.links):
            raise IndexError(f"Link {position} out of range for chain of size {len(self.links)}")
        return self.links[position]

    @property
    def turning_point_link(self) -> Optional[ChainLink]:
        if self.turning_point < 0:
            return None
        return self.links[self.turning_point]

    @property
    def turning_point_bb_id(self) -> int:
        """Building-block id at the turning point (-1 if the turn is at an end)."""
        link = self.turning_point_link
        return link.bb_id if link is not None else -1

    def involves_vertex(self, vertex: "Vertex") -> int:
        """Position of the turning point if `vertex` matches it, else -1."""
        link = self.turning_point_link
        if link is not None and link.matches_vertex(vertex):
            return self.turning_point
        return -1

    def involves_vertex_and_ap(self, vertex: "Vertex", ap_a: int, ap_b: int) -> int:
        """Position of the first link matching `vertex` through APs `ap_a` and `ap_b`, else -1."""
        for i, link in enumerate(self.links):
            if not link.matches_vertex(vertex):
                continue
            if {link.ap_to_left, link.ap_to_right} == {ap_a, ap_b}:
                return i
        return -1

    def link_ids(self) -> List[str]:
        return [
            link_token(l.bb_id, l.bb_type, l.ap_to_left, l.ap_to_right) for l in self.links
        ]

    def __str__(self) -> str:
        return self.chain_id
