"""
Growth operator.

Extends a graph by attaching library blocks to the free APs of a vertex.
Each free AP is considered once, in random order:

1. skip if the AP got used meanwhile (e.g. by symmetric placement)
2. unless forced, draw growth against level decay x crowding
3. with ring-closure bias, follow a closable chain stored on the graph
4. otherwise pick a compatible block (class-based) or any fragment
5. mirror the placement on symmetric APs and symmetric vertices
6. optionally recurse on the vertices just added

"Nothing to do" is never an error: extend_graph() returns False.
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Tuple

from fraggraph.config import GrowthProbabilityScheme, SpaceConfig, SymmetryParams
from fraggraph.core.enums import BBType
from fraggraph.core.graph import Graph
from fraggraph.core.randomizer import Randomizer
from fraggraph.core.symmetry import SymmetricSet
from fraggraph.core.vertex import AttachmentPoint, Vertex
from fraggraph.exceptions import ConfigurationError, StructuralInconsistency
from fraggraph.rings.chains import ClosableChain
from fraggraph.space.fragment_space import FragmentSpace
from fraggraph.space.library import APRef

if TYPE_CHECKING:
    from fraggraph.rings.archive import RingClosuresArchive


logger = logging.getLogger(__name__)


# Closable chain ends here: no block should be added on this AP
NO_FRAGMENT = APRef(BBType.UNDEFINED, -1, -1)


class ChainBiasOutcome(Enum):
    """Result of trying to follow a closable chain on one AP."""
    ATTACHED = "attached"           # Next link of a chain was added
    NO_FRAGMENT = "no_fragment"     # Chosen chain ends on this AP
    NO_CANDIDATE = "no_candidate"   # No chain passes through this AP


@dataclass
class ChainCandidate:
    """Block suggested by closable chains, with the chains it keeps alive."""
    fragment: APRef
    compatible: List[ClosableChain] = field(default_factory=list)
    incompatible: List[ClosableChain] = field(default_factory=list)


# ===== Growth probability =====

def growth_probability(
    scheme: GrowthProbabilityScheme,
    level: int,
    lambda_: float = 1.0,
    sigma_steepness: float = 1.0,
    sigma_middle: float = 2.5,
) -> float:
    """
    Probability of adding a block at a given depth.

    Args:
        scheme: Shape of the decay
        level: Depth (vertex level, or number of used APs for crowding)
        lambda_: Decay rate of EXP_DIFF and TANH
        sigma_steepness: Steepness of SIGMA
        sigma_middle: Depth at which SIGMA gives 0.5

    Returns:
        Probability clipped to [0, 1]
    """
    if scheme is GrowthProbabilityScheme.UNRESTRICTED:
        return 1.0
    if scheme is GrowthProbabilityScheme.EXP_DIFF:
        f = math.exp(-level * lambda_)
        p = 1.0 - ((1.0 - f) / (1.0 + f))
    elif scheme is GrowthProbabilityScheme.TANH:
        p = 1.0 - math.tanh(lambda_ * level)
    elif scheme is GrowthProbabilityScheme.SIGMA:
        p = 1.0 - 1.0 / (1.0 + math.exp(-sigma_steepness * (level - sigma_middle)))
    else:
        raise ConfigurationError(f"Unknown growth probability scheme {scheme}")
    return min(1.0, max(0.0, p))


def crowdedness(ap: AttachmentPoint) -> int:
    """Used APs on the owner of `ap`, not counting the link to the parent."""
    return sum(
        1 for other in ap.owner.aps
        if other.user is not None and other.user.trg_ap is not other
    )


class GrowthOperator:
    """
    Grows graphs from the building blocks of a fragment space.

    Example:
        growth = GrowthOperator(space, minimal_config(), Randomizer(seed=3))
        graph = growth.build_graph()
        growth.extend_graph(graph.vertex_at_position(0), force=True)
    """

    def __init__(
        self,
        space: FragmentSpace,
        config: Optional[SpaceConfig] = None,
        randomizer: Optional[Randomizer] = None,
    ):
        if config is None:
            config = SpaceConfig(
                symmetry=SymmetryParams(symmetry_probability=space.symmetry_probability)
            )
        self.space = space
        self.config = config
        self.randomizer = randomizer or Randomizer(config.random_seed)

    @property
    def library(self):
        return self.space.library

    # ===== Decisions =====

    def growth_probability_at(self, vertex: Vertex, ap: AttachmentPoint) -> float:
        """Level decay of `vertex` times the crowding factor of `ap`."""
        params = self.config.growth
        by_level = growth_probability(
            params.scheme, vertex.level, params.lambda_,
            params.sigma_steepness, params.sigma_middle,
        )
        by_crowding = growth_probability(
            params.crowding_scheme, crowdedness(ap), params.crowding_lambda,
            params.crowding_sigma_steepness, params.crowding_sigma_middle,
        )
        return by_level * by_crowding

    def apply_symmetry(self, ap_class: Optional[str]) -> bool:
        """
        Decide whether a placement on an AP of `ap_class` is mirrored.

        A registry override wins (forced on or off); otherwise the global
        enforce flag, otherwise a draw with the global probability.
        """
        policy = self.space.symmetry_policy(ap_class)
        if policy is not None:
            return policy
        if self.config.symmetry.enforce_symmetry:
            return True
        return self.randomizer.next_boolean(self.config.symmetry.symmetry_probability)

    def max_level_reached(self, vertex: Vertex) -> bool:
        max_level = self.config.growth.max_level
        return max_level is not None and vertex.level + 1 > max_level

    # ===== Block selection =====

    def select_fragment(
        self,
        ap: AttachmentPoint,
        chosen_bb_id: int = -1,
        chosen_ap_id: int = -1,
    ) -> Optional[APRef]:
        """
        Pick the block and AP to attach on `ap`.

        With a class-based space the choice is among fragment APs
        compatible with the class of `ap`; otherwise any fragment, on a
        random AP. A forced choice is only honoured if some candidate
        exists.

        Returns:
            The chosen APRef, or None when nothing fits
        """
        library = self.library
        if self.space.use_ap_class_based_approach:
            candidates = library.ports_compatible_with(ap.ap_class)
            if not candidates:
                return None
            if chosen_bb_id > -1 and chosen_ap_id > -1:
                return APRef(BBType.FRAGMENT, chosen_bb_id, chosen_ap_id)
            return self.randomizer.choose_one(candidates)

        n_frags = library.pool_size(BBType.FRAGMENT)
        if n_frags == 0:
            return None
        if chosen_bb_id > -1:
            bb_id = chosen_bb_id
        else:
            bb_id = self.randomizer.next_int(n_frags)
        if chosen_ap_id > -1:
            return APRef(BBType.FRAGMENT, bb_id, chosen_ap_id)
        n_aps = len(library.template(BBType.FRAGMENT, bb_id).aps)
        if n_aps == 0:
            return None
        return APRef(BBType.FRAGMENT, bb_id, self.randomizer.next_int(n_aps))

    def _instantiate(self, ref: APRef) -> Tuple[Vertex, AttachmentPoint]:
        block = self.library.get_block(ref.bb_type, ref.bb_id)
        return block, block.get_ap(ref.ap_index)

    # ===== Ring-closure bias =====

    def fragments_for_closable_chain(
        self, vertex: Vertex, ap_index: int, graph: Graph
    ) -> List[ChainCandidate]:
        """
        Blocks that continue the closable chains of `graph` through AP
        `ap_index` of `vertex`.

        A chain whose link on `vertex` is its last one (in the growth
        direction) suggests NO_FRAGMENT: the ring end is declared there.
        Chains suggesting different blocks are incompatible with each
        other.
        """
        suggestions: List[Tuple[APRef, ClosableChain]] = []
        if not graph.closable_chains:
            return []

        if vertex.bb_type is BBType.SCAFFOLD:
            for cc in graph.closable_chains:
                pos = cc.involves_vertex(vertex)
                if pos < 0:
                    continue
                link = cc.link(pos)
                if ap_index == link.ap_to_right:
                    if pos + 1 < cc.size:
                        nxt = cc.link(pos + 1)
                        suggestions.append((APRef(nxt.bb_type, nxt.bb_id, nxt.ap_to_left), cc))
                    else:
                        suggestions.append((NO_FRAGMENT, cc))
                elif ap_index == link.ap_to_left:
                    if pos - 1 >= 0:
                        nxt = cc.link(pos - 1)
                        suggestions.append((APRef(nxt.bb_type, nxt.bb_id, nxt.ap_to_right), cc))
                    else:
                        suggestions.append((NO_FRAGMENT, cc))
        else:
            edge = vertex.edge_to_parent()
            if edge is None:
                return []
            parent = edge.src_vertex
            parent_ap = edge.src_ap.index
            child_ap = edge.trg_ap.index
            for cc in graph.closable_chains:
                pos = cc.involves_vertex_and_ap(vertex, ap_index, child_ap)
                if pos < 0 or pos == cc.turning_point:
                    continue
                link = cc.link(pos)
                if pos > cc.turning_point:
                    prev = cc.link(pos - 1)
                    if not (prev.matches_vertex(parent) and prev.ap_to_right == parent_ap
                            and link.ap_to_left == child_ap):
                        continue
                    if pos + 1 < cc.size:
                        nxt = cc.link(pos + 1)
                        suggestions.append((APRef(nxt.bb_type, nxt.bb_id, nxt.ap_to_left), cc))
                    else:
                        suggestions.append((NO_FRAGMENT, cc))
                else:
                    prev = cc.link(pos + 1)
                    if not (prev.matches_vertex(parent) and prev.ap_to_left == parent_ap
                            and link.ap_to_right == child_ap):
                        continue
                    if pos - 1 >= 0:
                        nxt = cc.link(pos - 1)
                        suggestions.append((APRef(nxt.bb_type, nxt.bb_id, nxt.ap_to_right), cc))
                    else:
                        suggestions.append((NO_FRAGMENT, cc))

        candidates: List[ChainCandidate] = []
        for ref, cc in suggestions:
            for cand in candidates:
                if cand.fragment == ref:
                    cand.compatible.append(cc)
                    break
            else:
                candidates.append(ChainCandidate(ref, [cc]))
        for cand in candidates:
            cand.incompatible = [
                cc for other in candidates if other is not cand for cc in other.compatible
            ]
        return candidates

    def attach_fragment_in_closable_chain(
        self,
        vertex: Vertex,
        ap_index: int,
        graph: Graph,
        added: List[Vertex],
    ) -> ChainBiasOutcome:
        """
        Try to extend AP `ap_index` of `vertex` along a closable chain.

        On success the new vertex is appended to `added` and the chains
        that disagree with the choice are dropped from the graph.
        """
        candidates = self.fragments_for_closable_chain(vertex, ap_index, graph)
        if not candidates:
            return ChainBiasOutcome.NO_CANDIDATE
        chosen = self.randomizer.choose_one(candidates)
        if chosen.fragment == NO_FRAGMENT:
            logger.debug(
                f"Closable chain ends on AP {ap_index} of vertex {vertex.vertex_id}"
            )
            return ChainBiasOutcome.NO_FRAGMENT

        ap = vertex.get_ap(ap_index)
        block, trg_ap = self._instantiate(chosen.fragment)
        graph.append_vertex_on_ap(ap, trg_ap, self.space.bond_type_for(ap.ap_class))
        added.append(block)
        dropped = {cc.chain_id for cc in chosen.incompatible}
        graph.closable_chains = [cc for cc in graph.closable_chains if cc.chain_id not in dropped]
        logger.debug(
            f"Closability bias: added {chosen.fragment} on vertex {vertex.vertex_id} "
            f"AP {ap_index}, dropped {len(dropped)} chains"
        )
        return ChainBiasOutcome.ATTACHED

    # ===== Growth =====

    def extend_graph(
        self,
        vertex: Vertex,
        extend: bool = False,
        symmetry_on_aps: bool = False,
        force: bool = False,
        chosen_bb_id: int = -1,
        chosen_ap_id: int = -1,
    ) -> bool:
        """
        Attach blocks to the free APs of `vertex`.

        Args:
            vertex: Vertex to grow from; must belong to a graph
            extend: Recurse on the vertices added here
            symmetry_on_aps: Mirror every placement on symmetric APs
            force: Ignore the growth probability and the level limit
            chosen_bb_id: Force the fragment (first call only)
            chosen_ap_id: Force the AP of the fragment (first call only)

        Returns:
            True if at least one AP was filled

        Raises:
            NotConfiguredError: if the library has no pools
            IndexError: if a forced fragment or AP does not exist
        """
        graph = vertex.owner
        if graph is None:
            raise StructuralInconsistency(f"Vertex {vertex.vertex_id} is not part of a graph")
        if not vertex.has_free_ap():
            logger.debug(f"Vertex {vertex.vertex_id} has no free AP")
            return False
        if not force and self.max_level_reached(vertex):
            return False
        # Checks that the library has been built
        self.library.pool(BBType.FRAGMENT)

        logger.debug(
            f"Extending graph {graph.graph_id} on vertex {vertex.vertex_id} (level {vertex.level})"
        )
        rings = self.config.rings
        use_chains = rings.allow_ring_closures and rings.select_fragments_from_closable_chains

        added: List[Vertex] = []
        for ap_index in self.randomizer.shuffled(range(len(vertex.aps))):
            ap = vertex.aps[ap_index]
            if not ap.is_available():
                continue

            if not force:
                prob = self.growth_probability_at(vertex, ap)
                if not self.randomizer.next_boolean(prob):
                    logger.debug(f"Declined growth on AP {ap_index} (p={prob:.3f})")
                    continue

            if use_chains:
                outcome = self.attach_fragment_in_closable_chain(vertex, ap_index, graph, added)
                if outcome is ChainBiasOutcome.ATTACHED:
                    continue

            chosen = self.select_fragment(ap, chosen_bb_id, chosen_ap_id)
            if chosen is None:
                logger.debug(f"No compatible fragment for {ap}")
                continue

            # Symmetric APs on this vertex
            on_sym_aps = self.apply_symmetry(ap.ap_class) or symmetry_on_aps
            sym_aps = vertex.symmetric_aps_of(ap_index) if on_sym_aps else None
            ap_indices = sym_aps.to_list() if sym_aps is not None else [ap_index]

            # Symmetry inherited from previous levels
            partners = graph.symmetric_vertices_of(vertex)

            self.library.counter.ensure_above(graph.max_vertex_id())

            new_set = SymmetricSet()
            for parent in partners:
                for idx in ap_indices:
                    site = parent.get_ap(idx)
                    if not site.is_available():
                        continue
                    block, trg_ap = self._instantiate(chosen)
                    graph.append_vertex_on_ap(site, trg_ap, self.space.bond_type_for(site.ap_class))
                    added.append(block)
                    new_set.add(block.vertex_id)

            if len(new_set) > 1:
                graph.add_symmetric_set(new_set)
                logger.debug(f"New symmetric set {new_set.to_list()} in graph {graph.graph_id}")

        if extend:
            for child in list(added):
                if child.owner is graph:
                    self.extend_graph(child, extend, symmetry_on_aps)

        return len(added) > 0

    # ===== Whole graphs =====

    def build_graph(
        self,
        scaffold_id: Optional[int] = None,
        archive: Optional["RingClosuresArchive"] = None,
        extend: bool = True,
    ) -> Graph:
        """
        Start a graph from a scaffold, grow it and cap it.

        Args:
            scaffold_id: Scaffold to start from (random if None)
            archive: Ring-closures archive providing closable chains that
                turn at the scaffold
            extend: Grow recursively

        Returns:
            New graph
        """
        scaffolds = self.library.pool(BBType.SCAFFOLD)
        if scaffold_id is None:
            if not scaffolds:
                raise ConfigurationError("Cannot build a graph: no scaffold in the library")
            scaffold_id = self.randomizer.next_int(len(scaffolds))
        scaffold = self.library.get_block(BBType.SCAFFOLD, scaffold_id)
        scaffold.level = -1

        graph = Graph()
        graph.add_vertex(scaffold)
        if archive is not None and self.config.rings.allow_ring_closures:
            graph.closable_chains = archive.closable_chains_for_turning_point(scaffold.bb_id)

        self.extend_graph(scaffold, extend=extend)
        n_caps = self.cap_graph(graph)
        logger.debug(
            f"Built graph {graph.graph_id}: {graph.vertex_count()} vertices, {n_caps} capping groups"
        )
        return graph

    def cap_graph(self, graph: Graph) -> int:
        """
        Attach a capping group to every free AP whose class has a capping rule.

        Returns:
            Number of capping groups added

        Raises:
            ConfigurationError: if a rule names a class no capping group offers
        """
        n_added = 0
        self.library.counter.ensure_above(graph.max_vertex_id())
        for vertex in list(graph.vertices):
            if vertex.bb_type is BBType.CAP:
                continue
            for ap in vertex.aps:
                if not ap.is_available():
                    continue
                cap_class = self.space.capping_class(ap.ap_class)
                if cap_class is None:
                    continue
                caps = self.library.capping_blocks_with_class(cap_class)
                if not caps:
                    raise ConfigurationError(
                        f"Capping of class '{ap.ap_class}' requires a capping group "
                        f"with class '{cap_class}', none found"
                    )
                cap = self.library.get_block(BBType.CAP, caps[0])
                graph.append_vertex_on_ap(ap, cap.get_ap(0), self.space.bond_type_for(ap.ap_class))
                n_added += 1
        return n_added

    def free_aps_with_forbidden_ends(self, graph: Graph) -> List[AttachmentPoint]:
        """Free APs whose class must never be left unused."""
        return [ap for ap in graph.free_aps() if self.space.is_forbidden_end(ap.ap_class)]

    def has_forbidden_ends(self, graph: Graph) -> bool:
        return len(self.free_aps_with_forbidden_ends(graph)) > 0
