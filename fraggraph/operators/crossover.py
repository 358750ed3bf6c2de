"""
Crossover operator.

Swaps one branch between two graphs. A pair of crossover vertices
(male, female) is acceptable when:
- neither vertex is a capping group
- the vertices come from different building blocks
- the AP classes of their parent edges are compatible crosswise:
  male source -> female target and female source -> male target

Branches symmetric to the chosen ones are removed and the incoming
branch is grafted on all of their former attachment sites.
"""

from __future__ import annotations
import logging
from typing import List, Optional, Tuple

from fraggraph.core.edge import Edge
from fraggraph.core.enums import BBType
from fraggraph.core.graph import Graph
from fraggraph.core.identity import IdentityCounter
from fraggraph.core.randomizer import Randomizer
from fraggraph.core.vertex import Vertex
from fraggraph.exceptions import StructuralInconsistency
from fraggraph.space.fragment_space import FragmentSpace


logger = logging.getLogger(__name__)


def is_crossover_possible(space: FragmentSpace, edge_a: Edge, edge_b: Edge) -> bool:
    """Crosswise AP-class compatibility of two parent edges."""
    return (
        space.is_compatible(edge_a.src_ap_class, edge_b.trg_ap_class)
        and space.is_compatible(edge_b.src_ap_class, edge_a.trg_ap_class)
    )


def locate_compatible_xover_points(
    male: Graph, female: Graph, space: FragmentSpace
) -> List[Tuple[Vertex, Vertex]]:
    """
    All (male vertex, female vertex) pairs usable as crossover points.

    Only targets of edges are considered, so roots never take part.
    """
    pairs: List[Tuple[Vertex, Vertex]] = []
    for e_male in male.edges:
        v_male = e_male.trg_vertex
        if v_male.bb_type is BBType.CAP:
            continue
        for e_female in female.edges:
            v_female = e_female.trg_vertex
            if v_female.bb_type is BBType.CAP:
                continue
            if v_male.same_building_block(v_female):
                continue
            if is_crossover_possible(space, e_male, e_female):
                pairs.append((v_male, v_female))
    return pairs


def _clear_symmetric_branches(graph: Graph, vertex: Vertex) -> List[Tuple[Vertex, int]]:
    """
    Remove the branches of the partners of `vertex`.

    Returns:
        Attachment sites (parent vertex, parent AP index) of the removed
        branches, followed by the site of `vertex` itself
    """
    sites: List[Tuple[Vertex, int]] = []
    for partner in graph.symmetric_vertices_of(vertex):
        if partner is vertex or not graph.contains_vertex(partner):
            continue
        edge = partner.edge_to_parent()
        if edge is None:
            raise StructuralInconsistency(
                f"Symmetric vertex {partner.vertex_id} has no parent in graph {graph.graph_id}"
            )
        sites.append((edge.src_vertex, edge.src_ap.index))
        graph.remove_branch_starting_at(partner)
    edge = vertex.edge_to_parent()
    sites.append((edge.src_vertex, edge.src_ap.index))
    return sites


def perform_crossover(
    male: Graph,
    male_vertex: Vertex,
    female: Graph,
    female_vertex: Vertex,
    counter: Optional[IdentityCounter] = None,
) -> bool:
    """
    Exchange the branch rooted at `male_vertex` with the one rooted at
    `female_vertex`. Both graphs are modified in place.

    Args:
        male: First parent graph
        male_vertex: Root of the male branch (must have a parent)
        female: Second parent graph
        female_vertex: Root of the female branch (must have a parent)
        counter: Vertex identity counter used for the grafted copies

    Returns:
        True once both branches have been swapped

    Raises:
        StructuralInconsistency: if a crossover vertex has no parent edge
    """
    e_male = male_vertex.edge_to_parent()
    e_female = female_vertex.edge_to_parent()
    if e_male is None or e_female is None:
        raise StructuralInconsistency("Crossover vertices must have a parent edge")
    male_child_ap = e_male.trg_ap.index
    female_child_ap = e_female.trg_ap.index

    male_sites = _clear_symmetric_branches(male, male_vertex)
    female_sites = _clear_symmetric_branches(female, female_vertex)

    male_level = male_vertex.level
    female_level = female_vertex.level
    sub_male = male.extract_subgraph(male_vertex)
    sub_female = female.extract_subgraph(female_vertex)
    sub_male.update_levels(female_level)
    sub_female.update_levels(male_level)

    if counter is not None:
        counter.ensure_above(max(male.max_vertex_id(), female.max_vertex_id()))

    male.append_graph_on_graph(
        [site[0] for site in male_sites], [site[1] for site in male_sites],
        sub_female, sub_female.vertex_at_position(0), female_child_ap,
        e_male.bond_type, on_all_symmetric_aps=True, counter=counter,
    )
    female.append_graph_on_graph(
        [site[0] for site in female_sites], [site[1] for site in female_sites],
        sub_male, sub_male.vertex_at_position(0), male_child_ap,
        e_female.bond_type, on_all_symmetric_aps=True, counter=counter,
    )
    return True


class CrossoverOperator:
    """
    Crossover bound to a fragment space.

    Example:
        xover = CrossoverOperator(space, Randomizer(seed=1))
        if xover.perform_random_crossover(male, female):
            ...
    """

    def __init__(self, space: FragmentSpace, randomizer: Optional[Randomizer] = None):
        self.space = space
        self.randomizer = randomizer or Randomizer()

    def locate_compatible_xover_points(
        self, male: Graph, female: Graph
    ) -> List[Tuple[Vertex, Vertex]]:
        return locate_compatible_xover_points(male, female, self.space)

    def perform_crossover(
        self, male: Graph, male_vertex: Vertex, female: Graph, female_vertex: Vertex
    ) -> bool:
        done = perform_crossover(
            male, male_vertex, female, female_vertex, counter=self.space.library.counter
        )
        logger.info(
            f"Crossover between vertex {male_vertex.vertex_id} (graph {male.graph_id}) "
            f"and vertex {female_vertex.vertex_id} (graph {female.graph_id}): "
            f"{'done' if done else 'unsuccessful'}"
        )
        return done

    def perform_random_crossover(self, male: Graph, female: Graph) -> bool:
        """Crossover on a uniformly chosen pair; False when no pair exists."""
        pairs = self.locate_compatible_xover_points(male, female)
        if not pairs:
            logger.info(
                f"No crossover possible between graphs {male.graph_id} and {female.graph_id}"
            )
            return False
        male_vertex, female_vertex = self.randomizer.choose_one(pairs)
        return self.perform_crossover(male, male_vertex, female, female_vertex)
