"""
Mutation operator.

Three mutation types act on one vertex of a graph:
- DELETE: remove the branch rooted at the vertex and at its symmetric partners
- EXTEND: strip capping groups from the vertex and grow it again
- CHANGEBRANCH: delete the branch, then regrow from the parent vertex

A vertex outside a graph, or one that does not allow the requested type,
is left alone: the mutation is reported as unsuccessful.
"""

from __future__ import annotations
import logging
from typing import Iterable, List, Optional

from fraggraph.core.enums import MutationType
from fraggraph.core.graph import Graph
from fraggraph.core.randomizer import Randomizer
from fraggraph.core.vertex import Vertex
from fraggraph.exceptions import StructuralInconsistency
from fraggraph.operators.growth import GrowthOperator
from fraggraph.space.fragment_space import FragmentSpace


logger = logging.getLogger(__name__)


class MutationOperator:
    """
    Applies DELETE, EXTEND and CHANGEBRANCH mutations.

    Growth-related steps are delegated to a GrowthOperator so that
    regrown branches follow the same rules as freshly built graphs.

    Example:
        mutation = MutationOperator(space, growth)
        mutation.perform_random_mutation(graph)
        mutation.perform_mutation(vertex, MutationType.EXTEND, force=True)
    """

    def __init__(
        self,
        space: FragmentSpace,
        growth: Optional[GrowthOperator] = None,
        randomizer: Optional[Randomizer] = None,
    ):
        if growth is None:
            growth = GrowthOperator(space, randomizer=randomizer)
        self.space = space
        self.growth = growth
        self.randomizer = randomizer or growth.randomizer

    @property
    def config(self):
        return self.growth.config

    # ===== Entry points =====

    def perform_random_mutation(
        self, graph: Graph, ignored: Iterable[MutationType] = ()
    ) -> bool:
        """
        Mutate a random site of `graph` with a random allowed type.

        The site is drawn uniformly among vertices offering at least one
        type not in `ignored` (nor excluded by the configuration), then
        the type uniformly among that vertex's types.
        """
        ignored = list(self.config.mutation.excluded_types) + list(ignored)
        sites = graph.mutable_sites(ignored)
        if not sites:
            logger.info(f"Graph {graph.graph_id} has no mutable site. Mutation aborted.")
            return False
        vertex = self.randomizer.choose_one(sites)
        mutation_type = self.randomizer.choose_one(vertex.mutation_types(ignored))
        return self.perform_mutation(vertex, mutation_type)

    def perform_mutation(
        self,
        vertex: Vertex,
        mutation_type: MutationType,
        force: bool = False,
        chosen_bb_id: int = -1,
        chosen_ap_id: int = -1,
    ) -> bool:
        """
        Mutate `vertex` with `mutation_type`.

        Args:
            vertex: Mutation site
            mutation_type: Type of mutation to apply
            force: Ignore the growth probability when regrowing
            chosen_bb_id: Force the fragment used for regrowth
            chosen_ap_id: Force the AP of that fragment

        Returns:
            True if the graph was modified as requested
        """
        graph = vertex.owner
        if graph is None:
            logger.info(f"Vertex {vertex.vertex_id} has no owner - Mutation aborted")
            return False
        if mutation_type not in vertex.mutation_types():
            logger.info(
                f"Vertex {vertex.vertex_id} does not allow mutation type "
                f"'{mutation_type.value}' - Mutation aborted"
            )
            return False

        if mutation_type is MutationType.CHANGEBRANCH:
            done = self.substitute_fragment(vertex, force, chosen_bb_id, chosen_ap_id)
        elif mutation_type is MutationType.EXTEND:
            done = self.extend(vertex, force, chosen_bb_id, chosen_ap_id)
        elif mutation_type is MutationType.DELETE:
            done = self.delete_fragment(vertex)
        else:
            raise ValueError(f"Unknown mutation type {mutation_type}")

        outcome = "done" if done else "unsuccessful"
        logger.info(
            f"Mutation '{mutation_type.value}' on vertex {vertex.vertex_id} "
            f"(graph {graph.graph_id}): {outcome}"
        )
        return done

    # ===== Mutation types =====

    def _branches_of_partners(self, graph: Graph, vertex: Vertex) -> List[Vertex]:
        """Roots of the branches a deletion of `vertex` removes."""
        return graph.symmetric_vertices_of(vertex)

    def delete_fragment(self, vertex: Vertex) -> bool:
        """
        Remove the branch of `vertex` and those of its symmetric partners.

        Refused, leaving the graph untouched, when fewer than two
        vertices would remain.
        """
        graph = vertex.owner
        roots = self._branches_of_partners(graph, vertex)
        doomed = set()
        for root in roots:
            doomed.add(id(root))
            doomed.update(id(v) for v in graph.get_child_tree(root))
        if graph.vertex_count() - len(doomed) <= 1:
            logger.debug(
                f"Deleting vertex {vertex.vertex_id} would leave graph {graph.graph_id} "
                f"with {graph.vertex_count() - len(doomed)} vertices"
            )
            return False

        for root in roots:
            graph.remove_branch_starting_at(root)
        return not graph.contains_vertex(vertex)

    def substitute_fragment(
        self,
        vertex: Vertex,
        force: bool = False,
        chosen_bb_id: int = -1,
        chosen_ap_id: int = -1,
    ) -> bool:
        """
        Replace the branch of `vertex` by regrowing from its parent.

        Symmetric partners are removed as well; if `vertex` was part of a
        symmetric set, regrowth is mirrored on the parent's symmetric APs.

        Raises:
            StructuralInconsistency: if `vertex` has no parent edge
        """
        graph = vertex.owner
        edge = vertex.edge_to_parent()
        if edge is None:
            raise StructuralInconsistency(
                f"Unable to locate parent edge of vertex {vertex.vertex_id} in graph {graph.graph_id}"
            )
        parent = edge.src_vertex
        symmetry = graph.has_symmetry_involving(vertex)

        for root in self._branches_of_partners(graph, vertex):
            graph.remove_branch_starting_at(root)

        return self.growth.extend_graph(
            parent,
            extend=self.config.mutation.regrow_recursively,
            symmetry_on_aps=symmetry,
            force=force,
            chosen_bb_id=chosen_bb_id,
            chosen_ap_id=chosen_ap_id,
        )

    def extend(
        self,
        vertex: Vertex,
        force: bool = False,
        chosen_bb_id: int = -1,
        chosen_ap_id: int = -1,
    ) -> bool:
        """Remove capping groups on `vertex` and grow it by one level."""
        removed = vertex.owner.remove_capping_on(vertex)
        if removed:
            logger.debug(f"Removed {removed} capping groups from vertex {vertex.vertex_id}")
        return self.growth.extend_graph(
            vertex, False, False, force, chosen_bb_id, chosen_ap_id
        )
