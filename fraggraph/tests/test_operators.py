"""
Tests for operators module.
"""

import logging
import math

import pytest

from conftest import make_config, make_registry, make_space, start_graph

from fraggraph.config import GrowthProbabilityScheme, RingClosureParams
from fraggraph.core import BBType, Graph, IdentityCounter, MutationType, Randomizer, SymmetricSet, Vertex
from fraggraph.exceptions import ConfigurationError, NotConfiguredError, StructuralInconsistency
from fraggraph.operators import (
    ChainBiasOutcome, CrossoverOperator, GrowthOperator, MutationOperator,
    crowdedness, growth_probability, perform_crossover,
)
from fraggraph.rings import ClosableChain
from fraggraph.space import BuildingBlockLibrary, CompatibilityRegistry, FragmentSpace


def attach(space, graph, parent, ap_index, bb_id, bb_type=BBType.FRAGMENT, child_ap=0):
    """Append a library block on one AP of `parent`."""
    block = space.library.get_block(bb_type, bb_id)
    graph.append_vertex_on_ap(parent.get_ap(ap_index), block.get_ap(child_ap))
    return block


def signature(graph):
    """Structure of a graph up to vertex relabeling."""
    return sorted((v.bb_type.value, v.bb_id, v.level, len(v.free_aps())) for v in graph.vertices)


class TestGrowthProbability:
    """Tests for growth probability schemes."""

    def test_unrestricted(self):
        """Test unrestricted growth always has probability one."""
        assert growth_probability(GrowthProbabilityScheme.UNRESTRICTED, 50) == 1.0

    def test_exp_diff_decays(self):
        """Test EXP_DIFF starts at one and decreases with depth."""
        scheme = GrowthProbabilityScheme.EXP_DIFF
        values = [growth_probability(scheme, lvl, lambda_=1.0) for lvl in range(5)]
        assert values[0] == pytest.approx(1.0)
        assert all(a > b for a, b in zip(values, values[1:]))
        assert values[1] == pytest.approx(2 * math.exp(-1) / (1 + math.exp(-1)))

    def test_tanh(self):
        """Test TANH value at depth two."""
        p = growth_probability(GrowthProbabilityScheme.TANH, 2, lambda_=0.5)
        assert p == pytest.approx(1.0 - math.tanh(1.0))

    def test_sigma_midpoint(self):
        """Test SIGMA gives one half at its midpoint."""
        p = growth_probability(GrowthProbabilityScheme.SIGMA, 3, sigma_steepness=2.0, sigma_middle=3.0)
        assert p == pytest.approx(0.5)

    def test_clipped(self):
        """Test negative levels do not exceed one."""
        assert growth_probability(GrowthProbabilityScheme.EXP_DIFF, -1) == 1.0
        assert growth_probability(GrowthProbabilityScheme.TANH, -3) == 1.0

    def test_crowdedness(self, space):
        """Test crowding counts used APs except the parent link."""
        graph, scaffold = start_graph(space, 1)
        frag = attach(space, graph, scaffold, 0, 1)
        assert crowdedness(frag.get_ap(1)) == 0
        attach(space, graph, frag, 1, 0)
        assert crowdedness(frag.get_ap(2)) == 1
        assert crowdedness(scaffold.get_ap(2)) == 1


class TestSymmetryDecision:
    """Tests for the symmetric placement policy."""

    def test_enforced(self, growth):
        """Test enforce_symmetry in the configuration."""
        assert growth.apply_symmetry("A:0") is True

    def test_probability_zero(self, space):
        """Test no symmetry without enforcement and zero probability."""
        op = GrowthOperator(space, make_config(enforce_symmetry=False), Randomizer(seed=2))
        assert not any(op.apply_symmetry("A:0") for _ in range(20))

    def test_registry_override_wins(self):
        """Test a forced-off class beats enforce_symmetry."""
        space = make_space(make_registry(symmetry_constraints={"A:0": 0.0}))
        op = GrowthOperator(space, make_config(enforce_symmetry=True), Randomizer(seed=2))
        assert op.apply_symmetry("A:0") is False
        assert op.apply_symmetry("B:0") is True

    def test_default_config_uses_space_probability(self):
        """Test the space probability is used when no configuration is given."""
        library = make_space().library
        space = FragmentSpace(library, library.registry, symmetry_probability=1.0)
        op = GrowthOperator(space, randomizer=Randomizer(seed=2))
        assert op.apply_symmetry("A:0") is True


class TestGrowth:
    """Tests for GrowthOperator.extend_graph and friends."""

    def test_scaffold_and_caps_only(self):
        """Test a 3-port scaffold with only a capping group yields 4 vertices and 3 edges."""
        registry = CompatibilityRegistry(compatibility={"A:0": ["A:0"]}, capping={"A:0": "cap:0"})
        library = BuildingBlockLibrary(
            scaffolds=[Vertex(0, ["A:0", "A:0", "A:0"], symmetric_aps=[[0, 1, 2]])],
            cappings=[Vertex(0, ["cap:0"])],
            registry=registry,
            counter=IdentityCounter(),
        )
        space = FragmentSpace(library, registry)
        growth = GrowthOperator(space, make_config(), Randomizer(seed=1))

        graph, scaffold = start_graph(space)
        growth.extend_graph(scaffold, extend=True, force=True)
        growth.cap_graph(graph)
        assert graph.vertex_count() == 4
        assert graph.edge_count() == 3
        graph.check_consistency()

        built = growth.build_graph(scaffold_id=0)
        assert built.vertex_count() == 4
        assert built.edge_count() == 3

    def test_forced_growth_adds(self, space, growth):
        """Test forced growth on a compatible AP adds at least one vertex."""
        graph, scaffold = start_graph(space, 1)
        assert growth.extend_graph(scaffold, force=True)
        assert graph.vertex_count() >= 2
        graph.check_consistency()

    def test_symmetric_growth_k3(self, space, growth):
        """Test symmetric APs of size 3 produce 3 vertices in one symmetric set."""
        graph, scaffold = start_graph(space, 0)
        assert growth.extend_graph(scaffold, force=True)
        assert graph.vertex_count() == 4
        assert len(graph.symmetric_sets) == 1
        sym = graph.symmetric_sets[0]
        assert len(sym) == 3
        new = [graph.vertex_with_id(vid) for vid in sym]
        assert len({v.bb_id for v in new}) == 1
        assert len({v.edge_to_parent().trg_ap.index for v in new}) == 1

    def test_symmetric_growth_k2(self, space, growth):
        """Test a symmetric pair is mirrored and the lone AP is not."""
        graph, scaffold = start_graph(space, 1)
        growth.extend_graph(scaffold, force=True)
        assert graph.vertex_count() == 4
        assert len(graph.symmetric_sets) == 1
        assert len(graph.symmetric_sets[0]) == 2
        paired = {graph.vertex_with_id(vid).parent().vertex_id for vid in graph.symmetric_sets[0]}
        assert paired == {scaffold.vertex_id}

    def test_symmetry_forced_off(self):
        """Test a forced-off class gives independent placements."""
        space = make_space(make_registry(symmetry_constraints={"A:0": 0.0}))
        growth = GrowthOperator(space, make_config(enforce_symmetry=True), Randomizer(seed=4))
        graph, scaffold = start_graph(space, 0)
        growth.extend_graph(scaffold, force=True)
        assert graph.vertex_count() == 4
        assert graph.symmetric_sets == []

    def test_symmetry_on_aps_flag(self):
        """Test symmetry_on_aps mirrors even when the class is forced off."""
        space = make_space(make_registry(symmetry_constraints={"A:0": 0.0}))
        growth = GrowthOperator(space, make_config(enforce_symmetry=False), Randomizer(seed=4))
        graph, scaffold = start_graph(space, 0)
        growth.extend_graph(scaffold, symmetry_on_aps=True, force=True)
        assert len(graph.symmetric_sets) == 1
        assert len(graph.symmetric_sets[0]) == 3

    def test_inherited_symmetry(self, space, growth):
        """Test growth on one of symmetric vertices is repeated on all of them."""
        graph, scaffold = start_graph(space, 0)
        growth.extend_graph(scaffold, force=True, chosen_bb_id=0, chosen_ap_id=0)
        first = graph.vertex_with_id(graph.symmetric_sets[0].first())
        assert growth.extend_graph(first, force=True, chosen_bb_id=0, chosen_ap_id=0)
        assert graph.vertex_count() == 7
        assert len(graph.symmetric_sets) == 2
        assert all(len(s) == 3 for s in graph.symmetric_sets)
        graph.check_consistency()

    def test_forced_choice(self, space, growth):
        """Test forcing the fragment and its AP."""
        graph, scaffold = start_graph(space, 1)
        growth.extend_graph(scaffold, force=True, chosen_bb_id=1, chosen_ap_id=0)
        children = graph.get_children(scaffold)
        assert len(children) == 3
        assert all(c.bb_id == 1 for c in children)
        assert all(c.edge_to_parent().trg_ap.index == 0 for c in children)

    def test_forced_choice_out_of_range(self, space, growth):
        """Test out-of-range forced choices raise IndexError."""
        graph, scaffold = start_graph(space, 1)
        with pytest.raises(IndexError):
            growth.extend_graph(scaffold, force=True, chosen_bb_id=5, chosen_ap_id=0)
        graph, scaffold = start_graph(space, 1)
        with pytest.raises(IndexError):
            growth.extend_graph(scaffold, force=True, chosen_bb_id=0, chosen_ap_id=9)

    def test_no_candidate_is_not_an_error(self):
        """Test an AP without compatible fragment is left free."""
        registry = CompatibilityRegistry(compatibility={"A:0": ["B:0"], "B:0": ["A:0"], "C:0": ["C:0"]})
        library = BuildingBlockLibrary(
            scaffolds=[Vertex(0, ["C:0"])],
            fragments=[Vertex(0, ["B:0"])],
            registry=registry,
            counter=IdentityCounter(),
        )
        space = FragmentSpace(library, registry)
        growth = GrowthOperator(space, make_config(), Randomizer(seed=1))
        graph, scaffold = start_graph(space)
        assert growth.extend_graph(scaffold, force=True) is False
        assert graph.vertex_count() == 1

    def test_not_configured(self):
        """Test growth with an empty library raises NotConfiguredError."""
        space = FragmentSpace(BuildingBlockLibrary())
        growth = GrowthOperator(space, make_config(), Randomizer(seed=1))
        graph = Graph()
        root = Vertex(1, ["A:0"])
        graph.add_vertex(root)
        with pytest.raises(NotConfiguredError):
            growth.extend_graph(root, force=True)

    def test_vertex_outside_graph(self, growth):
        """Test growth needs a vertex owned by a graph."""
        with pytest.raises(StructuralInconsistency):
            growth.extend_graph(Vertex(1, ["A:0"]))

    def test_max_level(self, space):
        """Test the level limit stops unforced growth only."""
        growth = GrowthOperator(space, make_config(max_level=0), Randomizer(seed=1))
        graph, scaffold = start_graph(space, 1)
        frag = attach(space, graph, scaffold, 2, 0)
        assert frag.level == 0
        assert growth.extend_graph(frag) is False
        assert growth.extend_graph(frag, force=True) is True

    def test_without_registry(self):
        """Test uniform selection when the space is not class-based."""
        library = BuildingBlockLibrary(
            scaffolds=[Vertex(0, [None, None])],
            fragments=[Vertex(0, [None, None]), Vertex(1, [None])],
            counter=IdentityCounter(),
        )
        space = FragmentSpace(library)
        growth = GrowthOperator(space, make_config(enforce_symmetry=False), Randomizer(seed=9))
        graph, scaffold = start_graph(space)
        assert growth.extend_graph(scaffold, force=True)
        assert graph.vertex_count() == 3
        graph.check_consistency()


class TestBuildAndCap:
    """Tests for build_graph, cap_graph and forbidden ends."""

    def test_build_graph(self, space, growth):
        """Test a built graph is consistent, bounded and fully capped."""
        graph = growth.build_graph()
        graph.check_consistency()
        assert graph.free_aps() == []
        assert graph.vertex_at_position(0).bb_type is BBType.SCAFFOLD
        non_caps = [v for v in graph.vertices if v.bb_type is not BBType.CAP]
        assert max(v.level for v in non_caps) <= 2

    def test_bijection_after_growth(self, space, growth):
        """Test every used AP is referenced by exactly one edge."""
        graph = growth.build_graph()
        used = [ap for v in graph.vertices for ap in v.aps if not ap.is_available()]
        ends = [ap for e in graph.edges for ap in (e.src_ap, e.trg_ap)]
        assert len(used) == len(ends)
        assert all(sum(1 for x in ends if x is ap) == 1 for ap in used)

    def test_cap_graph_counts(self, space, growth):
        """Test capping saturates every cappable free AP."""
        graph, scaffold = start_graph(space, 1)
        assert growth.cap_graph(graph) == 3
        assert all(c.bb_type is BBType.CAP for c in graph.get_children(scaffold))

    def test_missing_capping_group(self):
        """Test a capping rule without capping group raises ConfigurationError."""
        registry = make_registry()
        library = BuildingBlockLibrary(
            scaffolds=[Vertex(0, ["A:0"])], registry=registry, counter=IdentityCounter(),
        )
        space = FragmentSpace(library, registry)
        growth = GrowthOperator(space, make_config(), Randomizer(seed=1))
        graph, _ = start_graph(space)
        with pytest.raises(ConfigurationError):
            growth.cap_graph(graph)

    def test_forbidden_ends(self):
        """Test free APs of forbidden classes are reported."""
        space = make_space(make_registry(capping={}, forbidden_ends=["A:0"]))
        growth = GrowthOperator(space, make_config(), Randomizer(seed=1))
        graph, _ = start_graph(space, 1)
        assert growth.has_forbidden_ends(graph)
        assert len(growth.free_aps_with_forbidden_ends(graph)) == 3


class TestClosableChainBias:
    """Tests for ring-closure biased fragment selection."""

    def ring_growth(self, space):
        config = make_config(
            rings=RingClosureParams(allow_ring_closures=True, select_fragments_from_closable_chains=True),
        )
        return GrowthOperator(space, config, Randomizer(seed=5))

    def test_scaffold_attached(self, space):
        """Test the next link of a chain turning at the scaffold is attached."""
        growth = self.ring_growth(space)
        graph, scaffold = start_graph(space, 0)
        graph.closable_chains = [ClosableChain.from_chain_id("0/1/ap1ap0_0/0/ap0ap1_0/1/ap0ap1_%1")]
        added = []
        outcome = growth.attach_fragment_in_closable_chain(scaffold, 1, graph, added)
        assert outcome is ChainBiasOutcome.ATTACHED
        assert len(added) == 1
        assert added[0].bb_id == 0
        assert added[0].edge_to_parent().src_ap is scaffold.get_ap(1)
        assert added[0].edge_to_parent().trg_ap.index == 0

    def test_ap_not_in_chain(self, space):
        """Test an AP outside every chain gives NO_CANDIDATE."""
        growth = self.ring_growth(space)
        graph, scaffold = start_graph(space, 0)
        graph.closable_chains = [ClosableChain.from_chain_id("0/1/ap1ap0_0/0/ap0ap1_0/1/ap0ap1_%1")]
        outcome = growth.attach_fragment_in_closable_chain(scaffold, 2, graph, [])
        assert outcome is ChainBiasOutcome.NO_CANDIDATE
        assert graph.vertex_count() == 1

    def test_chain_end_gives_no_fragment(self, space):
        """Test a chain ending on the AP gives NO_FRAGMENT and adds nothing."""
        growth = self.ring_growth(space)
        graph, scaffold = start_graph(space, 0)
        graph.closable_chains = [ClosableChain.from_chain_id("0/0/ap0ap1_0/1/ap0ap1_%0")]
        outcome = growth.attach_fragment_in_closable_chain(scaffold, 0, graph, [])
        assert outcome is ChainBiasOutcome.NO_FRAGMENT
        assert graph.vertex_count() == 1

    def test_no_fragment_falls_back(self, space):
        """Test an AP with NO_FRAGMENT is still filled by standard selection."""
        growth = self.ring_growth(space)
        graph, scaffold = start_graph(space, 0)
        graph.closable_chains = [ClosableChain.from_chain_id("0/0/ap0ap1_0/1/ap0ap1_%0")]
        assert growth.extend_graph(scaffold, force=True)
        assert scaffold.free_aps() == []

    def test_incompatible_chains_dropped(self, space):
        """Test chains disagreeing with the chosen block are discarded."""
        growth = self.ring_growth(space)
        graph, scaffold = start_graph(space, 0)
        graph.closable_chains = [
            ClosableChain.from_chain_id("0/1/ap1ap0_0/0/ap0ap1_0/1/ap0ap1_%1"),
            ClosableChain.from_chain_id("0/1/ap1ap0_0/0/ap0ap1_1/1/ap0ap1_%1"),
        ]
        added = []
        growth.attach_fragment_in_closable_chain(scaffold, 1, graph, added)
        assert len(graph.closable_chains) == 1
        assert added[0].bb_id == graph.closable_chains[0].link(2).bb_id

    def test_non_scaffold_follows_parent_link(self, space):
        """Test a chain is followed from a vertex grown along it."""
        growth = self.ring_growth(space)
        graph, scaffold = start_graph(space, 0)
        frag = attach(space, graph, scaffold, 1, 0)
        graph.closable_chains = [
            ClosableChain.from_chain_id("1/1/ap1ap0_0/0/ap0ap1_0/1/ap0ap1_1/1/ap0ap1_%1")
        ]
        candidates = growth.fragments_for_closable_chain(frag, 1, graph)
        assert len(candidates) == 1
        added = []
        outcome = growth.attach_fragment_in_closable_chain(frag, 1, graph, added)
        assert outcome is ChainBiasOutcome.ATTACHED
        assert added[0].bb_id == 1
        assert added[0].parent() is frag


class TestMutation:
    """Tests for MutationOperator."""

    def test_delete_two_vertex_graph_refused(self, space, mutation):
        """Test deleting the only non-root vertex fails and changes nothing."""
        graph, scaffold = start_graph(space, 1)
        frag = attach(space, graph, scaffold, 0, 0)
        assert mutation.perform_mutation(frag, MutationType.DELETE) is False
        assert graph.vertex_count() == 2
        assert graph.edge_count() == 1
        assert graph.contains_vertex(frag)

    def test_delete_removes_partners(self, space, growth, mutation):
        """Test deletion removes symmetric partners too."""
        graph, scaffold = start_graph(space, 1)
        growth.extend_graph(scaffold, force=True, chosen_bb_id=0, chosen_ap_id=0)
        assert graph.vertex_count() == 4
        victim = graph.vertex_with_id(graph.symmetric_sets[0].first())
        assert mutation.perform_mutation(victim, MutationType.DELETE)
        assert graph.vertex_count() == 2
        assert graph.symmetric_sets == []
        assert scaffold.get_ap(0).is_available()
        assert scaffold.get_ap(1).is_available()
        graph.check_consistency()

    def test_extend_strips_capping(self, space, growth, mutation):
        """Test EXTEND replaces capping groups with growth."""
        graph, scaffold = start_graph(space, 1)
        frag = attach(space, graph, scaffold, 0, 0)
        growth.cap_graph(graph)
        assert graph.get_children(frag)[0].bb_type is BBType.CAP
        assert mutation.perform_mutation(frag, MutationType.EXTEND, force=True)
        kids = graph.get_children(frag)
        assert len(kids) == 1
        assert kids[0].bb_type is BBType.FRAGMENT
        graph.check_consistency()

    def test_substitute_regrows_from_parent(self, space, mutation):
        """Test CHANGEBRANCH deletes the branch and grows on the parent."""
        graph, scaffold = start_graph(space, 1)
        frag = attach(space, graph, scaffold, 2, 0)
        assert mutation.perform_mutation(
            frag, MutationType.CHANGEBRANCH, force=True, chosen_bb_id=1, chosen_ap_id=0,
        )
        assert not graph.contains_vertex(frag)
        new_child = scaffold.get_ap(2).linked_ap().owner
        assert new_child.bb_id == 1
        graph.check_consistency()

    def test_substitute_root_fails(self, space, mutation):
        """Test substitution of a vertex without parent is an inconsistency."""
        graph, scaffold = start_graph(space, 1)
        with pytest.raises(StructuralInconsistency):
            mutation.substitute_fragment(scaffold)

    def test_disallowed_type(self, space, mutation):
        """Test a scaffold cannot be deleted."""
        graph, scaffold = start_graph(space, 1)
        attach(space, graph, scaffold, 0, 0)
        assert mutation.perform_mutation(scaffold, MutationType.DELETE) is False
        assert graph.vertex_count() == 2

    def test_vertex_without_graph(self, mutation):
        """Test a detached vertex is not mutated."""
        assert mutation.perform_mutation(Vertex(1, ["A:0"], bb_type=BBType.FRAGMENT),
                                         MutationType.EXTEND) is False

    def test_no_mutable_site(self, space, mutation):
        """Test random mutation with every type ignored."""
        graph, _ = start_graph(space, 1)
        assert mutation.perform_random_mutation(graph, ignored=list(MutationType)) is False

    def test_random_mutations_keep_consistency(self, space, growth, mutation):
        """Test repeated random mutations leave a valid tree."""
        graph = growth.build_graph()
        for _ in range(15):
            mutation.perform_random_mutation(graph)
            graph.check_consistency()
            assert graph.vertex_count() >= 1

    def test_outcome_logged(self, space, mutation, caplog):
        """Test mutation outcomes are logged at INFO."""
        caplog.set_level(logging.INFO, logger="fraggraph.operators.mutation")
        graph, scaffold = start_graph(space, 1)
        frag = attach(space, graph, scaffold, 0, 0)
        mutation.perform_mutation(frag, MutationType.DELETE)
        assert "Mutation 'delete'" in caplog.text
        assert "unsuccessful" in caplog.text


class TestCrossover:
    """Tests for crossover."""

    def parents(self, space, male_frag=0, female_frag=1):
        male, m_root = start_graph(space, 1)
        m_v = attach(space, male, m_root, 2, male_frag)
        female, f_root = start_graph(space, 1)
        f_v = attach(space, female, f_root, 2, female_frag)
        return male, m_v, female, f_v

    def test_locate_points(self, space, crossover):
        """Test a compatible pair of different blocks is found."""
        male, m_v, female, f_v = self.parents(space)
        assert crossover.locate_compatible_xover_points(male, female) == [(m_v, f_v)]

    def test_same_block_excluded(self, space, crossover):
        """Test pairs of the same building block are skipped."""
        male, _, female, _ = self.parents(space, 0, 0)
        assert crossover.locate_compatible_xover_points(male, female) == []

    def test_caps_excluded(self, space, growth, crossover):
        """Test capping groups are never crossover points."""
        male, _ = start_graph(space, 1)
        female, _ = start_graph(space, 1)
        growth.cap_graph(male)
        growth.cap_graph(female)
        assert crossover.locate_compatible_xover_points(male, female) == []

    def test_swap_branches(self, space, crossover):
        """Test both graphs receive the branch of the other."""
        male, m_v, female, f_v = self.parents(space)
        m_root, f_root = male.vertex_at_position(0), female.vertex_at_position(0)
        assert crossover.perform_crossover(male, m_v, female, f_v)
        assert m_root.get_ap(2).linked_ap().owner.bb_id == 1
        assert f_root.get_ap(2).linked_ap().owner.bb_id == 0
        for graph in (male, female):
            graph.check_consistency()
            assert len(set(graph.vertex_ids())) == graph.vertex_count()

    def test_two_way_exchange(self, space):
        """Test swapping the roles of the parents gives the same offspring."""
        male, m_v, female, f_v = self.parents(space)
        male_c, female_c = male.clone(), female.clone()
        m_v_c = male_c.vertex_with_id(m_v.vertex_id)
        f_v_c = female_c.vertex_with_id(f_v.vertex_id)
        counter = space.library.counter

        perform_crossover(male, m_v, female, f_v, counter=counter)
        perform_crossover(female_c, f_v_c, male_c, m_v_c, counter=counter)
        assert signature(male) == signature(male_c)
        assert signature(female) == signature(female_c)

    def test_symmetric_sites(self, space, crossover):
        """Test the incoming branch replaces every symmetric partner."""
        male, m_root = start_graph(space, 1)
        pair = [attach(space, male, m_root, ap, 0) for ap in (0, 1)]
        male.add_symmetric_set(SymmetricSet(v.vertex_id for v in pair))
        female, f_root = start_graph(space, 1)
        f_v = attach(space, female, f_root, 2, 1)

        assert crossover.perform_crossover(male, pair[0], female, f_v)
        kids = male.get_children(m_root)
        assert len(kids) == 2
        assert all(k.bb_id == 1 for k in kids)
        assert len(male.symmetric_sets) == 1
        assert set(male.symmetric_sets[0]) == {k.vertex_id for k in kids}
        assert [k.bb_id for k in female.get_children(f_root)] == [0]
        male.check_consistency()
        female.check_consistency()

    def test_random_crossover(self, space, crossover):
        """Test random crossover with and without candidate pairs."""
        male, _, female, _ = self.parents(space, 0, 0)
        assert crossover.perform_random_crossover(male, female) is False
        male, _, female, _ = self.parents(space)
        assert crossover.perform_random_crossover(male, female) is True


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
