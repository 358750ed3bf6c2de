"""
Shared fixtures: a small class-based fragment space.

Scaffolds:
    0: three A:0 APs, all symmetric
    1: three A:0 APs, APs 0 and 1 symmetric
Fragments:
    0: B:0, A:0              (linear)
    1: B:0, A:0, A:0         (APs 1 and 2 symmetric)
Capping groups:
    0: cap:0
A:0 binds B:0 and vice versa; every free A:0 or B:0 gets capped.
"""

import pytest

from fraggraph.config import GrowthParams, GrowthProbabilityScheme, SpaceConfig, SymmetryParams
from fraggraph.core import BBType, Graph, IdentityCounter, Randomizer, Vertex
from fraggraph.operators import CrossoverOperator, GrowthOperator, MutationOperator
from fraggraph.space import BuildingBlockLibrary, CompatibilityRegistry, FragmentSpace


def make_registry(**overrides):
    rules = dict(
        compatibility={"A:0": ["B:0"], "B:0": ["A:0"]},
        bond_orders={"A": 1, "B": 1},
        capping={"A:0": "cap:0", "B:0": "cap:0"},
        forbidden_ends=[],
    )
    rules.update(overrides)
    return CompatibilityRegistry(**rules)


def make_space(registry=None, counter=None):
    registry = registry or make_registry()
    library = BuildingBlockLibrary(
        scaffolds=[
            Vertex(0, ["A:0", "A:0", "A:0"], symmetric_aps=[[0, 1, 2]]),
            Vertex(1, ["A:0", "A:0", "A:0"], symmetric_aps=[[0, 1]]),
        ],
        fragments=[
            Vertex(0, ["B:0", "A:0"]),
            Vertex(1, ["B:0", "A:0", "A:0"], symmetric_aps=[[1, 2]]),
        ],
        cappings=[Vertex(0, ["cap:0"])],
        registry=registry,
        counter=counter or IdentityCounter(),
    )
    return FragmentSpace(library, registry)


def make_config(enforce_symmetry=True, max_level=2, **kwargs):
    return SpaceConfig(
        random_seed=0,
        growth=GrowthParams(scheme=GrowthProbabilityScheme.UNRESTRICTED, max_level=max_level),
        symmetry=SymmetryParams(enforce_symmetry=enforce_symmetry),
        **kwargs,
    )


def start_graph(space, scaffold_id=0):
    """Graph holding one scaffold at level -1."""
    graph = Graph()
    scaffold = space.library.get_block(BBType.SCAFFOLD, scaffold_id)
    scaffold.level = -1
    graph.add_vertex(scaffold)
    return graph, scaffold


@pytest.fixture
def registry():
    return make_registry()


@pytest.fixture
def space():
    return make_space()


@pytest.fixture
def randomizer():
    return Randomizer(seed=12345)


@pytest.fixture
def growth(space, randomizer):
    return GrowthOperator(space, make_config(), randomizer)


@pytest.fixture
def mutation(space, growth, randomizer):
    return MutationOperator(space, growth, randomizer)


@pytest.fixture
def crossover(space, randomizer):
    return CrossoverOperator(space, randomizer)
