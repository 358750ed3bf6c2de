"""
fraggraph - growth and evolution of building-block graphs.

Main entry point: builds graphs from a fragment-space definition,
optionally mutates and crosses them, and saves the results as JSON.
"""

from __future__ import annotations
import argparse
import logging
from pathlib import Path
from typing import List, Optional

from fraggraph.config import SpaceConfig, standard_config
from fraggraph.core.graph import Graph
from fraggraph.core.randomizer import Randomizer
from fraggraph.exceptions import FragGraphError
from fraggraph.operators import CrossoverOperator, GrowthOperator, MutationOperator
from fraggraph.rings.archive import RingClosuresArchive
from fraggraph.space.fragment_space import FragmentSpace
from fraggraph.storage import JSONStorage, load_fragment_space


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def open_archive(config: SpaceConfig) -> Optional[RingClosuresArchive]:
    """Ring-closures archive described by the configuration, if enabled."""
    rings = config.rings
    if not rings.allow_ring_closures or rings.index_file is None:
        return None
    return RingClosuresArchive(
        rings.index_file,
        rings.blob_folder,
        serialize_blobs=rings.serialize_blobs,
        max_lock_attempts=rings.max_lock_attempts,
        lock_retry_delay=rings.lock_retry_delay,
    )


def run_generation(
    space: FragmentSpace,
    config: SpaceConfig,
    num_graphs: int = 10,
    num_mutations: int = 0,
    crossover: bool = False,
) -> List[Graph]:
    """
    Build a population of graphs and apply genetic operators to it.

    Args:
        space: Fragment space to build from
        config: Growth, symmetry, ring and mutation settings
        num_graphs: Population size
        num_mutations: Random mutations applied to each graph
        crossover: Cross consecutive pairs of graphs

    Returns:
        The resulting graphs
    """
    randomizer = Randomizer(config.random_seed)
    growth = GrowthOperator(space, config, randomizer)
    mutation = MutationOperator(space, growth, randomizer)
    xover = CrossoverOperator(space, randomizer)
    archive = open_archive(config)

    logger.info(f"Building {num_graphs} graphs")
    graphs = [growth.build_graph(archive=archive) for _ in range(num_graphs)]

    if crossover:
        for male, female in zip(graphs[0::2], graphs[1::2]):
            if xover.perform_random_crossover(male, female):
                growth.cap_graph(male)
                growth.cap_graph(female)

    # Failed mutations may still have stripped capping groups
    for graph in graphs:
        for _ in range(num_mutations):
            mutation.perform_random_mutation(graph)
            growth.cap_graph(graph)

    for graph in graphs:
        graph.check_consistency()
        if growth.has_forbidden_ends(graph):
            logger.warning(f"Graph {graph.graph_id} has free APs of forbidden classes")
        logger.info(f"Graph {graph.graph_id}: {graph.summary()}")
    return graphs


def main():
    """Command-line interface for growing graphs."""
    parser = argparse.ArgumentParser(description="Grow building-block graphs")

    parser.add_argument('--space', type=str, required=True,
                       help='Fragment-space definition (JSON, optionally gzipped)')
    parser.add_argument('--config', type=str, default=None,
                       help='Configuration file (default: standard preset)')
    parser.add_argument('--num-graphs', type=int, default=10,
                       help='Number of graphs to build (default: 10)')
    parser.add_argument('--mutations', type=int, default=0,
                       help='Random mutations per graph (default: 0)')
    parser.add_argument('--crossover', action='store_true',
                       help='Cross consecutive pairs of graphs')
    parser.add_argument('--seed', type=int, default=None,
                       help='Random seed (overrides the configuration)')
    parser.add_argument('--output', type=str, default='./graphs',
                       help='Output directory (default: ./graphs)')
    parser.add_argument('--compress', action='store_true',
                       help='Write gzipped JSON')

    args = parser.parse_args()

    config = SpaceConfig.load(args.config) if args.config else standard_config()
    if args.seed is not None:
        config.random_seed = args.seed
    for issue in config.validate():
        logger.warning(f"Configuration: {issue}")

    try:
        space = load_fragment_space(
            args.space, symmetry_probability=config.symmetry.symmetry_probability
        )
        graphs = run_generation(
            space, config,
            num_graphs=args.num_graphs,
            num_mutations=args.mutations,
            crossover=args.crossover,
        )
    except FragGraphError as e:
        logger.error(f"Generation failed: {e}")
        raise SystemExit(1)

    storage = JSONStorage(Path(args.output))
    for graph in graphs:
        path = storage.save(graph.to_dict(), f"graph_{graph.graph_id}", compress=args.compress)
        logger.info(f"Saved {path}")

    logger.info("Done!")


if __name__ == "__main__":
    main()
