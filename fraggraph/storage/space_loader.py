"""
Loader for fragment-space definitions.

A definition is one JSON document (optionally gzipped):

    {
      "registry": {
        "compatibility": {"A:0": ["B:0"], "B:0": ["A:0"]},
        "bond_orders": {"A": 1, "B": 1},
        "capping": {"B:0": "cap:0"},
        "forbidden_ends": [],
        "symmetry_constraints": {"A:0": 1.0}
      },
      "scaffolds": [{"aps": ["A:0", "A:0"], "symmetric_aps": [[0, 1]]}],
      "fragments": [{"aps": ["B:0", {"class": "A:0", "multi_bond": true}]}],
      "cappings":  [{"aps": ["cap:0"]}]
    }

Blocks may also carry "kind" ("fragment", "empty", "template"),
"properties" and, for templates, an "inner_graph".
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from fraggraph.core.enums import BBType, VertexKind
from fraggraph.core.identity import IdentityCounter
from fraggraph.core.graph import Graph
from fraggraph.core.vertex import Vertex
from fraggraph.exceptions import ConfigurationError
from fraggraph.space.compatibility import CompatibilityRegistry
from fraggraph.space.fragment_space import FragmentSpace
from fraggraph.space.library import BuildingBlockLibrary
from fraggraph.storage.json_storage import read_json


logger = logging.getLogger(__name__)

_POOLS = (
    ("scaffolds", BBType.SCAFFOLD),
    ("fragments", BBType.FRAGMENT),
    ("cappings", BBType.CAP),
)


def block_from_dict(data: Mapping[str, Any], bb_type: BBType, bb_id: int) -> Vertex:
    """Build one library template from its definition."""
    if "aps" not in data:
        raise ConfigurationError(f"{bb_type.name} block {bb_id} has no 'aps' list")
    classes: List[Optional[str]] = []
    multi_bond: List[bool] = []
    for ap in data["aps"]:
        if isinstance(ap, Mapping):
            classes.append(ap.get("class"))
            multi_bond.append(bool(ap.get("multi_bond", False)))
        else:
            classes.append(ap)
            multi_bond.append(False)
    try:
        kind = VertexKind(data.get("kind", VertexKind.FRAGMENT.value))
    except ValueError:
        raise ConfigurationError(f"Unknown vertex kind '{data.get('kind')}' in {bb_type.name} block {bb_id}")
    payload = None
    if kind is VertexKind.TEMPLATE:
        if "inner_graph" not in data:
            raise ConfigurationError(f"Template block {bb_id} lacks 'inner_graph'")
        payload = Graph.from_dict(data["inner_graph"])
    return Vertex(
        vertex_id=bb_id,
        ap_classes=classes,
        bb_type=bb_type,
        bb_id=bb_id,
        kind=kind,
        symmetric_aps=data.get("symmetric_aps", []),
        multi_bond=multi_bond,
        payload=payload,
        properties=data.get("properties"),
    )


def build_fragment_space(
    definition: Mapping[str, Any],
    counter: Optional[IdentityCounter] = None,
    symmetry_probability: float = 0.0,
) -> FragmentSpace:
    """
    Turn a parsed space definition into a FragmentSpace.

    Raises:
        ConfigurationError: on malformed input, including AP classes used
            by blocks but unknown to a class-based registry
    """
    known = {"registry"} | {name for name, _ in _POOLS}
    unknown = set(definition) - known
    if unknown:
        raise ConfigurationError(f"Unknown sections in space definition: {sorted(unknown)}")

    registry = None
    if definition.get("registry") is not None:
        registry = CompatibilityRegistry.from_dict(definition["registry"])

    pools: Dict[BBType, List[Vertex]] = {}
    for name, bb_type in _POOLS:
        pools[bb_type] = [
            block_from_dict(block, bb_type, i) for i, block in enumerate(definition.get(name, []))
        ]

    if registry is not None and not registry.is_empty():
        defined = set(registry.all_classes())
        for bb_type, blocks in pools.items():
            for block in blocks:
                for ap in block.aps:
                    if ap.ap_class is not None and ap.ap_class not in defined:
                        raise ConfigurationError(
                            f"AP class '{ap.ap_class}' of {bb_type.name} block {block.bb_id} "
                            f"is not defined in the compatibility rules"
                        )

    library = BuildingBlockLibrary(
        scaffolds=pools[BBType.SCAFFOLD],
        fragments=pools[BBType.FRAGMENT],
        cappings=pools[BBType.CAP],
        registry=registry,
        counter=counter,
    )
    logger.info(f"Loaded fragment space: {library}")
    return FragmentSpace(library, registry, symmetry_probability=symmetry_probability)


def load_fragment_space(
    path: Union[str, Path],
    counter: Optional[IdentityCounter] = None,
    symmetry_probability: float = 0.0,
) -> FragmentSpace:
    """Read a space definition file (duplicate keys rejected) and build the space."""
    definition = read_json(path, strict=True)
    if not isinstance(definition, Mapping):
        raise ConfigurationError(f"Space definition {path} is not a JSON object")
    return build_fragment_space(definition, counter=counter, symmetry_probability=symmetry_probability)
