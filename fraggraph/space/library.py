"""
Building-block library.

Three pools of vertex templates (scaffolds, fragments, capping groups)
addressed by (BBType, index). Templates are never handed out: get_block()
returns a clone with a fresh vertex id.

Indices built once at construction:
- fragments per number of APs
- fragment APs per AP class
- capping groups per AP class
"""

from __future__ import annotations
import logging
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from fraggraph.core.enums import BBType
from fraggraph.core.identity import VERTEX_COUNTER, IdentityCounter
from fraggraph.core.vertex import Vertex
from fraggraph.exceptions import ConfigurationError, NotConfiguredError
from fraggraph.space.compatibility import CompatibilityRegistry


logger = logging.getLogger(__name__)


class APRef(NamedTuple):
    """Address of one AP of one library block."""
    bb_type: BBType
    bb_id: int
    ap_index: int


class BuildingBlockLibrary:
    """
    Read-only pools of building blocks.

    Example:
        library = BuildingBlockLibrary(
            scaffolds=[Vertex(0, ["A:0", "A:0"], symmetric_aps=[[0, 1]])],
            fragments=[Vertex(0, ["A:0", "B:0"])],
            cappings=[Vertex(0, ["cap:0"])],
            registry=registry,
        )
        v = library.get_block(BBType.FRAGMENT, 0)   # fresh clone
    """

    def __init__(
        self,
        scaffolds: Optional[Sequence[Vertex]] = None,
        fragments: Optional[Sequence[Vertex]] = None,
        cappings: Optional[Sequence[Vertex]] = None,
        registry: Optional[CompatibilityRegistry] = None,
        counter: Optional[IdentityCounter] = None,
    ):
        self._configured = not (scaffolds is None and fragments is None and cappings is None)
        self._pools: Dict[BBType, Tuple[Vertex, ...]] = {
            BBType.SCAFFOLD: tuple(scaffolds or ()),
            BBType.FRAGMENT: tuple(fragments or ()),
            BBType.CAP: tuple(cappings or ()),
        }
        self.registry = registry
        self.counter = counter or VERTEX_COUNTER

        for bb_type, pool in self._pools.items():
            for i, block in enumerate(pool):
                block.bb_type = bb_type
                block.bb_id = i
                if bb_type is BBType.CAP and len(block.aps) != 1:
                    raise ConfigurationError(
                        f"Capping group {i} must have exactly one AP, found {len(block.aps)}"
                    )

        self._frags_per_ap_count: Dict[int, List[int]] = {}
        self._aps_per_class: Dict[Optional[str], List[APRef]] = {}
        self._classes_per_frag: Dict[int, List[Optional[str]]] = {}
        for i, block in enumerate(self._pools[BBType.FRAGMENT]):
            self._frags_per_ap_count.setdefault(len(block.aps), []).append(i)
            classes: List[Optional[str]] = []
            for ap in block.aps:
                self._aps_per_class.setdefault(ap.ap_class, []).append(
                    APRef(BBType.FRAGMENT, i, ap.index)
                )
                if ap.ap_class not in classes:
                    classes.append(ap.ap_class)
            self._classes_per_frag[i] = classes

        self._caps_per_class: Dict[Optional[str], List[int]] = {}
        for i, block in enumerate(self._pools[BBType.CAP]):
            self._caps_per_class.setdefault(block.aps[0].ap_class, []).append(i)

        logger.debug(
            f"Library: {self.pool_size(BBType.SCAFFOLD)} scaffolds, "
            f"{self.pool_size(BBType.FRAGMENT)} fragments, "
            f"{self.pool_size(BBType.CAP)} capping groups"
        )

    # ===== Retrieval =====

    @property
    def is_configured(self) -> bool:
        return self._configured

    def pool(self, bb_type: BBType) -> Tuple[Vertex, ...]:
        if not self._configured:
            raise NotConfiguredError("Building-block library has not been defined")
        if bb_type not in self._pools:
            raise ConfigurationError(f"No pool for building-block type {bb_type}")
        return self._pools[bb_type]

    def pool_size(self, bb_type: BBType) -> int:
        return len(self._pools.get(bb_type, ()))

    def template(self, bb_type: BBType, index: int) -> Vertex:
        """Library template itself (read-only use)."""
        pool = self.pool(bb_type)
        if index < 0 or index >= len(pool):
            raise IndexError(
                f"Index {index} out of range for {bb_type.name} pool of size {len(pool)}"
            )
        return pool[index]

    def get_block(self, bb_type: BBType, index: int) -> Vertex:
        """
        Clone of a library block with a fresh vertex id.

        Raises:
            NotConfiguredError: if the library was built without pools
            IndexError: if `index` is out of range for the pool
        """
        block = self.template(bb_type, index).clone()
        block.vertex_id = self.counter.next_id()
        block.bb_type = bb_type
        block.bb_id = index
        return block

    def ap_class_of(self, ref: APRef) -> Optional[str]:
        return self.template(ref.bb_type, ref.bb_id).get_ap(ref.ap_index).ap_class

    def ap_classes_of_block(self, bb_id: int) -> List[Optional[str]]:
        """Distinct AP classes of a fragment, in AP order."""
        self.template(BBType.FRAGMENT, bb_id)
        return list(self._classes_per_frag[bb_id])

    # ===== Classification =====

    def blocks_with_port_count(self, n: int) -> List[int]:
        """Fragments having exactly `n` APs."""
        return list(self._frags_per_ap_count.get(n, ()))

    def blocks_with_port_class(self, ap_class: Optional[str]) -> List[APRef]:
        """Fragment APs of class `ap_class`."""
        return list(self._aps_per_class.get(ap_class, ()))

    def ports_compatible_with(self, ap_class: Optional[str]) -> List[APRef]:
        """Fragment APs that an AP of class `ap_class` may bind to."""
        if self.registry is None:
            raise ConfigurationError("AP compatibility requested but no registry is defined")
        refs: List[APRef] = []
        for trg_class in self.registry.compatible_classes(ap_class):
            refs.extend(self.blocks_with_port_class(trg_class))
        return refs

    def blocks_compatible_with_all_of(self, ports: Iterable[APRef]) -> List[int]:
        """
        Fragments offering an AP compatible with every AP in `ports`.

        The compatible APs of each input AP are intersected, then reduced
        to distinct fragment ids.
        """
        common: Optional[List[APRef]] = None
        for ref in ports:
            candidates = self.ports_compatible_with(self.ap_class_of(ref))
            if common is None:
                common = candidates
            else:
                keep = set(candidates)
                common = [c for c in common if c in keep]
        result: List[int] = []
        for ref in common or ():
            if ref.bb_id not in result:
                result.append(ref.bb_id)
        return result

    def capping_blocks_with_class(self, ap_class: Optional[str]) -> List[int]:
        return list(self._caps_per_class.get(ap_class, ()))

    def __repr__(self) -> str:
        return (
            f"BuildingBlockLibrary(scaffolds={self.pool_size(BBType.SCAFFOLD)}, "
            f"fragments={self.pool_size(BBType.FRAGMENT)}, "
            f"cappings={self.pool_size(BBType.CAP)})"
        )
