"""
Configuration module for fraggraph.

Contains all tunable parameters of graph growth, symmetry, ring-closure
bias and mutation.
"""

from dataclasses import dataclass, field
from typing import List, Optional
from enum import Enum
import json
from pathlib import Path

from fraggraph.core.enums import MutationType


class GrowthProbabilityScheme(Enum):
    """Shape of the probability of growing further as a function of depth."""
    EXP_DIFF = "exp_diff"           # Exponential difference
    TANH = "tanh"                   # Hyperbolic tangent
    SIGMA = "sigma"                 # Sigmoid centered on sigma_middle
    UNRESTRICTED = "unrestricted"   # Always grow


@dataclass
class GrowthParams:
    """Growth decay by level and by crowding of the APs on one vertex."""
    scheme: GrowthProbabilityScheme = GrowthProbabilityScheme.EXP_DIFF
    lambda_: float = 1.0            # Decay rate for EXP_DIFF/TANH
    sigma_steepness: float = 1.0    # Sigmoid steepness
    sigma_middle: float = 2.5       # Sigmoid midpoint (level)

    crowding_scheme: GrowthProbabilityScheme = GrowthProbabilityScheme.UNRESTRICTED
    crowding_lambda: float = 1.0
    crowding_sigma_steepness: float = 1.0
    crowding_sigma_middle: float = 2.5

    max_level: Optional[int] = None  # None = no hard depth limit


@dataclass
class SymmetryParams:
    """Symmetric growth policy for classes without a registry override."""
    symmetry_probability: float = 0.0  # Chance of mirroring a placement
    enforce_symmetry: bool = False     # Always mirror


@dataclass
class RingClosureParams:
    """Ring-closure bias and archive settings."""
    allow_ring_closures: bool = False
    select_fragments_from_closable_chains: bool = False
    index_file: Optional[Path] = None   # Archive index file
    blob_folder: Optional[Path] = None  # Folder of conformation blobs
    serialize_blobs: bool = True
    max_lock_attempts: int = 50
    lock_retry_delay: float = 0.1       # Seconds


@dataclass
class MutationParams:
    """Mutation operator settings."""
    excluded_types: List[MutationType] = field(default_factory=list)
    regrow_recursively: bool = False  # Substitution regrows more than one level


@dataclass
class SpaceConfig:
    """
    Main configuration container.

    Example:
        config = SpaceConfig(
            random_seed=7,
            symmetry=SymmetryParams(enforce_symmetry=True),
        )
        config.save("my_config.json")
    """
    random_seed: Optional[int] = None  # None = random seed

    # Sub-configurations
    growth: GrowthParams = field(default_factory=GrowthParams)
    symmetry: SymmetryParams = field(default_factory=SymmetryParams)
    rings: RingClosureParams = field(default_factory=RingClosureParams)
    mutation: MutationParams = field(default_factory=MutationParams)

    def save(self, path) -> None:
        """Save configuration to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = self._to_dict()
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    @classmethod
    def load(cls, path) -> "SpaceConfig":
        """Load configuration from JSON file."""
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls._from_dict(data)

    def _to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        def convert(obj):
            if isinstance(obj, Enum):
                return obj.value
            elif isinstance(obj, Path):
                return str(obj)
            elif hasattr(obj, '__dataclass_fields__'):
                return {k: convert(v) for k, v in obj.__dict__.items()}
            elif isinstance(obj, (list, tuple)):
                return [convert(x) for x in obj]
            return obj

        return convert(self)

    @classmethod
    def _from_dict(cls, data: dict) -> "SpaceConfig":
        """Reconstruct from dictionary."""
        data = dict(data)
        if 'growth' in data:
            growth = dict(data['growth'])
            for key in ('scheme', 'crowding_scheme'):
                if key in growth:
                    growth[key] = GrowthProbabilityScheme(growth[key])
            data['growth'] = GrowthParams(**growth)
        if 'symmetry' in data:
            data['symmetry'] = SymmetryParams(**data['symmetry'])
        if 'rings' in data:
            rings = dict(data['rings'])
            for key in ('index_file', 'blob_folder'):
                if rings.get(key) is not None:
                    rings[key] = Path(rings[key])
            data['rings'] = RingClosureParams(**rings)
        if 'mutation' in data:
            mutation = dict(data['mutation'])
            if 'excluded_types' in mutation:
                mutation['excluded_types'] = [MutationType(m) for m in mutation['excluded_types']]
            data['mutation'] = MutationParams(**mutation)
        return cls(**data)

    def validate(self) -> List[str]:
        """Validate configuration, return list of warnings/errors."""
        issues = []

        if self.growth.lambda_ < 0 or self.growth.crowding_lambda < 0:
            issues.append("growth lambda values must be non-negative")
        if self.growth.max_level is not None and self.growth.max_level < 0:
            issues.append("max_level must be non-negative")

        if not 0.0 <= self.symmetry.symmetry_probability <= 1.0:
            issues.append("symmetry_probability must be in [0, 1]")

        if self.rings.select_fragments_from_closable_chains and not self.rings.allow_ring_closures:
            issues.append("closable-chain selection requires allow_ring_closures")
        if self.rings.allow_ring_closures and self.rings.index_file is None:
            issues.append("ring closures need an archive index_file")
        if self.rings.max_lock_attempts < 1:
            issues.append("max_lock_attempts must be at least 1")
        if self.rings.lock_retry_delay < 0:
            issues.append("lock_retry_delay must be non-negative")

        if set(self.mutation.excluded_types) >= set(MutationType):
            issues.append("all mutation types are excluded")

        return issues


# Preset configurations
def minimal_config() -> SpaceConfig:
    """Minimal configuration for quick testing: unrestricted, forced symmetry."""
    return SpaceConfig(
        random_seed=0,
        growth=GrowthParams(scheme=GrowthProbabilityScheme.UNRESTRICTED, max_level=3),
        symmetry=SymmetryParams(enforce_symmetry=True),
    )


def standard_config() -> SpaceConfig:
    """Standard configuration for typical runs."""
    return SpaceConfig(
        random_seed=42,
        growth=GrowthParams(scheme=GrowthProbabilityScheme.EXP_DIFF, lambda_=1.0),
        symmetry=SymmetryParams(symmetry_probability=0.5),
    )
