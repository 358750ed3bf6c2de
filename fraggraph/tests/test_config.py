"""
Tests for config module.
"""

from pathlib import Path

from fraggraph.config import (
    GrowthParams, GrowthProbabilityScheme, MutationParams, RingClosureParams,
    SpaceConfig, SymmetryParams, minimal_config, standard_config,
)
from fraggraph.core import MutationType


class TestSpaceConfig:
    """Tests for SpaceConfig."""

    def test_defaults_are_valid(self):
        """Test the default configuration has no issues."""
        assert SpaceConfig().validate() == []

    def test_save_load(self, tmp_path):
        """Test enums, paths and nested parameters survive a round trip."""
        config = SpaceConfig(
            random_seed=11,
            growth=GrowthParams(scheme=GrowthProbabilityScheme.SIGMA, sigma_middle=4.0, max_level=5),
            symmetry=SymmetryParams(symmetry_probability=0.25),
            rings=RingClosureParams(
                allow_ring_closures=True,
                index_file=tmp_path / "rcc" / "index.txt",
                lock_retry_delay=0.5,
            ),
            mutation=MutationParams(excluded_types=[MutationType.DELETE], regrow_recursively=True),
        )
        path = tmp_path / "nested" / "config.json"
        config.save(path)
        loaded = SpaceConfig.load(path)

        assert loaded == config
        assert loaded.growth.scheme is GrowthProbabilityScheme.SIGMA
        assert isinstance(loaded.rings.index_file, Path)
        assert loaded.rings.blob_folder is None
        assert loaded.mutation.excluded_types == [MutationType.DELETE]

    def test_partial_file(self, tmp_path):
        """Test missing sections fall back to defaults."""
        path = tmp_path / "config.json"
        path.write_text('{"random_seed": 3, "symmetry": {"enforce_symmetry": true}}')
        loaded = SpaceConfig.load(path)
        assert loaded.random_seed == 3
        assert loaded.symmetry.enforce_symmetry
        assert loaded.growth == GrowthParams()

    def test_validate_issues(self):
        """Test each invalid setting is reported."""
        config = SpaceConfig(
            growth=GrowthParams(lambda_=-1.0, max_level=-2),
            symmetry=SymmetryParams(symmetry_probability=1.5),
            rings=RingClosureParams(select_fragments_from_closable_chains=True, max_lock_attempts=0),
            mutation=MutationParams(excluded_types=list(MutationType)),
        )
        issues = config.validate()
        assert len(issues) == 6
        assert any("symmetry_probability" in i for i in issues)
        assert any("allow_ring_closures" in i for i in issues)

    def test_ring_closures_need_index(self):
        """Test ring closures without an archive file are reported."""
        config = SpaceConfig(rings=RingClosureParams(allow_ring_closures=True))
        assert config.validate() == ["ring closures need an archive index_file"]

    def test_presets(self):
        """Test preset configurations are valid."""
        minimal = minimal_config()
        assert minimal.growth.scheme is GrowthProbabilityScheme.UNRESTRICTED
        assert minimal.symmetry.enforce_symmetry
        assert minimal.validate() == []
        standard = standard_config()
        assert standard.random_seed == 42
        assert standard.validate() == []
