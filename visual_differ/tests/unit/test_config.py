"""Unit tests for configuration."""

import pydantic
import pytest
from visual_differ.domain.value_objects.config import (
    AlignmentMethod,
    ColorMetric,
    ComparisonConfig,
    RefinementConfig,
)
from visual_differ.domain.entities.classification import DifferenceType


class TestComparisonConfig:
    """Tests for ComparisonConfig."""
    
    def test_default_values(self):
        config = ComparisonConfig()
        assert config.align is True
        assert config.alignment_method == AlignmentMethod.AUTO
        assert config.color_metric == ColorMetric.EUCLIDEAN
        assert config.color_threshold == 0.1
        assert config.equality_threshold == 0.1
        assert config.merge_distance == 5.0
        assert config.connectivity == 8
        assert config.min_classifier_confidence == 0.5
    
    def test_custom_values(self):
        config = ComparisonConfig(
            alignment_method="phase",
            color_metric="yiq",
            connectivity=4,
        )
        assert config.alignment_method == AlignmentMethod.PHASE
        assert config.color_metric == ColorMetric.YIQ
        assert config.connectivity == 4
    
    def test_frozen(self):
        config = ComparisonConfig()
        with pytest.raises(pydantic.ValidationError):
            config.color_threshold = 0.5
    
    def test_validation_threshold_range(self):
        with pytest.raises(pydantic.ValidationError):
            ComparisonConfig(color_threshold=1.5)
        with pytest.raises(pydantic.ValidationError):
            ComparisonConfig(equality_threshold=-1)
    
    def test_validation_connectivity(self):
        with pytest.raises(pydantic.ValidationError):
            ComparisonConfig(connectivity=6)
    
    def test_validation_highlight_color(self):
        assert ComparisonConfig(highlight_color="#00ff00").highlight_color == "#00ff00"
        assert ComparisonConfig(highlight_color=(0, 0, 255)).highlight_color == (0, 0, 255)
        with pytest.raises(pydantic.ValidationError):
            ComparisonConfig(highlight_color="not-a-color")

    def test_validation_excluded_color(self):
        assert ComparisonConfig().excluded_color is None
        assert ComparisonConfig(excluded_color="gray").excluded_color == "gray"
        with pytest.raises(pydantic.ValidationError):
            ComparisonConfig(excluded_color=(0, 300, 0))
        with pytest.raises(pydantic.ValidationError):
            ComparisonConfig(feather_radius=-1)

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("VISUAL_DIFFER_COLOR_THRESHOLD", "0.25")
        config = ComparisonConfig.from_env(equality_threshold=1.0)
        assert config.color_threshold == 0.25
        assert config.equality_threshold == 1.0
    
    def test_from_env_kwargs_win(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("VISUAL_DIFFER_COLOR_THRESHOLD", "0.25")
        assert ComparisonConfig.from_env(color_threshold=0.05).color_threshold == 0.05


class TestRefinementConfig:
    """Tests for RefinementConfig."""
    
    def test_default_values(self):
        config = RefinementConfig()
        assert config.max_iterations == 10
        assert config.target_difference_threshold == 0.5
        assert config.min_improvement == 0.1
        assert config.confidence_threshold == 0.7
        assert config.exclude_types == frozenset()
        assert config.cluster_min_regions == 3
        assert config.cluster_distance == 50.0
    
    def test_exclude_types_from_strings(self):
        config = RefinementConfig(exclude_types=["content", "style"])
        assert config.exclude_types == {DifferenceType.CONTENT, DifferenceType.STYLE}
    
    def test_unknown_cannot_be_excluded(self):
        with pytest.raises(pydantic.ValidationError):
            RefinementConfig(exclude_types=["unknown"])
    
    def test_validation_max_iterations(self):
        with pytest.raises(pydantic.ValidationError):
            RefinementConfig(max_iterations=0)
