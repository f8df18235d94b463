"""Tests for pixel statistics."""

import numpy as np
import pytest

from visual_differ.config import ColorMetric
from visual_differ.core.image_ops import (
    background_color,
    color_distance,
    edge_statistics,
    feather_weights,
    gray_histogram,
    histogram_intersection,
    hsl_statistics,
)


def _solid(color, shape=(10, 10)):
    data = np.zeros(shape + (4,), dtype=np.uint8)
    data[:, :, :3] = color
    data[:, :, 3] = 255
    return data


class TestColorDistance:
    """Test per-pixel distances."""
    
    @pytest.mark.parametrize("metric", list(ColorMetric))
    def test_range(self, metric):
        black = _solid((0, 0, 0))
        white = _solid((255, 255, 255))
        assert np.all(color_distance(black, black, metric) == 0.0)
        distance = color_distance(black, white, metric)
        assert np.all((distance > 0.5) & (distance <= 1.0))
    
    def test_alpha_counts(self):
        opaque = _solid((0, 0, 0))
        clear = opaque.copy()
        clear[:, :, 3] = 0
        assert np.allclose(color_distance(opaque, clear), 0.5)


class TestEdgeStatistics:
    """Test Sobel edge counting."""
    
    def test_flat_has_no_edges(self):
        stats = edge_statistics(_solid((120, 30, 200)))
        assert stats.edge_count == 0
        assert stats.edge_density == 0.0
    
    def test_square_edges(self):
        data = _solid((255, 255, 255), (20, 20))
        data[5:15, 5:15, :3] = 0
        stats = edge_statistics(data)
        assert stats.edge_count > 0
        assert 0.0 < stats.edge_density <= 1.0
    
    def test_tiny_block(self):
        assert edge_statistics(_solid((0, 0, 0), (2, 2))).edge_count == 0


class TestHslStatistics:
    """Test HSL summaries."""
    
    def test_hue_is_circular_mean(self):
        data = _solid((255, 0, 0), (2, 2))
        data[0, :, :3] = (255, 0, 40)  # hue just below 360
        data[1, :, :3] = (255, 40, 0)  # hue just above 0
        hue = hsl_statistics(data).hue
        assert min(hue, 360.0 - hue) < 5.0
    
    def test_gray_has_no_saturation(self):
        stats = hsl_statistics(_solid((128, 128, 128)))
        assert stats.saturation == pytest.approx(0.0)
        assert stats.contrast == pytest.approx(0.0)


class TestBackgroundAndHistogram:
    """Test background sampling and histogram similarity."""
    
    def test_background_color(self):
        data = _solid((250, 250, 250), (30, 30))
        data[10:20, 10:20, :3] = 0
        assert background_color(data) == (250, 250, 250)
    
    def test_histogram_intersection(self):
        a = gray_histogram(_solid((0, 0, 0)))
        b = gray_histogram(_solid((255, 255, 255)))
        assert histogram_intersection(a, a) == pytest.approx(1.0)
        assert histogram_intersection(a, b) == pytest.approx(0.0)


class TestFeatherWeights:
    """Test inclusion weights around excluded pixels."""
    
    def test_hard_edges(self):
        excluded = np.zeros((10, 10), dtype=bool)
        excluded[4:6, 4:6] = True
        weights = feather_weights(excluded)
        assert weights[4, 4] == 0.0
        assert weights[4, 6] == 1.0
    
    def test_linear_ramp(self):
        excluded = np.zeros((10, 10), dtype=bool)
        excluded[4:6, 4:6] = True
        weights = feather_weights(excluded, radius=2)
        assert weights[4, 5] == 0.0
        assert weights[4, 6] == pytest.approx(0.5)
        assert weights[4, 7] == pytest.approx(1.0)
        assert weights[0, 0] == 1.0
    
    def test_nothing_excluded(self):
        weights = feather_weights(np.zeros((3, 3), dtype=bool), radius=4)
        assert np.all(weights == 1.0)
