"""Shared fixtures."""

import numpy as np
import pytest

from visual_differ.domain.entities.image import Image


@pytest.fixture
def white_image():
    """100x100 opaque white image."""
    return Image.solid(100, 100, (255, 255, 255))


@pytest.fixture
def square_image():
    """White 100x100 image with a black 50x50 square at (25, 25)."""
    data = np.full((100, 100, 3), 255, dtype=np.uint8)
    data[25:75, 25:75] = 0
    return Image.from_array(data)


@pytest.fixture
def noise_image():
    """Reproducible 100x100 RGB noise."""
    rng = np.random.default_rng(42)
    return Image.from_array(rng.integers(0, 256, (100, 100, 3), dtype=np.uint8))


@pytest.fixture
def shifted_noise_image(noise_image):
    """``noise_image`` content moved 5 pixels right and 5 down."""
    return Image.from_array(np.roll(noise_image.data, (5, 5), axis=(0, 1)))
