"""Exclusion mask generation."""

from __future__ import annotations

from typing import Iterable

import numpy as np
import numpy.typing as npt

from ..entities.region import ExclusionRegion


def build_exclusion_mask(
    width: int,
    height: int,
    exclusions: Iterable[ExclusionRegion],
    padding: int = 0,
) -> npt.NDArray[np.bool_]:
    """Rasterize exclusion regions into a boolean mask.

    Args:
        width: Image width
        height: Image height
        exclusions: Regions to exclude
        padding: Extra pixels added around each region

    Returns:
        (height, width) array, True where pixels are excluded
    """
    mask = np.zeros((height, width), dtype=bool)
    for region in exclusions:
        bounds = region.bounds.expand(padding).clamp(width, height)
        if bounds.is_empty:
            continue
        rows, cols = bounds.to_slices()
        mask[rows, cols] = True
    return mask
