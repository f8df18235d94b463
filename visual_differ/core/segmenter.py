"""Connected-component segmentation of difference masks."""

from __future__ import annotations

import logging

import cv2
import numpy as np

from ..config import COMPARISON_CONFIG
from ..domain.entities.comparison import DifferenceMask
from ..domain.entities.region import DifferenceRegion
from ..domain.services.exclusion_merging import group_boxes
from ..domain.value_objects.geometry import BoundingBox

logger = logging.getLogger(__name__)


class RegionSegmenter:
    """Groups differing pixels into bounded regions.

    Components whose bounding boxes lie within ``merge_distance`` pixels of
    each other are merged so anti-aliasing noise around one change does not
    split it into many small regions.
    """

    def __init__(
        self,
        min_region_pixels: int = COMPARISON_CONFIG.min_region_pixels,
        merge_distance: float = COMPARISON_CONFIG.merge_distance,
        connectivity: int = COMPARISON_CONFIG.connectivity,
    ):
        if connectivity not in (4, 8):
            raise ValueError(f"connectivity must be 4 or 8, got {connectivity}")
        self.min_region_pixels = min_region_pixels
        self.merge_distance = merge_distance
        self.connectivity = connectivity

    def segment(
        self,
        mask: DifferenceMask,
        min_region_pixels: int | None = None,
    ) -> tuple[DifferenceRegion, ...]:
        """Label differing pixels and build regions.

        Args:
            mask: Difference mask to segment
            min_region_pixels: Drop regions with fewer differing pixels

        Returns:
            Regions ordered by the (y, x) of their top-left corner, ids from 1
        """
        min_pixels = self.min_region_pixels if min_region_pixels is None else min_region_pixels
        if mask.pixel_count == 0:
            return ()

        binary = mask.data.astype(np.uint8)
        count, _, stats, _ = cv2.connectedComponentsWithStats(
            binary, connectivity=self.connectivity
        )

        # Label 0 is the background
        boxes = [
            BoundingBox(
                int(stats[label, cv2.CC_STAT_LEFT]),
                int(stats[label, cv2.CC_STAT_TOP]),
                int(stats[label, cv2.CC_STAT_WIDTH]),
                int(stats[label, cv2.CC_STAT_HEIGHT]),
            )
            for label in range(1, count)
        ]
        areas = [int(stats[label, cv2.CC_STAT_AREA]) for label in range(1, count)]

        groups = group_boxes(boxes, max_gap=self.merge_distance)

        merged: list[tuple[BoundingBox, int]] = []
        for group in groups:
            pixel_count = sum(areas[i] for i in group)
            if pixel_count < min_pixels:
                continue
            bounds = boxes[group[0]]
            for i in group[1:]:
                bounds = bounds.union(boxes[i])
            merged.append((bounds, pixel_count))

        merged.sort(key=lambda item: (item[0].y, item[0].x))

        total_pixels = mask.width * mask.height
        regions = []
        for region_id, (bounds, pixel_count) in enumerate(merged, start=1):
            rows, cols = bounds.to_slices()
            regions.append(DifferenceRegion(
                id=region_id,
                bounds=bounds,
                pixel_count=pixel_count,
                difference_pixels=int(np.count_nonzero(mask.data[rows, cols])),
                difference_percentage=pixel_count / total_pixels * 100,
            ))

        logger.debug(
            f"Segmented {count - 1} components into {len(regions)} regions "
            f"(merge distance {self.merge_distance}, min {min_pixels} px)"
        )
        return tuple(regions)
