"""Per-pixel comparison with exclusion masking."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import cv2
import numpy as np
import numpy.typing as npt
from PIL import ImageColor

from ..config import COMPARISON_CONFIG, ColorMetric
from ..domain.entities.comparison import ComparisonStatistics, DifferenceMask
from ..domain.entities.image import Image
from ..domain.entities.region import ExclusionRegion
from ..domain.services.mask_generation import build_exclusion_mask
from ..exceptions import ComparisonError
from .image_ops import color_distance, feather_weights

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ComparisonOutcome:
    """Mask, statistics and optional rendered diff of one comparison."""
    mask: DifferenceMask
    statistics: ComparisonStatistics
    diff_image: Image | None = None


def parse_color(color: str | Sequence[int]) -> tuple[int, int, int]:
    """Parse a Pillow color name/hex string or an RGB tuple."""
    if isinstance(color, str):
        rgb = ImageColor.getrgb(color)
        return (rgb[0], rgb[1], rgb[2])
    r, g, b = (int(c) for c in tuple(color)[:3])
    return (r, g, b)


def render_diff_image(
    reference: Image,
    mask: npt.NDArray[np.bool_],
    highlight_color: str | Sequence[int] = COMPARISON_CONFIG.highlight_color,
    lowlight: bool = False,
    fade: float = COMPARISON_CONFIG.lowlight_fade,
    excluded: npt.NDArray[np.bool_] | None = None,
    excluded_color: str | Sequence[int] | None = None,
    feather_radius: int = 0,
) -> Image:
    """Paint differing pixels over the reference.

    Args:
        reference: Image providing the unchanged pixels
        mask: HxW boolean array of differing pixels
        highlight_color: Color for differing pixels
        lowlight: Gray out and fade unchanged pixels toward white
        fade: Blend factor toward white when lowlighting
        excluded: HxW boolean array of excluded pixels
        excluded_color: Fill for excluded pixels; None leaves them as they are
        feather_radius: Blend the fill into the surroundings over this many pixels

    Returns:
        New RGBA image
    """
    out = reference.to_array()
    if lowlight:
        gray = cv2.cvtColor(np.ascontiguousarray(reference.rgb), cv2.COLOR_RGB2GRAY).astype(np.float32)
        faded = gray * (1.0 - fade) + 255.0 * fade
        out[:, :, :3] = np.clip(faded, 0, 255).astype(np.uint8)[:, :, None]
        out[:, :, 3] = 255

    if excluded is not None and excluded_color is not None:
        weight = feather_weights(excluded, feather_radius)[:, :, None]
        fill = np.array((*parse_color(excluded_color), 255), dtype=np.float32)
        blended = out.astype(np.float32) * weight + fill * (1.0 - weight)
        out = np.clip(np.rint(blended), 0, 255).astype(np.uint8)

    r, g, b = parse_color(highlight_color)
    out[mask] = (r, g, b, 255)
    return Image(data=out)


class PixelComparator:
    """Computes difference masks and statistics for equally sized images."""

    def __init__(
        self,
        color_threshold: float = COMPARISON_CONFIG.color_threshold,
        equality_threshold: float = COMPARISON_CONFIG.equality_threshold,
        metric: ColorMetric = ColorMetric.EUCLIDEAN,
        exclusion_padding: int = 0,
        highlight_color: str | Sequence[int] = COMPARISON_CONFIG.highlight_color,
        lowlight: bool = False,
        excluded_color: str | Sequence[int] | None = None,
        feather_radius: int = 0,
    ):
        self.color_threshold = color_threshold
        self.equality_threshold = equality_threshold
        self.metric = metric
        self.exclusion_padding = exclusion_padding
        self.highlight_color = highlight_color
        self.lowlight = lowlight
        self.excluded_color = excluded_color
        self.feather_radius = feather_radius

    def compare(
        self,
        reference: Image,
        aligned: Image,
        exclusions: Sequence[ExclusionRegion] = (),
        color_threshold: float | None = None,
        equality_threshold: float | None = None,
        render_diff: bool = False,
    ) -> ComparisonOutcome:
        """Compare two images pixel by pixel.

        Args:
            reference: Reference image
            aligned: Target image already in the reference frame
            exclusions: Regions whose pixels always count as "same"
            color_threshold: Per-pixel distance (0-1) above which a pixel differs
            equality_threshold: Percent of differing pixels still counted as equal
            render_diff: Also render a highlighted diff image

        Returns:
            ComparisonOutcome with mask, statistics and optional diff image

        Raises:
            ComparisonError: If the images differ in size
        """
        if reference.size != aligned.size:
            raise ComparisonError(
                f"Image dimensions differ: reference {reference.width}x{reference.height}, "
                f"target {aligned.width}x{aligned.height}",
                reference_size=reference.size,
                target_size=aligned.size,
            )

        color_threshold = self.color_threshold if color_threshold is None else color_threshold
        equality_threshold = self.equality_threshold if equality_threshold is None else equality_threshold

        distance = color_distance(reference.data, aligned.data, self.metric)
        differing = distance > color_threshold

        excluded = None
        if exclusions:
            excluded = build_exclusion_mask(
                reference.width, reference.height, exclusions, padding=self.exclusion_padding
            )
        mask = DifferenceMask(data=differing, excluded=excluded)

        statistics = ComparisonStatistics.from_counts(
            pixels_different=mask.pixel_count,
            total_pixels=reference.pixel_count,
            equality_threshold=equality_threshold,
            excluded_pixels=mask.excluded_count,
        )
        logger.debug(
            f"Compared {reference.width}x{reference.height}: "
            f"{statistics.pixels_different} pixels differ "
            f"({statistics.percentage_different:.3f}%), {statistics.excluded_pixels} excluded"
        )

        diff_image = None
        if render_diff:
            diff_image = render_diff_image(
                reference, mask.data, self.highlight_color, self.lowlight,
                excluded=mask.excluded,
                excluded_color=self.excluded_color,
                feather_radius=self.feather_radius,
            )

        return ComparisonOutcome(mask=mask, statistics=statistics, diff_image=diff_image)
