"""Feature matcher port - interface for keypoint detection and matching."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import numpy as np
import numpy.typing as npt


@dataclass(frozen=True, slots=True)
class FeatureMatches:
    """Corresponding keypoint coordinates, best match first."""
    reference_points: npt.NDArray[np.float32]  # Shape (N, 2)
    target_points: npt.NDArray[np.float32]  # Shape (N, 2)
    reference_keypoints: int = 0
    target_keypoints: int = 0

    @property
    def count(self) -> int:
        return len(self.reference_points)

    @property
    def is_empty(self) -> bool:
        return self.count == 0


@runtime_checkable
class FeatureMatcher(Protocol):
    """Port for keypoint detectors/matchers.

    Implementations: OpenCV ORB, AKAZE, BRISK, SIFT.
    """

    @property
    def name(self) -> str:
        """Detector name."""
        ...

    def match(
        self,
        reference: npt.NDArray[np.uint8],
        target: npt.NDArray[np.uint8],
    ) -> FeatureMatches:
        """Detect keypoints in two grayscale images and match them.

        Args:
            reference: Reference grayscale image
            target: Target grayscale image

        Returns:
            Matched point pairs
        """
        ...
