"""OpenCV keypoint matcher adapter."""

from __future__ import annotations

import logging

import cv2
import numpy as np
import numpy.typing as npt

from ...application.ports.feature_matcher import FeatureMatches
from ...config import ALIGNMENT_CONFIG, FeatureDetectorType

logger = logging.getLogger(__name__)


def create_detector(detector: FeatureDetectorType, max_features: int = ALIGNMENT_CONFIG.max_features):
    """Instantiate an OpenCV feature detector/descriptor extractor."""
    if detector is FeatureDetectorType.ORB:
        return cv2.ORB_create(nfeatures=max_features)
    if detector is FeatureDetectorType.AKAZE:
        return cv2.AKAZE_create()
    if detector is FeatureDetectorType.BRISK:
        return cv2.BRISK_create()
    if detector is FeatureDetectorType.SIFT:
        return cv2.SIFT_create(nfeatures=max_features)
    raise ValueError(f"Unsupported detector: {detector}")


class OpenCVFeatureMatcher:
    """Brute-force, cross-checked descriptor matching.

    Binary descriptors (ORB, AKAZE, BRISK) are matched with the Hamming
    norm, float descriptors (SIFT) with L2. Matches are sorted by distance
    and only the best ``match_ratio`` fraction is kept.
    """

    def __init__(
        self,
        detector: FeatureDetectorType = FeatureDetectorType.ORB,
        max_features: int = ALIGNMENT_CONFIG.max_features,
        match_ratio: float = ALIGNMENT_CONFIG.match_ratio,
    ):
        self.detector_type = FeatureDetectorType(detector)
        self.max_features = max_features
        self.match_ratio = match_ratio
        self._detector = None

    @property
    def name(self) -> str:
        return self.detector_type.value

    def _get_detector(self):
        # Lazy creation
        if self._detector is None:
            self._detector = create_detector(self.detector_type, self.max_features)
        return self._detector

    def match(
        self,
        reference: npt.NDArray[np.uint8],
        target: npt.NDArray[np.uint8],
    ) -> FeatureMatches:
        detector = self._get_detector()
        ref_kp, ref_desc = detector.detectAndCompute(reference, None)
        tgt_kp, tgt_desc = detector.detectAndCompute(target, None)

        empty = np.empty((0, 2), dtype=np.float32)
        if ref_desc is None or tgt_desc is None or len(ref_kp) == 0 or len(tgt_kp) == 0:
            logger.debug(f"{self.name}: no descriptors ({len(ref_kp)} / {len(tgt_kp)} keypoints)")
            return FeatureMatches(empty, empty, len(ref_kp), len(tgt_kp))

        norm = cv2.NORM_HAMMING if self.detector_type.binary_descriptors else cv2.NORM_L2
        matcher = cv2.BFMatcher(norm, crossCheck=True)
        matches = sorted(matcher.match(ref_desc, tgt_desc), key=lambda m: m.distance)
        keep = max(1, int(len(matches) * self.match_ratio)) if matches else 0
        matches = matches[:keep]

        ref_pts = np.array([ref_kp[m.queryIdx].pt for m in matches], dtype=np.float32).reshape(-1, 2)
        tgt_pts = np.array([tgt_kp[m.trainIdx].pt for m in matches], dtype=np.float32).reshape(-1, 2)

        logger.debug(
            f"{self.name}: {len(ref_kp)}/{len(tgt_kp)} keypoints, kept {len(matches)} matches"
        )
        return FeatureMatches(ref_pts, tgt_pts, len(ref_kp), len(tgt_kp))
