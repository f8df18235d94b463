"""Multi-strategy image alignment with fallback."""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Sequence

import cv2
import numpy as np
import numpy.typing as npt

from ..application.ports.feature_matcher import FeatureMatcher
from ..config import ALIGNMENT_CONFIG, ALIGNMENT_FALLBACK_CHAIN, AlignmentMethod, FeatureDetectorType
from ..domain.entities.alignment import AlignmentResult, translation_matrix
from ..domain.entities.image import Image
from ..exceptions import AlignmentAttempt, AlignmentError

logger = logging.getLogger(__name__)

# Type alias
Matrix = npt.NDArray[np.float64]  # 3x3 homography


def is_integer_translation(matrix: Matrix) -> bool:
    """Check if a homography is a shift by whole pixels."""
    return bool(
        np.allclose(matrix[:2, :2], np.eye(2)) and
        np.allclose(matrix[2], [0.0, 0.0, 1.0]) and
        np.allclose(matrix[:2, 2], np.round(matrix[:2, 2]))
    )


def warp_to_reference(
    reference: Image,
    target: Image,
    matrix: Matrix,
) -> tuple[Image, npt.NDArray[np.bool_]]:
    """Warp the target into the reference frame.

    Reference pixels not covered by the warped target keep their reference
    values, so content shifted out of frame does not count as a difference.

    Returns:
        (aligned image, HxW mask of pixels covered by the target)
    """
    size = (reference.width, reference.height)
    flags = cv2.INTER_NEAREST if is_integer_translation(matrix) else cv2.INTER_LINEAR

    aligned = reference.to_array()
    cv2.warpPerspective(
        target.to_array(), matrix, size,
        dst=aligned, flags=flags, borderMode=cv2.BORDER_TRANSPARENT,
    )

    coverage = cv2.warpPerspective(
        np.full((target.height, target.width), 255, dtype=np.uint8), matrix, size,
        flags=cv2.INTER_NEAREST, borderMode=cv2.BORDER_CONSTANT, borderValue=0,
    )
    return Image(data=aligned), coverage > 0


def score_alignment(
    reference: Image,
    aligned: Image,
    covered: npt.NDArray[np.bool_],
    min_overlap: float = ALIGNMENT_CONFIG.min_overlap_fraction,
    quantile: float = ALIGNMENT_CONFIG.score_quantile,
) -> float:
    """Quality in [0, 1] of how well the covered pixels line up.

    The score is ``1 - q/255`` where ``q`` is the ``quantile`` of absolute
    gray differences over covered pixels. Genuine content changes covering
    less than ``1 - quantile`` of the overlap do not lower the score, while
    a misregistered pair of textured images still scores low.

    Alignments covering less than ``min_overlap`` of the reference score 0.
    """
    if np.count_nonzero(covered) < min_overlap * covered.size:
        return 0.0
    ref = reference.to_gray().astype(np.float32)[covered]
    tgt = aligned.to_gray().astype(np.float32)[covered]
    error = float(np.quantile(np.abs(ref - tgt), quantile))
    return max(0.0, 1.0 - error / 255.0)


def decompose_homography(matrix: Matrix) -> dict[str, float]:
    """Approximate translation, scale and rotation of a homography."""
    a, c = matrix[0, 0], matrix[1, 0]
    return {
        "translate_x": float(matrix[0, 2]),
        "translate_y": float(matrix[1, 2]),
        "scale": float(math.hypot(a, c)),
        "rotation": float(math.degrees(math.atan2(c, a))),
    }


class Aligner(ABC):
    """Base class for alignment strategies."""

    method: AlignmentMethod

    @abstractmethod
    def estimate(self, reference: Image, target: Image) -> tuple[Matrix, dict[str, Any]]:
        """Estimate the target-to-reference transform.

        Returns:
            (3x3 homography, strategy details)

        Raises:
            AlignmentError: If no transform can be estimated
        """


class SubimageAligner(Aligner):
    """Bounded translation search by template matching.

    The target's inner window (``search_radius`` pixels in from each side)
    is slid over the reference; the offset with the smallest squared
    difference wins, preferring the smallest shift among near-ties.
    """

    method = AlignmentMethod.SUBIMAGE

    def __init__(
        self,
        search_radius: int = ALIGNMENT_CONFIG.search_radius,
        min_overlap: float = ALIGNMENT_CONFIG.min_overlap_fraction,
        tie_tolerance: float = ALIGNMENT_CONFIG.tie_tolerance,
    ):
        self.search_radius = search_radius
        self.min_overlap = min_overlap
        self.tie_tolerance = tie_tolerance

    def _fit_radius(self, width: int, height: int) -> int:
        """Largest radius that keeps the template above the minimum overlap."""
        radius = min(self.search_radius, (width - 1) // 2, (height - 1) // 2)
        while radius > 0 and (width - 2 * radius) * (height - 2 * radius) < self.min_overlap * width * height:
            radius -= 1
        return max(radius, 0)

    def estimate(self, reference: Image, target: Image) -> tuple[Matrix, dict[str, Any]]:
        if reference.size != target.size:
            raise AlignmentError("Subimage search requires equally sized images")

        radius = self._fit_radius(reference.width, reference.height)
        if radius == 0:
            return translation_matrix(0, 0), {"search_radius": 0, "mse": 0.0}

        ref_gray = reference.to_gray().astype(np.float32)
        template = target.to_gray().astype(np.float32)[radius:-radius, radius:-radius]

        result = cv2.matchTemplate(ref_gray, template, cv2.TM_SQDIFF) / template.size

        # Near-ties go to the smallest displacement (uniform images align at 0, 0)
        candidates = np.argwhere(result <= result.min() + self.tie_tolerance)
        shifts = radius - candidates  # (dy, dx) per candidate
        best = shifts[np.argmin(np.hypot(shifts[:, 0], shifts[:, 1]))]
        dy, dx = int(best[0]), int(best[1])

        details = {
            "search_radius": radius,
            "mse": float(result[radius - dy, radius - dx]),
            "offset_x": dx,
            "offset_y": dy,
        }
        logger.debug(f"Subimage search: offset ({dx}, {dy}), mse {details['mse']:.3f}")
        return translation_matrix(dx, dy), details


class PhaseCorrelationAligner(Aligner):
    """Translation from the peak of the normalized cross-power spectrum."""

    method = AlignmentMethod.PHASE

    def __init__(self, use_window: bool = True):
        self.use_window = use_window

    def estimate(self, reference: Image, target: Image) -> tuple[Matrix, dict[str, Any]]:
        width = max(reference.width, target.width)
        height = max(reference.height, target.height)
        ref = self._padded_gray(reference, width, height)
        tgt = self._padded_gray(target, width, height)

        window = cv2.createHanningWindow((width, height), cv2.CV_32F) if self.use_window else None
        (shift_x, shift_y), response = cv2.phaseCorrelate(ref, tgt, window)
        if not np.isfinite(shift_x) or not np.isfinite(shift_y):
            raise AlignmentError("Phase correlation produced no peak")

        dx, dy = int(round(shift_x)), int(round(shift_y))

        # Peak sign depends on argument order; keep the reading that scores better
        if (dx, dy) != (0, 0):
            scores = []
            for sx, sy in ((dx, dy), (-dx, -dy)):
                aligned, covered = warp_to_reference(reference, target, translation_matrix(sx, sy))
                scores.append(score_alignment(reference, aligned, covered))
            if scores[1] > scores[0]:
                dx, dy = -dx, -dy

        details = {
            "shift_x": float(shift_x),
            "shift_y": float(shift_y),
            "response": float(response),
            "offset_x": dx,
            "offset_y": dy,
        }
        logger.debug(f"Phase correlation: shift ({shift_x:.2f}, {shift_y:.2f}), response {response:.3f}")
        return translation_matrix(dx, dy), details

    @staticmethod
    def _padded_gray(image: Image, width: int, height: int) -> npt.NDArray[np.float32]:
        gray = image.to_gray().astype(np.float32)
        if gray.shape == (height, width):
            return gray
        return cv2.copyMakeBorder(
            gray, 0, height - gray.shape[0], 0, width - gray.shape[1],
            cv2.BORDER_CONSTANT, value=0,
        )


class FeatureAligner(Aligner):
    """Homography from matched keypoints with a seeded RANSAC fit."""

    method = AlignmentMethod.FEATURE

    def __init__(
        self,
        matcher: FeatureMatcher | None = None,
        min_matches: int = ALIGNMENT_CONFIG.min_matches,
        ransac_threshold: float = ALIGNMENT_CONFIG.ransac_threshold,
        seed: int = ALIGNMENT_CONFIG.ransac_seed,
    ):
        if matcher is None:
            from ..adapters.features.opencv_matcher import OpenCVFeatureMatcher
            matcher = OpenCVFeatureMatcher()
        self.matcher = matcher
        self.min_matches = max(4, min_matches)
        self.ransac_threshold = ransac_threshold
        self.seed = seed

    def estimate(self, reference: Image, target: Image) -> tuple[Matrix, dict[str, Any]]:
        matches = self.matcher.match(reference.to_gray(), target.to_gray())
        if matches.count < self.min_matches:
            raise AlignmentError(
                f"Not enough feature matches: {matches.count} < {self.min_matches}"
            )

        # RANSAC samples randomly; seed for reproducible transforms
        cv2.setRNGSeed(self.seed)
        matrix, inlier_mask = cv2.findHomography(
            matches.target_points.reshape(-1, 1, 2),
            matches.reference_points.reshape(-1, 1, 2),
            cv2.RANSAC,
            self.ransac_threshold,
        )
        if matrix is None:
            raise AlignmentError("Homography estimation failed")

        inliers = int(inlier_mask.sum()) if inlier_mask is not None else 0
        details: dict[str, Any] = {
            "detector": self.matcher.name,
            "matches": matches.count,
            "inliers": inliers,
            "inlier_ratio": inliers / matches.count,
            **decompose_homography(matrix),
        }
        logger.debug(
            f"Feature alignment ({self.matcher.name}): {inliers}/{matches.count} inliers"
        )
        return np.asarray(matrix, dtype=np.float64), details


class AlignmentOrchestrator:
    """Runs alignment strategies in priority order until one is good enough.

    The requested method is tried first, then the fallback chain
    feature -> subimage -> phase (without repeats).
    """

    def __init__(
        self,
        aligners: Sequence[Aligner] | None = None,
        min_score: float = ALIGNMENT_CONFIG.min_score,
        allow_fallback: bool = True,
        detector: FeatureDetectorType = FeatureDetectorType.ORB,
        search_radius: int = ALIGNMENT_CONFIG.search_radius,
    ):
        if aligners is None:
            from ..adapters.features.opencv_matcher import OpenCVFeatureMatcher
            aligners = (
                FeatureAligner(OpenCVFeatureMatcher(detector)),
                SubimageAligner(search_radius=search_radius),
                PhaseCorrelationAligner(),
            )
        self._aligners = {a.method: a for a in aligners}
        self.min_score = min_score
        self.allow_fallback = allow_fallback

    def chain(self, method: AlignmentMethod = AlignmentMethod.AUTO) -> list[AlignmentMethod]:
        """Methods to try, in order."""
        method = AlignmentMethod(method)
        if method is AlignmentMethod.AUTO:
            order = list(ALIGNMENT_FALLBACK_CHAIN)
        elif not self.allow_fallback:
            order = [method]
        else:
            order = [method] + [m for m in ALIGNMENT_FALLBACK_CHAIN if m is not method]
        return [m for m in order if m in self._aligners]

    def align(
        self,
        reference: Image,
        target: Image,
        method: AlignmentMethod = AlignmentMethod.AUTO,
        min_score: float | None = None,
    ) -> AlignmentResult:
        """Align target onto reference.

        Args:
            reference: Reference image defining the output frame
            target: Image to transform
            method: Requested strategy (AUTO runs the fallback chain)
            min_score: Minimum acceptable quality score in [0, 1]

        Returns:
            AlignmentResult of the first strategy reaching ``min_score``

        Raises:
            AlignmentError: If every strategy fails or scores too low
        """
        threshold = self.min_score if min_score is None else min_score
        attempts: list[AlignmentAttempt] = []

        for candidate in self.chain(method):
            aligner = self._aligners[candidate]
            try:
                matrix, details = aligner.estimate(reference, target)
                aligned, covered = warp_to_reference(reference, target, matrix)
                score = score_alignment(reference, aligned, covered)
            except (AlignmentError, cv2.error) as e:
                message = e.message if isinstance(e, AlignmentError) else str(e)
                logger.warning(f"Alignment strategy '{candidate.value}' failed: {message}")
                attempts.append(AlignmentAttempt(candidate.value, None, message))
                continue

            attempts.append(AlignmentAttempt(candidate.value, score))
            if score >= threshold:
                logger.info(f"Aligned with '{candidate.value}' (score {score:.3f})")
                return AlignmentResult(
                    method=candidate,
                    matrix=matrix,
                    score=score,
                    aligned=aligned,
                    attempts=tuple(attempts),
                    details=details,
                )
            logger.debug(
                f"Alignment strategy '{candidate.value}' scored {score:.3f} < {threshold:.3f}"
            )

        raise AlignmentError(
            f"No alignment strategy reached score {threshold:.3f}",
            attempts=tuple(attempts),
        )
