"""Configuration and constants for the Visual Differ project."""

from dataclasses import dataclass
from enum import Enum


class AlignmentMethod(str, Enum):
    """Supported alignment strategies."""
    SUBIMAGE = "subimage"
    PHASE = "phase"
    FEATURE = "feature"
    AUTO = "auto"


class FeatureDetectorType(str, Enum):
    """Keypoint detectors available to feature-based alignment."""
    ORB = "orb"
    AKAZE = "akaze"
    BRISK = "brisk"
    SIFT = "sift"

    @property
    def binary_descriptors(self) -> bool:
        """Check if the detector emits binary (Hamming) descriptors."""
        return self is not FeatureDetectorType.SIFT


class ColorMetric(str, Enum):
    """Per-pixel color distance formulas."""
    EUCLIDEAN = "euclidean"
    YIQ = "yiq"


# Fallback order used after the requested alignment method
ALIGNMENT_FALLBACK_CHAIN: tuple[AlignmentMethod, ...] = (
    AlignmentMethod.FEATURE,
    AlignmentMethod.SUBIMAGE,
    AlignmentMethod.PHASE,
)


@dataclass(frozen=True)
class AlignmentConstants:
    """Tuning constants for image alignment."""
    min_score: float = 0.9
    search_radius: int = 20
    min_overlap_fraction: float = 0.25
    score_quantile: float = 0.5  # Of absolute gray differences; changes under half the frame are ignored
    tie_tolerance: float = 0.5  # Mean squared grey-level difference

    # Feature matching
    max_features: int = 1000
    match_ratio: float = 0.7  # Keep best 70% of matches
    min_matches: int = 4
    ransac_threshold: float = 5.0
    ransac_seed: int = 0


@dataclass(frozen=True)
class ComparisonConstants:
    """Defaults for pixel comparison and segmentation."""
    color_threshold: float = 0.1  # Normalized 0-1 color distance
    equality_threshold: float = 0.1  # Percent of pixels
    highlight_color: str = "red"
    lowlight_fade: float = 0.7  # Blend toward white for unchanged pixels

    min_region_pixels: int = 1
    merge_distance: float = 5.0
    connectivity: int = 8


@dataclass(frozen=True)
class ClassificationConstants:
    """Defaults for the classifier pipeline."""
    min_confidence: float = 0.5
    classifier_floor: float = 0.3  # Built-ins drop results below this

    # Shared pixel analysis
    edge_threshold: float = 50.0
    dominant_colors: int = 5
    color_quantization: int = 16


@dataclass(frozen=True)
class RefinementConstants:
    """Defaults for progressive refinement."""
    max_iterations: int = 10
    target_difference_threshold: float = 0.5  # Percent
    min_improvement: float = 0.1  # Percentage points
    confidence_threshold: float = 0.7
    cluster_min_regions: int = 3
    cluster_distance: float = 50.0


ALIGNMENT_CONFIG = AlignmentConstants()
COMPARISON_CONFIG = ComparisonConstants()
CLASSIFICATION_CONFIG = ClassificationConstants()
REFINEMENT_CONFIG = RefinementConstants()


# Entry point group for third-party classifiers
CLASSIFIER_ENTRY_POINT_GROUP = "visual_differ.classifiers"


# Environment
ENV_FILE = ".env"
ENV_PREFIX = "VISUAL_DIFFER_"


# Logging
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"
