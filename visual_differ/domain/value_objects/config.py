"""Configuration value objects with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator
from PIL import ImageColor

from ...config import (
    CLASSIFICATION_CONFIG,
    COMPARISON_CONFIG,
    ALIGNMENT_CONFIG,
    REFINEMENT_CONFIG,
    AlignmentMethod,
    ColorMetric,
    FeatureDetectorType,
)
from ...utils.env import load_env_overrides
from ..entities.classification import DifferenceType


class ComparisonConfig(BaseModel):
    """Settings for a single align-compare-segment-classify pass.

    Difference measures (``equality_threshold``) are percentages 0-100.
    ``color_threshold`` is a normalized per-pixel distance 0-1.
    """

    model_config = {"frozen": True}

    # Alignment
    align: bool = True
    alignment_method: AlignmentMethod = AlignmentMethod.AUTO
    allow_fallback: bool = True
    feature_detector: FeatureDetectorType = FeatureDetectorType.ORB
    min_alignment_score: float = Field(default=ALIGNMENT_CONFIG.min_score, ge=0.0, le=1.0)
    search_radius: int = Field(default=ALIGNMENT_CONFIG.search_radius, ge=0, le=500)

    # Pixel comparison
    color_metric: ColorMetric = ColorMetric.EUCLIDEAN
    color_threshold: float = Field(default=COMPARISON_CONFIG.color_threshold, ge=0.0, le=1.0)
    equality_threshold: float = Field(default=COMPARISON_CONFIG.equality_threshold, ge=0.0, le=100.0)
    exclusion_padding: int = Field(default=0, ge=0, le=500)

    # Diff rendering
    render_diff: bool = False
    highlight_color: str | tuple[int, int, int] = COMPARISON_CONFIG.highlight_color
    lowlight: bool = False
    excluded_color: str | tuple[int, int, int] | None = None
    feather_radius: int = Field(default=0, ge=0, le=100)

    # Segmentation
    min_region_pixels: int = Field(default=COMPARISON_CONFIG.min_region_pixels, ge=1)
    merge_distance: float = Field(default=COMPARISON_CONFIG.merge_distance, ge=0.0)
    connectivity: int = COMPARISON_CONFIG.connectivity

    # Classification
    classify: bool = True
    min_classifier_confidence: float = Field(
        default=CLASSIFICATION_CONFIG.min_confidence, ge=0.0, le=1.0
    )

    @field_validator('connectivity')
    @classmethod
    def validate_connectivity(cls, v: int) -> int:
        if v not in (4, 8):
            raise ValueError(f"connectivity must be 4 or 8, got {v}")
        return v

    @field_validator('highlight_color', 'excluded_color')
    @classmethod
    def validate_color(cls, v: Any) -> Any:
        """Reject colors Pillow cannot parse."""
        if v is None:
            return v
        if isinstance(v, str):
            ImageColor.getrgb(v)
        elif any(not 0 <= c <= 255 for c in v):
            raise ValueError(f"RGB components must be 0-255, got {v}")
        return v

    @classmethod
    def from_env(cls, **kwargs: Any) -> ComparisonConfig:
        """Build a config, letting VISUAL_DIFFER_* variables fill unset fields."""
        overrides = load_env_overrides()
        values = {k: v for k, v in overrides.items() if k in cls.model_fields}
        values.update(kwargs)
        return cls(**values)


class RefinementConfig(BaseModel):
    """Settings for progressive refinement.

    ``target_difference_threshold`` and ``min_improvement`` are percentages
    (percentage points for the latter); ``confidence_threshold`` is 0-1.
    """

    model_config = {"frozen": True}

    max_iterations: int = Field(default=REFINEMENT_CONFIG.max_iterations, ge=1, le=100)
    target_difference_threshold: float = Field(
        default=REFINEMENT_CONFIG.target_difference_threshold, ge=0.0, le=100.0
    )
    min_improvement: float = Field(default=REFINEMENT_CONFIG.min_improvement, ge=0.0, le=100.0)
    confidence_threshold: float = Field(
        default=REFINEMENT_CONFIG.confidence_threshold, ge=0.0, le=1.0
    )
    exclude_types: frozenset[DifferenceType] = frozenset()
    # Also exclude classified regions below confidence_threshold as false positives
    exclude_low_confidence: bool = False
    session_file: Path | None = None  # Result is saved here as JSON when set

    # Candidate exclusion shaping
    exclusion_padding: int = Field(default=0, ge=0, le=500)
    cluster_min_regions: int = Field(default=REFINEMENT_CONFIG.cluster_min_regions, ge=2)
    cluster_distance: float = Field(default=REFINEMENT_CONFIG.cluster_distance, ge=0.0)

    @model_validator(mode='after')
    def check_unknown_not_excluded(self) -> RefinementConfig:
        """Unclassified regions never become exclusions."""
        if DifferenceType.UNKNOWN in self.exclude_types:
            raise ValueError("exclude_types cannot contain 'unknown'")
        return self


__all__ = [
    'AlignmentMethod',
    'ColorMetric',
    'FeatureDetectorType',
    'ComparisonConfig',
    'RefinementConfig',
]
