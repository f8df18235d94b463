"""Unit tests for domain entities."""

import numpy as np
import pytest
from visual_differ.domain.entities.classification import (
    ClassificationResult,
    ClassificationSummary,
    DifferenceType,
    RegionClassification,
)
from visual_differ.domain.entities.comparison import ComparisonStatistics, DifferenceMask
from visual_differ.domain.entities.image import Image
from visual_differ.domain.entities.refinement import (
    RefinementIteration,
    RefinementResult,
    RefinementState,
)
from visual_differ.domain.entities.region import DifferenceRegion, ExclusionRegion
from visual_differ.domain.value_objects.geometry import BoundingBox
from visual_differ.exceptions import (
    AlignmentAttempt,
    AlignmentError,
    ImageLoadError,
    ValidationError,
)


def _region(region_id=1, bounds=BoundingBox(0, 0, 10, 10), pixels=50):
    return DifferenceRegion(
        id=region_id,
        bounds=bounds,
        pixel_count=pixels,
        difference_pixels=pixels,
        difference_percentage=pixels / 100,
    )


class TestImage:
    """Tests for Image entity."""
    
    def test_rgb_array_gets_alpha(self):
        image = Image.from_array(np.zeros((4, 6, 3), dtype=np.uint8))
        assert image.size == (6, 4)
        assert image.data.shape == (4, 6, 4)
        assert np.all(image.alpha == 255)
    
    def test_gray_array(self):
        image = Image.from_array(np.full((3, 3), 7, dtype=np.uint8))
        assert np.all(image.rgb == 7)
    
    def test_data_is_read_only_copy(self):
        source = np.zeros((2, 2, 4), dtype=np.uint8)
        image = Image(data=source)
        source[0, 0] = 255
        assert image.data[0, 0, 0] == 0
        with pytest.raises(ValueError):
            image.data[0, 0, 0] = 1
    
    def test_empty_image_rejected(self):
        with pytest.raises(ValidationError):
            Image.from_array(np.zeros((0, 5, 3), dtype=np.uint8))
    
    def test_crop_is_clipped(self):
        image = Image.solid(10, 10, (1, 2, 3))
        assert image.crop(5, 5, 20, 20).size == (5, 5)
    
    def test_save_and_load(self, tmp_path, square_image):
        path = tmp_path / "square.png"
        square_image.save(path)
        loaded = Image.from_file(path)
        assert loaded.source_path == path
        np.testing.assert_array_equal(loaded.data, square_image.data)
    
    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ImageLoadError):
            Image.from_file(tmp_path / "missing.png")


class TestRegions:
    """Tests for difference and exclusion regions."""
    
    def test_coverage(self):
        region = DifferenceRegion(
            id=1, bounds=BoundingBox(0, 0, 10, 10),
            pixel_count=25, difference_pixels=40, difference_percentage=0.25,
        )
        assert region.coverage == 40.0
    
    def test_exclusion_validation(self):
        with pytest.raises(ValidationError):
            ExclusionRegion(bounds=BoundingBox(-1, 0, 5, 5))
        with pytest.raises(ValidationError):
            ExclusionRegion(bounds=BoundingBox(0, 0, 0, 5))
        with pytest.raises(ValidationError):
            ExclusionRegion(bounds=BoundingBox(0, 0, 5, 5), confidence=1.5)
    
    def test_exclusion_from_dict(self):
        region = ExclusionRegion.from_dict({
            "name": "clock",
            "bounds": {"x": 1, "y": 2, "width": 30, "height": 10},
            "reason": "changes every run",
        })
        assert region.bounds == BoundingBox(1, 2, 30, 10)
        assert region.name == "clock"
        assert region.confidence == 1.0
        assert region.origin_iteration == 0
        assert ExclusionRegion.from_dict(region.to_dict()) == region
    
    def test_exclusion_from_dict_missing_bounds(self):
        with pytest.raises(ValidationError):
            ExclusionRegion.from_dict({"name": "x"})
        with pytest.raises(ValidationError):
            ExclusionRegion.from_dict({"bounds": {"x": 0, "y": 0, "width": 5}})


class TestDifferenceMask:
    """Tests for DifferenceMask."""
    
    def test_excluded_pixels_never_differ(self):
        data = np.ones((4, 4), dtype=bool)
        excluded = np.zeros((4, 4), dtype=bool)
        excluded[:2] = True
        mask = DifferenceMask(data=data, excluded=excluded)
        assert mask.pixel_count == 8
        assert mask.excluded_count == 8
        # Caller's array untouched
        assert data.all()
    
    def test_statistics(self):
        stats = ComparisonStatistics.from_counts(5, 1000, equality_threshold=0.5)
        assert stats.percentage_different == 0.5
        assert stats.is_equal
        assert not ComparisonStatistics.from_counts(6, 1000, equality_threshold=0.5).is_equal


class TestClassification:
    """Tests for classification entities."""
    
    def test_confidence_clamped(self):
        assert ClassificationResult(DifferenceType.CONTENT, 1.7).confidence == 1.0
        assert ClassificationResult(DifferenceType.CONTENT, -0.2).confidence == 0.0
    
    def test_details_read_only(self):
        result = ClassificationResult(DifferenceType.STYLE, 0.5, details={"a": 1})
        with pytest.raises(TypeError):
            result.details["a"] = 2
    
    def test_summary(self):
        classified = RegionClassification(
            region=_region(1),
            result=ClassificationResult(DifferenceType.CONTENT, 0.8),
            classifier="content",
        )
        other = RegionClassification(
            region=_region(2),
            result=ClassificationResult(DifferenceType.STYLE, 0.6),
            classifier="style",
        )
        unclassified = RegionClassification(region=_region(3))
        summary = ClassificationSummary.from_classifications([classified, other, unclassified])
        
        assert summary.total_regions == 3
        assert summary.classified_regions + summary.unclassified_regions == summary.total_regions
        assert summary.by_type[DifferenceType.CONTENT] == 1
        assert summary.by_type[DifferenceType.UNKNOWN] == 1
        assert summary.by_type[DifferenceType.LAYOUT] == 0
        assert summary.confidence.min == 0.6
        assert summary.confidence.max == 0.8
        assert summary.confidence.avg == pytest.approx(0.7)
        assert [rc.region.id for rc in summary.regions_of_type(DifferenceType.STYLE)] == [2]
        assert "3 difference region(s)" in summary.summary_text()
    
    def test_empty_summary(self):
        summary = ClassificationSummary.from_classifications([])
        assert summary.total_regions == 0
        assert summary.summary_text() == "No differences detected."


class TestRefinementEntities:
    """Tests for refinement records."""
    
    def test_terminal_states(self):
        assert RefinementState.CONVERGED.is_terminal
        assert RefinementState.MAX_ITERATIONS_REACHED.is_terminal
        assert not RefinementState.ANALYZING.is_terminal
    
    def test_result_serialization(self):
        exclusion = ExclusionRegion(bounds=BoundingBox(0, 0, 5, 5), name="a")
        result = RefinementResult(
            iterations=(
                RefinementIteration(1, 10.0, 3, (exclusion,), 1),
                RefinementIteration(2, 4.0, 1, (), 1, improvement=6.0),
            ),
            initial_difference=10.0,
            final_difference=4.0,
            suggested_exclusions=(exclusion,),
            converged=True,
            state=RefinementState.CONVERGED,
        )
        assert result.total_improvement == 6.0
        data = result.to_dict()
        assert data["state"] == "converged"
        assert data["iterations"][1]["improvement"] == 6.0
        assert data["suggested_exclusions"][0]["name"] == "a"
        assert "converged after 2 iteration(s)" in result.summary_text()

    def test_session_file(self, tmp_path):
        """Test a saved session loads back unchanged."""
        exclusion = ExclusionRegion(
            bounds=BoundingBox(4, 8, 10, 6), name="content-1-1",
            reason="content difference (90% confidence)", confidence=0.9, origin_iteration=1,
        )
        result = RefinementResult(
            iterations=(
                RefinementIteration(1, 3.0, 3, (exclusion,), 1),
                RefinementIteration(2, 0.0, 0, (), 1, improvement=3.0),
            ),
            initial_difference=3.0,
            final_difference=0.0,
            suggested_exclusions=(exclusion,),
            converged=True,
            state=RefinementState.CONVERGED,
        )
        path = tmp_path / "sessions" / "run.json"
        result.to_file(path)
        assert RefinementResult.from_file(path) == result

    def test_missing_session_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            RefinementResult.from_file(tmp_path / "missing.json")


class TestExceptions:
    """Tests for the error hierarchy."""
    
    def test_alignment_error_lists_attempts(self):
        error = AlignmentError(
            "no luck",
            attempts=(
                AlignmentAttempt("feature", error="Not enough feature matches"),
                AlignmentAttempt("subimage", score=0.5),
            ),
        )
        assert error.error_code == "ALIGNMENT_ERROR"
        assert len(error.attempts) == 2
        assert not error.attempts[0].succeeded
        assert error.attempts[1].succeeded
        assert "subimage=0.500" in str(error)
        assert str(error).startswith("[ALIGNMENT_ERROR] no luck")
