"""Tests for progressive refinement."""

import numpy as np
import pytest

from visual_differ.application.services.refinement import RefinementController
from visual_differ.config import AlignmentMethod
from visual_differ.core.classifiers import ClassifierPipeline, ClassifierRegistry, DifferenceClassifier
from visual_differ.domain.entities.classification import ClassificationResult, DifferenceType
from visual_differ.domain.entities.image import Image
from visual_differ.domain.entities.refinement import RefinementResult, RefinementState
from visual_differ.domain.entities.region import ExclusionRegion
from visual_differ.domain.value_objects.config import ComparisonConfig, RefinementConfig
from visual_differ.domain.value_objects.geometry import BoundingBox


class AlwaysContent(DifferenceClassifier):
    """Labels every region as a content change with a fixed confidence."""
    
    name = "always-content"
    priority = 1
    
    def __init__(self, confidence=0.9):
        self.confidence = confidence
    
    def can_classify(self, region, context):
        return True
    
    def classify(self, region, context):
        return ClassificationResult(DifferenceType.CONTENT, self.confidence)


def _with_squares(*positions, side=10):
    data = np.full((100, 100, 3), 255, dtype=np.uint8)
    for x, y in positions:
        data[y:y + side, x:x + side] = 0
    return Image.from_array(data)


def _controller(confidence=0.9, **config):
    pipeline = ClassifierPipeline(ClassifierRegistry([AlwaysContent(confidence)]))
    return RefinementController(ComparisonConfig(align=False, **config), pipeline=pipeline)


class TestRefinementController:
    """Test the exclusion loop."""
    
    def test_excludes_and_converges(self, white_image):
        """Test noise regions are excluded until nothing differs."""
        target = _with_squares((0, 0), (80, 0), (0, 80))
        result = _controller().refine(
            white_image, target, config=RefinementConfig(exclude_types=["content"])
        )
        
        assert result.converged
        assert result.state == RefinementState.CONVERGED
        assert result.initial_difference == 3.0
        assert result.final_difference == 0.0
        assert len(result.iterations) == 2
        assert len(result.iterations[0].exclusions_applied) == 3
        assert result.iterations[0].improvement is None
        assert [it.excluded_area for it in result.iterations] == [300, 300]
        assert result.iterations[1].improvement == 3.0
        assert len(result.suggested_exclusions) == 3
        for exclusion in result.suggested_exclusions:
            assert exclusion.origin_iteration == 1
            assert exclusion.confidence == 0.9
    
    def test_stops_without_improvement(self, white_image):
        """Test nothing to exclude means the second pass converges on no progress."""
        result = _controller().refine(white_image, _with_squares((0, 0)))
        assert result.converged
        assert len(result.iterations) == 2
        assert result.iterations[1].improvement == 0.0
        assert result.suggested_exclusions == ()
    
    def test_max_iterations(self, white_image):
        """Test the loop never exceeds the cap."""
        config = RefinementConfig(max_iterations=3, min_improvement=0.0)
        result = _controller().refine(white_image, _with_squares((0, 0)), config=config)
        assert not result.converged
        assert result.state == RefinementState.MAX_ITERATIONS_REACHED
        assert len(result.iterations) == 3
        assert [it.iteration for it in result.iterations] == [1, 2, 3]
    
    def test_already_below_target(self, white_image):
        result = _controller().refine(white_image, white_image)
        assert result.converged
        assert len(result.iterations) == 1
        assert result.final_difference == 0.0
    
    def test_converged_implies_stop_condition(self, white_image):
        config = RefinementConfig(exclude_types=["content"], target_difference_threshold=0.0)
        result = _controller().refine(white_image, _with_squares((0, 0), (50, 50)), config=config)
        last = result.iterations[-1]
        assert result.converged
        assert (
            last.difference <= config.target_difference_threshold
            or (last.improvement is not None and last.improvement < config.min_improvement)
        )
    
    def test_confidence_threshold(self, white_image):
        """Test regions below the confidence threshold are kept."""
        config = RefinementConfig(exclude_types=["content"], confidence_threshold=0.95)
        result = _controller().refine(white_image, _with_squares((0, 0)), config=config)
        assert result.suggested_exclusions == ()
    
    def test_unlisted_types_kept(self, white_image):
        config = RefinementConfig(exclude_types=["style"])
        result = _controller().refine(white_image, _with_squares((0, 0)), config=config)
        assert result.suggested_exclusions == ()
        assert result.final_difference == 1.0
    
    def test_cluster_exclusion(self, white_image):
        """Test nearby candidates are summarised by one covering exclusion."""
        target = _with_squares((10, 10), (30, 10), (50, 10), side=5)
        config = RefinementConfig(exclude_types=["content"], cluster_distance=25)
        result = _controller().refine(white_image, target, config=config)
        assert result.converged
        assert len(result.suggested_exclusions) == 1
        assert result.suggested_exclusions[0].bounds == BoundingBox(10, 10, 45, 5)
    
    def test_padding_clipped_to_image(self, white_image):
        config = RefinementConfig(exclude_types=["content"], exclusion_padding=5)
        result = _controller().refine(white_image, _with_squares((0, 0)), config=config)
        assert result.suggested_exclusions[0].bounds == BoundingBox(0, 0, 15, 15)
    
    def test_initial_exclusions_kept(self, white_image):
        initial = ExclusionRegion(bounds=BoundingBox(0, 0, 10, 10), name="logo")
        result = _controller().refine(white_image, _with_squares((0, 0)), [initial])
        assert result.initial_difference == 0.0
        assert result.suggested_exclusions == (initial,)
    
    def test_alignment_runs_once(self, noise_image, shifted_noise_image):
        config = ComparisonConfig(alignment_method="subimage", allow_fallback=False)
        controller = RefinementController(config)
        result = controller.refine(noise_image, shifted_noise_image)
        assert result.alignment is not None
        assert result.alignment.offset == (5, 5)
        assert result.final_difference == pytest.approx(0.0, abs=0.5)
        assert controller.state == RefinementState.CONVERGED
    
    def test_summary_text(self, white_image):
        target = _with_squares((0, 0), (80, 0), (0, 80))
        result = _controller().refine(
            white_image, target, config=RefinementConfig(exclude_types=["content"])
        )
        text = result.summary_text()
        assert "converged after 2 iteration(s)" in text
        assert "Suggested exclusions: 3" in text
    
    def test_low_confidence_excluded_as_false_positive(self, white_image):
        """Test weakly classified regions are proposed with inverted confidence."""
        config = RefinementConfig(exclude_low_confidence=True)
        result = _controller(confidence=0.6).refine(white_image, _with_squares((0, 0)), config=config)
        assert result.converged
        assert result.final_difference == 0.0
        exclusion = result.suggested_exclusions[0]
        assert exclusion.name == "low-confidence-1-1"
        assert exclusion.confidence == pytest.approx(0.4)
        assert "false positive" in exclusion.reason
    
    def test_low_confidence_kept_by_default(self, white_image):
        result = _controller(confidence=0.6).refine(
            white_image, _with_squares((0, 0)), config=RefinementConfig(exclude_types=["content"])
        )
        assert result.suggested_exclusions == ()
        assert result.final_difference == 1.0
    
    def test_confident_regions_not_false_positives(self, white_image):
        config = RefinementConfig(exclude_low_confidence=True)
        result = _controller().refine(white_image, _with_squares((0, 0)), config=config)
        assert result.suggested_exclusions == ()
    
    def test_session_saved(self, tmp_path, white_image):
        session = tmp_path / "session.json"
        config = RefinementConfig(exclude_types=["content"], session_file=session)
        result = _controller().refine(white_image, _with_squares((0, 0), (50, 50)), config=config)
        assert session.exists()
        assert RefinementResult.from_file(session) == result


class TestDefaultSettings:
    """Refinement with alignment enabled, as configured out of the box."""
    
    def test_content_noise_converges(self, white_image):
        pipeline = ClassifierPipeline(ClassifierRegistry([AlwaysContent()]))
        controller = RefinementController(pipeline=pipeline)
        target = _with_squares((0, 0), (80, 0), (0, 80))
        
        result = controller.refine(white_image, target, config=RefinementConfig(exclude_types=["content"]))
        
        assert result.alignment.method == AlignmentMethod.SUBIMAGE
        assert result.alignment.offset == (0, 0)
        assert result.initial_difference == 3.0
        assert result.final_difference == 0.0
        assert result.converged
        assert len(result.iterations[0].exclusions_applied) == 3
    
    def test_new_element_excluded_with_builtins(self, white_image, square_image):
        """Test an added square is aligned, classified and excluded."""
        result = RefinementController().refine(
            white_image, square_image, config=RefinementConfig(exclude_types=["new_element"])
        )
        assert result.initial_difference == 25.0
        assert result.final_difference == 0.0
        assert result.converged
        assert result.suggested_exclusions[0].bounds == BoundingBox(25, 25, 50, 50)
