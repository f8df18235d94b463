"""Tests for the image comparison service."""

from unittest.mock import Mock

import pytest

from visual_differ.application.services.comparison import (
    AlignStep,
    ClassifyStep,
    CompareStep,
    ImageComparisonService,
    SegmentStep,
)
from visual_differ.config import AlignmentMethod
from visual_differ.core.alignment import AlignmentOrchestrator
from visual_differ.domain.entities.classification import DifferenceType
from visual_differ.domain.entities.image import Image
from visual_differ.domain.entities.region import ExclusionRegion
from visual_differ.domain.value_objects.config import ComparisonConfig
from visual_differ.domain.value_objects.geometry import BoundingBox
from visual_differ.exceptions import AlignmentError, ComparisonError, ImageLoadError


class TestImageComparisonService:
    """Test the align/compare/segment/classify pipeline."""
    
    def test_pipeline_steps(self):
        service = ImageComparisonService()
        assert [type(s) for s in service._steps] == [AlignStep, CompareStep, SegmentStep, ClassifyStep]
    
    def test_identical_images(self, square_image):
        result = ImageComparisonService(ComparisonConfig(align=False)).compare(square_image, square_image)
        assert result.is_equal
        assert result.percentage_different == 0.0
        assert result.regions == ()
        assert result.classification.total_regions == 0
        assert result.alignment is None
    
    def test_new_element(self, white_image, square_image):
        """Test an added square yields one classified region."""
        service = ImageComparisonService(ComparisonConfig(align=False, render_diff=True))
        result = service.compare(white_image, square_image)
        assert result.percentage_different == 25.0
        assert len(result.regions) == 1
        assert result.regions[0].pixel_count == 2500
        assert result.regions[0].difference_percentage == 25.0
        assert result.classification.by_type[DifferenceType.NEW_ELEMENT] == 1
        assert result.diff_image is not None
    
    def test_new_element_with_default_settings(self, white_image, square_image):
        """Test a real content change survives alignment with the default chain."""
        result = ImageComparisonService().compare(white_image, square_image)
        assert result.alignment.method == AlignmentMethod.SUBIMAGE
        assert result.alignment.offset == (0, 0)
        assert [a.method for a in result.alignment.attempts] == ["feature", "subimage"]
        assert result.percentage_different == 25.0
        assert len(result.regions) == 1
        assert result.regions[0].pixel_count == 2500
        assert result.classification.by_type[DifferenceType.NEW_ELEMENT] == 1

    def test_exclusions(self, white_image, square_image):
        exclusion = ExclusionRegion(bounds=BoundingBox(25, 25, 50, 50))
        service = ImageComparisonService(ComparisonConfig(align=False))
        result = service.compare(white_image, square_image, exclusions=[exclusion])
        assert result.percentage_different == 0.0
        assert result.regions == ()
    
    def test_classification_disabled(self, white_image, square_image):
        service = ImageComparisonService(ComparisonConfig(align=False, classify=False))
        result = service.compare(white_image, square_image)
        assert result.classification is None
        assert len(result.regions) == 1
    
    def test_aligned_shift(self, noise_image, shifted_noise_image):
        """Test a shifted copy is equal once aligned."""
        config = ComparisonConfig(alignment_method=AlignmentMethod.SUBIMAGE, allow_fallback=False)
        result = ImageComparisonService(config).compare(noise_image, shifted_noise_image)
        assert result.alignment.method == AlignmentMethod.SUBIMAGE
        assert result.alignment.offset == (5, 5)
        assert result.is_equal
    
    def test_reuses_alignment(self, noise_image, shifted_noise_image):
        config = ComparisonConfig(alignment_method="subimage", allow_fallback=False)
        alignment = ImageComparisonService(config).align(noise_image, shifted_noise_image)

        orchestrator = Mock(spec=AlignmentOrchestrator)
        service = ImageComparisonService(config, orchestrator=orchestrator)
        result = service.compare(noise_image, shifted_noise_image, alignment=alignment)

        orchestrator.align.assert_not_called()
        assert result.alignment is alignment
        assert result.is_equal
    
    def test_alignment_failure_propagates(self, white_image):
        config = ComparisonConfig(alignment_method="subimage", allow_fallback=False)
        with pytest.raises(AlignmentError):
            ImageComparisonService(config).compare(white_image, Image.solid(100, 100, (0, 0, 0)))
    
    def test_size_mismatch(self, white_image):
        service = ImageComparisonService(ComparisonConfig(align=False))
        with pytest.raises(ComparisonError):
            service.compare(white_image, Image.solid(80, 100, (255, 255, 255)))
    
    def test_paths(self, tmp_path, white_image, square_image):
        white_image.save(tmp_path / "reference.png")
        square_image.save(tmp_path / "target.png")
        service = ImageComparisonService(ComparisonConfig(align=False))
        result = service.compare(tmp_path / "reference.png", str(tmp_path / "target.png"))
        assert result.percentage_different == 25.0
    
    def test_missing_path(self, tmp_path, white_image):
        service = ImageComparisonService(ComparisonConfig(align=False))
        with pytest.raises(ImageLoadError):
            service.compare(white_image, tmp_path / "missing.png")
