"""Custom exceptions for Visual Differ."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class VisualDifferError(Exception):
    """Base exception for all application errors.

    Attributes:
        message: Human-readable error description
        error_code: Optional error code for programmatic handling
    """

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class ConfigurationError(VisualDifferError):
    """Error in configuration or registry setup.

    Attributes:
        config_key: The configuration key that caused the error (if applicable)
    """

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message, error_code="CONFIG_ERROR")
        self.config_key = config_key


class ValidationError(VisualDifferError):
    """Error validating inputs or parameters.

    Attributes:
        field: The field that failed validation (if applicable)
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, error_code="VALIDATION_ERROR")
        self.field = field


class ImageLoadError(VisualDifferError):
    """Error decoding or encoding an image file.

    Attributes:
        image_path: Path to the image when the error occurred
    """

    def __init__(self, message: str, image_path: Optional[str] = None):
        super().__init__(message, error_code="IMAGE_ERROR")
        self.image_path = image_path

    def __str__(self) -> str:
        if self.image_path:
            return f"{super().__str__()} (image: {self.image_path})"
        return super().__str__()


@dataclass(frozen=True, slots=True)
class AlignmentAttempt:
    """Record of one alignment strategy run."""
    method: str
    score: float | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.score is not None


class AlignmentError(VisualDifferError):
    """No alignment strategy reached the minimum quality score.

    Attributes:
        attempts: Every strategy tried, with its score or failure reason
    """

    def __init__(self, message: str, attempts: tuple[AlignmentAttempt, ...] = ()):
        super().__init__(message, error_code="ALIGNMENT_ERROR")
        self.attempts = tuple(attempts)

    def __str__(self) -> str:
        if not self.attempts:
            return super().__str__()
        tried = ", ".join(
            f"{a.method}={a.score:.3f}" if a.score is not None else f"{a.method}: {a.error}"
            for a in self.attempts
        )
        return f"{super().__str__()} (tried: {tried})"


class ComparisonError(VisualDifferError):
    """Reference and target images cannot be compared pixel for pixel.

    Attributes:
        reference_size: (width, height) of the reference image
        target_size: (width, height) of the target image
    """

    def __init__(
        self,
        message: str,
        reference_size: Optional[tuple[int, int]] = None,
        target_size: Optional[tuple[int, int]] = None,
    ):
        super().__init__(message, error_code="COMPARISON_ERROR")
        self.reference_size = reference_size
        self.target_size = target_size
