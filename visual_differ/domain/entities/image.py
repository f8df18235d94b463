"""Image entity - immutable RGBA pixel buffer."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np
import numpy.typing as npt

from ...exceptions import ImageLoadError, ValidationError

# Type alias
PixelArray = npt.NDArray[np.uint8]  # Shape (H, W, 4)


def _to_rgba(data: np.ndarray) -> PixelArray:
    """Normalize gray, RGB or RGBA arrays to a contiguous RGBA uint8 array."""
    arr = np.asarray(data)
    if arr.dtype != np.uint8:
        if arr.dtype.kind == 'f' and arr.size and arr.max() <= 1.0:
            arr = arr * 255.0
        arr = np.clip(arr, 0, 255).astype(np.uint8)

    if arr.ndim == 2:
        alpha = np.full(arr.shape, 255, dtype=np.uint8)
        return np.ascontiguousarray(np.dstack([arr, arr, arr, alpha]))
    if arr.ndim == 3 and arr.shape[2] == 3:
        alpha = np.full(arr.shape[:2], 255, dtype=np.uint8)
        return np.ascontiguousarray(np.dstack([arr, alpha]))
    if arr.ndim == 3 and arr.shape[2] == 4:
        return np.ascontiguousarray(arr)
    raise ValidationError(f"Unsupported image array shape {arr.shape}", field="data")


@dataclass(frozen=True, slots=True)
class Image:
    """Domain entity representing a decoded image.

    Pixels are stored as a read-only RGBA ``uint8`` array of shape
    ``(height, width, 4)``.
    """
    data: PixelArray
    source_path: Path | None = None

    def __post_init__(self) -> None:
        data = _to_rgba(self.data)
        if data.shape[0] == 0 or data.shape[1] == 0:
            raise ValidationError("Image must have non-zero dimensions", field="data")
        if data is self.data:
            data = data.copy()
        data.setflags(write=False)
        object.__setattr__(self, "data", data)

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def height(self) -> int:
        return self.data.shape[0]

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def rgb(self) -> npt.NDArray[np.uint8]:
        """RGB channels without alpha."""
        return self.data[:, :, :3]

    @property
    def alpha(self) -> npt.NDArray[np.uint8]:
        return self.data[:, :, 3]

    def crop(self, x: int, y: int, w: int, h: int) -> Image:
        """Crop to region (clipped to the image) and return new Image."""
        x0, y0 = max(0, x), max(0, y)
        x1, y1 = min(self.width, x + w), min(self.height, y + h)
        return Image(data=self.data[y0:y1, x0:x1], source_path=self.source_path)

    def to_array(self) -> PixelArray:
        """Writable copy of the RGBA pixels."""
        return self.data.copy()

    def to_gray(self) -> npt.NDArray[np.uint8]:
        """Luma channel used by alignment and edge analysis."""
        import cv2
        return cv2.cvtColor(np.ascontiguousarray(self.rgb), cv2.COLOR_RGB2GRAY)

    def save(self, path: Path | str) -> None:
        """Save image to path."""
        from PIL import Image as PILImage
        try:
            PILImage.fromarray(np.ascontiguousarray(self.data)).save(path)
        except (OSError, ValueError) as e:
            raise ImageLoadError(f"Failed to save image: {e}", image_path=str(path)) from e

    @classmethod
    def from_file(cls, path: Path | str) -> Image:
        """Load image from file."""
        path = Path(path)
        # Lazy import - domain doesn't depend on PIL
        from PIL import Image as PILImage
        try:
            with PILImage.open(path) as pil_image:
                data = np.array(pil_image.convert("RGBA"))
        except (OSError, ValueError) as e:
            raise ImageLoadError(f"Failed to load image: {e}", image_path=str(path)) from e
        return cls(data=data, source_path=path)

    @classmethod
    def from_array(cls, data: np.ndarray, source_path: Path | None = None) -> Image:
        """Create from a gray, RGB or RGBA numpy array."""
        return cls(data=np.asarray(data), source_path=source_path)

    @classmethod
    def solid(cls, width: int, height: int, color: tuple[int, ...]) -> Image:
        """Create a single-color image."""
        rgba = tuple(color) + (255,) * (4 - len(color))
        data = np.empty((height, width, 4), dtype=np.uint8)
        data[:, :] = rgba
        return cls(data=data)
