"""Geometry value objects."""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Point:
    """2D point."""
    x: float
    y: float

    def distance_to(self, other: Point) -> float:
        """Calculate Euclidean distance to another point."""
        return math.sqrt((self.x - other.x) ** 2 + (self.y - other.y) ** 2)

    def __add__(self, other: Point) -> Point:
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Point) -> Point:
        return Point(self.x - other.x, self.y - other.y)


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned pixel rectangle.

    ``x``/``y`` is the top-left pixel; ``max_x``/``max_y`` are exclusive,
    so a box covers ``width * height`` pixels.
    """
    x: int
    y: int
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Box dimensions must be >= 0, got {self.width}x{self.height}")

    @classmethod
    def from_corners(cls, min_x: int, min_y: int, max_x: int, max_y: int) -> BoundingBox:
        """Create from top-left (inclusive) and bottom-right (exclusive) corners."""
        return cls(min_x, min_y, max(0, max_x - min_x), max(0, max_y - min_y))

    @property
    def max_x(self) -> int:
        return self.x + self.width

    @property
    def max_y(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def is_empty(self) -> bool:
        return self.area == 0

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    def intersects(self, other: BoundingBox) -> bool:
        """Check if the boxes share at least one pixel."""
        return (
            self.x < other.max_x and other.x < self.max_x and
            self.y < other.max_y and other.y < self.max_y
        )

    def intersection(self, other: BoundingBox) -> BoundingBox | None:
        """Return the shared rectangle, or None if the boxes are disjoint."""
        if not self.intersects(other):
            return None
        return BoundingBox.from_corners(
            max(self.x, other.x),
            max(self.y, other.y),
            min(self.max_x, other.max_x),
            min(self.max_y, other.max_y),
        )

    def union(self, other: BoundingBox) -> BoundingBox:
        """Return bounding box containing both boxes."""
        return BoundingBox.from_corners(
            min(self.x, other.x),
            min(self.y, other.y),
            max(self.max_x, other.max_x),
            max(self.max_y, other.max_y),
        )

    def expand(self, pixels: int) -> BoundingBox:
        """Expand box by specified pixels in all directions."""
        return BoundingBox(
            self.x - pixels,
            self.y - pixels,
            self.width + 2 * pixels,
            self.height + 2 * pixels,
        )

    def clamp(self, width: int, height: int) -> BoundingBox:
        """Clip the box to an image of the given size."""
        return BoundingBox.from_corners(
            min(max(self.x, 0), width),
            min(max(self.y, 0), height),
            max(min(self.max_x, width), 0),
            max(min(self.max_y, height), 0),
        )

    def gap_to(self, other: BoundingBox) -> float:
        """Euclidean distance between the closest pixels of two boxes.

        Touching or overlapping boxes have a gap of 0. Boxes separated by
        one empty pixel column have a gap of 1.
        """
        dx = max(0, max(self.x, other.x) - min(self.max_x, other.max_x))
        dy = max(0, max(self.y, other.y) - min(self.max_y, other.max_y))
        return math.hypot(dx, dy)

    def contains(self, other: BoundingBox) -> bool:
        """Check if the other box lies entirely inside this one."""
        return (
            self.x <= other.x and self.y <= other.y and
            other.max_x <= self.max_x and other.max_y <= self.max_y
        )

    def to_slices(self) -> tuple[slice, slice]:
        """Numpy (row, column) slices selecting this box."""
        return slice(self.y, self.max_y), slice(self.x, self.max_x)

    def to_dict(self) -> dict[str, int]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}
