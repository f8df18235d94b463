"""Exclusion merging service - pure geometry operations."""

from __future__ import annotations

from typing import Iterable, Sequence

from shapely.geometry import box as shapely_box
from shapely.ops import unary_union

from ..entities.region import ExclusionRegion
from ..value_objects.geometry import BoundingBox


class _UnionFind:
    """Disjoint sets over ``range(n)`` with path compression."""

    def __init__(self, n: int):
        self.parent = list(range(n))

    def find(self, x: int) -> int:
        if self.parent[x] != x:
            self.parent[x] = self.find(self.parent[x])
        return self.parent[x]

    def union(self, x: int, y: int) -> None:
        px, py = self.find(x), self.find(y)
        if px != py:
            # Keep the smaller index as root so groups stay in input order
            if px < py:
                self.parent[py] = px
            else:
                self.parent[px] = py

    def groups(self) -> list[list[int]]:
        components: dict[int, list[int]] = {}
        for i in range(len(self.parent)):
            components.setdefault(self.find(i), []).append(i)
        return list(components.values())


def group_boxes(boxes: Sequence[BoundingBox], max_gap: float | None = None) -> list[list[int]]:
    """Group boxes that overlap, or lie within ``max_gap`` pixels, transitively.

    Algorithm:
        1. Sort by x for a sweep line
        2. Compare each box only with boxes starting before it ends (+ gap)
        3. Union-Find for connected components

    Args:
        boxes: Boxes to group
        max_gap: Merge boxes whose gap is at most this many pixels
            (None merges only overlapping boxes)

    Returns:
        Index groups, ordered by their smallest index

    Complexity: O(n log n) average case
    """
    n = len(boxes)
    if n == 0:
        return []

    uf = _UnionFind(n)
    reach = 0.0 if max_gap is None else max_gap
    sorted_indices = sorted(range(n), key=lambda i: boxes[i].x)

    for i, idx1 in enumerate(sorted_indices):
        box1 = boxes[idx1]
        for j in range(i + 1, n):
            idx2 = sorted_indices[j]
            box2 = boxes[idx2]

            # Remaining boxes start too far right to touch box1
            if box2.x - box1.max_x > reach:
                break

            if max_gap is None:
                if box1.intersects(box2):
                    uf.union(idx1, idx2)
            elif box1.gap_to(box2) <= max_gap:
                uf.union(idx1, idx2)

    return sorted(uf.groups(), key=min)


def cluster_by_center(boxes: Sequence[BoundingBox], max_distance: float) -> list[list[int]]:
    """Group boxes whose centers lie within ``max_distance`` of each other (transitively)."""
    n = len(boxes)
    uf = _UnionFind(n)
    centers = [b.center for b in boxes]
    for i in range(n):
        for j in range(i + 1, n):
            if centers[i].distance_to(centers[j]) <= max_distance:
                uf.union(i, j)
    return sorted(uf.groups(), key=min)


def union_bounds(boxes: Iterable[BoundingBox]) -> BoundingBox:
    """Bounding rectangle of the union of boxes."""
    merged = unary_union([_to_polygon(b) for b in boxes])
    min_x, min_y, max_x, max_y = merged.bounds
    return BoundingBox.from_corners(int(min_x), int(min_y), int(max_x), int(max_y))


def covered_area(boxes: Iterable[BoundingBox]) -> int:
    """Pixel area covered by the union of boxes (overlaps counted once)."""
    polygons = [_to_polygon(b) for b in boxes if not b.is_empty]
    if not polygons:
        return 0
    return int(round(unary_union(polygons).area))


def merge_exclusions(
    existing: Sequence[ExclusionRegion],
    candidates: Sequence[ExclusionRegion] = (),
) -> tuple[ExclusionRegion, ...]:
    """Merge exclusion regions until no two overlap.

    Overlapping regions are replaced by one region covering their union.
    The merged region keeps the highest confidence and the earliest origin
    iteration of its group. Because a merged rectangle can reach regions
    that neither input touched, merging repeats until stable.

    Args:
        existing: Current exclusion set
        candidates: Newly proposed regions

    Returns:
        New tuple of non-overlapping exclusion regions
    """
    regions = list(existing) + list(candidates)

    while True:
        groups = group_boxes([r.bounds for r in regions])
        if len(groups) == len(regions):
            return tuple(regions)
        regions = [
            regions[g[0]] if len(g) == 1 else _merge_group([regions[i] for i in g])
            for g in groups
        ]


def _merge_group(group: list[ExclusionRegion]) -> ExclusionRegion:
    """Combine a group of overlapping regions into one."""
    first = min(group, key=lambda r: r.origin_iteration)
    reasons: list[str] = []
    for r in group:
        if r.reason and r.reason not in reasons:
            reasons.append(r.reason)

    return ExclusionRegion(
        bounds=union_bounds(r.bounds for r in group),
        name=first.name,
        reason="; ".join(reasons) or None,
        confidence=max(r.confidence for r in group),
        origin_iteration=first.origin_iteration,
    )


def _to_polygon(b: BoundingBox):
    return shapely_box(b.x, b.y, b.max_x, b.max_y)
