"""Pixel statistics shared by comparison and classification."""

import logging
from collections import Counter
from dataclasses import dataclass

import cv2
import numpy as np
import numpy.typing as npt

from ..config import CLASSIFICATION_CONFIG, ColorMetric

logger = logging.getLogger(__name__)

# Type aliases
RGBAArray = npt.NDArray[np.uint8]  # HxWx4
GrayArray = npt.NDArray[np.float32]  # HxW

# Normalizers bringing each metric to 0-1
_EUCLIDEAN_MAX = 510.0  # sqrt(255^2 * 4)
_YIQ_MAX = 35215.0  # pixelmatch maximum squared YIQ delta


@dataclass(frozen=True, slots=True)
class ColorStats:
    """Color summary of a pixel block."""
    average: tuple[float, float, float]
    variance: float
    dominant_colors: tuple[tuple[tuple[int, int, int], int], ...]


@dataclass(frozen=True, slots=True)
class EdgeStats:
    """Sobel edge summary of a pixel block."""
    edge_count: int
    edge_density: float


@dataclass(frozen=True, slots=True)
class HSLStats:
    """Average lightness, saturation and hue of a pixel block."""
    brightness: float
    saturation: float
    hue: float
    contrast: float


def color_distance(
    reference: RGBAArray,
    target: RGBAArray,
    metric: ColorMetric = ColorMetric.EUCLIDEAN,
) -> npt.NDArray[np.float32]:
    """Per-pixel color distance normalized to 0-1.

    Args:
        reference: HxWx4 RGBA array
        target: HxWx4 RGBA array of the same shape
        metric: Distance formula

    Returns:
        HxW float array
    """
    ref = reference.astype(np.float32)
    tgt = target.astype(np.float32)

    # Premultiply so fully transparent pixels compare equal regardless of color
    ref_alpha = ref[:, :, 3:4] / 255.0
    tgt_alpha = tgt[:, :, 3:4] / 255.0
    ref_rgb = ref[:, :, :3] * ref_alpha
    tgt_rgb = tgt[:, :, :3] * tgt_alpha

    if metric is ColorMetric.YIQ:
        # Blend onto white, then weight YIQ channels as pixelmatch does
        ref_rgb = ref_rgb + 255.0 * (1.0 - ref_alpha)
        tgt_rgb = tgt_rgb + 255.0 * (1.0 - tgt_alpha)
        delta = ref_rgb - tgt_rgb
        dr, dg, db = delta[:, :, 0], delta[:, :, 1], delta[:, :, 2]
        y = dr * 0.29889531 + dg * 0.58662247 + db * 0.11448223
        i = dr * 0.59597799 - dg * 0.27417610 - db * 0.32180189
        q = dr * 0.21147017 - dg * 0.52261711 + db * 0.31114694
        return np.clip((0.5053 * y * y + 0.299 * i * i + 0.1957 * q * q) / _YIQ_MAX, 0.0, 1.0)

    delta = np.concatenate([ref_rgb - tgt_rgb, ref[:, :, 3:4] - tgt[:, :, 3:4]], axis=2)
    return np.sqrt(np.sum(delta * delta, axis=2)) / _EUCLIDEAN_MAX


def to_gray(data: RGBAArray) -> GrayArray:
    """Unweighted mean of RGB, as float32."""
    return data[:, :, :3].astype(np.float32).mean(axis=2)


def sobel_magnitude(data: RGBAArray) -> GrayArray:
    """Sobel gradient magnitude of the gray image (3x3 kernels)."""
    gray = to_gray(data)
    gx = cv2.Sobel(gray, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(gray, cv2.CV_32F, 0, 1, ksize=3)
    return cv2.magnitude(gx, gy)


def edge_map(data: RGBAArray, threshold: float = CLASSIFICATION_CONFIG.edge_threshold) -> npt.NDArray[np.bool_]:
    """Boolean edge map; the one-pixel border is never an edge."""
    h, w = data.shape[:2]
    edges = np.zeros((h, w), dtype=bool)
    if h < 3 or w < 3:
        return edges
    magnitude = sobel_magnitude(data)
    edges[1:-1, 1:-1] = magnitude[1:-1, 1:-1] > threshold
    return edges


def edge_statistics(data: RGBAArray, threshold: float = CLASSIFICATION_CONFIG.edge_threshold) -> EdgeStats:
    """Count interior pixels whose gradient exceeds ``threshold``."""
    h, w = data.shape[:2]
    if h < 3 or w < 3:
        return EdgeStats(edge_count=0, edge_density=0.0)
    count = int(np.count_nonzero(edge_map(data, threshold)))
    return EdgeStats(edge_count=count, edge_density=count / ((w - 2) * (h - 2)))


def color_statistics(
    data: RGBAArray,
    top: int = CLASSIFICATION_CONFIG.dominant_colors,
    quantization: int = CLASSIFICATION_CONFIG.color_quantization,
) -> ColorStats:
    """Average color, channel variance and most frequent quantized colors."""
    rgb = data[:, :, :3].reshape(-1, 3).astype(np.float32)
    if rgb.size == 0:
        return ColorStats(average=(0.0, 0.0, 0.0), variance=0.0, dominant_colors=())

    average = rgb.mean(axis=0)
    variance = float(np.mean(np.sum((rgb - average) ** 2, axis=1) / 3.0))

    quantized = (rgb.astype(np.int32) // quantization) * quantization
    colors, counts = np.unique(quantized, axis=0, return_counts=True)
    order = np.argsort(-counts, kind="stable")[:top]
    dominant = tuple(
        (tuple(int(c) for c in colors[i]), int(counts[i])) for i in order
    )
    return ColorStats(
        average=(float(average[0]), float(average[1]), float(average[2])),
        variance=variance,
        dominant_colors=dominant,
    )


def hsl_statistics(data: RGBAArray) -> HSLStats:
    """Average HSL values; hue is a circular mean in degrees.

    Brightness, saturation and contrast are 0-1.
    """
    rgb = data[:, :, :3].astype(np.float32) / 255.0
    hls = cv2.cvtColor(rgb, cv2.COLOR_RGB2HLS)
    hue, lightness, saturation = hls[:, :, 0], hls[:, :, 1], hls[:, :, 2]

    # Achromatic pixels have no meaningful hue
    chromatic = saturation > 1e-6
    if np.any(chromatic):
        radians = np.deg2rad(hue[chromatic])
        mean_hue = float(np.rad2deg(np.arctan2(np.sin(radians).mean(), np.cos(radians).mean())) % 360.0)
    else:
        mean_hue = 0.0

    return HSLStats(
        brightness=float(lightness.mean()),
        saturation=float(saturation.mean()),
        hue=mean_hue,
        contrast=float(lightness.max() - lightness.min()),
    )


def gray_histogram(data: RGBAArray) -> npt.NDArray[np.float32]:
    """Normalized 256-bin histogram of the gray image."""
    if data.size == 0:
        return np.zeros(256, dtype=np.float32)
    gray = np.rint(to_gray(data)).astype(np.uint8)
    hist = cv2.calcHist([gray], [0], None, [256], [0, 256]).ravel()
    total = hist.sum()
    return hist / total if total > 0 else hist


def histogram_intersection(a: npt.NDArray[np.float32], b: npt.NDArray[np.float32]) -> float:
    """Similarity of two normalized histograms, 1.0 for identical ones."""
    return float(np.minimum(a, b).sum())


def background_color(data: RGBAArray, samples_per_edge: int = 10, quantization: int = 10) -> tuple[int, int, int]:
    """Most common border color, sampled at corners and along top/bottom edges.

    Colors are grouped by quantized value; the first sample of the winning
    group is returned.
    """
    h, w = data.shape[:2]
    positions = [(0, 0), (0, w - 1), (h - 1, 0), (h - 1, w - 1)]
    for i in range(samples_per_edge):
        x = int((w - 1) * i / max(1, samples_per_edge - 1))
        positions.append((0, x))
        positions.append((h - 1, x))

    counts: Counter = Counter()
    first_seen: dict[tuple[int, ...], tuple[int, int, int]] = {}
    for y, x in positions:
        color = tuple(int(c) for c in data[y, x, :3])
        key = tuple(c // quantization for c in color)
        counts[key] += 1
        first_seen.setdefault(key, color)

    if not counts:
        return (255, 255, 255)
    key, _ = counts.most_common(1)[0]
    return first_seen[key]


def color_difference_map(data: RGBAArray, color: tuple[int, int, int]) -> npt.NDArray[np.int32]:
    """Per-pixel sum of absolute RGB differences from ``color``."""
    return np.abs(data[:, :, :3].astype(np.int32) - np.array(color, dtype=np.int32)).sum(axis=2)


def feather_weights(excluded: npt.NDArray[np.bool_], radius: int = 0) -> npt.NDArray[np.float32]:
    """Inclusion weight per pixel: 0 where excluded, 1 where kept.

    With a positive ``radius``, kept pixels closer than ``radius`` to an
    excluded pixel ramp linearly from 0 up to 1 with their distance.
    """
    kept = (~excluded).astype(np.uint8)
    if radius <= 0 or not np.any(excluded):
        return kept.astype(np.float32)
    distance = cv2.distanceTransform(kept, cv2.DIST_L2, cv2.DIST_MASK_PRECISE)
    return np.minimum(distance / float(radius), 1.0).astype(np.float32)
