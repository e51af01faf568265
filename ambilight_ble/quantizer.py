"""
quantizer.py

Builds a bounded color palette and a pixel histogram from a frame.

Training only sees "interesting" pixels (opaque and not near-white), but the
histogram is built over every pixel of the frame, so the populations always
add up to width * height.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

import cv2
import numpy as np

from ambilight_ble.errors import InsufficientSamples
from ambilight_ble.utils import rgb_to_hex

logger = logging.getLogger(__name__)

# If pixel is mostly opaque and not white it is used for training
MIN_ALPHA = 125
MAX_COLOR = 250

MIN_QUALITY = 1
MAX_QUALITY = 30

# Upper bound on (pixels x palette entries) per classification chunk
CLASSIFY_BUDGET = 1 << 20


@dataclass(frozen=True)
class Swatch:
    """One representative color plus its index in the owning palette."""

    rgb: Tuple[int, int, int]
    index: int

    def __repr__(self) -> str:
        return f"Swatch({rgb_to_hex(self.rgb)}, index={self.index})"


@dataclass
class Palette:
    """
    Ordered distinct swatches and a histogram of frame pixels per swatch.

    Attributes:
        swatches: Channel-distinct swatches, first-seen order
        histogram: Palette index -> number of frame pixels nearest that swatch.
            Indices without any pixel are absent.
    """

    swatches: List[Swatch]
    histogram: Dict[int, int]

    def __len__(self) -> int:
        return len(self.swatches)

    def __iter__(self):
        return iter(self.swatches)

    def __getitem__(self, index: int) -> Swatch:
        return self.swatches[index]

    @property
    def total_population(self) -> int:
        return sum(self.histogram.values())

    def population(self, swatch: Swatch) -> int:
        return self.histogram.get(swatch.index, 0)

    def frequency_of(self, rgb) -> int:
        """Pixel count of the swatch with exactly these channels, 0 if absent."""
        rgb = tuple(int(c) for c in rgb)
        for swatch in self.swatches:
            if swatch.rgb == rgb:
                return self.population(swatch)
        return 0

    def sorted_by_frequency(self) -> "Palette":
        """New palette ordered by ascending population, histogram re-keyed."""
        ordered = sorted(self.swatches, key=self.population)
        swatches = [Swatch(s.rgb, i) for i, s in enumerate(ordered)]
        histogram = {
            i: self.histogram[s.index]
            for i, s in enumerate(ordered)
            if s.index in self.histogram
        }
        return Palette(swatches, histogram)

    def __str__(self) -> str:
        colors = ", ".join(rgb_to_hex(s.rgb) for s in self.swatches)
        return f"Color Palette {{ {colors} }}"


def is_boring_pixel(pixel) -> bool:
    r, g, b, a = (int(c) for c in pixel[:4])
    interesting = a >= MIN_ALPHA and not (r > MAX_COLOR and g > MAX_COLOR and b > MAX_COLOR)
    return not interesting


def boring_mask(rgba: np.ndarray) -> np.ndarray:
    """Vectorized is_boring_pixel over an (..., 4) RGBA array."""
    r, g, b, a = rgba[..., 0], rgba[..., 1], rgba[..., 2], rgba[..., 3]
    near_white = (r > MAX_COLOR) & (g > MAX_COLOR) & (b > MAX_COLOR)
    return (a < MIN_ALPHA) | near_white


def _train(samples: np.ndarray, color_count: int, quality: int) -> np.ndarray:
    """
    Cluster training samples into at most color_count colors.

    Args:
        samples: (N, 3) uint8 RGB training pixels, N > 0
        color_count: Palette size bound
        quality: 1..30, higher trains on more pixels for more iterations

    Returns:
        (K, 3) uint8 colors ordered by cluster population, largest first
    """
    stride = max(MAX_QUALITY + 1 - quality, 1)
    training = samples[::stride]

    distinct, counts = np.unique(training, axis=0, return_counts=True)
    if len(distinct) <= color_count:
        # Every distinct color gets its own entry
        order = np.argsort(-counts, kind="stable")
        return distinct[order].astype(np.uint8)

    criteria = (cv2.TERM_CRITERIA_EPS + cv2.TERM_CRITERIA_MAX_ITER, 10 + quality, 1.0)
    _, labels, centers = cv2.kmeans(
        training.astype(np.float32),
        color_count,
        None,
        criteria,
        1,
        cv2.KMEANS_PP_CENTERS,
    )
    populations = np.bincount(labels.ravel(), minlength=color_count)
    order = np.argsort(-populations, kind="stable")
    return np.clip(np.rint(centers[order]), 0, 255).astype(np.uint8)


def _dedup(colors: np.ndarray) -> List[Tuple[int, int, int]]:
    unique = []
    seen = set()
    for color in map(tuple, colors.tolist()):
        if color not in seen:
            seen.add(color)
            unique.append(color)
    return unique


def classify(rgb: np.ndarray, colors: np.ndarray) -> np.ndarray:
    """
    Index of the nearest color (squared RGB distance) for every pixel.
    Ties resolve to the lowest index.
    """
    pixels = rgb.reshape(-1, 3).astype(np.int32)
    colors = colors.astype(np.int32)
    chunk = max(CLASSIFY_BUDGET // len(colors), 1)
    indices = np.empty(len(pixels), dtype=np.int64)
    for start in range(0, len(pixels), chunk):
        block = pixels[start:start + chunk]
        dist = ((block[:, None, :] - colors[None, :, :]) ** 2).sum(axis=2)
        indices[start:start + chunk] = dist.argmin(axis=1)
    return indices


def quantize(frame, color_count: int, quality: int) -> Palette:
    """
    Build a palette of at most color_count colors from a frame.

    Args:
        frame: Frame to analyze
        color_count: Palette size bound (8..512 for configured palettes)
        quality: Training effort, 1..30

    Returns:
        Palette with a histogram over all frame pixels

    Raises:
        InsufficientSamples: If every pixel is transparent or near-white
    """
    rgba = frame.rgba().reshape(-1, 4)
    interesting = rgba[~boring_mask(rgba)][:, :3]
    if len(interesting) == 0:
        raise InsufficientSamples(
            f"No interesting pixels in {frame.width}x{frame.height} frame"
        )

    trained = _train(interesting, color_count, quality)
    colors = _dedup(trained)

    indices = classify(rgba[:, :3], np.array(colors, dtype=np.uint8))
    counts = np.bincount(indices, minlength=len(colors))

    palette = Palette(
        swatches=[Swatch(color, i) for i, color in enumerate(colors)],
        histogram={i: int(c) for i, c in enumerate(counts) if c > 0},
    )
    logger.debug("%s", palette)
    return palette
