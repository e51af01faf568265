"""
color_extractor.py

Reduces a captured frame to a single RGB sample in [0, 1].

Three interchangeable strategies:
- SquaredAverage: energy-weighted average over an even pixel grid
- MostDominant: two-color quantization, first swatch wins
- Vibrancy: vibrancy classification on a downsampled frame
"""

import logging
from dataclasses import dataclass
from typing import Union

import cv2
import numpy as np

from ambilight_ble.quantizer import quantize
from ambilight_ble.screen.frame import Frame
from ambilight_ble.vibrancy import generate_variation_colors

logger = logging.getLogger(__name__)

DOMINANT_COLOR_COUNT = 2
VIBRANCY_DOWNSCALE = 0.05
VIBRANCY_PRIORITY = ("primary", "light", "light_muted", "muted", "dark_muted", "dark")
BLACK = (0, 0, 0)


@dataclass(frozen=True)
class SquaredAverage:
    sample_rate: float = 0.1


@dataclass(frozen=True)
class MostDominant:
    quality: int = 2
    sorted: bool = True


@dataclass(frozen=True)
class Vibrancy:
    color_count: int = 256
    quality: int = 10


Strategy = Union[SquaredAverage, MostDominant, Vibrancy]


def _normalize(rgb) -> np.ndarray:
    return np.asarray(rgb, dtype=np.float32) / 255.0


def squared_average(frame, sample_rate: float) -> np.ndarray:
    """
    Square-root of the mean squared channel values over an even sample grid.
    """
    sample_width = max(int(round(frame.width * sample_rate)), 1)
    sample_height = max(int(round(frame.height * sample_rate)), 1)
    step_x = max(frame.width // sample_width, 1)
    step_y = max(frame.height // sample_height, 1)

    rgb = frame.rgb()
    samples = rgb[::step_y, ::step_x][:sample_height, :sample_width].reshape(-1, 3)
    squared = samples.astype(np.float64) ** 2
    avg = squared.mean(axis=0)
    return (np.sqrt(avg) / 255.0).astype(np.float32)


def contrast(rgb) -> int:
    """((max + min) * (max - min)) / max(max, 1) over the three channels."""
    hi = max(rgb)
    lo = min(rgb)
    return ((hi + lo) * (hi - lo)) // max(hi, 1)


def opaque(frame):
    """The frame's RGB channel stream as a fully opaque frame."""
    return Frame.from_rgb(frame.rgb())


def most_dominant(frame, quality: int, sort: bool) -> np.ndarray:
    """
    First swatch of a two-color palette.

    With sort enabled the swatches are ordered by ascending contrast before
    picking, so the least contrasty of the two colors is returned.
    """
    palette = quantize(opaque(frame), DOMINANT_COLOR_COUNT, quality)
    swatches = list(palette)
    if sort:
        swatches = sorted(swatches, key=lambda s: contrast(s.rgb))
    return _normalize(swatches[0].rgb)


def downscale(frame, factor: float):
    """Nearest-neighbour resize of a frame, at least one pixel per side."""
    width = max(int(frame.width * factor), 1)
    height = max(int(frame.height * factor), 1)
    small = cv2.resize(frame.rgba(), (width, height), interpolation=cv2.INTER_NEAREST)
    return Frame(width, height, small, "RGBA")


def vibrant(frame, color_count: int, quality: int) -> np.ndarray:
    small = downscale(frame, VIBRANCY_DOWNSCALE)
    palette = quantize(opaque(small), color_count, quality)
    vibrancy = generate_variation_colors(palette)
    swatch = vibrancy.first_available(VIBRANCY_PRIORITY)
    if swatch is None:
        logger.debug("No vibrancy swatch in %s, falling back to black", palette)
        return _normalize(BLACK)
    return _normalize(swatch.rgb)


def extract_color(frame, strategy: Strategy) -> np.ndarray:
    """
    Reduce a frame to one RGB sample in [0, 1] with the given strategy.

    Raises:
        InsufficientSamples: If a quantizing strategy finds no usable pixel
        TypeError: If strategy is not one of the known variants
    """
    if isinstance(strategy, SquaredAverage):
        return squared_average(frame, strategy.sample_rate)
    elif isinstance(strategy, MostDominant):
        return most_dominant(frame, strategy.quality, strategy.sorted)
    elif isinstance(strategy, Vibrancy):
        return vibrant(frame, strategy.color_count, strategy.quality)
    raise TypeError(f"Unknown color sampling strategy: {strategy!r}")
