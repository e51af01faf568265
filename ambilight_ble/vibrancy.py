"""
vibrancy.py

Classifies palette swatches into six perceptual roles: primary, dark, light,
muted, dark muted and light muted.

Each role has a luma and a saturation Range. Swatches inside both ranges are
scored by closeness to the targets and by population; the best one wins and
can not be picked again by a later role.
"""

from dataclasses import dataclass, fields
from typing import Iterable, NamedTuple, Optional, Set

from ambilight_ble.quantizer import Palette, Swatch
from ambilight_ble.utils import rgb_to_hsl


class Range(NamedTuple):
    """Closed acceptance interval plus an ideal value."""

    min: float
    target: float
    max: float

    def __contains__(self, value) -> bool:
        return self.min <= value <= self.max


TARGET_DARK_LUMA = 0.26
MAX_DARK_LUMA = 0.45

MIN_LIGHT_LUMA = 0.55
TARGET_LIGHT_LUMA = 0.74

MIN_NORMAL_LUMA = 0.3
TARGET_NORMAL_LUMA = 0.5
MAX_NORMAL_LUMA = 0.7

TARGET_MUTED_SATURATION = 0.3
MAX_MUTED_SATURATION = 0.4

TARGET_VIBRANT_SATURATION = 1.0
MIN_VIBRANT_SATURATION = 0.35

WEIGHT_SATURATION = 3.0
WEIGHT_LUMA = 6.0
WEIGHT_POPULATION = 1.0

NORMAL_LUMA = Range(MIN_NORMAL_LUMA, TARGET_NORMAL_LUMA, MAX_NORMAL_LUMA)
LIGHT_LUMA = Range(MIN_LIGHT_LUMA, TARGET_LIGHT_LUMA, 1.0)
DARK_LUMA = Range(0.0, TARGET_DARK_LUMA, MAX_DARK_LUMA)
VIBRANT_SATURATION = Range(MIN_VIBRANT_SATURATION, TARGET_VIBRANT_SATURATION, 1.0)
MUTED_SATURATION = Range(0.0, TARGET_MUTED_SATURATION, MAX_MUTED_SATURATION)

# Evaluation order matters: earlier roles claim swatches first.
CATEGORY_RANGES = (
    ("primary", NORMAL_LUMA, VIBRANT_SATURATION),
    ("light", LIGHT_LUMA, VIBRANT_SATURATION),
    ("dark", DARK_LUMA, VIBRANT_SATURATION),
    ("muted", NORMAL_LUMA, MUTED_SATURATION),
    ("light_muted", LIGHT_LUMA, MUTED_SATURATION),
    ("dark_muted", DARK_LUMA, MUTED_SATURATION),
)


@dataclass
class VibrancyResult:
    primary: Optional[Swatch] = None
    dark: Optional[Swatch] = None
    light: Optional[Swatch] = None
    muted: Optional[Swatch] = None
    dark_muted: Optional[Swatch] = None
    light_muted: Optional[Swatch] = None

    def first_available(self, order: Iterable[str]) -> Optional[Swatch]:
        """First non-empty category in the given order."""
        for name in order:
            swatch = getattr(self, name)
            if swatch is not None:
                return swatch
        return None

    def as_dict(self):
        return {f.name: getattr(self, f.name) for f in fields(self)}


def invert_diff(value: float, target: float) -> float:
    return 1.0 - abs(value - target)


def weighted_mean(values) -> float:
    total = sum(v * w for v, w in values)
    total_weight = sum(w for _, w in values)
    return total / total_weight


def comparison_value(
    saturation: float,
    target_saturation: float,
    luma: float,
    target_luma: float,
    population: float,
    total_population: float,
) -> float:
    return weighted_mean(
        [
            (invert_diff(saturation, target_saturation), WEIGHT_SATURATION),
            (invert_diff(luma, target_luma), WEIGHT_LUMA),
            (population / total_population, WEIGHT_POPULATION),
        ]
    )


def find_color_variation(
    palette: Palette, luma: Range, saturation: Range, used: Set[Swatch]
) -> Optional[Swatch]:
    """
    Best scoring swatch inside both ranges that is not already used.

    Ties keep the earliest swatch in palette order.
    """
    best = None
    best_value = 0.0
    total_population = palette.total_population

    for swatch in palette:
        if swatch in used:
            continue
        population = palette.population(swatch)
        if population == 0:
            continue

        _, s, l = rgb_to_hsl(*(c / 255.0 for c in swatch.rgb))
        if s not in saturation or l not in luma:
            continue

        value = comparison_value(
            s, saturation.target, l, luma.target, population, total_population
        )
        if best is None or value > best_value:
            best = swatch
            best_value = value

    return best


def generate_variation_colors(palette: Palette) -> VibrancyResult:
    result = VibrancyResult()
    used: Set[Swatch] = set()
    for name, luma, saturation in CATEGORY_RANGES:
        swatch = find_color_variation(palette, luma, saturation, used)
        if swatch is not None:
            used.add(swatch)
        setattr(result, name, swatch)
    return result
