"""
color_corrector.py
Gamma, perceptual HSL remap and exponential fade between frames.
"""
import logging

import numpy as np

from ambilight_ble.utils import hsl_to_rgb, mix, rgb_to_hsl

logger = logging.getLogger(__name__)

BLACK = np.zeros(3, dtype=np.float32)


def apply_gamma(color, gamma):
    return np.power(np.asarray(color, dtype=np.float32), 1.0 / gamma)


def perceptual_remap(color, light_correction, saturation_correction):
    """
    Pull lightness toward 0.5 and saturation toward 1.0 with a quadratic-mean blend.
    Zero corrections give back the input color.
    """
    h, s, l = rgb_to_hsl(*(float(c) for c in color))
    l = mix(l, 0.5, light_correction)
    s = mix(s, 1.0, saturation_correction)
    return np.array(hsl_to_rgb(h, s, l), dtype=np.float32)


def correct_color(sample, previous, gamma, fade_weight, light_correction, saturation_correction):
    """
    One step of the correction fold.

    Args:
        sample: Raw extractor output, RGB in [0, 1]
        previous: Running color emitted for the previous frame
        gamma: > 0
        fade_weight: Weight of the previous color, 0..1
        light_correction: 0..1
        saturation_correction: 0..1

    Returns:
        np.ndarray: The new running color, RGB in [0, 1]
    """
    color = apply_gamma(sample, gamma)
    color = perceptual_remap(color, light_correction, saturation_correction)
    previous = np.asarray(previous, dtype=np.float32)
    return previous * fade_weight + color * (1.0 - fade_weight)


def to_device_rgb(color):
    """Scale to 0..255, clamp and truncate to 8-bit integers."""
    scaled = np.clip(np.asarray(color, dtype=np.float32) * 255.0, 0.0, 255.0)
    return tuple(int(c) for c in scaled)


class ColorCorrector:
    def __init__(self, config):
        self.gamma = config.color_gamma
        self.fade_weight = config.color_fade
        self.light_correction = config.color_correct_light
        self.saturation_correction = config.color_correct_saturation
        self.last_color = BLACK.copy()

    @property
    def running_color(self):
        return self.last_color.copy()

    def update(self, sample):
        """
        Fold a raw sample into the running color.
        Returns:
            tuple: (r, g, b) 8-bit values for the device
        """
        self.last_color = correct_color(
            sample,
            self.last_color,
            self.gamma,
            self.fade_weight,
            self.light_correction,
            self.saturation_correction,
        )
        rgb = to_device_rgb(self.last_color)
        logger.debug("Color grabbed %s", rgb)
        return rgb
