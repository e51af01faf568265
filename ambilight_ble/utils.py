"""
utils.py
General color helpers shared by the extraction and correction stages.
"""
import colorsys
import math


def mix(x, y, weight):
    """Quadratic-mean blend of x toward y: sqrt(x^2 * (1 - w) + y^2 * w)."""
    return math.sqrt(x * x * (1.0 - weight) + y * y * weight)


def rgb_to_hsl(r, g, b):
    """RGB in [0, 1] -> (hue, saturation, lightness) in [0, 1]."""
    h, l, s = colorsys.rgb_to_hls(r, g, b)
    return h, s, l


def hsl_to_rgb(h, s, l):
    return colorsys.hls_to_rgb(h, l, s)


def rgb_to_hex(rgb):
    return "#{:02X}{:02X}{:02X}".format(*(int(c) for c in rgb))
