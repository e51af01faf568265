"""
config.py
Configuration for the screen ambient Bluetooth light application.
"""

import argparse
import logging
import re

from ambilight_ble.color_extractor import MostDominant, SquaredAverage, Vibrancy
from ambilight_ble.errors import ConfigError

ALGORITHMS = ("squared_average", "most_dominant", "vibrancy")
MAC_PATTERN = re.compile(r"^[0-9A-Fa-f]{2}(:[0-9A-Fa-f]{2}){5}$")


class Config:
    def __init__(self):
        # Bluetooth light
        self.light_address = 'FF:FF:3A:00:02:8F'
        self.light_control_uuid16 = 0xFFF1
        self.scan_timeout_s = 10.0
        # Write bounds. A failed write is retried with exponential backoff, then dropped.
        self.write_timeout_s = 1.0
        self.write_retries = 2
        self.write_backoff_s = 0.05
        # Screen capture
        self.capture_monitor = 1  # mss index, 0 is all monitors combined
        self.capture_timeout_s = 1.0
        # Color sampling: squared_average, most_dominant or vibrancy
        self.color_algorithm = 'vibrancy'
        self.sample_rate = 0.1  # squared_average
        self.quality = 10  # 1-30, most_dominant and vibrancy
        self.color_count = 256  # 8-512, vibrancy palette size
        self.sorted = True  # most_dominant
        # Color correction
        self.color_gamma = 1.0
        self.color_fade = 0.8  # weight of the previous frame's color
        self.color_correct_light = 0.9
        self.color_correct_saturation = 0.9
        self.log_level = 'INFO'

    @property
    def light_control_uuid(self):
        """128-bit Bluetooth base UUID for the 16-bit control characteristic id."""
        return f"0000{self.light_control_uuid16:04x}-0000-1000-8000-00805f9b34fb"

    def build_strategy(self):
        if self.color_algorithm == 'squared_average':
            return SquaredAverage(sample_rate=self.sample_rate)
        if self.color_algorithm == 'most_dominant':
            return MostDominant(quality=self.quality, sorted=self.sorted)
        if self.color_algorithm == 'vibrancy':
            return Vibrancy(color_count=self.color_count, quality=self.quality)
        raise ConfigError(f"color_algorithm must be one of {ALGORITHMS}, got {self.color_algorithm!r}")

    def validate(self):
        """
        Reject out-of-range settings.
        Raises:
            ConfigError: naming the first invalid field
        """
        def check(name, ok, bounds):
            if not ok:
                raise ConfigError(f"{name}={getattr(self, name)!r} is out of range, expected {bounds}")

        check('light_address', isinstance(self.light_address, str) and bool(MAC_PATTERN.match(self.light_address)),
              'a MAC address like AA:BB:CC:DD:EE:FF')
        check('light_control_uuid16', 0 <= self.light_control_uuid16 <= 0xFFFF, '0..0xFFFF')
        check('scan_timeout_s', self.scan_timeout_s > 0, '> 0')
        check('write_timeout_s', self.write_timeout_s > 0, '> 0')
        check('write_retries', self.write_retries >= 0, '>= 0')
        check('write_backoff_s', self.write_backoff_s >= 0, '>= 0')
        check('capture_monitor', self.capture_monitor >= 0, '>= 0')
        check('capture_timeout_s', self.capture_timeout_s > 0, '> 0')
        check('color_algorithm', self.color_algorithm in ALGORITHMS, ALGORITHMS)
        check('sample_rate', 0 < self.sample_rate <= 1, '(0, 1]')
        check('quality', 1 <= self.quality <= 30, '[1, 30]')
        check('color_count', 8 <= self.color_count <= 512, '[8, 512]')
        check('color_gamma', self.color_gamma > 0, '> 0')
        check('color_fade', 0 <= self.color_fade <= 1, '[0, 1]')
        check('color_correct_light', 0 <= self.color_correct_light <= 1, '[0, 1]')
        check('color_correct_saturation', 0 <= self.color_correct_saturation <= 1, '[0, 1]')
        check('log_level', isinstance(logging.getLevelName(str(self.log_level).upper()), int),
              'a logging level name')
        return self

    @classmethod
    def from_args(cls, argv=None):
        """Defaults overridden by command line flags. Returns (config, args)."""
        config = cls()
        ap = argparse.ArgumentParser(description="Drive a Bluetooth light with the screen's ambient color.")
        ap.add_argument("--address", dest="light_address", default=config.light_address)
        ap.add_argument("--control-uuid16", dest="light_control_uuid16", type=lambda s: int(s, 0),
                        default=config.light_control_uuid16)
        ap.add_argument("--monitor", dest="capture_monitor", type=int, default=config.capture_monitor)
        ap.add_argument("--algorithm", dest="color_algorithm", choices=ALGORITHMS, default=config.color_algorithm)
        ap.add_argument("--sample-rate", type=float, default=config.sample_rate)
        ap.add_argument("--quality", type=int, default=config.quality)
        ap.add_argument("--color-count", type=int, default=config.color_count)
        ap.add_argument("--unsorted", dest="sorted", action="store_false", default=config.sorted)
        ap.add_argument("--gamma", dest="color_gamma", type=float, default=config.color_gamma)
        ap.add_argument("--fade", dest="color_fade", type=float, default=config.color_fade)
        ap.add_argument("--light-correction", dest="color_correct_light", type=float,
                        default=config.color_correct_light)
        ap.add_argument("--saturation-correction", dest="color_correct_saturation", type=float,
                        default=config.color_correct_saturation)
        ap.add_argument("--log-level", default=config.log_level)
        ap.add_argument("--frames", type=int, default=None, help="Stop after this many frames (diagnostics).")
        args = ap.parse_args(argv)

        for key, value in vars(args).items():
            if hasattr(config, key):
                setattr(config, key, value)
        return config, args
