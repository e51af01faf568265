"""
errors.py
Error taxonomy for the capture -> color -> light pipeline.
"""


class AmbilightError(Exception):
    pass


class CaptureFailure(AmbilightError):
    """The frame source was unavailable or returned an error."""


class InsufficientSamples(AmbilightError):
    """Every pixel of the frame was excluded from quantizer training."""


class TransportFailure(AmbilightError):
    """Writing a command to the light failed."""


class ConfigError(AmbilightError):
    """A configuration value is outside of its documented bounds."""
