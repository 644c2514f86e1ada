"""
Exception types raised by yolo_camkit.

Each error also derives from the built-in exception a caller would expect
(`ValueError` for bad data, `RuntimeError` for engine failures), so generic
handlers keep working.
"""

from __future__ import annotations


class YoloCamkitError(Exception):
    pass


class ShapeMismatch(YoloCamkitError, ValueError):
    """The output tensor layout cannot be matched to `4 + num_classes` channels."""


class MalformedFrame(YoloCamkitError, ValueError):
    """Camera plane data is missing or unusable; the frame must be dropped."""


class EngineError(YoloCamkitError, RuntimeError):
    """The inference engine failed to produce an output tensor."""
