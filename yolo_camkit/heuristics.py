"""
Range-based guesses about what a detector emits.

Model metadata is not trusted for activation or box units, so both are
inferred from the numbers themselves. Each guess is a small function returning
a decision value so callers can test it alone or override it.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

import numpy as np


# Probabilities from some exports overshoot 1.0 slightly; anything past this is a logit.
PROBABILITY_UPPER_BOUND = 1.5
PIXEL_UNITS_THRESHOLD = 2.0
DEFAULT_SAMPLE_SIZE = 32
# Training-resolution guess from the largest box value (pixel-unit outputs only).
LARGE_INPUT_MAGNITUDE = 1000.0
SMALL_INPUT_MAGNITUDE = 300.0
LARGE_BASE = 1280.0
SMALL_BASE = 320.0
DEFAULT_BASE = 640.0


class Activation(str, enum.Enum):
    RAW_LOGITS = "raw_logits"
    PROBABILITIES = "probabilities"


@dataclass(frozen=True)
class CoordinateScale:
    """
    Unit of the box values: normalized (base is None) or pixels of a `base`-sized
    training resolution.
    """

    base: Optional[float] = None

    @property
    def is_normalized(self) -> bool:
        return self.base is None

    @classmethod
    def normalized(cls) -> "CoordinateScale":
        return cls()

    @classmethod
    def pixel_units(cls, base: float) -> "CoordinateScale":
        return cls(base=float(base))


def sigmoid(x):
    """Logistic function, stable for large inputs of either sign."""
    x = np.asarray(x, dtype=np.float64)
    return np.exp(-np.logaddexp(0.0, -x))


def detect_activation(class_scores: np.ndarray, sample_size: int = DEFAULT_SAMPLE_SIZE) -> Activation:
    """
    Decide once per batch whether class scores are logits.

    Args:
        class_scores: (C, N) class rows of the channel-major output
        sample_size: how many leading predictions to inspect
    """

    scores = np.asarray(class_scores)
    if scores.size == 0:
        return Activation.PROBABILITIES
    sample = scores[:, : max(int(sample_size), 1)]
    if np.any((sample < 0.0) | (sample > PROBABILITY_UPPER_BOUND)):
        return Activation.RAW_LOGITS
    return Activation.PROBABILITIES


def infer_base_resolution(max_magnitude: float) -> float:
    if max_magnitude > LARGE_INPUT_MAGNITUDE:
        return LARGE_BASE
    if max_magnitude < SMALL_INPUT_MAGNITUDE:
        return SMALL_BASE
    return DEFAULT_BASE


def detect_coordinate_scale(cx: float, cy: float, w: float, h: float) -> CoordinateScale:
    """
    Values above 2.0 in magnitude cannot be normalized; treat the box as pixel
    units of a guessed training resolution.
    """

    max_magnitude = max(abs(cx), abs(cy), abs(w), abs(h))
    if max_magnitude <= PIXEL_UNITS_THRESHOLD:
        return CoordinateScale.normalized()
    return CoordinateScale.pixel_units(infer_base_resolution(max_magnitude))


def coordinate_bases(geometry: np.ndarray) -> np.ndarray:
    """
    Vectorized `detect_coordinate_scale` over a (4, N) geometry block.

    Returns an (N,) array of divisors; 1.0 marks normalized predictions.
    """

    g = np.abs(np.asarray(geometry, dtype=np.float64))
    if g.size == 0:
        return np.ones((0,), dtype=np.float64)
    max_mag = g.max(axis=0)
    bases = np.where(
        max_mag > LARGE_INPUT_MAGNITUDE,
        LARGE_BASE,
        np.where(max_mag < SMALL_INPUT_MAGNITUDE, SMALL_BASE, DEFAULT_BASE),
    )
    return np.where(max_mag > PIXEL_UNITS_THRESHOLD, bases, 1.0)
