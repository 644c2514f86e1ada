"""
Canonicalize the detector output into a channel-major `(4 + C, N)` array.

Single-stage detectors export either `[1, 4 + C, N]` or `[1, N, 4 + C]`; which
one is only knowable by comparing the axes against the label count.
"""

from __future__ import annotations

import numpy as np

from .errors import ShapeMismatch


CHANNEL_MAJOR = "channel_major"
PREDICTION_MAJOR = "prediction_major"


def resolve_output_layout(shape, expected_channels: int) -> str:
    """
    Return CHANNEL_MAJOR or PREDICTION_MAJOR for an output shape `[1, d1, d2]`.

    When both axes match, the tensor is treated as channel-major.
    """

    dims = tuple(int(d) for d in shape)
    if len(dims) != 3 or dims[0] != 1:
        raise ShapeMismatch(f"Unsupported output shape: {list(dims)}")
    _, d1, d2 = dims
    if d1 == expected_channels:
        return CHANNEL_MAJOR
    if d2 == expected_channels:
        return PREDICTION_MAJOR
    raise ShapeMismatch(
        f"Cannot match output channels. Shape={list(dims)} expectedChannels={expected_channels}"
    )


def to_channel_major(raw: np.ndarray, expected_channels: int) -> np.ndarray:
    """
    Return a new float32 array of shape `(expected_channels, num_predictions)`.

    Raises ShapeMismatch when neither axis equals `expected_channels`.
    """

    p = np.asarray(raw)
    layout = resolve_output_layout(p.shape, expected_channels)
    if layout == CHANNEL_MAJOR:
        return np.array(p[0], dtype=np.float32, copy=True)
    return np.ascontiguousarray(p[0].T, dtype=np.float32)


def from_channel_major(channels: np.ndarray, layout: str) -> np.ndarray:
    """Inverse of `to_channel_major`: rebuild a batched `[1, d1, d2]` tensor."""
    c = np.asarray(channels)
    if layout == CHANNEL_MAJOR:
        return c[None, ...].copy()
    if layout == PREDICTION_MAJOR:
        return np.ascontiguousarray(c.T)[None, ...]
    raise ValueError(f"Unknown output layout: {layout!r}")
