from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from .heuristics import DEFAULT_SAMPLE_SIZE, Activation, coordinate_bases, detect_activation, sigmoid
from .types import Detection

LOGGER = logging.getLogger(__name__)


def best_classes(class_scores: np.ndarray):
    """
    Per-prediction best class over a (C, N) score block.

    Ties keep the lowest class index. A prediction whose best score is not
    positive gets class -1.
    """

    scores = np.asarray(class_scores, dtype=np.float64)
    if scores.shape[1] == 0:
        return np.empty((0,), dtype=np.int64), np.empty((0,), dtype=np.float64)
    # argmax returns the first maximum, matching a strict greater-than scan.
    class_ids = np.argmax(scores, axis=0)
    best = scores[class_ids, np.arange(scores.shape[1])]
    class_ids = np.where(best > 0.0, class_ids, -1)
    best = np.where(best > 0.0, best, 0.0)
    return class_ids.astype(np.int64), best


def decode_predictions(
    channels: np.ndarray,
    confidence_threshold: float,
    *,
    normalize_coordinates: bool = True,
    activation: Optional[Activation] = None,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> List[Detection]:
    """
    Decode a channel-major `(4 + C, N)` array into candidate detections.

    Args:
        channels: output of `layout.to_channel_major`
        confidence_threshold: keep predictions whose best score is strictly above it
        normalize_coordinates: divide pixel-unit boxes by the guessed base resolution;
            False keeps the raw geometry (used by the mapping fallback)
        activation: force the activation decision instead of sampling
        sample_size: predictions sampled by the activation heuristic

    Returns candidates in prediction order (not sorted, not suppressed).
    """

    c = np.asarray(channels, dtype=np.float64)
    if c.ndim != 2:
        raise ValueError(f"Expected a (4 + C, N) array, got shape {c.shape}")
    num_classes = c.shape[0] - 4
    if num_classes <= 0:
        return []

    class_scores = c[4:, :]
    if activation is None:
        activation = detect_activation(class_scores, sample_size=sample_size)
    if activation is Activation.RAW_LOGITS:
        class_scores = sigmoid(class_scores)

    class_ids, scores = best_classes(class_scores)
    if activation is Activation.PROBABILITIES:
        # Values up to PROBABILITY_UPPER_BOUND pass the heuristic; scores stay in [0, 1].
        scores = np.minimum(scores, 1.0)
    keep = np.flatnonzero((scores > confidence_threshold) & (class_ids >= 0))
    if keep.size == 0:
        return []

    geometry = c[0:4, keep]
    if normalize_coordinates:
        geometry = geometry / coordinate_bases(geometry)[None, :]

    LOGGER.debug(
        "Decoded %d/%d predictions (activation=%s)", keep.size, c.shape[1], activation.value
    )
    return [
        Detection(
            class_index=int(cls_id),
            score=float(score),
            cx=float(cx),
            cy=float(cy),
            w=float(w),
            h=float(h),
        )
        for cls_id, score, (cx, cy, w, h) in zip(class_ids[keep], scores[keep], geometry.T)
    ]


def max_class_score(channels: np.ndarray) -> float:
    """Largest raw class value, used for diagnostics when nothing survives."""
    c = np.asarray(channels)
    if c.ndim != 2 or c.shape[0] <= 4 or c.shape[1] == 0:
        return 0.0
    return float(np.max(c[4:, :]))
