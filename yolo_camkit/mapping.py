from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .decode import decode_predictions
from .heuristics import Activation
from .nms import NMSConfig, suppress
from .types import Detection

LOGGER = logging.getLogger(__name__)

VALID_ROTATIONS = (0, 90, 180, 270)


def scale_detections(detections: Iterable[Detection], x_factor: float, y_factor: float) -> None:
    """Multiply (cx, w) by `x_factor` and (cy, h) by `y_factor`, in place."""
    for det in detections:
        det.cx *= x_factor
        det.cy *= y_factor
        det.w *= x_factor
        det.h *= y_factor


def out_of_bounds_fraction(
    detections: Sequence[Detection],
    width: float,
    height: float,
    margin: float = 0.2,
) -> float:
    """
    Fraction of boxes whose center sits more than `margin` of the image
    dimension beyond any edge. 0.0 for an empty sequence.
    """

    if not detections:
        return 0.0
    lo_x, hi_x = -margin * width, (1.0 + margin) * width
    lo_y, hi_y = -margin * height, (1.0 + margin) * height
    outside = sum(
        1 for d in detections if d.cx < lo_x or d.cx > hi_x or d.cy < lo_y or d.cy > hi_y
    )
    return outside / len(detections)


class CoordinateMapper:
    """
    Maps normalized detections into destination pixels.

    If most scaled boxes land far outside the image, the decoder's guess about
    coordinate units was wrong. In that case the raw channels are decoded again
    without unit normalization and scaled by `image_size / model_size`.
    """

    def __init__(self, model_size: Tuple[int, int], fallback_ratio: float = 0.7, margin: float = 0.2):
        if not 0.0 <= fallback_ratio <= 1.0:
            raise ValueError("fallback_ratio must be in [0, 1]")
        self.model_size = (int(model_size[0]), int(model_size[1]))
        self.fallback_ratio = float(fallback_ratio)
        self.margin = float(margin)

    def map(
        self,
        detections: List[Detection],
        image_size: Tuple[int, int],
        *,
        channels: Optional[np.ndarray] = None,
        nms_cfg: Optional[NMSConfig] = None,
        activation: Optional[Activation] = None,
    ) -> List[Detection]:
        """
        Args:
            detections: suppressed detections with normalized coordinates (mutated)
            image_size: (width, height) of the destination
            channels: raw channel-major output, needed for the fallback
            nms_cfg: thresholds to reuse when the fallback re-decodes
            activation: activation chosen for the first decode; the fallback reuses it
        """

        img_w, img_h = image_size
        scale_detections(detections, img_w, img_h)
        if channels is None or not detections:
            return detections

        fraction = out_of_bounds_fraction(detections, img_w, img_h, margin=self.margin)
        if fraction <= self.fallback_ratio:
            return detections

        LOGGER.warning(
            "%.0f%% of boxes fell outside the image; falling back to model-pixel scaling",
            fraction * 100,
        )
        cfg = nms_cfg or NMSConfig()
        raw = decode_predictions(
            channels, cfg.confidence_threshold, normalize_coordinates=False, activation=activation
        )
        remapped = suppress(raw, cfg)
        model_w, model_h = self.model_size
        scale_detections(remapped, img_w / model_w, img_h / model_h)
        return remapped


def remap_rotation(det: Detection, rotation: int, raw_width: float, raw_height: float) -> Detection:
    """
    Map a box decoded on a rotated frame back into the unrotated frame, in place.

    `raw_width`/`raw_height` are the dimensions of the frame being mapped into.
    A 90 remap followed by a 270 remap with swapped dimensions is the identity.
    """

    cx, cy, w, h = det.as_cxcywh()
    if rotation == 0:
        return det
    if rotation == 90:
        det.cx, det.cy, det.w, det.h = raw_width - cy, cx, h, w
    elif rotation == 270:
        det.cx, det.cy, det.w, det.h = cy, raw_height - cx, h, w
    elif rotation == 180:
        det.cx, det.cy = raw_width - cx, raw_height - cy
    else:
        raise ValueError(f"rotation must be one of {VALID_ROTATIONS}, got {rotation}")
    return det


def remap_detections(
    detections: Iterable[Detection], rotation: int, raw_width: float, raw_height: float
) -> List[Detection]:
    return [remap_rotation(d, rotation, raw_width, raw_height) for d in detections]


def display_size(width: int, height: int, rotation: int) -> Tuple[int, int]:
    """Frame size after applying a sensor rotation (quarter turns swap axes)."""
    if rotation not in VALID_ROTATIONS:
        raise ValueError(f"rotation must be one of {VALID_ROTATIONS}, got {rotation}")
    if rotation in (90, 270):
        return height, width
    return width, height
