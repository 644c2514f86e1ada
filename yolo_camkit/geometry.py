from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

Box = Tuple[float, float, float, float]


def to_corners(cx: float, cy: float, w: float, h: float) -> Box:
    """Center form (cx, cy, w, h) -> corner form (x1, y1, x2, y2)."""
    half_w = w / 2
    half_h = h / 2
    return cx - half_w, cy - half_h, cx + half_w, cy + half_h


def to_center(x1: float, y1: float, x2: float, y2: float) -> Box:
    """Corner form (x1, y1, x2, y2) -> center form (cx, cy, w, h)."""
    return (x1 + x2) / 2, (y1 + y2) / 2, x2 - x1, y2 - y1


def is_degenerate(box: Sequence[float]) -> bool:
    x1, y1, x2, y2 = box
    return x1 >= x2 or y1 >= y2


def iou(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Intersection-over-union of two corner-form boxes.

    Degenerate boxes (zero or negative extent) and disjoint boxes give 0.0.
    The result is clamped to [0, 1].
    """

    if is_degenerate(a) or is_degenerate(b):
        return 0.0

    x_left = max(a[0], b[0])
    y_top = max(a[1], b[1])
    x_right = min(a[2], b[2])
    y_bottom = min(a[3], b[3])
    if x_right <= x_left or y_bottom <= y_top:
        return 0.0

    inter = (x_right - x_left) * (y_bottom - y_top)
    area_a = (a[2] - a[0]) * (a[3] - a[1])
    area_b = (b[2] - b[0]) * (b[3] - b[1])
    union = area_a + area_b - inter
    if union <= 0:
        return 0.0
    return float(min(max(inter / union, 0.0), 1.0))


def iou_one_to_many(box: Sequence[float], boxes: np.ndarray) -> np.ndarray:
    """
    IoU of one corner-form box against an (N, 4) array, same rules as `iou`.
    """

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    if boxes.shape[0] == 0:
        return np.empty((0,), dtype=np.float64)
    if is_degenerate(box):
        return np.zeros((boxes.shape[0],), dtype=np.float64)

    x1, y1, x2, y2 = (float(v) for v in box)
    xx1 = np.maximum(x1, boxes[:, 0])
    yy1 = np.maximum(y1, boxes[:, 1])
    xx2 = np.minimum(x2, boxes[:, 2])
    yy2 = np.minimum(y2, boxes[:, 3])

    inter = np.maximum(0.0, xx2 - xx1) * np.maximum(0.0, yy2 - yy1)
    area = (x2 - x1) * (y2 - y1)
    areas = (boxes[:, 2] - boxes[:, 0]) * (boxes[:, 3] - boxes[:, 1])
    union = area + areas - inter

    degenerate = (boxes[:, 0] >= boxes[:, 2]) | (boxes[:, 1] >= boxes[:, 3])
    out = np.zeros((boxes.shape[0],), dtype=np.float64)
    valid = ~degenerate & (union > 0)
    out[valid] = inter[valid] / union[valid]
    return np.clip(out, 0.0, 1.0)
