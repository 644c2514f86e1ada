from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .geometry import iou_one_to_many
from .types import Detection


@dataclass(frozen=True)
class NMSConfig:
    confidence_threshold: float = 0.5
    iou_threshold: float = 0.4
    class_agnostic: bool = False
    max_detections: Optional[int] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError("confidence_threshold must be in [0, 1]")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        if self.max_detections is not None and self.max_detections < 1:
            raise ValueError("max_detections must be >= 1 when set")


def nms(
    boxes: np.ndarray,
    scores: np.ndarray,
    cfg: NMSConfig,
    class_ids: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Greedy NumPy NMS. Expects boxes shape (N,4) in xyxy and scores shape (N,).
    Returns indices of boxes to keep, highest score first.

    Equal scores keep their input order. Unless `cfg.class_agnostic`, a box only
    suppresses boxes of its own class (`class_ids` required in that case).
    """

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    scores = np.asarray(scores, dtype=np.float64).reshape(-1)
    if boxes.shape[0] == 0:
        return np.empty((0,), dtype=np.int64)
    if not cfg.class_agnostic:
        if class_ids is None:
            raise ValueError("class_ids are required for class-aware NMS")
        class_ids = np.asarray(class_ids).reshape(-1)

    order = np.argsort(-scores, kind="stable")
    keep: List[int] = []
    limit = cfg.max_detections if cfg.max_detections is not None else boxes.shape[0]

    while order.size > 0 and len(keep) < limit:
        i = int(order[0])
        keep.append(i)

        rest = order[1:]
        overlap = iou_one_to_many(boxes[i], boxes[rest]) > cfg.iou_threshold
        if not cfg.class_agnostic:
            overlap &= class_ids[rest] == class_ids[i]
        order = rest[~overlap]

    return np.array(keep, dtype=np.int64)


def suppress(detections: Sequence[Detection], cfg: NMSConfig) -> List[Detection]:
    """
    Run NMS over decoded detections and return the survivors by descending score.

    Candidates below `cfg.confidence_threshold` are dropped first. Input records
    are returned as-is (not copied) and the input sequence is not modified.
    """

    candidates = [d for d in detections if d.score >= cfg.confidence_threshold]
    if not candidates:
        return []

    boxes = np.array([d.as_xyxy() for d in candidates], dtype=np.float64)
    scores = np.array([d.score for d in candidates], dtype=np.float64)
    class_ids = np.array([d.class_index for d in candidates], dtype=np.int64)
    keep = nms(boxes, scores, cfg, class_ids=class_ids)
    return [candidates[int(i)] for i in keep]
