"""
Run a camera frame twice, upright and rotated a quarter turn, and keep the
better-scoring detection set.

Useful when the sensor orientation relative to the scene is unknown: a model
trained on upright objects scores higher on whichever pass shows them upright.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .engine import InferenceEngine
from .frame import CameraFrame, FrameConverter, rotate_quarter_turn
from .mapping import remap_detections
from .postprocess import YoloPostConfig, YoloPostprocessor
from .types import Detection

LOGGER = logging.getLogger(__name__)

COUNT_BONUS = 0.05
PREFERRED_CLASS_BONUS = 1.0


def score_detections(detections: Sequence[Detection], preferred_class: Optional[int] = None) -> float:
    """sum(scores) + 0.05 * count, plus 1.0 when `preferred_class` is present."""
    total = sum(d.score for d in detections) + COUNT_BONUS * len(detections)
    if preferred_class is not None and any(d.class_index == preferred_class for d in detections):
        total += PREFERRED_CLASS_BONUS
    return total


@dataclass
class DualPassResult:
    detections: List[Detection]
    # 0 when the upright pass won, 90 when the rotated pass won.
    rotation: int
    score: float
    frame_size: Tuple[int, int]
    # Sensor orientation reported with the frame, passed through for display.
    sensor_rotation: int = 0
    scores: Tuple[float, float] = field(default=(0.0, -math.inf))


class DualPassSelector:
    """
    Args:
        converter: owns the input buffer; must not be shared across threads
        engine: runs the model
        postprocessor: decode + NMS + mapping
        preferred_class: class index that earns a bonus when present
        enabled: False runs the upright pass only
    """

    def __init__(
        self,
        converter: FrameConverter,
        engine: InferenceEngine,
        postprocessor: YoloPostprocessor,
        *,
        preferred_class: Optional[int] = None,
        enabled: bool = True,
    ):
        self.converter = converter
        self.engine = engine
        self.post = postprocessor
        self.preferred_class = preferred_class
        self.enabled = enabled

    @property
    def can_rotate(self) -> bool:
        return self.enabled and self.converter.descriptor.is_square

    def select(self, frame: CameraFrame, cfg: Optional[YoloPostConfig] = None) -> DualPassResult:
        """
        Raises MalformedFrame, EngineError or ShapeMismatch only for the upright
        pass; rotated-pass failures are logged and lose the comparison.
        """

        frame_size = (frame.width, frame.height)
        tensor = self.converter.convert(frame)
        dets_a = self.post.process(self.engine.run(tensor), frame_size, cfg)
        score_a = score_detections(dets_a, self.preferred_class)

        dets_b: List[Detection] = []
        score_b = -math.inf
        if self.can_rotate:
            try:
                dets_b = self._rotated_pass(tensor, frame, cfg)
                score_b = score_detections(dets_b, self.preferred_class)
            except Exception:
                LOGGER.warning("Rotated pass failed; keeping upright result", exc_info=True)
                dets_b, score_b = [], -math.inf

        LOGGER.debug("Dual pass scores: upright=%.3f rotated=%.3f", score_a, score_b)
        if score_b > score_a:
            return DualPassResult(
                detections=dets_b,
                rotation=90,
                score=score_b,
                frame_size=frame_size,
                sensor_rotation=frame.rotation_degrees,
                scores=(score_a, score_b),
            )
        return DualPassResult(
            detections=dets_a,
            rotation=0,
            score=score_a,
            frame_size=frame_size,
            sensor_rotation=frame.rotation_degrees,
            scores=(score_a, score_b),
        )

    def _rotated_pass(self, tensor, frame: CameraFrame, cfg: Optional[YoloPostConfig]) -> List[Detection]:
        rotate_quarter_turn(tensor, self.converter.descriptor)
        # The rotated tensor shows the frame with width and height swapped.
        dets = self.post.process(self.engine.run(tensor), (frame.height, frame.width), cfg)
        return remap_detections(dets, 90, frame.width, frame.height)
