from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .decode import decode_predictions, max_class_score
from .heuristics import DEFAULT_SAMPLE_SIZE, detect_activation
from .layout import to_channel_major
from .mapping import CoordinateMapper
from .nms import NMSConfig, suppress
from .types import Detection

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class YoloPostConfig:
    """
    Thresholds for one post-processing call.
    """

    confidence_threshold: float = 0.5
    iou_threshold: float = 0.4
    class_agnostic: bool = False
    # None keeps every box that survives NMS.
    max_detections: Optional[int] = None
    # Share of far-out-of-bounds boxes that triggers the model-pixel fallback.
    fallback_ratio: float = 0.7
    activation_sample_size: int = DEFAULT_SAMPLE_SIZE

    def __post_init__(self) -> None:
        if not 0.0 <= self.fallback_ratio <= 1.0:
            raise ValueError("fallback_ratio must be in [0, 1]")
        if self.activation_sample_size < 1:
            raise ValueError("activation_sample_size must be >= 1")
        # Validates the threshold fields.
        self.nms_config()

    def nms_config(self) -> NMSConfig:
        return NMSConfig(
            confidence_threshold=self.confidence_threshold,
            iou_threshold=self.iou_threshold,
            class_agnostic=self.class_agnostic,
            max_detections=self.max_detections,
        )


class YoloPostprocessor:
    """
    Raw output tensor -> detections in destination pixels.

    Supported layouts (per image, batch of 1):
    - (1, 4 + C, N): channel-major, e.g. 1 x 84 x 8400
    - (1, N, 4 + C): prediction-major

    `C` is the label count, which is how the layout is told apart.
    """

    def __init__(
        self,
        labels: Sequence[str],
        model_size: Tuple[int, int],
        cfg: YoloPostConfig = YoloPostConfig(),
    ):
        self.labels = tuple(labels)
        self.model_size = (int(model_size[0]), int(model_size[1]))
        self.cfg = cfg

    @property
    def num_classes(self) -> int:
        return len(self.labels)

    @property
    def expected_channels(self) -> int:
        return 4 + self.num_classes

    def label_for(self, det: Detection) -> str:
        if 0 <= det.class_index < len(self.labels):
            return self.labels[det.class_index]
        return f"cls{det.class_index}"

    def process(
        self,
        preds: np.ndarray,
        image_size: Tuple[int, int],
        cfg: Optional[YoloPostConfig] = None,
    ) -> List[Detection]:
        """
        Args:
            preds: raw output tensor for a single image
            image_size: (width, height) the boxes are mapped into
            cfg: per-call thresholds; defaults to the instance config

        Raises ShapeMismatch when the tensor does not fit the label count.
        """

        cfg = cfg or self.cfg
        channels = to_channel_major(preds, self.expected_channels)
        nms_cfg = cfg.nms_config()

        # One activation decision per tensor, shared with the fallback decode.
        activation = detect_activation(channels[4:, :], sample_size=cfg.activation_sample_size)
        candidates = decode_predictions(channels, cfg.confidence_threshold, activation=activation)
        kept = suppress(candidates, nms_cfg)
        mapper = CoordinateMapper(self.model_size, fallback_ratio=cfg.fallback_ratio)
        detections = mapper.map(kept, image_size, channels=channels, nms_cfg=nms_cfg, activation=activation)

        if not detections:
            LOGGER.debug("No detections; max raw class score (pre-threshold) = %.4f", max_class_score(channels))
        return detections
