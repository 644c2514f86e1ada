from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .frame import ColorRange
from .nms import NMSConfig
from .postprocess import YoloPostConfig


@dataclass(frozen=True)
class DetectorConfig:
    confidence_threshold: float = 0.5
    iou_threshold: float = 0.4
    class_agnostic: bool = False
    max_detections: Optional[int] = None
    process_every_n_frames: int = 1
    fallback_ratio: float = 0.7
    dual_pass: bool = True
    preferred_class: Optional[str] = None
    interpolation: str = "bilinear"
    color_range: str = "full"

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError("confidence_threshold must be in [0, 1]")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        if self.max_detections is not None and self.max_detections < 1:
            raise ValueError("max_detections must be >= 1")
        if self.process_every_n_frames < 1:
            raise ValueError("process_every_n_frames must be >= 1")
        if not 0.0 <= self.fallback_ratio <= 1.0:
            raise ValueError("fallback_ratio must be in [0, 1]")
        if self.interpolation not in ("bilinear", "nearest"):
            raise ValueError("interpolation must be 'bilinear' or 'nearest'")
        if self.color_range not in {c.value for c in ColorRange}:
            raise ValueError("color_range must be 'full' or 'limited'")

    def to_nms_config(self) -> NMSConfig:
        return NMSConfig(
            confidence_threshold=self.confidence_threshold,
            iou_threshold=self.iou_threshold,
            class_agnostic=self.class_agnostic,
            max_detections=self.max_detections,
        )

    def to_post_config(self) -> YoloPostConfig:
        return YoloPostConfig(
            confidence_threshold=self.confidence_threshold,
            iou_threshold=self.iou_threshold,
            class_agnostic=self.class_agnostic,
            max_detections=self.max_detections,
            fallback_ratio=self.fallback_ratio,
        )


def _require_number(payload: Dict[str, Any], key: str) -> float:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _require_bool(payload: Dict[str, Any], key: str) -> bool:
    value = payload[key]
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be a boolean")
    return value


def _require_str(payload: Dict[str, Any], key: str) -> str:
    value = payload[key]
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} must be a non-empty string")
    return value.strip()


_FIELDS = {
    "confidence_threshold": _require_number,
    "iou_threshold": _require_number,
    "class_agnostic": _require_bool,
    "max_detections": _require_int,
    "process_every_n_frames": _require_int,
    "fallback_ratio": _require_number,
    "dual_pass": _require_bool,
    "preferred_class": _require_str,
    "interpolation": _require_str,
    "color_range": _require_str,
}


def detector_config_from_dict(payload: Dict[str, Any]) -> DetectorConfig:
    if not isinstance(payload, dict):
        raise ValueError("Detector config must be a JSON object")
    unknown = sorted(set(payload.keys()) - set(_FIELDS))
    if unknown:
        raise ValueError(f"Unknown detector config keys: {unknown}")

    kwargs: Dict[str, Any] = {}
    for key, coerce in _FIELDS.items():
        if key not in payload or payload[key] is None:
            continue
        kwargs[key] = coerce(payload, key)
    return DetectorConfig(**kwargs)


def load_detector_config(path: Path) -> DetectorConfig:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Detector config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid detector config JSON: {path}") from exc
    return detector_config_from_dict(payload)
