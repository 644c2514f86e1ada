"""
Detector post-processing and camera-frame preparation for single-stage YOLO models.

Decodes `[1, 4+C, N]` / `[1, N, 4+C]` outputs into scaled, suppressed boxes and
turns YUV420 camera frames into the model's input tensor. Model execution is
left to an inference engine (see `yolo_camkit.backends`). Core dependencies are
NumPy, plus OpenCV for still-image resizing.
"""

from .types import Detection, InputLayout, TensorDescriptor, TensorDType
from .errors import EngineError, MalformedFrame, ShapeMismatch, YoloCamkitError
from .geometry import iou, to_center, to_corners
from .layout import to_channel_major
from .heuristics import Activation, CoordinateScale, detect_activation, detect_coordinate_scale
from .decode import decode_predictions
from .nms import NMSConfig, nms, suppress
from .mapping import CoordinateMapper, remap_detections, remap_rotation
from .frame import CameraFrame, ColorRange, FrameConverter, Plane, rotate_quarter_turn
from .engine import CallableEngine, InferenceEngine
from .postprocess import YoloPostConfig, YoloPostprocessor
from .dual_pass import DualPassResult, DualPassSelector, score_detections
from .config import DetectorConfig, load_detector_config
from .image import preprocess_image
from .runtime import ImagePipeline, LiveDetector, find_project_root, load_engine, resolve_path

__all__ = [
    "Detection",
    "InputLayout",
    "TensorDescriptor",
    "TensorDType",
    "EngineError",
    "MalformedFrame",
    "ShapeMismatch",
    "YoloCamkitError",
    "iou",
    "to_center",
    "to_corners",
    "to_channel_major",
    "Activation",
    "CoordinateScale",
    "detect_activation",
    "detect_coordinate_scale",
    "decode_predictions",
    "NMSConfig",
    "nms",
    "suppress",
    "CoordinateMapper",
    "remap_detections",
    "remap_rotation",
    "CameraFrame",
    "ColorRange",
    "FrameConverter",
    "Plane",
    "rotate_quarter_turn",
    "CallableEngine",
    "InferenceEngine",
    "YoloPostConfig",
    "YoloPostprocessor",
    "DualPassResult",
    "DualPassSelector",
    "score_detections",
    "DetectorConfig",
    "load_detector_config",
    "preprocess_image",
    "ImagePipeline",
    "LiveDetector",
    "find_project_root",
    "load_engine",
    "resolve_path",
]
