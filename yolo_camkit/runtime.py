from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np

from .config import DetectorConfig
from .dual_pass import DualPassResult, DualPassSelector
from .engine import InferenceEngine
from .frame import CameraFrame, ColorRange, FrameConverter
from .image import preprocess_image
from .postprocess import YoloPostprocessor
from .types import Detection

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", "setup.py", ".git", "requirements.txt"),
) -> Path:
    """
    Best-effort project root discovery.

    Useful when `yolo_camkit` is vendored as `A/yolo_camkit` and models live in `A/models`.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    # If a file is provided, start from its directory.
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path.

    - Absolute paths are returned as-is.
    - Relative paths are resolved against `root` if provided, else the project root.
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


def load_engine(
    model_path: PathLike,
    *,
    backend: Optional[str] = None,
    root: Optional[PathLike] = "auto",
    onnx_providers: Optional[Sequence[str]] = None,
    input_size: int = 640,
    torch_device: str = "cpu",
) -> InferenceEngine:
    """
    Load a model file into an InferenceEngine, picking the backend from the
    file extension unless `backend` is given.
    """

    resolved = resolve_path(model_path, root=root)
    chosen = backend
    if chosen is None:
        suffix = resolved.suffix.lower()
        if suffix == ".onnx":
            chosen = "onnxruntime"
        elif suffix in {".torchscript", ".ts", ".pt"}:
            chosen = "torchscript"
        else:
            raise ValueError(
                f"Could not infer backend from extension '{suffix}'. Pass backend=... explicitly."
            )

    chosen = chosen.lower()
    if chosen == "onnxruntime":
        from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

        return OnnxRuntimeBackend(
            resolved,
            OnnxRuntimeBackendConfig(providers=onnx_providers, input_size=(input_size, input_size)),
        )

    if chosen == "torchscript":
        from .backends.torchscript_backend import TorchScriptBackend, TorchScriptBackendConfig

        return TorchScriptBackend(resolved, TorchScriptBackendConfig(device=torch_device, input_size=input_size))

    raise ValueError(f"Unsupported backend: {backend!r}")


def _preferred_class_index(labels: Sequence[str], preferred: Optional[str]) -> Optional[int]:
    if preferred is None:
        return None
    try:
        return list(labels).index(preferred)
    except ValueError:
        LOGGER.warning("Preferred class %r not found in labels", preferred)
        return None


class ImagePipeline:
    """
    Still image -> detections: stretch to the model input, infer, post-process
    against the source image size.
    """

    def __init__(self, engine: InferenceEngine, labels: Sequence[str], cfg: DetectorConfig = DetectorConfig()):
        self.engine = engine
        self.cfg = cfg
        self.post = YoloPostprocessor(labels, engine.descriptor.size, cfg.to_post_config())

    def __call__(self, image_rgb: np.ndarray) -> List[Detection]:
        h, w = image_rgb.shape[:2]
        blob = preprocess_image(image_rgb, self.engine.descriptor)
        preds = self.engine.run(blob)
        return self.post.process(preds, image_size=(w, h))


class LiveDetector:
    """
    Per-frame entry point for a camera stream.

    Only every `process_every_n_frames`-th call is processed; the others return
    None without touching the converter. Owns one FrameConverter, so callers
    on different threads need their own LiveDetector.
    """

    def __init__(self, engine: InferenceEngine, labels: Sequence[str], cfg: DetectorConfig = DetectorConfig()):
        self.engine = engine
        self.labels = tuple(labels)
        self.cfg = cfg
        self.frame_counter = 0
        converter = FrameConverter(
            engine.descriptor,
            interpolation=cfg.interpolation,
            color_range=ColorRange(cfg.color_range),
        )
        post = YoloPostprocessor(self.labels, engine.descriptor.size, cfg.to_post_config())
        self.selector = DualPassSelector(
            converter,
            engine,
            post,
            preferred_class=_preferred_class_index(self.labels, cfg.preferred_class),
            enabled=cfg.dual_pass,
        )

    def should_process(self) -> bool:
        self.frame_counter += 1
        return self.frame_counter % self.cfg.process_every_n_frames == 0

    def process_frame(self, frame: CameraFrame) -> Optional[DualPassResult]:
        if not self.should_process():
            return None

        started = time.perf_counter()
        result = self.selector.select(frame)
        LOGGER.debug(
            "Frame infer %.1fms det=%d rotation=%d",
            (time.perf_counter() - started) * 1000.0,
            len(result.detections),
            result.rotation,
        )
        return result
