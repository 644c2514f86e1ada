from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np

from ..errors import EngineError
from ..types import TensorDescriptor

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - input_name/output_name: override auto-selected I/O names if needed
    - input_size: (width, height) used when the model declares dynamic spatial dims
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_name: Optional[str] = None
    input_size: Tuple[int, int] = (640, 640)


def _resolve_shape(shape: Sequence[Any], input_size: Tuple[int, int]) -> Tuple[int, int, int, int]:
    """Replace symbolic/unknown dims: batch -> 1, spatial -> input_size."""
    if len(shape) != 4:
        raise ValueError(f"Unsupported input tensor shape: {list(shape)}")
    width, height = input_size
    dims = [d if isinstance(d, int) and d > 0 else None for d in shape]
    dims[0] = 1
    if dims[1] == 3:
        dims[2] = dims[2] or height
        dims[3] = dims[3] or width
    else:
        dims[1] = dims[1] or height
        dims[2] = dims[2] or width
        dims[3] = dims[3] or 3
    return tuple(int(d) for d in dims)  # type: ignore[return-value]


class OnnxRuntimeBackend:
    """
    Minimal ONNX Runtime backend.

    The input layout (NCHW/NHWC) and dtype are read from the session once, at load.
    Returns the primary output as a NumPy array.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        sess_opts = ort.SessionOptions()
        providers = list(cfg.providers) if cfg.providers is not None else None
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)

        model_input = self.session.get_inputs()[0]
        self.input_name = cfg.input_name or model_input.name
        # If output_name not provided, pick first output.
        self.output_name = cfg.output_name or self.session.get_outputs()[0].name
        self.descriptor = TensorDescriptor.from_shape(
            _resolve_shape(model_input.shape, cfg.input_size), dtype=str(model_input.type)
        )
        LOGGER.info(
            "Loaded %s: input=%s layout=%s dtype=%s",
            self.model_path.name,
            list(self.descriptor.shape),
            self.descriptor.layout.value,
            self.descriptor.dtype.value,
        )

    def run(self, tensor: np.ndarray) -> np.ndarray:
        try:
            outputs = self.session.run([self.output_name], {self.input_name: tensor})
        except Exception as exc:
            raise EngineError(f"onnxruntime failed: {exc}") from exc
        return outputs[0]
