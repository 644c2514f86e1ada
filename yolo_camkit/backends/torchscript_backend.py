from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import numpy as np

from ..errors import EngineError
from ..types import InputLayout, TensorDescriptor, TensorDType

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class TorchScriptBackendConfig:
    """
    Configuration for TorchScript inference.

    - device: "cpu" or "cuda" (if available)
    - half: cast input to float16 (only if the model expects it)
    - output_index: if the model returns multiple outputs, select this index
    - input_size: square model resolution; TorchScript files carry no input metadata
    """

    device: str = "cpu"
    half: bool = False
    output_index: int = 0
    input_size: int = 640


class TorchScriptBackend:
    """
    Minimal TorchScript backend using `torch.jit.load`.

    Input is always NCHW float32, which is what exported detectors expect.
    """

    def __init__(self, model_path: PathLike, cfg: TorchScriptBackendConfig = TorchScriptBackendConfig()):
        try:
            import torch  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError("torch is required for the TorchScript backend. Install with `pip install torch`.") from e

        self._torch = torch
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        self.device = torch.device(cfg.device)
        self.half = cfg.half
        self.output_index = cfg.output_index
        self.descriptor = TensorDescriptor.square(cfg.input_size, InputLayout.NCHW, TensorDType.FLOAT32)

        model = torch.jit.load(str(self.model_path), map_location=self.device)
        model.eval()
        self.model = model
        LOGGER.info("Loaded %s on %s", self.model_path.name, self.device)

    def run(self, tensor: np.ndarray) -> np.ndarray:
        torch = self._torch
        try:
            x = torch.as_tensor(np.ascontiguousarray(tensor), device=self.device)
            x = x.half() if self.half else x.float()

            with torch.no_grad():
                y = self.model(x)

            if isinstance(y, (tuple, list)):
                y = y[self.output_index]
            if hasattr(y, "detach"):
                y = y.detach()
            return y.float().to("cpu").numpy()
        except Exception as exc:
            raise EngineError(f"TorchScript inference failed: {exc}") from exc
