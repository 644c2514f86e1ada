from __future__ import annotations

from typing import Callable, Protocol

import numpy as np

from .errors import EngineError
from .types import TensorDescriptor


class InferenceEngine(Protocol):
    """
    What the core needs from a model runtime: the input description and a
    synchronous `run`. Failures surface as EngineError.
    """

    descriptor: TensorDescriptor

    def run(self, tensor: np.ndarray) -> np.ndarray:
        ...


class CallableEngine:
    """
    Adapts a plain `infer_fn(tensor) -> output` into an InferenceEngine.

    Anything `infer_fn` raises is re-raised as EngineError.
    """

    def __init__(self, infer_fn: Callable[[np.ndarray], np.ndarray], descriptor: TensorDescriptor):
        self._infer_fn = infer_fn
        self.descriptor = descriptor

    def run(self, tensor: np.ndarray) -> np.ndarray:
        try:
            out = self._infer_fn(tensor)
        except EngineError:
            raise
        except Exception as exc:
            raise EngineError(f"Inference failed: {exc}") from exc
        if out is None:
            raise EngineError("Inference returned no output tensor.")
        return np.asarray(out)
