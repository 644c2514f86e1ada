from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Sequence, Tuple


@dataclass
class Detection:
    """
    One detected object in center form.

    Coordinates are normalized (0..1) right after decoding and pixel units of the
    destination image once mapped. Mapping updates the record in place.
    """

    class_index: int
    score: float
    cx: float
    cy: float
    w: float
    h: float

    def as_cxcywh(self) -> Tuple[float, float, float, float]:
        return self.cx, self.cy, self.w, self.h

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        half_w = self.w / 2
        half_h = self.h / 2
        return self.cx - half_w, self.cy - half_h, self.cx + half_w, self.cy + half_h


class InputLayout(str, enum.Enum):
    NHWC = "nhwc"
    NCHW = "nchw"


class TensorDType(str, enum.Enum):
    FLOAT32 = "float32"
    UINT8 = "uint8"


@dataclass(frozen=True)
class TensorDescriptor:
    """
    Model input tensor description, resolved once when the model is loaded.
    """

    layout: InputLayout
    dtype: TensorDType
    shape: Tuple[int, int, int, int]

    def __post_init__(self) -> None:
        if len(self.shape) != 4:
            raise ValueError(f"Input tensor must be 4-D, got shape {self.shape}")
        if self.shape[0] != 1:
            raise ValueError(f"Batch > 1 is not supported (got shape {self.shape}).")
        channels = self.shape[1] if self.layout is InputLayout.NCHW else self.shape[3]
        if channels != 3:
            raise ValueError(f"Expected 3 input channels for {self.layout.value}, got shape {self.shape}")

    @classmethod
    def from_shape(cls, shape: Sequence[int], dtype: str = "float32") -> "TensorDescriptor":
        """
        Resolve layout from a raw input shape: `[1, 3, H, W]` is channels-first,
        anything else is taken as `[1, H, W, 3]`.
        """

        dims = tuple(int(d) for d in shape)
        if len(dims) != 4:
            raise ValueError(f"Unsupported input tensor shape: {list(dims)}")
        layout = InputLayout.NCHW if dims[1] == 3 else InputLayout.NHWC
        name = str(dtype).lower()
        tensor_dtype = TensorDType.FLOAT32 if "float" in name else TensorDType.UINT8
        return cls(layout=layout, dtype=tensor_dtype, shape=dims)  # type: ignore[arg-type]

    @classmethod
    def square(cls, size: int, layout: InputLayout = InputLayout.NHWC, dtype: TensorDType = TensorDType.FLOAT32) -> "TensorDescriptor":
        if layout is InputLayout.NCHW:
            return cls(layout=layout, dtype=dtype, shape=(1, 3, size, size))
        return cls(layout=layout, dtype=dtype, shape=(1, size, size, 3))

    @property
    def channels_first(self) -> bool:
        return self.layout is InputLayout.NCHW

    @property
    def is_float(self) -> bool:
        return self.dtype is TensorDType.FLOAT32

    @property
    def height(self) -> int:
        return self.shape[2] if self.channels_first else self.shape[1]

    @property
    def width(self) -> int:
        return self.shape[3] if self.channels_first else self.shape[2]

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) of the model input."""
        return self.width, self.height

    @property
    def is_square(self) -> bool:
        return self.width == self.height

    @property
    def numpy_dtype(self) -> str:
        return self.dtype.value
