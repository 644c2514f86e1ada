"""
YUV420 camera frame -> model input tensor.

Resize and color conversion happen in one pass over the model's destination
grid; no full-resolution RGB image is built. The output buffer belongs to the
`FrameConverter` instance and is reused for every frame, so one converter must
not be shared between threads that convert concurrently.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Sequence, Tuple, Union

import numpy as np

from .errors import MalformedFrame
from .types import TensorDescriptor

ByteBuffer = Union[bytes, bytearray, memoryview, np.ndarray]

NEUTRAL_CHROMA = 128.0


class ColorRange(str, enum.Enum):
    # Y in 0..255, the classic JPEG/BT.601 full-swing equations.
    FULL = "full"
    # Y in 16..235, chroma in 16..240 (studio swing), expanded to 0..255.
    LIMITED = "limited"


@dataclass(frozen=True)
class Plane:
    data: ByteBuffer
    row_stride: int
    pixel_stride: int = 1

    def as_array(self) -> np.ndarray:
        if isinstance(self.data, np.ndarray):
            return np.ascontiguousarray(self.data, dtype=np.uint8).reshape(-1)
        return np.frombuffer(self.data, dtype=np.uint8)


@dataclass(frozen=True)
class CameraFrame:
    """
    Read-only view of one YUV420 frame: planes are (Y, U, V), chroma at half
    resolution in both directions with independent strides.
    """

    width: int
    height: int
    planes: Sequence[Plane]
    rotation_degrees: int = 0

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height


@dataclass(frozen=True)
class _SamplingGrid:
    x0: np.ndarray
    x1: np.ndarray
    fx: np.ndarray
    y0: np.ndarray
    y1: np.ndarray
    fy: np.ndarray


def _axis_grid(src: int, dst: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    pos = np.arange(dst, dtype=np.float64) * (src / dst)
    pos = np.clip(pos, 0.0, src - 1)
    i0 = np.floor(pos).astype(np.int64)
    i1 = np.minimum(i0 + 1, src - 1)
    return i0, i1, pos - i0


def _validate(frame: CameraFrame) -> None:
    if frame.width <= 0 or frame.height <= 0:
        raise MalformedFrame(f"Invalid frame size {frame.width}x{frame.height}")
    if frame.rotation_degrees not in (0, 90, 180, 270):
        raise MalformedFrame(f"Invalid frame rotation {frame.rotation_degrees}")
    if len(frame.planes) < 3:
        raise MalformedFrame(f"YUV420 frame needs 3 planes, got {len(frame.planes)}")
    for name, plane in zip("YUV", frame.planes[:3]):
        if plane is None or plane.data is None or len(plane.as_array()) == 0:
            raise MalformedFrame(f"{name} plane is missing or empty")
        if plane.row_stride <= 0 or plane.pixel_stride <= 0:
            raise MalformedFrame(
                f"{name} plane has invalid strides (row={plane.row_stride}, pixel={plane.pixel_stride})"
            )


def yuv_to_rgb(y: np.ndarray, u: np.ndarray, v: np.ndarray, color_range: ColorRange = ColorRange.FULL):
    """BT.601 conversion on float arrays; each channel clamped to [0, 255]."""
    u = u - 128.0
    v = v - 128.0
    if color_range is ColorRange.LIMITED:
        y = 1.164 * (y - 16.0)
        r = y + 1.596 * v
        g = y - 0.392 * u - 0.813 * v
        b = y + 2.017 * u
    else:
        r = y + 1.402 * v
        g = y - 0.344136 * u - 0.714136 * v
        b = y + 1.772 * u
    return np.clip(r, 0, 255), np.clip(g, 0, 255), np.clip(b, 0, 255)


class FrameConverter:
    """
    Converts camera frames into the model input tensor described by `descriptor`.

    Args:
        descriptor: model input layout/dtype/shape, resolved at model load
        interpolation: "bilinear" (luma) or "nearest"
        color_range: YUV range of the camera. The FULL default keeps Y as is, so
            video-range white (Y=235) comes out as 235/255; pass LIMITED for
            cameras that emit studio-swing YUV to get 255.
    """

    def __init__(
        self,
        descriptor: TensorDescriptor,
        *,
        interpolation: str = "bilinear",
        color_range: ColorRange = ColorRange.FULL,
    ):
        if interpolation not in ("bilinear", "nearest"):
            raise ValueError(f"Unsupported interpolation: {interpolation!r}")
        self.descriptor = descriptor
        self.interpolation = interpolation
        self.color_range = ColorRange(color_range)

        h, w = descriptor.height, descriptor.width
        shape = (3, h, w) if descriptor.channels_first else (h, w, 3)
        self._buffer = np.zeros(shape, dtype=descriptor.numpy_dtype)
        self._grids: Dict[Tuple[int, int], _SamplingGrid] = {}

    @property
    def buffer(self) -> np.ndarray:
        return self._buffer

    def _grid(self, src_w: int, src_h: int) -> _SamplingGrid:
        key = (src_w, src_h)
        grid = self._grids.get(key)
        if grid is None:
            x0, x1, fx = _axis_grid(src_w, self.descriptor.width)
            y0, y1, fy = _axis_grid(src_h, self.descriptor.height)
            grid = _SamplingGrid(x0=x0, x1=x1, fx=fx, y0=y0, y1=y1, fy=fy)
            self._grids[key] = grid
        return grid

    def _sample_luma(self, plane: Plane, grid: _SamplingGrid) -> np.ndarray:
        data = plane.as_array()
        rs, ps = plane.row_stride, plane.pixel_stride

        max_index = int(grid.y1[-1]) * rs + int(grid.x1[-1]) * ps
        if max_index >= data.size:
            raise MalformedFrame(
                f"Y plane too small: index {max_index} out of range for {data.size} bytes"
            )

        def at(rows: np.ndarray, cols: np.ndarray) -> np.ndarray:
            return data[rows[:, None] * rs + cols[None, :] * ps].astype(np.float64)

        if self.interpolation == "nearest":
            return at(grid.y0, grid.x0)

        fx = grid.fx[None, :]
        fy = grid.fy[:, None]
        top = at(grid.y0, grid.x0) * (1.0 - fx) + at(grid.y0, grid.x1) * fx
        bottom = at(grid.y1, grid.x0) * (1.0 - fx) + at(grid.y1, grid.x1) * fx
        return top * (1.0 - fy) + bottom * fy

    @staticmethod
    def _sample_chroma(plane: Plane, grid: _SamplingGrid) -> np.ndarray:
        data = plane.as_array()
        rows = (grid.y0 >> 1)[:, None]
        cols = (grid.x0 >> 1)[None, :]
        index = rows * plane.row_stride + cols * plane.pixel_stride
        inside = index < data.size
        values = data[np.where(inside, index, 0)].astype(np.float64)
        return np.where(inside, values, NEUTRAL_CHROMA)

    def convert(self, frame: CameraFrame) -> np.ndarray:
        """
        Fill the reusable buffer from `frame` and return it with a batch axis.

        The returned array is a view of the buffer and is overwritten by the next
        call. Raises MalformedFrame when planes are missing or unusable.
        """

        _validate(frame)
        grid = self._grid(frame.width, frame.height)
        plane_y, plane_u, plane_v = frame.planes[:3]

        y = self._sample_luma(plane_y, grid)
        u = self._sample_chroma(plane_u, grid)
        v = self._sample_chroma(plane_v, grid)
        r, g, b = yuv_to_rgb(y, u, v, self.color_range)

        if self.descriptor.is_float:
            channels = [c / 255.0 for c in (r, g, b)]
        else:
            channels = [np.rint(c) for c in (r, g, b)]

        out = self._buffer
        for idx, c in enumerate(channels):
            if self.descriptor.channels_first:
                out[idx] = c
            else:
                out[..., idx] = c
        return out[None, ...]


def rotate_quarter_turn(tensor: np.ndarray, descriptor: TensorDescriptor) -> np.ndarray:
    """
    Rotate a batched square input tensor by a quarter turn, in place.

    Detections found on the rotated tensor map back with
    `mapping.remap_rotation(det, 90, width, height)`.
    """

    if not descriptor.is_square:
        raise ValueError(f"Quarter-turn rotation needs a square input, got {descriptor.size}")
    axes = (2, 3) if descriptor.channels_first else (1, 2)
    tensor[...] = np.rot90(tensor, k=1, axes=axes).copy()
    return tensor
