from __future__ import annotations

import numpy as np

from .types import TensorDescriptor


def preprocess_image(image_rgb: np.ndarray, descriptor: TensorDescriptor) -> np.ndarray:
    """
    Stretch an RGB uint8 image (H, W, 3) to the model input and lay it out as a
    batched tensor. Aspect ratio is not preserved, so normalized boxes map back
    by plain width/height scaling.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for preprocess_image(). Install with `pip install opencv-python`.") from e

    if image_rgb is None or not hasattr(image_rgb, "shape"):
        raise TypeError("image_rgb must be a NumPy array (RGB).")
    if image_rgb.ndim != 3 or image_rgb.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_rgb, 'shape', None)}")

    h, w = image_rgb.shape[:2]
    if (w, h) != descriptor.size:
        image_rgb = cv2.resize(image_rgb, descriptor.size, interpolation=cv2.INTER_LINEAR)

    if descriptor.is_float:
        blob = image_rgb.astype(np.float32) / 255.0
    else:
        blob = image_rgb.astype(np.uint8)

    if descriptor.channels_first:
        blob = np.transpose(blob, (2, 0, 1))
    return np.ascontiguousarray(blob)[None, ...]


def bgr_to_rgb(image_bgr: np.ndarray) -> np.ndarray:
    """OpenCV loads BGR; the models expect RGB."""
    return np.ascontiguousarray(image_bgr[:, :, ::-1])
