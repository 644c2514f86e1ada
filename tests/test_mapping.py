import unittest

import numpy as np

from yolo_camkit.mapping import (
    CoordinateMapper,
    display_size,
    out_of_bounds_fraction,
    remap_detections,
    remap_rotation,
    scale_detections,
)
from yolo_camkit.nms import NMSConfig
from yolo_camkit.types import Detection


def _det(cx: float, cy: float, w: float = 0.1, h: float = 0.1, score: float = 0.9, cls: int = 0) -> Detection:
    return Detection(class_index=cls, score=score, cx=cx, cy=cy, w=w, h=h)


class TestScaling(unittest.TestCase):
    def test_normalized_box_to_pixels(self) -> None:
        det = _det(0.5, 0.5, 0.2, 0.4)
        mapped = CoordinateMapper((640, 640)).map([det], (640, 480))
        self.assertEqual(len(mapped), 1)
        self.assertTrue(np.allclose(mapped[0].as_cxcywh(), (320, 240, 128, 192)))
        # Scaling happens in place.
        self.assertIs(mapped[0], det)

    def test_scale_detections(self) -> None:
        dets = [_det(1.0, 2.0, 3.0, 4.0)]
        scale_detections(dets, 2.0, 0.5)
        self.assertTrue(np.allclose(dets[0].as_cxcywh(), (2.0, 1.0, 6.0, 2.0)))

    def test_out_of_bounds_fraction(self) -> None:
        dets = [_det(50, 50), _det(130, 50), _det(50, -30), _det(115, 100)]
        # 130 > 1.2 * 100 and -30 < -0.2 * 100; 115 is within the margin.
        self.assertAlmostEqual(out_of_bounds_fraction(dets, 100, 100), 0.5)
        self.assertEqual(out_of_bounds_fraction([], 100, 100), 0.0)


class TestFallback(unittest.TestCase):
    def _channels(self) -> np.ndarray:
        # Values just under the pixel-unit cutoff: decoded as normalized, but they
        # are really pixels of a 2x2 model input.
        return np.array([[1.8], [1.6], [0.2], [0.4], [0.9]], dtype=np.float32)

    def test_fallback_rescales_by_model_size(self) -> None:
        channels = self._channels()
        dets = [_det(1.8, 1.6, 0.2, 0.4)]
        cfg = NMSConfig(confidence_threshold=0.5, iou_threshold=0.5)
        mapped = CoordinateMapper((2, 2), fallback_ratio=0.7).map(
            dets, (640, 480), channels=channels, nms_cfg=cfg
        )
        self.assertEqual(len(mapped), 1)
        self.assertTrue(np.allclose(mapped[0].as_cxcywh(), (576, 384, 64, 96), atol=1e-3))

    def test_no_fallback_below_ratio(self) -> None:
        channels = self._channels()
        dets = [_det(1.8, 1.6), _det(0.5, 0.5)]
        mapped = CoordinateMapper((2, 2), fallback_ratio=0.5).map(dets, (100, 100), channels=channels)
        # Exactly half out of bounds is not above the ratio.
        self.assertEqual(len(mapped), 2)
        self.assertAlmostEqual(mapped[1].cx, 50.0)

    def test_no_fallback_without_channels(self) -> None:
        mapped = CoordinateMapper((2, 2)).map([_det(1.8, 1.6)], (100, 100))
        self.assertAlmostEqual(mapped[0].cx, 180.0)

    def test_invalid_ratio(self) -> None:
        with self.assertRaises(ValueError):
            CoordinateMapper((640, 640), fallback_ratio=1.5)


class TestRotationRemap(unittest.TestCase):
    def test_quarter_turns_round_trip(self) -> None:
        rng = np.random.default_rng(0)
        for _ in range(50):
            cx, cy = rng.uniform(0, 480, size=2)
            w, h = rng.uniform(1, 100, size=2)
            det = _det(float(cx), float(cy), float(w), float(h))
            original = det.as_cxcywh()
            remap_rotation(det, 90, 640, 480)
            remap_rotation(det, 270, 480, 640)
            self.assertTrue(np.allclose(det.as_cxcywh(), original))

    def test_quarter_turn_formula(self) -> None:
        det = remap_rotation(_det(100, 50, 30, 20), 90, 640, 480)
        self.assertEqual(det.as_cxcywh(), (590, 100, 20, 30))

    def test_half_turn(self) -> None:
        det = remap_rotation(_det(100, 50, 30, 20), 180, 640, 480)
        self.assertEqual(det.as_cxcywh(), (540, 430, 30, 20))

    def test_identity(self) -> None:
        dets = remap_detections([_det(100, 50, 30, 20)], 0, 640, 480)
        self.assertEqual(dets[0].as_cxcywh(), (100, 50, 30, 20))

    def test_invalid_rotation(self) -> None:
        with self.assertRaises(ValueError):
            remap_rotation(_det(1, 1), 45, 10, 10)

    def test_display_size(self) -> None:
        self.assertEqual(display_size(640, 480, 90), (480, 640))
        self.assertEqual(display_size(640, 480, 180), (640, 480))
        with self.assertRaises(ValueError):
            display_size(640, 480, 30)


if __name__ == "__main__":
    unittest.main()
