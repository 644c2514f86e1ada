import unittest

import numpy as np

from yolo_camkit.geometry import iou, iou_one_to_many, is_degenerate, to_center, to_corners


def _random_box(rng: np.random.Generator):
    x1, y1 = rng.uniform(0, 100, size=2)
    w, h = rng.uniform(1, 50, size=2)
    return (float(x1), float(y1), float(x1 + w), float(y1 + h))


class TestGeometry(unittest.TestCase):
    def test_to_corners_and_back(self) -> None:
        corners = to_corners(0.5, 0.5, 0.2, 0.4)
        self.assertTrue(np.allclose(corners, (0.4, 0.3, 0.6, 0.7)))
        self.assertTrue(np.allclose(to_center(*corners), (0.5, 0.5, 0.2, 0.4)))

    def test_iou_is_symmetric_and_bounded(self) -> None:
        rng = np.random.default_rng(0)
        for _ in range(200):
            a, b = _random_box(rng), _random_box(rng)
            v = iou(a, b)
            self.assertAlmostEqual(v, iou(b, a), places=12)
            self.assertGreaterEqual(v, 0.0)
            self.assertLessEqual(v, 1.0)

    def test_iou_with_itself_is_one(self) -> None:
        box = (10.0, 20.0, 30.0, 60.0)
        self.assertAlmostEqual(iou(box, box), 1.0)

    def test_known_overlap(self) -> None:
        # B covers 60% of A and sits inside it.
        self.assertAlmostEqual(iou((0, 0, 10, 10), (0, 0, 10, 6)), 0.6)

    def test_disjoint_and_touching_boxes(self) -> None:
        self.assertEqual(iou((0, 0, 1, 1), (2, 2, 3, 3)), 0.0)
        self.assertEqual(iou((0, 0, 1, 1), (1, 0, 2, 1)), 0.0)

    def test_degenerate_box_gives_zero(self) -> None:
        self.assertTrue(is_degenerate((5, 5, 5, 10)))
        self.assertTrue(is_degenerate((5, 5, 4, 10)))
        self.assertEqual(iou((5, 5, 5, 10), (0, 0, 10, 10)), 0.0)
        self.assertEqual(iou((0, 0, 10, 10), (3, 8, 6, 2)), 0.0)

    def test_one_to_many_matches_scalar_iou(self) -> None:
        rng = np.random.default_rng(1)
        box = _random_box(rng)
        boxes = [_random_box(rng) for _ in range(20)]
        boxes.append((1.0, 1.0, 1.0, 5.0))
        out = iou_one_to_many(box, np.array(boxes))
        expected = [iou(box, b) for b in boxes]
        self.assertTrue(np.allclose(out, expected))
        self.assertEqual(out[-1], 0.0)

    def test_one_to_many_empty(self) -> None:
        self.assertEqual(iou_one_to_many((0, 0, 1, 1), np.empty((0, 4))).shape, (0,))


if __name__ == "__main__":
    unittest.main()
