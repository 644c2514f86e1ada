import math
import unittest

import numpy as np

from yolo_camkit.decode import best_classes, decode_predictions, max_class_score
from yolo_camkit.heuristics import (
    Activation,
    CoordinateScale,
    coordinate_bases,
    detect_activation,
    detect_coordinate_scale,
    sigmoid,
)
from yolo_camkit.layout import to_channel_major


def _channels(boxes, class_scores) -> np.ndarray:
    """boxes: (N, 4) cx, cy, w, h; class_scores: (N, C) -> (4 + C, N)."""
    return np.vstack([np.asarray(boxes, dtype=np.float32).T, np.asarray(class_scores, dtype=np.float32).T])


class TestActivationHeuristic(unittest.TestCase):
    def test_probabilities(self) -> None:
        scores = np.array([[0.1, 0.9, 1.2], [0.0, 0.3, 1.5]])
        self.assertIs(detect_activation(scores), Activation.PROBABILITIES)

    def test_negative_or_large_values_mean_logits(self) -> None:
        self.assertIs(detect_activation(np.array([[0.2, -0.1]])), Activation.RAW_LOGITS)
        self.assertIs(detect_activation(np.array([[0.2, 1.6]])), Activation.RAW_LOGITS)

    def test_only_the_prefix_is_sampled(self) -> None:
        scores = np.full((2, 64), 0.5)
        scores[1, 40] = 7.0
        self.assertIs(detect_activation(scores, sample_size=32), Activation.PROBABILITIES)
        self.assertIs(detect_activation(scores, sample_size=64), Activation.RAW_LOGITS)

    def test_sigmoid(self) -> None:
        self.assertAlmostEqual(float(sigmoid(0.0)), 0.5)
        self.assertAlmostEqual(float(sigmoid(3.0)), 1.0 / (1.0 + math.exp(-3.0)))
        self.assertTrue(np.all(np.isfinite(sigmoid(np.array([-1000.0, 1000.0])))))


class TestCoordinateScaleHeuristic(unittest.TestCase):
    def test_normalized(self) -> None:
        scale = detect_coordinate_scale(0.5, 0.5, 0.2, 2.0)
        self.assertTrue(scale.is_normalized)
        self.assertEqual(scale, CoordinateScale.normalized())

    def test_pixel_units_bases(self) -> None:
        self.assertEqual(detect_coordinate_scale(100, 100, 20, 20).base, 320.0)
        self.assertEqual(detect_coordinate_scale(320, 300, 64, 64).base, 640.0)
        self.assertEqual(detect_coordinate_scale(1100, 500, 64, 64).base, 1280.0)
        self.assertEqual(detect_coordinate_scale(-400, 0.5, 0.1, 0.1).base, 640.0)

    def test_vectorized_bases_match(self) -> None:
        geometry = np.array([[0.5, 100, 320, 1100], [0.5, 100, 300, 500], [0.2, 20, 64, 64], [0.2, 20, 64, 64]])
        self.assertTrue(np.array_equal(coordinate_bases(geometry), [1.0, 320.0, 640.0, 1280.0]))

    def test_vectorized_bases_agree_at_boundaries(self) -> None:
        magnitudes = [0.5, 2.0, 2.5, 299.0, 300.0, 1000.0, 1000.5, 5000.0]
        geometry = np.array([[m, 0.1, 0.1, 0.1] for m in magnitudes]).T
        expected = [detect_coordinate_scale(m, 0.1, 0.1, 0.1).base or 1.0 for m in magnitudes]
        self.assertEqual(coordinate_bases(geometry).tolist(), expected)


class TestDecodePredictions(unittest.TestCase):
    def test_zero_classes_returns_empty(self) -> None:
        raw = np.random.default_rng(0).uniform(0, 1, size=(1, 4, 6)).astype(np.float32)
        channels = to_channel_major(raw, expected_channels=4)
        self.assertEqual(decode_predictions(channels, 0.1), [])

    def test_best_class_and_threshold(self) -> None:
        channels = _channels(
            [[0.5, 0.5, 0.2, 0.4], [0.3, 0.6, 0.1, 0.1], [0.1, 0.1, 0.1, 0.1]],
            [[0.1, 0.9, 0.2], [0.7, 0.1, 0.2], [0.1, 0.1, 0.1]],
        )
        dets = decode_predictions(channels, 0.25)
        self.assertEqual([d.class_index for d in dets], [1, 0])
        self.assertTrue(np.allclose([d.score for d in dets], [0.9, 0.7]))
        self.assertTrue(np.allclose(dets[0].as_cxcywh(), (0.5, 0.5, 0.2, 0.4)))

    def test_threshold_is_strict(self) -> None:
        channels = _channels([[0.5, 0.5, 0.2, 0.2]], [[0.5, 0.25]])
        self.assertEqual(decode_predictions(channels, 0.5), [])
        self.assertEqual(len(decode_predictions(channels, 0.49)), 1)

    def test_ties_keep_lowest_class_index(self) -> None:
        channels = _channels([[0.5, 0.5, 0.2, 0.2]], [[0.1, 0.6, 0.6]])
        dets = decode_predictions(channels, 0.25)
        self.assertEqual(dets[0].class_index, 1)

    def test_output_keeps_prediction_order(self) -> None:
        channels = _channels(
            [[0.1, 0.1, 0.1, 0.1], [0.2, 0.2, 0.1, 0.1], [0.3, 0.3, 0.1, 0.1]],
            [[0.4, 0.0], [0.9, 0.0], [0.6, 0.0]],
        )
        dets = decode_predictions(channels, 0.25)
        self.assertTrue(np.allclose([d.cx for d in dets], [0.1, 0.2, 0.3]))

    def test_logits_are_squashed(self) -> None:
        channels = _channels([[0.5, 0.5, 0.2, 0.2], [0.4, 0.4, 0.2, 0.2]], [[3.0, -2.0], [-4.0, -5.0]])
        dets = decode_predictions(channels, 0.5)
        self.assertEqual(len(dets), 1)
        self.assertEqual(dets[0].class_index, 0)
        self.assertAlmostEqual(dets[0].score, 1.0 / (1.0 + math.exp(-3.0)), places=6)

    def test_forced_activation_overrides_sampling(self) -> None:
        channels = _channels([[0.5, 0.5, 0.2, 0.2]], [[0.8, 0.1]])
        dets = decode_predictions(channels, 0.5, activation=Activation.RAW_LOGITS)
        self.assertAlmostEqual(dets[0].score, 1.0 / (1.0 + math.exp(-0.8)), places=6)

    def test_pixel_units_are_normalized(self) -> None:
        channels = _channels([[320, 240, 64, 128]], [[0.9]])
        dets = decode_predictions(channels, 0.5)
        self.assertTrue(np.allclose(dets[0].as_cxcywh(), (0.5, 0.375, 0.1, 0.2)))

        raw = decode_predictions(channels, 0.5, normalize_coordinates=False)
        self.assertTrue(np.allclose(raw[0].as_cxcywh(), (320, 240, 64, 128)))

    def test_overshooting_probabilities_are_capped(self) -> None:
        channels = _channels([[0.5, 0.5, 0.2, 0.2], [0.3, 0.3, 0.1, 0.1]], [[1.3, 1.2], [0.2, 0.6]])
        dets = decode_predictions(channels, 0.5)
        self.assertEqual([d.class_index for d in dets], [0, 1])
        for det in dets:
            self.assertTrue(0.0 <= det.score <= 1.0)
        self.assertEqual(dets[0].score, 1.0)
        self.assertAlmostEqual(dets[1].score, 0.6, places=6)

    def test_non_positive_scores_have_no_class(self) -> None:
        class_ids, best = best_classes(np.array([[0.0, 0.3], [0.0, 0.1]]))
        self.assertEqual(class_ids.tolist(), [-1, 0])
        self.assertTrue(np.allclose(best, [0.0, 0.3]))

    def test_max_class_score(self) -> None:
        channels = _channels([[0.5, 0.5, 0.2, 0.2], [0.5, 0.5, 0.2, 0.2]], [[0.1, 0.2], [0.05, 0.3]])
        self.assertAlmostEqual(max_class_score(channels), 0.3, places=6)
        self.assertEqual(max_class_score(np.zeros((4, 3))), 0.0)


if __name__ == "__main__":
    unittest.main()
