import unittest

import numpy as np

from lesion_kit.decode import CLASS_OFFSET, check_class_count, decode_output, sigmoid, softmax
from lesion_kit.errors import ClassCountMismatchError


def _make_output(rows, num_classes: int) -> np.ndarray:
    """
    Build a [1, C, N] tensor from (box, objectness_logit, class_logits) tuples.
    """

    out = np.zeros((1, CLASS_OFFSET + num_classes, len(rows)), dtype=np.float32)
    for i, (box, obj, logits) in enumerate(rows):
        out[0, 0:4, i] = box
        out[0, 4, i] = obj
        out[0, 5:CLASS_OFFSET, i] = np.linspace(-1.0, 1.0, CLASS_OFFSET - 5)
        out[0, CLASS_OFFSET:, i] = logits
    return out


class TestDecodeOutput(unittest.TestCase):
    def test_one_candidate_per_column(self) -> None:
        rng = np.random.default_rng(0)
        out = rng.normal(size=(1, CLASS_OFFSET + 5, 12)).astype(np.float32)
        dets = decode_output(out, num_classes=5)
        self.assertEqual(len(dets), 12)
        for i, d in enumerate(dets):
            self.assertAlmostEqual(d.cx, float(out[0, 0, i]), places=5)
            self.assertEqual(len(d.raw_scores), 5)
            self.assertEqual(len(d.mask_coefficients), 32)

    def test_processed_scores_sum_to_one(self) -> None:
        rng = np.random.default_rng(1)
        out = (rng.normal(size=(1, CLASS_OFFSET + 19, 50)) * 20).astype(np.float32)
        for d in decode_output(out):
            self.assertAlmostEqual(sum(d.processed_scores), 1.0, places=6)
            self.assertEqual(d.class_id, int(np.argmax(d.processed_scores)))
            self.assertAlmostEqual(d.class_prob, max(d.processed_scores))
            self.assertAlmostEqual(d.confidence, d.objectness * d.class_prob)

    def test_confidence_is_objectness_times_class_prob(self) -> None:
        logits = np.zeros(4, dtype=np.float32)
        logits[2] = 10.0
        out = _make_output([((320, 320, 100, 100), 5.0, logits)], num_classes=4)
        (d,) = decode_output(out, num_classes=4)
        expected_obj = 1.0 / (1.0 + np.exp(-5.0))
        expected_prob = np.exp(10.0) / (np.exp(10.0) + 3.0)
        self.assertEqual(d.class_id, 2)
        self.assertAlmostEqual(d.objectness, expected_obj, places=6)
        self.assertAlmostEqual(d.class_prob, expected_prob, places=6)
        self.assertAlmostEqual(d.confidence, expected_obj * expected_prob, places=6)
        self.assertEqual((d.cx, d.cy, d.w, d.h), (320.0, 320.0, 100.0, 100.0))

    def test_extreme_logits_stay_finite(self) -> None:
        logits = np.array([1000.0, -1000.0, 999.0], dtype=np.float32)
        out = _make_output([((10, 10, 20, 20), 1000.0, logits), ((10, 10, 20, 20), -1000.0, logits)], num_classes=3)
        dets = decode_output(out, num_classes=3)
        for d in dets:
            self.assertTrue(np.all(np.isfinite(d.processed_scores)))
            self.assertTrue(np.isfinite(d.confidence))
        self.assertAlmostEqual(dets[0].objectness, 1.0)
        self.assertAlmostEqual(dets[1].objectness, 0.0)
        self.assertEqual(dets[0].class_id, 0)

    def test_class_count_mismatch(self) -> None:
        out = np.zeros((1, CLASS_OFFSET + 19, 3), dtype=np.float32)
        with self.assertRaises(ClassCountMismatchError) as ctx:
            decode_output(out, num_classes=18)
        self.assertEqual(ctx.exception.stage, "postprocess")

    def test_bad_shapes_rejected(self) -> None:
        with self.assertRaises(ValueError):
            decode_output(np.zeros((CLASS_OFFSET + 2, 3), dtype=np.float32))
        with self.assertRaises(ValueError):
            decode_output(np.zeros((2, CLASS_OFFSET + 2, 3), dtype=np.float32))
        with self.assertRaises(ValueError):
            decode_output(np.zeros((1, CLASS_OFFSET, 3), dtype=np.float32))

    def test_check_class_count(self) -> None:
        check_class_count([1, CLASS_OFFSET + 19, 8400], 19)
        check_class_count([1, "channels", "anchors"], 19)
        with self.assertRaises(ClassCountMismatchError) as ctx:
            check_class_count([1, CLASS_OFFSET + 80, 8400], 19)
        self.assertEqual(ctx.exception.stage, "load_model")
        with self.assertRaises(ClassCountMismatchError):
            check_class_count([CLASS_OFFSET + 19, 8400], 19)


class TestActivations(unittest.TestCase):
    def test_sigmoid_and_softmax(self) -> None:
        self.assertAlmostEqual(float(sigmoid(np.array(0.0))), 0.5)
        probs = softmax(np.array([[1.0, 2.0, 3.0], [0.0, 0.0, 0.0]]), axis=1)
        self.assertTrue(np.allclose(probs.sum(axis=1), 1.0))
        self.assertTrue(np.allclose(probs[1], 1.0 / 3.0))


if __name__ == "__main__":
    unittest.main()
