"""
Unit tests for numpy scoring helpers
"""

import numpy as np
import pytest

from taskpipe.core.tensor_ops import l2_normalize, masked_softmax, mean_pool, sigmoid, softmax, top_k


class TestSoftmax:

    def test_rows_sum_to_one(self):
        probs = softmax(np.array([[1.0, 2.0, 3.0], [1000.0, 1000.0, 1000.0]]))

        assert probs.sum(axis=-1) == pytest.approx([1.0, 1.0])
        assert probs[1] == pytest.approx([1 / 3] * 3)

    def test_masked_positions_get_zero(self):
        probs = masked_softmax(np.array([50.0, 1.0, 1.0]), np.array([False, True, True]))

        assert probs.tolist() == pytest.approx([0.0, 0.5, 0.5])


class TestTopK:

    def test_descending_with_stable_ties(self):
        assert top_k(np.array([0.2, 0.5, 0.2, 0.5])) == [(1, 0.5), (3, 0.5), (0, 0.2), (2, 0.2)]

    def test_k_limits_results(self):
        assert [idx for idx, _ in top_k(np.array([0.1, 0.7, 0.2]), 2)] == [1, 2]


def test_sigmoid():
    assert sigmoid(np.array([0.0]))[0] == pytest.approx(0.5)
    assert sigmoid(np.array([4.1]))[0] == pytest.approx(0.98368, abs=1e-4)


def test_mean_pool_ignores_padding():
    hidden = np.array([[[1.0, 1.0], [3.0, 3.0], [100.0, 100.0]]])
    mask = np.array([[1, 1, 0]])

    assert mean_pool(hidden, mask).tolist() == [[2.0, 2.0]]


def test_l2_normalize():
    vectors = l2_normalize(np.array([[3.0, 4.0], [0.0, 0.0]]))

    assert vectors[0].tolist() == pytest.approx([0.6, 0.8])
    assert vectors[1].tolist() == [0.0, 0.0]
