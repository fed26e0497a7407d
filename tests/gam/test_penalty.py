"""Tests for the difference penalty."""

import numpy as np
import pytest

from pyadditive.core.exceptions import ValidationError
from pyadditive.gam._penalty import difference_matrix, penalty_matrix


class TestDifferenceMatrix:

    def test_second_order_rows(self):
        D = difference_matrix(5, order=2)
        assert D.shape == (3, 5)
        np.testing.assert_array_equal(D[0], [1.0, -2.0, 1.0, 0.0, 0.0])
        np.testing.assert_array_equal(D[2], [0.0, 0.0, 1.0, -2.0, 1.0])

    def test_first_order(self):
        D = difference_matrix(3, order=1)
        np.testing.assert_array_equal(D, [[-1.0, 1.0, 0.0], [0.0, -1.0, 1.0]])

    def test_order_zero_is_identity(self):
        np.testing.assert_array_equal(difference_matrix(4, order=0), np.eye(4))

    def test_order_equal_to_k_is_empty(self):
        assert difference_matrix(2, order=2).shape == (0, 2)
        np.testing.assert_array_equal(penalty_matrix(2, order=2), np.zeros((2, 2)))

    @pytest.mark.parametrize("k, order", [(3, 4), (5, -1), (2, 3)])
    def test_invalid_order(self, k, order):
        with pytest.raises(ValidationError, match="penalty order"):
            difference_matrix(k, order)


class TestPenaltyMatrix:

    def test_symmetric_psd(self):
        P = penalty_matrix(10)
        np.testing.assert_allclose(P, P.T)
        assert np.linalg.eigvalsh(P).min() > -1e-10

    def test_null_space_of_second_order(self):
        P = penalty_matrix(8, order=2)
        np.testing.assert_allclose(P @ np.ones(8), 0.0, atol=1e-12)
        np.testing.assert_allclose(P @ np.arange(8.0), 0.0, atol=1e-12)
        assert np.linalg.matrix_rank(P) == 6

    def test_penalizes_curvature(self):
        P = penalty_matrix(6)
        beta = np.arange(6.0) ** 2
        assert beta @ P @ beta == pytest.approx(4.0 * 4)

    def test_third_order(self):
        P = penalty_matrix(7, order=3)
        beta = np.arange(7.0) ** 2
        np.testing.assert_allclose(P @ beta, 0.0, atol=1e-10)
