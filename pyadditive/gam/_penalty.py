"""
Difference penalties for B-spline coefficients.

The wiggliness of a smooth B(x)β is measured by the p-th order discrete
differences of its coefficient sequence (the P-spline penalty):

    βᵀPβ = ‖Dβ‖²,   P = DᵀD

where D is the (k - p) × k p-th difference operator. Coefficient
sequences that are polynomials of degree p - 1 in their index lie in the
null space of P and stay unpenalized, so order 2 leaves constants and
straight lines untouched.

References:
    Eilers, P. H. C., & Marx, B. D. (1996). Flexible smoothing with
    B-splines and penalties. Statistical Science, 11(2), 89-121.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pyadditive.core.exceptions import ValidationError


def difference_matrix(k: int, order: int = 2) -> NDArray:
    """p-th order difference operator D, shape (k - order, k).

    Row i of D applied to β gives the order-th forward difference
    starting at β_i. Order 0 is the identity. Order k gives an empty
    (0, k) operator: nothing in the term is penalized.

    Raises:
        ValidationError: If order < 0 or order > k.
    """
    if order < 0 or order > k:
        raise ValidationError(
            f"penalty order must satisfy 0 <= order <= k, got order={order}, k={k}"
        )
    return np.diff(np.eye(k), n=order, axis=0)


def penalty_matrix(k: int, order: int = 2) -> NDArray:
    """k × k positive semi-definite penalty P = DᵀD."""
    D = difference_matrix(k, order)
    return D.T @ D
