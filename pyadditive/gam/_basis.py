"""
B-spline basis construction for smooth terms.

A smooth term f(x) is represented as B(x)β where B is an n × k matrix of
degree-d B-splines on a uniform knot sequence spanning the observed
range of x. Boundary knots are repeated d+1 times (clamped knots), so the
k basis functions form a partition of unity on [min x, max x].

Every column is centered on its training-set mean. This removes the
collinearity between each smooth and the global intercept. The means are
stored with the basis and reused, never recomputed, when the basis is
evaluated at new covariate values.

Because the basis sums to one, the centered columns sum to zero: the
constant coefficient vector has no effect on the fit. The PIRLS solver
removes that direction with sum_to_zero_null_space().

References:
    de Boor, C. (2001). A Practical Guide to Splines. Springer.
    Eilers, P. H. C., & Marx, B. D. (1996). Flexible smoothing with
    B-splines and penalties. Statistical Science, 11(2), 89-121.
"""

from __future__ import annotations

from dataclasses import dataclass
import numpy as np
from numpy.typing import NDArray
from scipy.interpolate import BSpline

from pyadditive.core.exceptions import InvalidBasisSpec


@dataclass(frozen=True)
class SmoothBasis:
    """A centered B-spline basis built on training data.

    Attributes:
        variable: Covariate name.
        knots: Full knot vector, length k + degree + 1.
        degree: Polynomial degree of the B-splines.
        k: Number of basis functions (columns).
        col_means: Training-set mean of each raw column (k,).
        matrix: Centered training basis (n, k).
        x_range: (min, max) of the training covariate.
    """
    variable: str
    knots: NDArray
    degree: int
    k: int
    col_means: NDArray
    matrix: NDArray
    x_range: tuple[float, float]


def uniform_knots(lower: float, upper: float, k: int, degree: int) -> NDArray:
    """Clamped uniform knot vector for k basis functions of the given degree.

    The k - degree - 1 interior knots split [lower, upper] into equal
    intervals; each boundary knot is repeated degree + 1 times.
    """
    breaks = np.linspace(lower, upper, k - degree + 1)
    return np.concatenate([
        np.full(degree, lower),
        breaks,
        np.full(degree, upper),
    ])


def _evaluate(x: NDArray, knots: NDArray, degree: int, k: int) -> NDArray:
    """Evaluate all k B-splines at x; outside the knot range the boundary
    polynomial pieces are extended."""
    spline = BSpline(knots, np.eye(k), degree, extrapolate=True)
    return np.asarray(spline(np.asarray(x, dtype=np.float64)), dtype=np.float64)


def build_basis(
    x: NDArray,
    k: int,
    degree: int,
    variable: str = 'x',
) -> SmoothBasis:
    """Build a centered B-spline basis for one covariate.

    Args:
        x: Covariate values (n,), finite.
        k: Number of basis functions, at least 2 and greater than degree.
        degree: Polynomial degree, at least 0.
        variable: Covariate name, used in error messages.

    Returns:
        SmoothBasis whose `matrix` columns have zero training mean.

    Raises:
        InvalidBasisSpec: If k < 2, degree < 0, k <= degree, or x has
            fewer than k + 1 distinct values.
    """
    x = np.asarray(x, dtype=np.float64).ravel()
    n_distinct = int(np.unique(x).size)

    if degree < 0 or k < 2 or k <= degree:
        raise InvalidBasisSpec(
            f"{variable}: invalid basis size k={k} for degree={degree}; "
            f"need k >= 2, degree >= 0 and k > degree",
            variable=variable, k=k, degree=degree, n_distinct=n_distinct,
        )
    if n_distinct < k + 1:
        raise InvalidBasisSpec(
            f"{variable}: k={k} basis functions need at least {k + 1} "
            f"distinct values, got {n_distinct}",
            variable=variable, k=k, degree=degree, n_distinct=n_distinct,
        )

    lower, upper = float(np.min(x)), float(np.max(x))
    knots = uniform_knots(lower, upper, k, degree)
    raw = _evaluate(x, knots, degree, k)

    col_means = raw.mean(axis=0)
    centered = raw - col_means

    return SmoothBasis(
        variable=variable,
        knots=knots,
        degree=degree,
        k=k,
        col_means=col_means,
        matrix=centered,
        x_range=(lower, upper),
    )


def prediction_matrix(x_new: NDArray, basis: SmoothBasis) -> NDArray:
    """Evaluate a stored basis at new covariate values.

    Uses the training knots and degree; values outside the training range
    are extrapolated by the boundary polynomial pieces, not clamped. The
    stored training column means are subtracted.

    Args:
        x_new: New covariate values (m,).
        basis: Basis returned by build_basis().

    Returns:
        (m, k) centered matrix, consistent with basis.matrix.
    """
    x_new = np.asarray(x_new, dtype=np.float64).ravel()
    raw = _evaluate(x_new, basis.knots, basis.degree, basis.k)
    return raw - basis.col_means


def sum_to_zero_null_space(k: int) -> NDArray:
    """Orthonormal basis (k, k-1) of the vectors whose entries sum to zero.

    Taken from the complete QR decomposition of the ones vector, as in
    mgcv's absorption of identifiability constraints.
    """
    Q, _ = np.linalg.qr(np.ones((k, 1)), mode='complete')
    return Q[:, 1:]
