"""
Penalized Iteratively Reweighted Least Squares (PIRLS) for GAMs.

For a fixed vector of smoothing parameters α, PIRLS finds the
coefficients β of the additive predictor η = Xβ by solving a sequence of
penalized weighted least squares problems:

    (XᵀWX + S) β = XᵀWz,    S = blockdiag(0, α_1 P_1, …, α_m P_m)

with working weights w = 1/(V(μ) g′(μ)²) and working response
z = η + (y − μ) g′(μ) recomputed from the current fit at every step.

This is the inner loop of GAM estimation. The outer loop (_smoothing)
chooses α by minimizing GCV.

Each centered smooth block B_j maps the constant coefficient vector to
zero, and the difference penalty leaves constants unpenalized, so the
system is solved in coordinates satisfying 1ᵀβ_j = 0 for every smooth
term. The coefficients returned are the unique minimum-norm solution of
the full system.

References:
    Wood, S. N. (2017). Generalized Additive Models (2nd ed.), Section 6.1.
    Green, P. J., & Silverman, B. W. (1994). Nonparametric Regression and
    Generalized Linear Models. Chapman & Hall, Section 5.2.3.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence
import numpy as np
from numpy.typing import NDArray
from scipy.linalg import block_diag, cho_factor, cho_solve, LinAlgError

from pyadditive.core.compute.tolerances import NumericalPolicy, DEFAULT_POLICY
from pyadditive.core.exceptions import SingularSystemError, ValidationError
from pyadditive.gam._basis import sum_to_zero_null_space
from pyadditive.gam.families import Family, Link


@dataclass(frozen=True)
class PenalizedDesign:
    """Full model matrix and its identifiability constraints.

    Attributes:
        y: Response vector (n,).
        X: Model matrix [1 | B_1 | … | B_m] (n, p).
        Z: Constraint matrix (p, q); β = Zγ for reduced coefficients γ.
        XZ: X @ Z (n, q), the matrix the normal equations are built from.
        names: Term names, one per block.
        blocks: Coefficient slices into β, one per term.
        reduced_blocks: Coefficient slices into γ, one per term.
        smooth: Whether each block is a centered smooth.
    """
    y: NDArray
    X: NDArray
    Z: NDArray
    XZ: NDArray
    names: tuple[str, ...]
    blocks: tuple[slice, ...]
    reduced_blocks: tuple[slice, ...]
    smooth: tuple[bool, ...]

    @property
    def n(self) -> int:
        return self.X.shape[0]

    @property
    def p(self) -> int:
        return self.X.shape[1]

    @property
    def q(self) -> int:
        return self.Z.shape[1]


@dataclass(frozen=True)
class CholeskyFactor:
    """Jacobi-scaled Cholesky factor of a symmetric positive definite A.

    A = D As D with D = diag(scale) and As = UᵀU (upper triangular U
    held in `factor`).
    """
    factor: NDArray
    scale: NDArray
    min_pivot: float

    def solve(self, b: NDArray) -> NDArray:
        """Solve A x = b for a vector or a matrix of right-hand sides."""
        b = np.asarray(b, dtype=np.float64)
        d = self.scale if b.ndim == 1 else self.scale[:, np.newaxis]
        return cho_solve((self.factor, False), b / d) / d


@dataclass(frozen=True)
class PIRLSResult:
    """Result from PIRLS.

    Attributes:
        coefficients: β in full coordinates (p,).
        eta: Linear predictor Xβ (n,).
        mu: Fitted values g⁻¹(η), clipped into the valid interior (n,).
        weights: Working weights of the final solve (n,).
        deviance: Family deviance at the returned μ.
        converged: Whether the relative deviance change fell below tol.
        n_iter: Number of PIRLS iterations run.
        alpha: Smoothing parameters the fit was run at.
        factor: Factorization of the final penalized matrix (reduced coords).
        gram: Final XᵀWX in reduced coordinates (q, q).
    """
    coefficients: NDArray
    eta: NDArray
    mu: NDArray
    weights: NDArray
    deviance: float
    converged: bool
    n_iter: int
    alpha: tuple[float, ...]
    factor: CholeskyFactor
    gram: NDArray


def assemble_design(
    y: NDArray,
    blocks: Sequence[NDArray],
    smooth: Sequence[bool],
    names: Sequence[str] | None = None,
) -> PenalizedDesign:
    """Stack term blocks behind an intercept column.

    Args:
        y: Response vector (n,).
        blocks: One (n, k_j) matrix per term; a linear term is (n, 1).
        smooth: True for centered smooth blocks, which get the
            sum-to-zero constraint on their coefficients.
        names: Term names, default 'term0', 'term1', ...

    Returns:
        PenalizedDesign.
    """
    y = np.asarray(y, dtype=np.float64)
    n = y.shape[0]
    if names is None:
        names = [f'term{j}' for j in range(len(blocks))]
    if not (len(blocks) == len(smooth) == len(names)):
        raise ValueError("blocks, smooth and names must have the same length")

    columns = [np.ones((n, 1))]
    constraints = [np.ones((1, 1))]
    full_slices = []
    reduced_slices = []
    p, q = 1, 1
    for B, is_smooth in zip(blocks, smooth):
        B = np.asarray(B, dtype=np.float64)
        if B.ndim == 1:
            B = B.reshape(-1, 1)
        k = B.shape[1]
        Zj = sum_to_zero_null_space(k) if is_smooth else np.eye(k)
        columns.append(B)
        constraints.append(Zj)
        full_slices.append(slice(p, p + k))
        reduced_slices.append(slice(q, q + Zj.shape[1]))
        p += k
        q += Zj.shape[1]

    X = np.hstack(columns)
    Z = block_diag(*constraints)

    return PenalizedDesign(
        y=y,
        X=X,
        Z=Z,
        XZ=X @ Z,
        names=tuple(names),
        blocks=tuple(full_slices),
        reduced_blocks=tuple(reduced_slices),
        smooth=tuple(bool(s) for s in smooth),
    )


def penalty_blocks(
    design: PenalizedDesign,
    penalties: Sequence[NDArray | None],
    alpha: NDArray,
) -> NDArray:
    """Full penalty S = blockdiag(0, α_1 P_1, …, α_m P_m), shape (p, p).

    Terms whose penalty is None (linear terms) contribute a zero block.
    """
    S = np.zeros((design.p, design.p))
    for sl, P, a in zip(design.blocks, penalties, alpha):
        if P is not None and a != 0.0:
            S[sl, sl] = a * P
    return S


def factorize(
    A: NDArray,
    alpha: tuple[float, ...],
    iteration: int,
    policy: NumericalPolicy = DEFAULT_POLICY,
) -> CholeskyFactor:
    """Tolerance-checked Cholesky factorization of the penalized matrix.

    A is first scaled to unit diagonal so the pivot check does not
    depend on the units of the covariates.

    Raises:
        SingularSystemError: If A has a non-positive or non-finite
            diagonal, is not positive definite, or its smallest scaled
            pivot falls below the tolerance.
    """
    q = A.shape[0]
    diag = np.diag(A)
    if not np.all(np.isfinite(A)) or np.any(diag <= 0):
        raise SingularSystemError(
            f"Penalized normal matrix has non-finite or non-positive diagonal "
            f"at iteration {iteration} (alpha={alpha})",
            matrix_name="X'WX + S",
            alpha=alpha,
            iteration=iteration,
        )

    scale = np.sqrt(diag)
    As = A / np.outer(scale, scale)
    try:
        U, _ = cho_factor(As, lower=False)
    except LinAlgError as e:
        raise SingularSystemError(
            f"Penalized normal matrix is not positive definite at iteration "
            f"{iteration} (alpha={alpha}): {e}",
            matrix_name="X'WX + S",
            alpha=alpha,
            iteration=iteration,
        ) from e

    pivots = np.diag(U) ** 2
    min_pivot = float(np.min(pivots))
    threshold = policy.singular_rtol * q * np.finfo(np.float64).eps
    if min_pivot < threshold:
        raise SingularSystemError(
            f"Penalized normal matrix is numerically singular at iteration "
            f"{iteration} (alpha={alpha}): smallest scaled pivot "
            f"{min_pivot:.3e} < {threshold:.3e}",
            matrix_name="X'WX + S",
            alpha=alpha,
            iteration=iteration,
            min_pivot=min_pivot,
        )

    return CholeskyFactor(factor=U, scale=scale, min_pivot=min_pivot)


def solve_pirls(
    design: PenalizedDesign,
    penalties: Sequence[NDArray | None],
    alpha: NDArray,
    family: Family,
    link: Link,
    tol: float = 1e-8,
    max_iter: int = 25,
    policy: NumericalPolicy = DEFAULT_POLICY,
) -> PIRLSResult:
    """Penalized IRLS for fixed smoothing parameters.

    1. Initialize μ from y, clipped into the valid interior; η = g(μ)
    2. Working weights: w = 1 / (V(μ) g′(μ)²)
    3. Working response: z = η + (y − μ) g′(μ)
    4. Solve (XᵀWX + S) β = XᵀWz
    5. Update: η = Xβ, μ = g⁻¹(η) clipped into the valid interior
    6. Stop when |D_new − D_old| / (|D_old| + ε) < tol

    Running out of iterations is not an error: the last iterate is
    returned with converged=False.

    Args:
        design: Model matrix and constraints from assemble_design().
        penalties: One k_j × k_j penalty per term, None for linear terms.
        alpha: Smoothing parameter per term (0 for linear terms).
        family: Response family.
        link: Link function.
        tol: Convergence tolerance on relative deviance change.
        max_iter: Maximum PIRLS iterations.
        policy: Clip width, deviance guard, weight floor, pivot tolerance.

    Returns:
        PIRLSResult.

    Raises:
        SingularSystemError: If the penalized normal equations cannot be
            factorized at some iteration.
    """
    alpha = np.asarray(alpha, dtype=np.float64).ravel()
    if alpha.shape[0] != len(design.blocks) or len(penalties) != len(design.blocks):
        raise ValidationError(
            f"Expected {len(design.blocks)} smoothing parameters and penalties, "
            f"got {alpha.shape[0]} and {len(penalties)}"
        )
    if not np.all(np.isfinite(alpha)) or np.any(alpha < 0):
        raise ValidationError(f"Smoothing parameters must be finite and >= 0, got {alpha}")
    if max_iter < 1:
        raise ValidationError(f"max_iter must be >= 1, got {max_iter}")

    alpha_t = tuple(float(a) for a in alpha)
    y = design.y
    X, Z, XZ = design.X, design.Z, design.XZ
    S_red = Z.T @ penalty_blocks(design, penalties, alpha) @ Z
    eps = policy.clip_eps

    # Initialize
    mu = family.clip(family.initialize(y), link, eps)
    eta = link.link(mu)
    dev_old = family.deviance(y, mu)
    converged = False

    for iteration in range(1, max_iter + 1):
        # Working response and weights
        g_prime = link.derivative(mu)
        w = 1.0 / (family.variance(mu) * g_prime ** 2)
        w = np.maximum(w, policy.weight_floor)
        z = eta + (y - mu) * g_prime

        # Penalized weighted normal equations in constrained coordinates
        XtW = XZ.T * w
        gram = XtW @ XZ
        factor = factorize(gram + S_red, alpha_t, iteration, policy)
        gamma = factor.solve(XtW @ z)
        beta = Z @ gamma

        # Update linear predictor and mean
        eta = X @ beta
        mu = family.clip(link.linkinv(eta), link, eps)

        # Check convergence
        dev_new = family.deviance(y, mu)
        if abs(dev_new - dev_old) / (abs(dev_old) + policy.deviance_eps) < tol:
            converged = True
            dev_old = dev_new
            break
        dev_old = dev_new

    return PIRLSResult(
        coefficients=beta,
        eta=eta,
        mu=mu,
        weights=w,
        deviance=dev_old,
        converged=converged,
        n_iter=iteration,
        alpha=alpha_t,
        factor=factor,
        gram=gram,
    )
