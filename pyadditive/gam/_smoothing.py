"""
Smoothing parameter selection by GCV.

The outer loop of GAM estimation. Each smooth term j has a smoothing
parameter α_j = exp(θ_j); the search runs over θ with a derivative-free
optimizer from scipy.optimize. Each trial θ is scored by running PIRLS
at α = exp(θ) and computing

    GCV(α) = n · D(α) / (n − EDF(α))²

Working on the log scale keeps every α positive without bounds. Linear
terms carry α = 0 and are not searched.

Trials whose penalized system is singular score +inf and the search
moves on. The best trial observed is returned even when the optimizer
makes no progress; the search fails only when no trial succeeded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence
import numpy as np
from numpy.typing import NDArray
from scipy.optimize import minimize

from pyadditive.core.compute.tolerances import NumericalPolicy, DEFAULT_POLICY
from pyadditive.core.exceptions import (
    OuterOptimizationError, SingularSystemError, ValidationError,
)
from pyadditive.gam._common import Diagnostics
from pyadditive.gam._diagnostics import compute_diagnostics
from pyadditive.gam._pirls import PenalizedDesign, PIRLSResult, solve_pirls
from pyadditive.gam.families import Family, Link

logger = logging.getLogger(__name__)

_METHODS = {
    'nelder-mead': 'Nelder-Mead',
    'powell': 'Powell',
}


@dataclass(frozen=True)
class OptimizerConfig:
    """Settings of the derivative-free smoothing parameter search.

    Attributes:
        method: 'Nelder-Mead' (default) or 'Powell'.
        initial_log_alpha: Starting value of every θ_j = log α_j.
        initial_step: Edge length of the starting simplex in θ units
            (Nelder-Mead only).
    """
    method: str = 'Nelder-Mead'
    initial_log_alpha: float = 0.0
    initial_step: float = 2.0

    def __post_init__(self) -> None:
        if self.method.lower() not in _METHODS:
            raise ValidationError(
                f"Unknown optimizer method: {self.method!r}. "
                f"Valid methods: {', '.join(_METHODS.values())}"
            )
        if not np.isfinite(self.initial_log_alpha):
            raise ValidationError(
                f"initial_log_alpha must be finite, got {self.initial_log_alpha}"
            )
        if not self.initial_step > 0:
            raise ValidationError(
                f"initial_step must be positive, got {self.initial_step}"
            )

    @property
    def scipy_method(self) -> str:
        return _METHODS[self.method.lower()]

    def options(self, x0: NDArray, max_iter: int, tol: float) -> dict:
        """Options dict for scipy.optimize.minimize."""
        if self.scipy_method == 'Nelder-Mead':
            simplex = np.vstack([x0, x0 + self.initial_step * np.eye(len(x0))])
            return {
                'maxiter': max_iter,
                'xatol': tol,
                'fatol': tol,
                'initial_simplex': simplex,
            }
        return {'maxiter': max_iter, 'xtol': tol, 'ftol': tol}


@dataclass(frozen=True)
class SmoothingResult:
    """Outcome of the smoothing parameter search.

    Attributes:
        alpha: Selected smoothing parameter per term (0 for linear terms).
        fit: PIRLS fit at the selected α.
        diagnostics: Diagnostics of that fit.
        n_trials: Number of α values evaluated.
        n_failed: Trials abandoned because the system was singular.
        outer_converged: Whether the optimizer reported success.
        n_outer_iter: Optimizer iterations.
        message: Optimizer termination message.
    """
    alpha: NDArray
    fit: PIRLSResult
    diagnostics: Diagnostics
    n_trials: int
    n_failed: int
    outer_converged: bool
    n_outer_iter: int
    message: str


class _GCVObjective:
    """θ → GCV, remembering the best fit seen."""

    def __init__(
        self,
        design: PenalizedDesign,
        penalties: Sequence[NDArray | None],
        smooth_idx: NDArray,
        family: Family,
        link: Link,
        max_inner_iter: int,
        inner_tol: float,
        policy: NumericalPolicy,
    ):
        self.design = design
        self.penalties = penalties
        self.smooth_idx = smooth_idx
        self.family = family
        self.link = link
        self.max_inner_iter = max_inner_iter
        self.inner_tol = inner_tol
        self.policy = policy

        self.n_trials = 0
        self.n_failed = 0
        self.last_error: Exception | None = None
        self.best: tuple[float, NDArray, PIRLSResult, Diagnostics] | None = None

    def alpha_from(self, theta: NDArray) -> NDArray:
        alpha = np.zeros(len(self.design.blocks))
        with np.errstate(over='ignore'):
            alpha[self.smooth_idx] = np.exp(theta)
        return alpha

    def __call__(self, theta: NDArray) -> float:
        self.n_trials += 1
        alpha = self.alpha_from(np.atleast_1d(theta))

        if not np.all(np.isfinite(alpha)):
            self.n_failed += 1
            self.last_error = SingularSystemError(
                f"Smoothing parameter overflow at log(alpha)={theta}",
                alpha=tuple(float(a) for a in alpha),
            )
            logger.debug("trial %d: alpha overflow at theta=%s", self.n_trials, theta)
            return np.inf

        try:
            fit = solve_pirls(
                self.design, self.penalties, alpha, self.family, self.link,
                tol=self.inner_tol, max_iter=self.max_inner_iter,
                policy=self.policy,
            )
        except SingularSystemError as e:
            self.n_failed += 1
            self.last_error = e
            logger.debug("trial %d: abandoned, %s", self.n_trials, e)
            return np.inf

        diagnostics = compute_diagnostics(fit, self.design, self.family)
        gcv = diagnostics.gcv
        logger.debug(
            "trial %d: alpha=%s gcv=%.6g edf=%.3f pirls_iter=%d",
            self.n_trials, alpha[self.smooth_idx], gcv, diagnostics.edf,
            fit.n_iter,
        )

        score = gcv if np.isfinite(gcv) else np.inf
        if self.best is None or score < self.best[0]:
            self.best = (score, alpha, fit, diagnostics)

        return score


def select_smoothing(
    design: PenalizedDesign,
    penalties: Sequence[NDArray | None],
    smooth_mask: Sequence[bool],
    family: Family,
    link: Link,
    *,
    config: OptimizerConfig | None = None,
    max_outer_iter: int = 200,
    outer_tol: float = 1e-6,
    max_inner_iter: int = 25,
    inner_tol: float = 1e-8,
    policy: NumericalPolicy = DEFAULT_POLICY,
) -> SmoothingResult:
    """Choose smoothing parameters by minimizing GCV over θ = log α.

    Args:
        design: Model matrix from assemble_design().
        penalties: One penalty per term, None for linear terms.
        smooth_mask: True for terms whose α is searched.
        family: Response family.
        link: Link function.
        config: Optimizer settings; OptimizerConfig() if None.
        max_outer_iter: Maximum optimizer iterations.
        outer_tol: Optimizer tolerance on θ and on GCV.
        max_inner_iter: Maximum PIRLS iterations per trial.
        inner_tol: PIRLS convergence tolerance.
        policy: Numerical policy forwarded to PIRLS.

    Returns:
        SmoothingResult holding the best trial.

    Raises:
        OuterOptimizationError: If every trial failed.
    """
    config = config or OptimizerConfig()
    smooth_idx = np.flatnonzero(np.asarray(smooth_mask, dtype=bool))
    objective = _GCVObjective(
        design, penalties, smooth_idx, family, link,
        max_inner_iter, inner_tol, policy,
    )

    if smooth_idx.size == 0:
        objective(np.empty(0))
        outer_converged, n_outer_iter = True, 0
        message = 'No smoothing parameters to select'
    else:
        x0 = np.full(smooth_idx.size, float(config.initial_log_alpha))
        opt = minimize(
            objective,
            x0,
            method=config.scipy_method,
            options=config.options(x0, max_outer_iter, outer_tol),
        )
        outer_converged = bool(opt.success)
        n_outer_iter = int(getattr(opt, 'nit', 0))
        message = str(opt.message)

    if objective.best is None:
        raise OuterOptimizationError(
            f"All {objective.n_trials} smoothing parameter trials failed; "
            f"last error: {objective.last_error}",
            n_trials=objective.n_trials,
            last_error=objective.last_error,
        ) from objective.last_error

    _, alpha, fit, diagnostics = objective.best
    return SmoothingResult(
        alpha=alpha,
        fit=fit,
        diagnostics=diagnostics,
        n_trials=objective.n_trials,
        n_failed=objective.n_failed,
        outer_converged=outer_converged,
        n_outer_iter=n_outer_iter,
        message=message,
    )
