"""
Common data types for generalized additive models.

Contains the frozen payloads that go inside Result[P] envelopes.
Each payload is a pure data container. No methods, no computation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from numpy.typing import NDArray

from pyadditive.gam._basis import SmoothBasis
from pyadditive.gam.families import Family, Link
from pyadditive.gam.terms import CovariateTermSpec


@dataclass(frozen=True)
class Diagnostics:
    """Fit diagnostics at the selected smoothing parameters.

    Attributes:
        edf: Effective degrees of freedom, trace of the hat matrix.
        edf_per_term: Term name → its share of the EDF.
        gcv: Generalized cross-validation score n·D / (n − EDF)².
        deviance: Residual deviance D.
        dispersion: Scale estimate D / (n − EDF), or 1 for families
            with a fixed scale.
        converged: Whether PIRLS converged.
        n_iter: PIRLS iterations used.
    """
    edf: float
    edf_per_term: Mapping[str, float]
    gcv: float
    deviance: float
    dispersion: float
    converged: bool
    n_iter: int


@dataclass(frozen=True)
class GAMParams:
    """
    Parameter payload for a fitted generalized additive model.

    Contains everything needed to predict, summarize and plot the fit.
    """
    # Model
    response: str
    family: Family
    link: Link
    terms: tuple[CovariateTermSpec, ...]
    bases: tuple[SmoothBasis | None, ...]   # None for linear terms
    penalty_order: int

    # Coefficients
    coefficients: NDArray              # [intercept, term blocks...] (p,)
    coef_index: Mapping[str, range]    # term name → positions in coefficients
    alpha: Mapping[str, float]         # term name → smoothing parameter

    # Predictions
    linear_predictor: NDArray          # η̂ (n,)
    fitted_values: NDArray             # μ̂ = g⁻¹(η̂) (n,)
    residuals: NDArray                 # y − μ̂ (n,)

    # Diagnostics
    diagnostics: Diagnostics
    n_obs: int
