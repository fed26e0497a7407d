"""
Generalized additive models.

Public API:
    fit() / gam()   - fit a GAM with GCV-selected smoothing parameters
    FittedGAM       - result wrapper with predict(), partial_effect(), summary()
    s()             - smooth term helper
    OptimizerConfig - smoothing parameter search settings
    prediction_matrix() - evaluate a stored smooth basis at new values
"""

from pyadditive.gam.solvers import fit, gam
from pyadditive.gam.solution import FittedGAM
from pyadditive.gam.terms import (
    CovariateTermSpec, SmoothTerm, LinearTerm, InterceptTerm, s,
)
from pyadditive.gam._smoothing import OptimizerConfig
from pyadditive.gam._basis import SmoothBasis, prediction_matrix
from pyadditive.gam._common import Diagnostics, GAMParams
from pyadditive.gam.families import (
    Family, Link, FAMILIES, LINKS, resolve_family, resolve_link,
)

__all__ = [
    "fit",
    "gam",
    "FittedGAM",
    "CovariateTermSpec",
    "SmoothTerm",
    "LinearTerm",
    "InterceptTerm",
    "s",
    "OptimizerConfig",
    "SmoothBasis",
    "prediction_matrix",
    "Diagnostics",
    "GAMParams",
    "Family",
    "Link",
    "FAMILIES",
    "LINKS",
    "resolve_family",
    "resolve_link",
]
