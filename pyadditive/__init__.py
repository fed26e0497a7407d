"""
PyAdditive: generalized additive models for Python.

Penalized B-spline smooths fitted by PIRLS, with smoothing parameters
chosen by generalized cross-validation.

Submodules:
    gam: Model fitting, prediction and diagnostics
    core: Data access, result envelope, exceptions and validation
"""

__version__ = "0.1.0"

from pyadditive import gam
from pyadditive.core.datasource import DataSource
from pyadditive.core.exceptions import (
    PyAdditiveError,
    ValidationError,
    InvalidInputData,
    UnknownFamilyOrLink,
    FamilyMismatchError,
    InvalidBasisSpec,
    UnsupportedTermError,
    NumericalError,
    SingularSystemError,
    OuterOptimizationError,
)
from pyadditive.gam import fit, FittedGAM, s

__all__ = [
    "__version__",
    "gam",
    "fit",
    "FittedGAM",
    "s",
    "DataSource",
    "PyAdditiveError",
    "ValidationError",
    "InvalidInputData",
    "UnknownFamilyOrLink",
    "FamilyMismatchError",
    "InvalidBasisSpec",
    "UnsupportedTermError",
    "NumericalError",
    "SingularSystemError",
    "OuterOptimizationError",
]
