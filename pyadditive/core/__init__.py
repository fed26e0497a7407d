"""
Core infrastructure for PyAdditive.

Shared abstractions used by the model subpackage.

Key components:
    datasource: Column-oriented DataSource
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    compute: Timing and numerical policy
"""

from pyadditive.core.datasource import DataSource
from pyadditive.core.result import Result
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

__all__ = [
    "DataSource",
    "Result",
    # Exceptions
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
