"""
Exception hierarchy for PyAdditive.

All exceptions inherit from PyAdditiveError to allow catching any
library-specific error. Validation problems derive from ValidationError,
numerical failures from NumericalError.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages name the offending variable, α or iteration
    - Never catch and re-raise with less information
"""

from __future__ import annotations

from typing import Any


class PyAdditiveError(Exception):
    """Base exception for all PyAdditive errors."""
    pass


class ValidationError(PyAdditiveError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks.
    """
    pass


class InvalidInputData(ValidationError):
    """
    Response and covariate columns are missing or have inconsistent shapes.

    Attributes:
        variable: Name of the offending column, if known
        expected_length: Length the column should have had
        actual_length: Length it actually had
    """

    def __init__(
        self,
        message: str,
        variable: str | None = None,
        expected_length: int | None = None,
        actual_length: int | None = None,
    ):
        super().__init__(message)
        self.variable = variable
        self.expected_length = expected_length
        self.actual_length = actual_length


class UnknownFamilyOrLink(ValidationError):
    """
    A family or link name is not in the registry.

    Attributes:
        name: The name that was requested
        kind: 'family' or 'link'
        valid: Names that would have been accepted
    """

    def __init__(
        self,
        message: str,
        name: str | None = None,
        kind: str | None = None,
        valid: tuple[str, ...] = (),
    ):
        super().__init__(message)
        self.name = name
        self.kind = kind
        self.valid = valid


class FamilyMismatchError(ValidationError):
    """
    Response values fall outside the support of the requested family.

    Raised before any basis construction, e.g. for non-binary responses
    under the Bernoulli family.

    Attributes:
        family: Family name
        n_invalid: Number of offending observations
        examples: A few of the offending values
    """

    def __init__(
        self,
        message: str,
        family: str | None = None,
        n_invalid: int | None = None,
        examples: tuple[Any, ...] = (),
    ):
        super().__init__(message)
        self.family = family
        self.n_invalid = n_invalid
        self.examples = examples


class InvalidBasisSpec(ValidationError):
    """
    Knot count, degree and data range cannot produce a valid spline basis.

    Attributes:
        variable: Covariate the basis was requested for
        k: Requested number of basis functions
        degree: Requested polynomial degree
        n_distinct: Number of distinct covariate values available
    """

    def __init__(
        self,
        message: str,
        variable: str | None = None,
        k: int | None = None,
        degree: int | None = None,
        n_distinct: int | None = None,
    ):
        super().__init__(message)
        self.variable = variable
        self.k = k
        self.degree = degree
        self.n_distinct = n_distinct


class UnsupportedTermError(ValidationError):
    """
    A model term is not a smooth, linear or intercept term.

    Attributes:
        term: The offending term object
    """

    def __init__(self, message: str, term: Any = None):
        super().__init__(message)
        self.term = term


class NumericalError(PyAdditiveError):
    """
    Numerical computation failed.

    Base class for errors arising from numerical issues during computation.
    """
    pass


class SingularSystemError(NumericalError):
    """
    Penalized normal equations are singular or nearly singular.

    Raised when (X'WX + S) cannot be factorized to the required tolerance
    at a given smoothing-parameter trial. The trial is abandoned rather
    than returning an unstable solution.

    Attributes:
        matrix_name: Name/description of the problematic matrix
        alpha: Smoothing parameters of the failed trial
        iteration: PIRLS iteration at which the factorization failed
        min_pivot: Smallest scaled pivot seen, if the factorization ran
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        alpha: tuple[float, ...] | None = None,
        iteration: int | None = None,
        min_pivot: float | None = None,
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.alpha = alpha
        self.iteration = iteration
        self.min_pivot = min_pivot


class OuterOptimizationError(NumericalError):
    """
    Every smoothing-parameter trial of the outer search failed.

    Attributes:
        n_trials: Number of trials evaluated
        last_error: The error raised by the last failed trial
    """

    def __init__(
        self,
        message: str,
        n_trials: int,
        last_error: Exception | None = None,
    ):
        super().__init__(message)
        self.n_trials = n_trials
        self.last_error = last_error
