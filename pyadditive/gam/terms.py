"""
Model term specifications.

The fitting engine consumes an ordered list of CovariateTermSpec
records: one per covariate, flagged smooth or linear. Formula parsing
lives outside this package; callers either build the records directly
or describe the model with the small term vocabulary below and let
expand_terms() lower it:

    >>> from pyadditive.gam.terms import s, LinearTerm, InterceptTerm
    >>> expand_terms([InterceptTerm(), s('age', k=8), LinearTerm('dose')])
    ((CovariateTermSpec('age', 8, 3, True),
      CovariateTermSpec('dose', 0, 0, False)), True)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from pyadditive.core.exceptions import UnsupportedTermError, ValidationError


@dataclass(frozen=True)
class CovariateTermSpec:
    """One covariate of the additive predictor.

    Attributes:
        variable: Column name in the data.
        k: Number of spline basis functions (0 for linear terms).
        degree: Polynomial degree of the spline (0 for linear terms).
        smooth: True for a penalized spline, False for a linear column.
    """
    variable: str
    k: int = 0
    degree: int = 0
    smooth: bool = False

    def __repr__(self) -> str:
        return (
            f"CovariateTermSpec({self.variable!r}, {self.k}, "
            f"{self.degree}, {self.smooth})"
        )


@dataclass(frozen=True)
class SmoothTerm:
    """Smooth spline term s(variable, k, degree)."""
    variable: str
    k: int = 10
    degree: int = 3

    def __str__(self) -> str:
        return f"s({self.variable}, k={self.k}, degree={self.degree})"


@dataclass(frozen=True)
class LinearTerm:
    """Covariate entering the predictor as a single unpenalized column."""
    variable: str

    def __str__(self) -> str:
        return self.variable


@dataclass(frozen=True)
class InterceptTerm:
    """The global intercept. Always present in the fitted model."""

    def __str__(self) -> str:
        return "1"


def s(variable: str, k: int = 10, degree: int = 3) -> SmoothTerm:
    """Create a smooth term, e.g. ``s('x1', 10, 3)``."""
    return SmoothTerm(variable, k, degree)


def _visit(term: Any) -> CovariateTermSpec | None:
    """Lower a single term node. Returns None for the intercept."""
    if isinstance(term, CovariateTermSpec):
        return term
    if isinstance(term, SmoothTerm):
        return CovariateTermSpec(term.variable, term.k, term.degree, True)
    if isinstance(term, LinearTerm):
        return CovariateTermSpec(term.variable, 0, 0, False)
    if isinstance(term, InterceptTerm):
        return None
    if isinstance(term, str):
        return CovariateTermSpec(term, 0, 0, False)
    raise UnsupportedTermError(
        f"Unsupported term {term!r} of type {type(term).__name__}; expected "
        f"SmoothTerm, LinearTerm, InterceptTerm, CovariateTermSpec or a "
        f"column name",
        term=term,
    )


def expand_terms(
    terms: Iterable[Any],
) -> tuple[tuple[CovariateTermSpec, ...], bool]:
    """Lower term nodes to covariate specs.

    A bare string is read as a linear term on that column.

    Args:
        terms: Iterable of SmoothTerm, LinearTerm, InterceptTerm,
            CovariateTermSpec or str.

    Returns:
        (specs, has_intercept) where specs keeps the input order.

    Raises:
        UnsupportedTermError: For any other node type.
        ValidationError: If a variable appears twice or no covariate
            term is given.
    """
    specs: list[CovariateTermSpec] = []
    has_intercept = False
    seen: set[str] = set()

    for term in terms:
        spec = _visit(term)
        if spec is None:
            has_intercept = True
            continue
        if spec.variable in seen:
            raise ValidationError(
                f"Variable {spec.variable!r} appears in more than one term"
            )
        seen.add(spec.variable)
        specs.append(spec)

    if not specs:
        raise ValidationError("At least one covariate term is required")

    return tuple(specs), has_intercept
