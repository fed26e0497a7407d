"""
GAM Design.

GAMDesign pulls the response and the covariate columns named by the
term list out of a DataSource and validates them. It knows it is
building an additive model; DataSource doesn't.

No basis work happens here. Bases are built by the solver once the
response has been checked against the family.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence
from numpy.typing import NDArray

from pyadditive.core.datasource import DataSource
from pyadditive.core.exceptions import InvalidInputData
from pyadditive.core.validation import (
    check_array, check_1d, check_finite, check_consistent_length,
    check_min_samples,
)
from pyadditive.gam.terms import CovariateTermSpec

MIN_OBSERVATIONS = 3


@dataclass(frozen=True)
class GAMDesign:
    """Validated inputs of a GAM fit.

    Attributes:
        response: Name of the response column.
        y: Response vector (n,).
        columns: Covariate name → values (n,), in term order.
        terms: Covariate specs, in order.
        n: Number of observations.
    """
    response: str
    y: NDArray
    columns: dict[str, NDArray]
    terms: tuple[CovariateTermSpec, ...]
    n: int

    @classmethod
    def build(
        cls,
        response: str,
        terms: Sequence[CovariateTermSpec],
        data: Any,
    ) -> GAMDesign:
        """Extract and validate the response and covariate columns.

        Args:
            response: Response column name.
            terms: Covariate specs from expand_terms().
            data: DataSource, mapping of name → array, or DataFrame.

        Raises:
            InvalidInputData: If a column is missing, is not 1-D, or has
                a different length than the response, or if there are
                fewer than 3 observations.
            ValidationError: If a column is non-numeric or non-finite.
        """
        source = DataSource.build(data)

        y = _column(source, response)
        check_min_samples(y, MIN_OBSERVATIONS, response)

        columns: dict[str, NDArray] = {}
        for spec in terms:
            x = _column(source, spec.variable)
            check_consistent_length(y, x, names=(response, spec.variable))
            columns[spec.variable] = x

        return cls(
            response=response,
            y=y,
            columns=columns,
            terms=tuple(terms),
            n=y.shape[0],
        )


def _column(source: DataSource, name: str) -> NDArray:
    if name not in source:
        raise InvalidInputData(
            f"Column {name!r} not found in data. Available: {sorted(source.keys())}",
            variable=name,
        )
    arr = check_array(source[name], name)
    check_1d(arr, name)
    check_finite(arr, name)
    return arr
