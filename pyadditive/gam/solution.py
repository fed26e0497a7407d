"""
Solution wrapper for generalized additive models.

FittedGAM wraps Result[GAMParams] and provides property accessors for
the pieces downstream code reads (family, bases, coefficient ranges,
diagnostics), prediction on new data, per-term partial effects and an
R-style text summary.
"""

from __future__ import annotations

from typing import Any, Mapping
from numpy.typing import ArrayLike, NDArray

from pyadditive.core.datasource import DataSource
from pyadditive.core.exceptions import InvalidInputData, ValidationError
from pyadditive.core.result import Result
from pyadditive.core.validation import check_array, check_1d, check_finite
from pyadditive.gam._basis import SmoothBasis, prediction_matrix
from pyadditive.gam._common import GAMParams, Diagnostics
from pyadditive.gam.families import Family, Link
from pyadditive.gam.terms import CovariateTermSpec


class FittedGAM:
    """Solution wrapper for a fitted generalized additive model.

    Immutable: refitting produces a new FittedGAM.
    """

    def __init__(self, _result: Result[GAMParams]):
        self._result = _result

    @property
    def params(self) -> GAMParams:
        return self._result.params

    # --- Model ---

    @property
    def family(self) -> Family:
        return self.params.family

    @property
    def link(self) -> Link:
        return self.params.link

    @property
    def family_name(self) -> str:
        return self.params.family.name

    @property
    def link_name(self) -> str:
        return self.params.link.name

    @property
    def response(self) -> str:
        return self.params.response

    @property
    def terms(self) -> tuple[CovariateTermSpec, ...]:
        return self.params.terms

    @property
    def bases(self) -> dict[str, SmoothBasis]:
        """Smooth term name → stored basis (knots, degree, column means)."""
        return {
            spec.variable: basis
            for spec, basis in zip(self.params.terms, self.params.bases)
            if basis is not None
        }

    @property
    def col_means(self) -> dict[str, NDArray]:
        """Smooth term name → training column means of its basis."""
        return {name: basis.col_means for name, basis in self.bases.items()}

    # --- Coefficients ---

    @property
    def coefficients(self) -> NDArray:
        """Full coefficient vector [intercept, term blocks...]."""
        return self.params.coefficients

    @property
    def coef_index(self) -> Mapping[str, range]:
        """Term name → positions of its coefficients."""
        return self.params.coef_index

    @property
    def intercept(self) -> float:
        return float(self.params.coefficients[0])

    def term_coefficients(self, variable: str) -> NDArray:
        """Coefficients of one term.

        Raises:
            KeyError: If the model has no term on `variable`.
        """
        idx = self._index(variable)
        return self.params.coefficients[idx.start:idx.stop]

    @property
    def alpha(self) -> Mapping[str, float]:
        """Term name → smoothing parameter (0 for linear terms)."""
        return self.params.alpha

    # --- Fit ---

    @property
    def linear_predictor(self) -> NDArray:
        return self.params.linear_predictor

    @property
    def fitted_values(self) -> NDArray:
        return self.params.fitted_values

    @property
    def residuals(self) -> NDArray:
        return self.params.residuals

    @property
    def diagnostics(self) -> Diagnostics:
        return self.params.diagnostics

    @property
    def edf(self) -> float:
        return self.params.diagnostics.edf

    @property
    def gcv(self) -> float:
        return self.params.diagnostics.gcv

    @property
    def deviance(self) -> float:
        return self.params.diagnostics.deviance

    @property
    def dispersion(self) -> float:
        return self.params.diagnostics.dispersion

    @property
    def converged(self) -> bool:
        return self.params.diagnostics.converged

    @property
    def n_obs(self) -> int:
        return self.params.n_obs

    # --- Envelope ---

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    # --- Prediction ---

    def predict(self, data: Any, type: str = 'response') -> NDArray:
        """Predict at new covariate values.

        Smooth terms are evaluated with their stored bases and column
        means; linear terms enter as raw columns.

        Args:
            data: DataSource, mapping or DataFrame with a column for every
                term variable. The response column is not needed.
            type: 'response' for μ = g⁻¹(η), 'link' for η.

        Returns:
            Predictions (m,).

        Raises:
            InvalidInputData: If a column is missing or the columns have
                different lengths.
            ValidationError: If `type` is not recognized.
        """
        if type not in ('response', 'link'):
            raise ValidationError(
                f"type must be 'response' or 'link', got {type!r}"
            )
        source = DataSource.build(data)

        eta: NDArray | None = None
        first: str | None = None
        for spec in self.params.terms:
            if spec.variable not in source:
                raise InvalidInputData(
                    f"Column {spec.variable!r} required for prediction not "
                    f"found. Available: {sorted(source.keys())}",
                    variable=spec.variable,
                )
            contribution = self.partial_effect(spec.variable, source[spec.variable])
            if eta is None:
                eta = contribution + self.intercept
                first = spec.variable
            elif contribution.shape[0] != eta.shape[0]:
                raise InvalidInputData(
                    f"Inconsistent lengths: {first}={eta.shape[0]}, "
                    f"{spec.variable}={contribution.shape[0]}",
                    variable=spec.variable,
                    expected_length=eta.shape[0],
                    actual_length=contribution.shape[0],
                )
            else:
                eta = eta + contribution

        if type == 'link':
            return eta
        return self.params.link.linkinv(eta)

    def partial_effect(self, variable: str, x: ArrayLike) -> NDArray:
        """Additive contribution of one term on the link scale.

        Args:
            variable: Term variable.
            x: Covariate values (m,).

        Returns:
            f(x) for a smooth term, βx for a linear term (m,).

        Raises:
            KeyError: If the model has no term on `variable`.
        """
        j = self._term_position(variable)
        x = check_array(x, variable)
        check_1d(x, variable)
        check_finite(x, variable)

        beta = self.term_coefficients(variable)
        basis = self.params.bases[j]
        if basis is None:
            return x * beta[0]
        return prediction_matrix(x, basis) @ beta

    # --- Summary ---

    def summary(self) -> str:
        """R-style summary in the spirit of mgcv::summary.gam()."""
        params = self.params
        diag = params.diagnostics

        lines = []
        lines.append(f"Family: {params.family.name}")
        lines.append(f"Link function: {params.link.name}")
        lines.append("")
        formula = ' + '.join(
            f"s({t.variable}, k={t.k}, degree={t.degree})" if t.smooth else t.variable
            for t in params.terms
        )
        lines.append(f"Formula: {params.response} ~ {formula}")
        lines.append("")

        lines.append(f" {'(Intercept)':<15s} {self.intercept:12.4f}")
        lines.append("")

        linear = [t for t in params.terms if not t.smooth]
        if linear:
            lines.append("Linear terms:")
            lines.append(f" {'':<15s} {'Estimate':>12s}")
            for t in linear:
                lines.append(
                    f" {t.variable:<15s} {self.term_coefficients(t.variable)[0]:12.4f}"
                )
            lines.append("")

        smooth = [t for t in params.terms if t.smooth]
        if smooth:
            lines.append("Smooth terms:")
            lines.append(f" {'':<15s} {'k':>4s} {'edf':>8s} {'alpha':>12s}")
            for t in smooth:
                lines.append(
                    f" {'s(' + t.variable + ')':<15s} {t.k:4d} "
                    f"{diag.edf_per_term[t.variable]:8.3f} "
                    f"{params.alpha[t.variable]:12.4g}"
                )
            lines.append("")

        lines.append(
            f"GCV = {diag.gcv:.5g}  Scale est. = {diag.dispersion:.5g}  "
            f"n = {params.n_obs}"
        )
        lines.append(
            f"Deviance = {diag.deviance:.5g}  Total edf = {diag.edf:.3f}"
        )

        if not diag.converged:
            lines.append("")
            lines.append(
                f"WARNING: PIRLS did not converge ({diag.n_iter} iterations)"
            )

        return '\n'.join(lines)

    def __repr__(self) -> str:
        n_smooth = sum(1 for t in self.params.terms if t.smooth)
        return (
            f"FittedGAM({self.family_name}/{self.link_name}, "
            f"n={self.params.n_obs}, "
            f"smooth={n_smooth}, "
            f"linear={len(self.params.terms) - n_smooth}, "
            f"edf={self.edf:.2f})"
        )

    # --- Helpers ---

    def _index(self, variable: str) -> range:
        try:
            return self.params.coef_index[variable]
        except KeyError:
            raise KeyError(
                f"Model has no term on {variable!r}. "
                f"Terms: {[t.variable for t in self.params.terms]}"
            ) from None

    def _term_position(self, variable: str) -> int:
        for j, spec in enumerate(self.params.terms):
            if spec.variable == variable:
                return j
        raise KeyError(
            f"Model has no term on {variable!r}. "
            f"Terms: {[t.variable for t in self.params.terms]}"
        )
