"""
Solver dispatch for generalized additive models.

Public API:
    fit() - fit a GAM with GCV-selected smoothing parameters
    gam   - alias of fit()
"""

from __future__ import annotations

import warnings
from types import MappingProxyType
from typing import Any, Iterable
from numpy.typing import NDArray

from pyadditive.core.compute.timing import Timer
from pyadditive.core.exceptions import ValidationError
from pyadditive.core.result import Result
from pyadditive.gam._basis import SmoothBasis, build_basis
from pyadditive.gam._common import GAMParams
from pyadditive.gam._penalty import penalty_matrix
from pyadditive.gam._pirls import assemble_design
from pyadditive.gam._smoothing import OptimizerConfig, select_smoothing
from pyadditive.gam.design import GAMDesign
from pyadditive.gam.families import Family, Link, resolve_family, resolve_link
from pyadditive.gam.solution import FittedGAM
from pyadditive.gam.terms import expand_terms


def fit(
    response: str,
    terms: Iterable[Any],
    data: Any,
    *,
    family: str | Family = 'normal',
    link: str | Link | None = None,
    optimizer: OptimizerConfig | None = None,
    max_outer_iter: int = 200,
    outer_tol: float = 1e-6,
    max_inner_iter: int = 25,
    inner_tol: float = 1e-8,
    penalty_order: int = 2,
) -> FittedGAM:
    """Fit a generalized additive model.

    η = β₀ + Σ_j f_j(x_j) where each f_j is either a linear term β_j x_j
    or a penalized B-spline smooth B_j(x_j)β_j. Coefficients are found by
    PIRLS for fixed smoothing parameters; the smoothing parameters are
    chosen by minimizing GCV with a derivative-free search over log α.

    Args:
        response: Name of the response column in `data`.
        terms: Ordered term list: SmoothTerm (see s()), LinearTerm,
            InterceptTerm, CovariateTermSpec, or a column name (linear).
            The intercept is always included.
        data: DataSource, mapping of column name → array, or DataFrame.
        family: 'normal', 'gamma', 'poisson', 'bernoulli', or a Family.
        link: 'identity', 'log', 'logit', a Link, or None for the
            family's default link.
        optimizer: Smoothing parameter search settings.
        max_outer_iter: Maximum iterations of the smoothing search.
        outer_tol: Tolerance of the smoothing search.
        max_inner_iter: Maximum PIRLS iterations per trial.
        inner_tol: PIRLS tolerance on relative deviance change.
        penalty_order: Order of the coefficient difference penalty.

    Returns:
        FittedGAM.

    Raises:
        UnknownFamilyOrLink: Unrecognized family or link name.
        UnsupportedTermError: A term of unknown type.
        InvalidInputData: Missing column or mismatched lengths.
        FamilyMismatchError: Response outside the family's support.
        InvalidBasisSpec: A smooth cannot be built from its data.
        OuterOptimizationError: Every smoothing parameter trial failed.
    """
    timer = Timer()
    timer.start()

    # Resolve family and link
    family_obj = resolve_family(family)
    link_obj = resolve_link(link, family_obj)
    optimizer = optimizer or OptimizerConfig()

    # Validate inputs
    _check_iterations(max_outer_iter, outer_tol, max_inner_iter, inner_tol)
    specs, _ = expand_terms(terms)
    design = GAMDesign.build(response, specs, data)
    family_obj.validate_response(design.y)

    with timer.section('basis'):
        bases, blocks, penalties = _build_terms(design, penalty_order)

    with timer.section('setup'):
        pen_design = assemble_design(
            design.y, blocks, [s.smooth for s in specs],
            names=[s.variable for s in specs],
        )

    with timer.section('smoothing'):
        sel = select_smoothing(
            pen_design,
            penalties,
            [s.smooth for s in specs],
            family_obj,
            link_obj,
            config=optimizer,
            max_outer_iter=max_outer_iter,
            outer_tol=outer_tol,
            max_inner_iter=max_inner_iter,
            inner_tol=inner_tol,
        )

    pirls = sel.fit
    diagnostics = sel.diagnostics

    if not sel.outer_converged:
        warnings.warn(
            f"Smoothing parameter search did not converge after "
            f"{sel.n_outer_iter} iterations. Message: {sel.message}",
            RuntimeWarning,
            stacklevel=2,
        )
    if not pirls.converged:
        warnings.warn(
            f"PIRLS did not converge after {pirls.n_iter} iterations at the "
            f"selected smoothing parameters",
            RuntimeWarning,
            stacklevel=2,
        )

    timer.stop()

    coef_index = MappingProxyType({
        name: range(sl.start, sl.stop)
        for name, sl in zip(pen_design.names, pen_design.blocks)
    })
    params = GAMParams(
        response=response,
        family=family_obj,
        link=link_obj,
        terms=specs,
        bases=tuple(bases),
        penalty_order=penalty_order,
        coefficients=pirls.coefficients,
        coef_index=coef_index,
        alpha=MappingProxyType(
            {s.variable: float(a) for s, a in zip(specs, sel.alpha)}
        ),
        linear_predictor=pirls.eta,
        fitted_values=pirls.mu,
        residuals=design.y - pirls.mu,
        diagnostics=diagnostics,
        n_obs=design.n,
    )

    warn_list = []
    if not sel.outer_converged:
        warn_list.append(f"Smoothing parameter search did not converge: {sel.message}")
    if not pirls.converged:
        warn_list.append(f"PIRLS did not converge after {pirls.n_iter} iterations")

    result = Result(
        params=params,
        info={
            'method': 'GCV',
            'family': family_obj.name,
            'link': link_obj.name,
            'optimizer': optimizer.scipy_method,
            'outer_converged': sel.outer_converged,
            'outer_iter': sel.n_outer_iter,
            'n_trials': sel.n_trials,
            'n_failed_trials': sel.n_failed,
            'pirls_converged': pirls.converged,
            'pirls_iter': pirls.n_iter,
            'gcv': diagnostics.gcv,
        },
        timing=timer.result(),
        backend_name='cpu_pirls',
        warnings=tuple(warn_list),
    )

    return FittedGAM(_result=result)


gam = fit


# =====================================================================
# Helpers
# =====================================================================

def _check_iterations(
    max_outer_iter: int,
    outer_tol: float,
    max_inner_iter: int,
    inner_tol: float,
) -> None:
    if max_outer_iter < 1:
        raise ValidationError(f"max_outer_iter must be >= 1, got {max_outer_iter}")
    if max_inner_iter < 1:
        raise ValidationError(f"max_inner_iter must be >= 1, got {max_inner_iter}")
    if not outer_tol > 0:
        raise ValidationError(f"outer_tol must be positive, got {outer_tol}")
    if not inner_tol > 0:
        raise ValidationError(f"inner_tol must be positive, got {inner_tol}")


def _build_terms(
    design: GAMDesign,
    penalty_order: int,
) -> tuple[list[SmoothBasis | None], list[NDArray], list[NDArray | None]]:
    """Basis and penalty per term; linear terms pass their column through."""
    bases: list[SmoothBasis | None] = []
    blocks: list[NDArray] = []
    penalties: list[NDArray | None] = []

    for spec in design.terms:
        x = design.columns[spec.variable]
        if spec.smooth:
            basis = build_basis(x, spec.k, spec.degree, variable=spec.variable)
            bases.append(basis)
            blocks.append(basis.matrix)
            penalties.append(penalty_matrix(spec.k, penalty_order))
        else:
            bases.append(None)
            blocks.append(x.reshape(-1, 1))
            penalties.append(None)

    return bases, blocks, penalties
