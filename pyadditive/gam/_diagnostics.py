"""
Effective degrees of freedom, GCV and dispersion for a PIRLS fit.

With A = XᵀWX + S the penalized matrix of the final PIRLS iteration,
the influence (hat) matrix is H = X A⁻¹ XᵀW and

    EDF = tr(H) = tr(A⁻¹ XᵀWX) = tr(F)

The diagonal of F splits the EDF between coefficients, so a term's EDF
is the sum of diag(F) over its block. Only the factorization already
computed by PIRLS is used.

References:
    Wood, S. N. (2017). Generalized Additive Models (2nd ed.), Sections
    6.1.2 and 6.2.3.
"""

from __future__ import annotations

from types import MappingProxyType

import numpy as np

from pyadditive.gam._common import Diagnostics
from pyadditive.gam._pirls import PenalizedDesign, PIRLSResult
from pyadditive.gam.families import Family

# Residual df at or below this fraction of n is treated as zero.
_DF_RTOL = 1e-8


def compute_diagnostics(
    fit: PIRLSResult,
    design: PenalizedDesign,
    family: Family,
) -> Diagnostics:
    """Compute EDF, GCV and dispersion from a PIRLS fit."""
    n = design.n
    F = fit.factor.solve(fit.gram)
    diag_F = np.diag(F)

    edf = float(np.sum(diag_F))
    edf_per_term = MappingProxyType({
        name: float(np.sum(diag_F[sl]))
        for name, sl in zip(design.names, design.reduced_blocks)
    })

    deviance = fit.deviance
    df_residual = n - edf
    if df_residual <= _DF_RTOL * n:
        df_residual = 0.0

    if df_residual > 0:
        gcv = n * deviance / df_residual ** 2
    else:
        gcv = float('inf')

    if family.dispersion_is_fixed:
        dispersion = 1.0
    else:
        dispersion = deviance / df_residual if df_residual > 0 else float('nan')

    return Diagnostics(
        edf=edf,
        edf_per_term=edf_per_term,
        gcv=float(gcv),
        deviance=float(deviance),
        dispersion=float(dispersion),
        converged=fit.converged,
        n_iter=fit.n_iter,
    )
