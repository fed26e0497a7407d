"""
Numerical policy and tolerance tiers.

NumericalPolicy fixes the constants the PIRLS loop relies on so that
fits are deterministic and reproducible:
- how far μ is kept from the boundary of its valid domain
- the guard in the relative-deviance convergence criterion
- the floor on working weights
- the pivot tolerance of the factorization check

ToleranceTier is used by the test suite to compare numerical results.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class NumericalPolicy:
    """Fixed numerical constants for one fit.

    deviance_eps only keeps the relative-deviance criterion defined when
    the deviance reaches zero. It is kept far below any realistic
    deviance so that the stop rule stays relative when the response is
    measured on a small scale.
    """
    clip_eps: float = 1e-8
    deviance_eps: float = 1e-6
    weight_floor: float = 1e-30
    # Scaled Cholesky pivots below singular_rtol * p * machine epsilon
    # mark the penalized normal equations as singular.
    singular_rtol: float = 10.0


DEFAULT_POLICY = NumericalPolicy()


@dataclass(frozen=True)
class ToleranceTier:
    """Tolerance specification for numerical comparison."""
    rtol: float
    atol: float
    name: str
    description: str


# Direct linear algebra (a single factorization and solve)
CPU_FP64 = ToleranceTier(
    rtol=1e-8,
    atol=1e-10,
    name='cpu_fp64',
    description='CPU double precision, direct solve',
)

# Quantities produced by an iterative loop that stops on a tolerance
CPU_FP64_ITERATIVE = ToleranceTier(
    rtol=1e-5,
    atol=1e-7,
    name='cpu_fp64_iterative',
    description='CPU double precision, iterative fit',
)
