"""
Generic result container for PyAdditive computations.

The Result class is the envelope every fitted model is returned in.
It separates the domain payload (coefficients, bases, diagnostics) from
the bookkeeping around it (optimizer info, timing, non-fatal warnings).

Design decisions:
    - Generic over parameter payload P for type safety
    - info dict for flexible metadata (converged, iterations, trial counts)
    - timing is optional (don't burden unit tests)
    - Immutable (frozen=True) so fitted models can be shared freely
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')  # Parameter payload type


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope for a model fit.

    Attributes:
        params: Domain-specific parameters (coefficients, bases, etc.)
        info: Structured metadata (optimizer, convergence, trial counts)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the code path that produced this result
        warnings: Non-fatal issues encountered during computation

    Examples:
        >>> Result(
        ...     params=GAMParams(...),
        ...     info={'optimizer': 'Nelder-Mead', 'n_trials': 41},
        ...     timing={'total_seconds': 0.2},
        ...     backend_name='cpu_pirls'
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
