"""
Shared compute infrastructure for PyAdditive.

IMPORTANT: This is NOT where model-specific numerics live. Those go in
the domain subpackage. This module contains shared helpers.

Submodules:
    timing: Execution timing utilities
    tolerances: Numerical policy constants and test tolerance tiers
"""

from pyadditive.core.compute.timing import Timer
from pyadditive.core.compute.tolerances import (
    NumericalPolicy,
    DEFAULT_POLICY,
    ToleranceTier,
    CPU_FP64,
    CPU_FP64_ITERATIVE,
)

__all__ = [
    "Timer",
    "NumericalPolicy",
    "DEFAULT_POLICY",
    "ToleranceTier",
    "CPU_FP64",
    "CPU_FP64_ITERATIVE",
]
