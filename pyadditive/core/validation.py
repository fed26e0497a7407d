"""
Column validators used at the fit and predict boundaries.

Each check looks at one property of one array and raises on the first
problem, naming the column. Nothing is repaired: a NaN or a ragged
column is the caller's to fix. Shape problems raise InvalidInputData,
content problems (non-numeric, non-finite) raise ValidationError.
"""

import numpy as np
from numpy.typing import ArrayLike, NDArray
from typing import Any

from pyadditive.core.exceptions import ValidationError, InvalidInputData


def check_array(
    array: ArrayLike,
    name: str,
) -> NDArray[np.floating[Any]]:
    """
    Convert a column to float64.

    Booleans become 0.0/1.0 so binary responses can be passed as masks.

    Args:
        array: Column values
        name: Column name used in error messages

    Returns:
        float64 ndarray (a view when the input already is one)

    Raises:
        ValidationError: If the values are not numeric
    """
    try:
        values = np.asarray(array)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name}: cannot convert to array: {e}") from e

    if values.dtype == object:
        raise ValidationError(
            f"{name}: converted to object dtype, indicating mixed types or non-numeric data"
        )
    if values.dtype == np.bool_:
        return values.astype(np.float64)
    if not np.issubdtype(values.dtype, np.number):
        raise ValidationError(
            f"{name}: non-numeric dtype {values.dtype}, expected numeric data"
        )
    return values.astype(np.float64, copy=False)


def check_finite(array: NDArray[np.floating[Any]], name: str) -> None:
    """Reject NaN and ±Inf, reporting how many of each."""
    finite = np.isfinite(array)
    if not finite.all():
        n_nan = int(np.isnan(array).sum())
        n_inf = int(np.isinf(array).sum())
        raise ValidationError(
            f"{name}: contains non-finite values ({n_nan} NaN, {n_inf} Inf)"
        )


def check_1d(array: NDArray[np.floating[Any]], name: str) -> None:
    """Columns must be vectors. Raises InvalidInputData otherwise."""
    if array.ndim != 1:
        raise InvalidInputData(
            f"{name}: expected 1D array, got {array.ndim}D with shape {array.shape}",
            variable=name,
        )


def check_consistent_length(
    *arrays: NDArray[np.floating[Any]],
    names: tuple[str, ...]
) -> None:
    """
    All columns must have as many rows as the first one.

    The first array sets the expected length; the first array that
    disagrees is reported by name together with both lengths.

    Raises:
        ValueError: If `names` does not pair up with `arrays`
        InvalidInputData: On the first length mismatch
    """
    if len(arrays) != len(names):
        raise ValueError(
            f"Number of arrays ({len(arrays)}) must match number of names ({len(names)})"
        )

    if len(arrays) < 2:
        return

    expected = arrays[0].shape[0]
    for arr, name in zip(arrays[1:], names[1:]):
        if arr.shape[0] == expected:
            continue
        details = ", ".join(f"{n}={a.shape[0]}" for n, a in zip(names, arrays))
        raise InvalidInputData(
            f"Inconsistent lengths: {details}",
            variable=name,
            expected_length=expected,
            actual_length=arr.shape[0],
        )


def check_min_samples(array: NDArray[np.floating[Any]], min_samples: int, name: str) -> None:
    """Require at least `min_samples` rows. Raises InvalidInputData."""
    n = array.shape[0]
    if n < min_samples:
        raise InvalidInputData(
            f"{name}: requires at least {min_samples} samples, got {n}",
            variable=name,
            expected_length=min_samples,
            actual_length=n,
        )
