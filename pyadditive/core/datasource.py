"""
Column-oriented DataSource for PyAdditive.

DataSource is the "I have data" abstraction. It holds named numeric
columns and hands them out by name. It doesn't know which column is the
response or which covariates will be smoothed; the model design decides
that.

Loading and cleaning files is the caller's job. A DataSource is built
from data already in memory.

Usage:
    from pyadditive.core.datasource import DataSource

    ds = DataSource.from_arrays(y=y, x1=x1, x2=x2)
    ds = DataSource.from_mapping({'y': y, 'x1': x1})
    ds = DataSource.from_dataframe(df)

    ds.keys()   # frozenset({'y', 'x1', 'x2'})
    x1 = ds['x1']
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING
import numpy as np
from numpy.typing import ArrayLike

from pyadditive.core.exceptions import ValidationError

if TYPE_CHECKING:
    import pandas as pd


@dataclass
class DataSource:
    """
    Named numeric columns. Domain-agnostic.

    Construct via factory classmethods, not directly.
    """
    _data: dict[str, Any]
    _metadata: dict[str, Any] = field(default_factory=dict)

    # === Column Access ===

    def keys(self) -> frozenset[str]:
        """
        Return the names of all available columns.

        Example:
            >>> ds = DataSource.from_arrays(x=x, y=y)
            >>> ds.keys()
            frozenset({'x', 'y'})
        """
        return frozenset(self._data.keys())

    def __getitem__(self, key: str) -> Any:
        """
        Access a named column.

        Raises:
            KeyError: If key not found, with helpful message listing available keys
        """
        if key not in self._data:
            available = sorted(self.keys())
            raise KeyError(
                f"DataSource has no column '{key}'. Available: {available}"
            )
        return self._data[key]

    def __contains__(self, key: str) -> bool:
        """Check if a column exists."""
        return key in self._data

    # === Properties ===

    @property
    def n_observations(self) -> int:
        """Number of rows (length of the first column)."""
        return self._metadata.get('n_observations', 0)

    @property
    def metadata(self) -> dict[str, Any]:
        """Domain-agnostic metadata."""
        return self._metadata.copy()

    # === Factory Methods ===

    @classmethod
    def from_arrays(cls, **columns: ArrayLike) -> DataSource:
        """Construct from named array-likes."""
        return cls._build(columns, source='arrays')

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, ArrayLike]) -> DataSource:
        """Construct from any mapping of column name to array-like."""
        return cls._build(dict(mapping), source='mapping')

    @classmethod
    def from_dataframe(cls, df: 'pd.DataFrame') -> DataSource:
        """Construct from a pandas DataFrame (one column per DataFrame column)."""
        storage = {str(col): df[col].to_numpy() for col in df.columns}
        ds = cls._build(storage, source='dataframe')
        ds._metadata['columns'] = [str(col) for col in df.columns]
        return ds

    @classmethod
    def build(cls, data: Any) -> DataSource:
        """
        Convenience factory that dispatches on the type of `data`.

        Examples:
            DataSource.build(ds)                  # passthrough
            DataSource.build({'x': x, 'y': y})    # from_mapping
            DataSource.build(df)                  # from_dataframe
        """
        if isinstance(data, DataSource):
            return data
        if hasattr(data, 'columns') and hasattr(data, 'to_numpy'):
            return cls.from_dataframe(data)
        if isinstance(data, Mapping):
            return cls.from_mapping(data)
        raise ValidationError(
            f"data must be a DataSource, a mapping of column name to array, "
            f"or a DataFrame; got {type(data).__name__}"
        )

    @classmethod
    def _build(cls, columns: dict[str, Any], source: str) -> DataSource:
        storage: dict[str, Any] = {}
        n_obs: int | None = None
        for name, arr in columns.items():
            arr = np.asarray(arr)
            if arr.ndim == 2 and arr.shape[1] == 1:
                arr = arr.ravel()
            storage[name] = arr
            if n_obs is None and arr.ndim >= 1:
                n_obs = arr.shape[0]
        return cls(
            _data=storage,
            _metadata={'n_observations': n_obs or 0, 'source': source},
        )
