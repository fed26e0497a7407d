"""
Tests for the column-oriented DataSource.
"""

import numpy as np
import pandas as pd
import pytest

from pyadditive.core.datasource import DataSource
from pyadditive.core.exceptions import ValidationError


class TestConstruction:

    def test_from_arrays(self):
        ds = DataSource.from_arrays(y=[1.0, 2.0, 3.0], x=np.arange(3))
        assert ds.keys() == frozenset({'y', 'x'})
        assert ds.n_observations == 3
        assert ds.metadata['source'] == 'arrays'

    def test_from_mapping(self):
        ds = DataSource.from_mapping({'a': np.zeros(4)})
        assert 'a' in ds
        assert ds.n_observations == 4

    def test_from_dataframe(self):
        df = pd.DataFrame({'y': [0.0, 1.0], 'x': [2.0, 3.0]})
        ds = DataSource.from_dataframe(df)
        np.testing.assert_array_equal(ds['x'], [2.0, 3.0])
        assert ds.metadata['columns'] == ['y', 'x']

    def test_column_vectors_flattened(self):
        ds = DataSource.from_arrays(x=np.ones((5, 1)))
        assert ds['x'].shape == (5,)


class TestBuild:

    def test_passthrough(self):
        ds = DataSource.from_arrays(x=[1.0])
        assert DataSource.build(ds) is ds

    def test_mapping(self):
        ds = DataSource.build({'x': [1.0, 2.0]})
        assert ds.metadata['source'] == 'mapping'

    def test_dataframe(self):
        ds = DataSource.build(pd.DataFrame({'x': [1.0, 2.0]}))
        assert ds.metadata['source'] == 'dataframe'

    def test_rejects_other_types(self):
        with pytest.raises(ValidationError, match="DataSource"):
            DataSource.build([1.0, 2.0])


class TestAccess:

    def test_missing_column_lists_available(self):
        ds = DataSource.from_arrays(x=[1.0], y=[2.0])
        with pytest.raises(KeyError, match="Available"):
            ds['z']

    def test_metadata_is_a_copy(self):
        ds = DataSource.from_arrays(x=[1.0])
        ds.metadata['source'] = 'changed'
        assert ds.metadata['source'] == 'arrays'
