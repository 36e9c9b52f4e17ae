"""
Test ClaimsDataset validation and helpers.
"""

import numpy as np
import pandas as pd
import pytest

import sys
sys.path.append('../')

from freqboost.dataset import ClaimsDataset


class TestClaimsDataset:

    @pytest.fixture
    def policy_table(self):
        return pd.DataFrame({
            'claims': [0, 1, 0, 2],
            'exposure': [1.0, 0.5, 0.25, 1.0],
            'gender': ['male', 'female', 'female', 'male'],
            'age': [25, 40, 61, 33]
        })

    def test_from_frame(self, policy_table):
        dataset = ClaimsDataset.from_frame(policy_table, 'claims', 'exposure')

        assert len(dataset) == 4
        assert list(dataset.features.columns) == ['gender', 'age']
        assert dataset.total_count == 3.0
        assert dataset.total_exposure == 2.75

    def test_from_frame_unit_exposure(self, policy_table):
        dataset = ClaimsDataset.from_frame(policy_table, 'claims', feature_columns=['age'])

        np.testing.assert_array_equal(dataset.exposure, np.ones(4))
        assert list(dataset.features.columns) == ['age']

    def test_read_only(self, policy_table):
        dataset = ClaimsDataset.from_frame(policy_table, 'claims', 'exposure')

        with pytest.raises(ValueError):
            dataset.counts[0] = 5

        with pytest.raises(AttributeError):
            dataset.counts = np.zeros(4)

    def test_caller_arrays_untouched(self):
        exposure = np.ones(3)
        ClaimsDataset(features=np.zeros((3, 1)), exposure=exposure, counts=np.zeros(3))

        exposure[0] = 2.0
        assert exposure.flags.writeable

    def test_subset(self, policy_table):
        dataset = ClaimsDataset.from_frame(policy_table, 'claims', 'exposure')
        subset = dataset.subset([1, 3])

        assert len(subset) == 2
        np.testing.assert_array_equal(subset.counts, [1, 2])
        assert list(subset.features.index) == [0, 1]

    def test_validation(self):
        features = np.zeros((3, 2))

        with pytest.raises(ValueError):
            ClaimsDataset(features=features, exposure=np.ones(2), counts=np.zeros(3))

        with pytest.raises(ValueError):
            ClaimsDataset(features=features, exposure=-np.ones(3), counts=np.zeros(3))

        with pytest.raises(ValueError):
            ClaimsDataset(features=features, exposure=np.ones(3), counts=np.array([0, -1, 0]))

        with pytest.raises(ValueError):
            ClaimsDataset(features=features, exposure=np.ones(3), counts=np.array([0, 0.5, 0]))

        with pytest.raises(ValueError):
            ClaimsDataset(features=np.zeros(3), exposure=np.ones(3), counts=np.zeros(3))
