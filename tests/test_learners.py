"""
Test weak learners.
"""

import numpy as np
import pandas as pd
import pytest
from sklearn.base import clone

import sys
sys.path.append('../')

from freqboost.learners import PoissonTreeLearner, ConstantLearner, BaseWeakLearner
from freqboost.exceptions import DegenerateInputError, UnfittedModelError


class TestPoissonTreeLearner:

    @pytest.fixture
    def two_group_data(self):
        """Two groups of 50 policies with very different claim rates."""
        X = np.repeat([[0.0], [1.0]], 50, axis=0)
        counts = np.concatenate([np.zeros(50), np.full(50, 2.0)])
        counts[0] = 1.0
        offset = np.ones(100)
        return X, counts, offset

    @pytest.fixture
    def categorical_data(self):
        """Policy table with categorical and numeric covariates."""
        rng = np.random.default_rng(42)
        n_samples = 2000

        X = pd.DataFrame({
            'gender': rng.choice(['female', 'male'], n_samples),
            'age': rng.integers(18, 66, n_samples),
            'sport': rng.choice(['yes', 'no'], n_samples)
        })
        mu = 0.2 * np.where(X['age'] < 30, 2.0, 1.0) * np.where(X['sport'] == 'yes', 1.5, 1.0)
        offset = rng.uniform(0.1, 1.0, n_samples)
        counts = rng.poisson(mu * offset)

        return X, counts, offset

    def test_leaf_rates_without_shrinkage(self, categorical_data):
        """With shrink=0 each leaf predicts sum(counts) / sum(offset)."""
        X, counts, offset = categorical_data

        learner = PoissonTreeLearner(max_depth=3, min_samples_split=50, shrink=0.0)
        learner.fit(X, counts, offset)

        predictions = learner.predict(X)
        leaves = learner.estimator_.apply(learner._encode(X, fit=False))

        for leaf in np.unique(leaves):
            in_leaf = leaves == leaf
            expected_rate = counts[in_leaf].sum() / offset[in_leaf].sum()
            np.testing.assert_allclose(predictions[in_leaf], expected_rate)

    def test_shrinkage_formula(self, two_group_data):
        """Leaf rates follow the Gamma-prior shrinkage towards the root rate."""
        X, counts, offset = two_group_data

        learner = PoissonTreeLearner(max_depth=1, min_samples_split=2, shrink=1.0)
        learner.fit(X, counts, offset)

        assert learner.n_leaves_ == 2

        root_rate = counts.sum() / offset.sum()
        alpha = 1.0
        beta = alpha / root_rate

        predictions = learner.predict(np.array([[0.0], [1.0]]))
        np.testing.assert_allclose(predictions[0], (alpha + 1.0) / (beta + 50.0))
        np.testing.assert_allclose(predictions[1], (alpha + 100.0) / (beta + 50.0))

    def test_predictions_positive(self, categorical_data):
        """Shrunk leaf rates are strictly positive."""
        X, counts, offset = categorical_data

        learner = PoissonTreeLearner(max_depth=4, min_samples_split=2)
        learner.fit(X, counts, offset)

        predictions = learner.predict(X)
        assert np.all(predictions > 0)
        assert np.all(np.isfinite(predictions))
        assert np.all(learner.get_leaf_rates() > 0)
        assert len(learner.get_leaf_rates()) == learner.n_leaves_

    def test_depth_control(self, categorical_data):
        X, counts, offset = categorical_data

        for max_depth in [1, 2, 3]:
            learner = PoissonTreeLearner(max_depth=max_depth, min_samples_split=2)
            learner.fit(X, counts, offset)
            assert learner.depth_ <= max_depth
            assert learner.n_leaves_ <= 2 ** max_depth

    def test_zero_offsets(self, categorical_data):
        """Zero offsets carry no weight and do not raise."""
        X, counts, offset = categorical_data
        offset = offset.copy()
        offset[:100] = 0.0

        learner = PoissonTreeLearner(max_depth=2)
        learner.fit(X, counts, offset)

        assert len(learner.predict(X)) == len(X)

    def test_degenerate_fit(self, categorical_data):
        """No claims, or claims only where offset is zero, cannot be fitted."""
        X, counts, offset = categorical_data

        with pytest.raises(DegenerateInputError):
            PoissonTreeLearner().fit(X, np.zeros(len(X)), offset)

        with pytest.raises(DegenerateInputError):
            PoissonTreeLearner().fit(X, counts, np.zeros(len(X)))

    def test_unseen_category_level(self, categorical_data):
        """Prediction frames may lack category levels seen during fit."""
        X, counts, offset = categorical_data

        learner = PoissonTreeLearner(max_depth=2)
        learner.fit(X, counts, offset)

        query = pd.DataFrame({'gender': ['male'], 'age': [25], 'sport': ['yes']})
        predictions = learner.predict(query)

        assert predictions.shape == (1,)
        assert predictions[0] > 0
        assert 'gender_female' in learner.feature_names_

    def test_input_validation(self, categorical_data):
        X, counts, offset = categorical_data

        with pytest.raises(ValueError):
            PoissonTreeLearner().fit(X, counts[:-1], offset)

        with pytest.raises(ValueError):
            PoissonTreeLearner().fit(X, counts, -offset)

        learner = PoissonTreeLearner().fit(np.random.normal(size=(50, 3)),
                                           np.ones(50), np.ones(50))
        with pytest.raises(ValueError):
            learner.predict(np.random.normal(size=(5, 4)))

    def test_predict_before_fit(self):
        with pytest.raises(UnfittedModelError):
            PoissonTreeLearner().predict(np.zeros((2, 1)))

    def test_clone(self):
        """Learners are scikit-learn estimators and clone cleanly."""
        learner = PoissonTreeLearner(max_depth=5, shrink=0.5)
        cloned = clone(learner)

        assert isinstance(cloned, BaseWeakLearner)
        assert cloned.get_params() == learner.get_params()
        assert not hasattr(cloned, 'estimator_')

    def test_pruning_path(self, categorical_data):
        X, counts, offset = categorical_data

        path = PoissonTreeLearner(max_depth=4, min_samples_split=2).cost_complexity_pruning_path(
            X, counts, offset
        )

        assert np.all(np.diff(path.ccp_alphas) >= 0)
        assert len(path.ccp_alphas) == len(path.impurities)


class TestConstantLearner:

    def test_constant_predictions(self):
        learner = ConstantLearner(1.5).fit(np.zeros((3, 2)), np.ones(3), np.ones(3))
        np.testing.assert_array_equal(learner.predict(np.zeros((5, 2))), np.full(5, 1.5))

    def test_validates_lengths(self):
        with pytest.raises(ValueError):
            ConstantLearner().fit(np.zeros((3, 2)), np.ones(2), np.ones(3))
